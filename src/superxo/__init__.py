"""SuperXO package exposing the rules engine, room registry, and the web application."""

from .game import ClassicGame, Game, apply_move
from .rooms import RoomFull, RoomNotFound, RoomRegistry
from .ui import app, create_app

__all__ = [
    "ClassicGame",
    "Game",
    "RoomFull",
    "RoomNotFound",
    "RoomRegistry",
    "apply_move",
    "app",
    "create_app",
]
