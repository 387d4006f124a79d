"""Core rules for SuperXO (Super Tic-Tac-Toe) and its classic single-board variant."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

Mark = Optional[int]  # None for an empty cell, 0 or 1 for the player holding it
Result = Optional[Union[int, str]]  # a Mark, or DRAW

DRAW = "draw"
PLAYERS: Tuple[int, int] = (0, 1)

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


def line_winner(values: Sequence[Result]) -> Result:
    """Evaluate a 3x3 grid of results.

    Returns the player owning a complete line, ``DRAW`` when every entry is
    set and no line is owned, otherwise ``None``. ``DRAW`` entries never
    count towards a line.
    """
    for a, b, c in WINNING_LINES:
        v = values[a]
        if v in PLAYERS and v == values[b] == values[c]:
            return v
    if all(v is not None for v in values):
        return DRAW
    return None


def _in_range(index: Optional[int]) -> bool:
    return isinstance(index, int) and 0 <= index < 9


# ---------- Super Tic-Tac-Toe ----------


@dataclass
class Game:
    cells: List[List[Mark]] = field(
        default_factory=lambda: [[None] * 9 for _ in range(9)]
    )
    mini_winner: List[Result] = field(default_factory=lambda: [None] * 9)
    game_winner: Result = None
    turn: int = 0
    # None means "free move" (any open mini-board)
    active_board: Optional[int] = None

    @property
    def finished(self) -> bool:
        return self.game_winner is not None

    @property
    def moves_played(self) -> int:
        return sum(c is not None for board in self.cells for c in board)

    def play(self, board_index: Optional[int], cell_index: Optional[int]) -> bool:
        return apply_move(self, board_index, cell_index)

    def to_dict(self) -> Dict[str, object]:
        return {
            "cells": [list(board) for board in self.cells],
            "miniWinner": list(self.mini_winner),
            "gameWinner": self.game_winner,
            "turn": self.turn,
            "activeBoard": self.active_board,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Game":
        return cls(
            cells=[list(board) for board in data["cells"]],
            mini_winner=list(data["miniWinner"]),
            game_winner=data["gameWinner"],
            turn=int(data["turn"]),
            active_board=data["activeBoard"],
        )


def apply_move(game: Game, board_index: Optional[int], cell_index: Optional[int]) -> bool:
    """Play ``game.turn``'s mark at (board_index, cell_index).

    The game is mutated only when the move is legal; ``False`` is returned
    otherwise, leaving every field untouched.
    """
    if not (_in_range(board_index) and _in_range(cell_index)):
        return False
    if game.game_winner is not None:
        return False
    if game.mini_winner[board_index] is not None:
        return False
    if game.cells[board_index][cell_index] is not None:
        return False
    if game.active_board is not None and game.active_board != board_index:
        return False

    game.cells[board_index][cell_index] = game.turn
    game.mini_winner[board_index] = line_winner(game.cells[board_index])

    overall = line_winner(game.mini_winner)
    if overall is not None:
        game.game_winner = overall
        return True

    # Send the opponent to the board matching the cell just played,
    # or anywhere if that board is already decided.
    game.active_board = None if game.mini_winner[cell_index] is not None else cell_index
    game.turn = 1 - game.turn
    return True


# ---------- Classic single board ----------


@dataclass
class ClassicGame:
    board: List[Mark] = field(default_factory=lambda: [None] * 9)
    winner: Result = None
    turn: int = 0

    @property
    def finished(self) -> bool:
        return self.winner is not None

    @property
    def moves_played(self) -> int:
        return sum(c is not None for c in self.board)

    def play(self, board_index: Optional[int], cell_index: Optional[int]) -> bool:
        # The classic board has no mini-boards; only the cell matters.
        return apply_classic_move(self, cell_index)

    def to_dict(self) -> Dict[str, object]:
        return {"board": list(self.board), "winner": self.winner, "turn": self.turn}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "ClassicGame":
        return cls(
            board=list(data["board"]),
            winner=data["winner"],
            turn=int(data["turn"]),
        )


def apply_classic_move(game: ClassicGame, index: Optional[int]) -> bool:
    if not _in_range(index):
        return False
    if game.winner is not None or game.board[index] is not None:
        return False
    game.board[index] = game.turn
    game.winner = line_winner(game.board)
    if game.winner is None:
        game.turn = 1 - game.turn
    return True


GameState = Union[Game, ClassicGame]

VARIANTS = {"super": Game, "classic": ClassicGame}


def new_game(variant: str = "super") -> GameState:
    try:
        return VARIANTS[variant]()
    except KeyError as exc:
        raise ValueError(f"Unknown game variant {variant!r}") from exc
