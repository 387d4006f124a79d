"""Per-connection dispatch of SuperXO protocol messages."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Type, Union, get_args

from pydantic import BaseModel

from .protocol import (
    ClientMessage,
    CreateMessage,
    Created,
    Error,
    JoinMessage,
    Joined,
    MoveMessage,
    RematchMessage,
    RematchWaiting,
    Update,
    parse_client_message,
)
from .rooms import Peer, Room, RoomError, RoomRegistry

logger = logging.getLogger(__name__)


class ConnectionHandler:
    """Tracks which room and slot a connection holds and routes its messages.

    Every method runs to completion without awaiting, so a message's effect
    on a room is never interleaved with another connection's.
    """

    def __init__(self, registry: RoomRegistry, peer: Peer) -> None:
        self.registry = registry
        self.peer = peer
        self.code: Optional[str] = None
        self.slot: Optional[int] = None

    @property
    def room(self) -> Optional[Room]:
        return self.registry.get(self.code)

    def handle_text(self, raw: Union[str, bytes]) -> None:
        message = parse_client_message(raw)
        if message is None:
            logger.debug("Dropping malformed frame from room %s", self.code)
            return
        self.dispatch(message)

    def dispatch(self, message: ClientMessage) -> None:
        _DISPATCH[type(message)](self, message)

    def on_create(self, message: CreateMessage) -> None:
        self._leave()
        code = self.registry.create(self.peer)
        self.code, self.slot = code, 0
        self.peer.send(Created(code=code))

    def on_join(self, message: JoinMessage) -> None:
        def seated(room: Room, slot: int) -> None:
            if room.code != self.code:
                self._leave()
            self.code, self.slot = room.code, slot
            self.peer.send(Joined(code=room.code, slot_index=slot))

        try:
            self.registry.join(message.code, self.peer, on_seated=seated)
        except RoomError as exc:
            self.peer.send(Error(msg=exc.message))

    def on_move(self, message: MoveMessage) -> None:
        room = self.room
        if room is None or not room.started or room.slots[self.slot] is not self.peer:
            return
        if self.slot != room.game.turn:
            return
        if not room.game.play(message.board_index, message.cell):
            return
        self.registry.touch(room)
        room.broadcast(Update(game=room.game.to_dict()))

    def on_rematch(self, message: RematchMessage) -> None:
        room = self.room
        if room is None or room.slots[self.slot] is not self.peer:
            return
        self.registry.touch(room)
        if room.vote_rematch(self.slot):
            logger.info("Room %s: rematch", room.code)
            room.broadcast_start()
        else:
            room.broadcast(RematchWaiting())

    def on_close(self) -> None:
        self._leave()

    def _leave(self) -> None:
        self.registry.release(self.code, self.slot, self.peer)
        self.code = self.slot = None


_DISPATCH: Dict[Type[BaseModel], Callable[[ConnectionHandler, BaseModel], None]] = {
    CreateMessage: ConnectionHandler.on_create,
    JoinMessage: ConnectionHandler.on_join,
    MoveMessage: ConnectionHandler.on_move,
    RematchMessage: ConnectionHandler.on_rematch,
}

_unhandled = set(get_args(get_args(ClientMessage)[0])) - set(_DISPATCH)
if _unhandled:
    raise TypeError(f"No handler for client messages: {sorted(t.__name__ for t in _unhandled)}")
