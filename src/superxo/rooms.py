"""In-memory rooms pairing two players around one SuperXO game."""

from __future__ import annotations

import asyncio
import enum
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Protocol, Set

from .codes import CODE_STYLES, generate_code, normalize_code
from .config import Settings
from .game import GameState, new_game
from .protocol import OpponentLeft, ServerMessage, Start

logger = logging.getLogger(__name__)


class Peer(Protocol):
    """A connection as seen by a room: a liveness flag and a non-blocking send."""

    live: bool

    def send(self, message: ServerMessage) -> None: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def call_later(delay: float, callback: Callable[[], None]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class RoomError(Exception):
    message = "Room error."

    def __init__(self, code: str) -> None:
        super().__init__(f"{self.message} ({code})")
        self.code = code


class RoomNotFound(RoomError):
    message = "Room not found."


class RoomFull(RoomError):
    message = "Room is full."


class RoomState(str, enum.Enum):
    ACTIVE = "active"
    HOLDING = "holding"
    CLOSED = "closed"


@dataclass
class Room:
    code: str
    game: GameState
    variant: str = "super"
    slots: List[Optional[Peer]] = field(default_factory=lambda: [None, None])
    rematch_votes: Set[int] = field(default_factory=set)
    hold_timer: Optional[TimerHandle] = field(default=None, repr=False)
    started: bool = False
    closed: bool = False
    touched_at: float = 0.0

    @property
    def state(self) -> RoomState:
        if self.closed:
            return RoomState.CLOSED
        if self.hold_timer is not None:
            return RoomState.HOLDING
        return RoomState.ACTIVE

    def is_live(self, slot: int) -> bool:
        peer = self.slots[slot]
        return peer is not None and peer.live

    def live_peers(self) -> Iterator[Peer]:
        for slot in (0, 1):
            if self.is_live(slot):
                yield self.slots[slot]

    def broadcast(self, message: ServerMessage) -> None:
        for peer in self.live_peers():
            peer.send(message)

    def broadcast_start(self) -> None:
        self.started = True
        self.broadcast(Start(game=self.game.to_dict()))

    def cancel_hold(self) -> None:
        if self.hold_timer is not None:
            self.hold_timer.cancel()
            self.hold_timer = None

    def vote_rematch(self, slot: int) -> bool:
        """Record a vote; returns True when both players agreed and the game was reset."""
        self.rematch_votes.add(slot)
        if len(self.rematch_votes) < 2:
            return False
        self.game = new_game(self.variant)
        self.rematch_votes.clear()
        return True


class RoomRegistry:
    """Process-wide table of live rooms keyed by code."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        scheduler: Scheduler = call_later,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.rooms: Dict[str, Room] = {}
        self._scheduler = scheduler
        self._clock = clock
        self._rng = rng

    def __contains__(self, code: object) -> bool:
        return code in self.rooms

    def __len__(self) -> int:
        return len(self.rooms)

    def get(self, code: Optional[str]) -> Optional[Room]:
        if code is None:
            return None
        return self.rooms.get(code)

    def touch(self, room: Room) -> None:
        room.touched_at = self._clock()

    # ---- lifecycle ----

    def create(self, peer: Peer) -> str:
        self.sweep()
        alphabet, length = CODE_STYLES[self.settings.code_style]
        code = generate_code(self.rooms, alphabet, length, self._rng)
        room = Room(
            code=code,
            game=new_game(self.settings.variant),
            variant=self.settings.variant,
        )
        room.slots[0] = peer
        self.touch(room)
        self.rooms[code] = room
        logger.info("Room %s created", code)
        return code

    def join(
        self,
        code: str,
        peer: Peer,
        on_seated: Optional[Callable[[Room, int], None]] = None,
    ) -> int:
        """Seat ``peer`` in the first vacant slot of room ``code``.

        A peer already seated in the room keeps its slot. Raises
        ``RoomNotFound`` or ``RoomFull``; nothing changes in that case.
        ``on_seated`` runs after the seat is taken and before any ``start``
        broadcast, so the caller can acknowledge the join first.
        """
        self.sweep()
        code = normalize_code(code)
        if self.settings.code_style == "numeric":
            # Leading zeros are lost when a client sends the code as a number.
            code = code.zfill(CODE_STYLES["numeric"][1])
        room = self.rooms.get(code)
        if room is None:
            raise RoomNotFound(code)
        if peer in room.slots:
            return self._rejoin(room, peer, on_seated)
        slot = self._vacant_slot(room)
        if slot is None:
            raise RoomFull(code)

        resumed = room.state is RoomState.HOLDING
        room.cancel_hold()
        room.slots[slot] = peer
        self.touch(room)
        logger.info(
            "Room %s: slot %d %s", code, slot, "reconnected" if resumed else "joined"
        )
        if on_seated is not None:
            on_seated(room, slot)

        # A fresh game waits for both players; a game in progress resumes at once.
        if (
            not self.settings.reconnect
            or room.game.moves_played > 0
            or (room.is_live(0) and room.is_live(1))
        ):
            room.broadcast_start()
        return slot

    def delete(self, code: str) -> None:
        room = self.rooms.pop(code, None)
        if room is None:
            return
        room.cancel_hold()
        room.closed = True
        logger.info("Room %s deleted", code)

    def release(self, code: Optional[str], slot: Optional[int], peer: Peer) -> None:
        """Vacate ``slot`` after its connection closed or moved to another room."""
        room = self.get(code)
        if room is None or slot is None or room.slots[slot] is not peer:
            return
        room.slots[slot] = None
        room.rematch_votes.discard(slot)
        other = 1 - slot

        if not room.is_live(other):
            self.delete(room.code)
            return

        room.slots[other].send(OpponentLeft())
        if not self.settings.reconnect:
            self.delete(room.code)
            return

        room.cancel_hold()
        room.hold_timer = self._scheduler(
            self.settings.grace_seconds, lambda: self._expire_hold(room)
        )
        logger.info(
            "Room %s holding slot %d for %ss", room.code, slot, self.settings.grace_seconds
        )

    def sweep(self) -> None:
        """Drop rooms without activity for longer than the idle limit."""
        limit = self.settings.idle_seconds
        if limit <= 0:
            return
        now = self._clock()
        # A match with both players connected stays until someone leaves.
        expired = [
            code
            for code, room in self.rooms.items()
            if now - room.touched_at >= limit
            and not (room.is_live(0) and room.is_live(1))
        ]
        for code in expired:
            logger.info("Room %s expired after %ss idle", code, limit)
            self.delete(code)

    def close(self) -> None:
        for code in list(self.rooms):
            self.delete(code)

    # ---- helpers ----

    def _vacant_slot(self, room: Room) -> Optional[int]:
        for slot in (0, 1):
            peer = room.slots[slot]
            if peer is None:
                return slot
            if self.settings.reconnect and not peer.live:
                return slot
        return None

    def _rejoin(
        self,
        room: Room,
        peer: Peer,
        on_seated: Optional[Callable[[Room, int], None]],
    ) -> int:
        slot = room.slots.index(peer)
        self.touch(room)
        if on_seated is not None:
            on_seated(room, slot)
        if room.started:
            peer.send(Start(game=room.game.to_dict()))
        return slot

    def _expire_hold(self, room: Room) -> None:
        if self.rooms.get(room.code) is not room:
            return
        room.hold_timer = None
        logger.info("Room %s: grace period elapsed", room.code)
        self.delete(room.code)
