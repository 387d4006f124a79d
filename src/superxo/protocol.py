"""Typed WebSocket messages exchanged between SuperXO clients and the server."""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

# ---------- client -> server ----------


class CreateMessage(BaseModel):
    type: Literal["create"]


class JoinMessage(BaseModel):
    type: Literal["join"]
    code: str = Field(default="", max_length=32)

    @field_validator("code", mode="before")
    @classmethod
    def accept_numeric_code(cls, value: Any) -> Any:
        # Numeric room codes may arrive as JSON numbers.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class MoveMessage(BaseModel):
    """A move attempt.

    Super games send ``boardIndex`` and ``cellIndex``; the classic variant
    sends a flat ``index`` (``cellIndex`` is accepted as well).
    """

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["move"]
    board_index: Optional[int] = Field(default=None, alias="boardIndex", ge=0, le=8)
    cell_index: Optional[int] = Field(default=None, alias="cellIndex", ge=0, le=8)
    index: Optional[int] = Field(default=None, ge=0, le=8)

    @model_validator(mode="after")
    def ensure_target_cell(self) -> "MoveMessage":
        if self.cell_index is None and self.index is None:
            raise ValueError("A move needs cellIndex or index")
        return self

    @property
    def cell(self) -> int:
        return self.cell_index if self.cell_index is not None else self.index


class RematchMessage(BaseModel):
    type: Literal["rematch"]


ClientMessage = Annotated[
    Union[CreateMessage, JoinMessage, MoveMessage, RematchMessage],
    Field(discriminator="type"),
]

_CLIENT_MESSAGE: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


def parse_client_message(raw: Union[str, bytes]) -> Optional[ClientMessage]:
    """Parse one frame; ``None`` for malformed JSON, unknown types or bad fields."""
    try:
        return _CLIENT_MESSAGE.validate_json(raw)
    except ValidationError:
        return None


# ---------- server -> client ----------


class ServerMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def dump(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Created(ServerMessage):
    type: Literal["created"] = "created"
    code: str


class Joined(ServerMessage):
    type: Literal["joined"] = "joined"
    code: str
    slot_index: int = Field(alias="slotIndex")


class Error(ServerMessage):
    type: Literal["error"] = "error"
    msg: str


class Start(ServerMessage):
    type: Literal["start"] = "start"
    game: Dict[str, Any]


class Update(ServerMessage):
    type: Literal["update"] = "update"
    game: Dict[str, Any]


class RematchWaiting(ServerMessage):
    type: Literal["rematch_waiting"] = "rematch_waiting"


class OpponentLeft(ServerMessage):
    type: Literal["opponent_left"] = "opponent_left"
