"""
Event messages exchanged with the match server.

Every message on the socket is an envelope {"type": ..., "payload": ...}. The type decides what the payload
looks like, so each event kind gets its own model with a literal `type` and a typed payload.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from chessclient.core.exceptions import InvalidEventError
from chessclient.core.shared_types import Color, EventType


class EventMessage(BaseModel):
    """The bare envelope, before we know what the payload is."""

    type: str = Field(min_length=1)
    payload: Any = None


# --- OUTGOING PAYLOADS ---
class JoinMatchPayload(BaseModel):
    time_control: str = Field(min_length=1)


class NewEngineMatchPayload(BaseModel):
    elo: int


class MakeMovePayload(BaseModel):
    move: str = Field(min_length=1)


# --- INCOMING PAYLOADS ---
class AssignedMatchPayload(BaseModel):
    match_id: str = Field(min_length=1)
    pieces: Color


class PropagatePositionPayload(BaseModel):
    fen: str = Field(min_length=1)
    player: Optional[str] = None

    @field_validator("fen")
    @classmethod
    def validate_fen(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("FEN string cannot be blank.")
        return value


class PropagateMovePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    player: Optional[Color] = None
    move_event: Optional[MakeMovePayload] = Field(default=None, alias="MoveEvent")


class ClockUpdatePayload(BaseModel):
    clock_owner: Color
    time_remaining: str = Field(min_length=1)

    @property
    def whole_seconds(self) -> str:
        """The server sends fractional seconds ('59.873'). Only the part before the decimal point is shown."""
        return self.time_remaining.split(".", 1)[0]


# --- OUTGOING EVENTS ---
class JoinMatchEvent(BaseModel):
    type: Literal["join_match"] = "join_match"
    payload: JoinMatchPayload


class NewEngineMatchEvent(BaseModel):
    type: Literal["new_engine_match"] = "new_engine_match"
    payload: NewEngineMatchPayload


class MakeMoveEvent(BaseModel):
    type: Literal["make_move"] = "make_move"
    payload: MakeMovePayload


OutgoingEvent = Union[JoinMatchEvent, NewEngineMatchEvent, MakeMoveEvent]


def join_match_event(time_control: str) -> JoinMatchEvent:
    return JoinMatchEvent(payload=JoinMatchPayload(time_control=time_control))


def new_engine_match_event(elo: int) -> NewEngineMatchEvent:
    return NewEngineMatchEvent(payload=NewEngineMatchPayload(elo=elo))


def make_move_event(move: str) -> MakeMoveEvent:
    return MakeMoveEvent(payload=MakeMovePayload(move=move))


def encode_event(event: OutgoingEvent) -> str:
    return event.model_dump_json(by_alias=True)


# --- INCOMING EVENTS ---
class AssignedMatchEvent(BaseModel):
    type: Literal["assigned_match"]
    payload: AssignedMatchPayload


class PropagatePositionEvent(BaseModel):
    type: Literal["propagate_position"]
    payload: PropagatePositionPayload


class PropagateMoveEvent(BaseModel):
    type: Literal["propagate_move"]
    payload: PropagateMovePayload = Field(default_factory=PropagateMovePayload)


class ClockUpdateEvent(BaseModel):
    type: Literal["clock_update"]
    payload: ClockUpdatePayload


class MatchOverEvent(BaseModel):
    type: Literal["match_over"]
    payload: Any = None


class MatchErrorEvent(BaseModel):
    type: Literal["match_error"]
    # surfaced to the user exactly as received
    payload: Any = None


InboundEvent = Annotated[
    Union[
        AssignedMatchEvent,
        PropagatePositionEvent,
        PropagateMoveEvent,
        ClockUpdateEvent,
        MatchOverEvent,
        MatchErrorEvent,
    ],
    Field(discriminator="type"),
]
INBOUND_EVENT_TYPES: frozenset[str] = frozenset(
    {
        EventType.ASSIGNED_MATCH,
        EventType.PROPAGATE_POSITION,
        EventType.PROPAGATE_MOVE,
        EventType.CLOCK_UPDATE,
        EventType.MATCH_OVER,
        EventType.MATCH_ERROR,
    }
)
_INBOUND_ADAPTER: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)


def parse_envelope(raw: str | bytes) -> EventMessage:
    try:
        return EventMessage.model_validate_json(raw)
    except ValidationError as exc:
        raise InvalidEventError(f"Cannot interpret message as an event: {raw!r}") from exc


def decode_event(envelope: EventMessage) -> InboundEvent:
    """Turn an envelope of a known incoming type into its typed event. Missing fields raise InvalidEventError."""
    try:
        return _INBOUND_ADAPTER.validate_python(envelope.model_dump(exclude_none=True))
    except ValidationError as exc:
        missing = ", ".join(
            ".".join(str(part) for part in error["loc"][1:]) for error in exc.errors()
        )
        raise InvalidEventError(
            f"Malformed {envelope.type!r} event (problem with: {missing})."
        ) from exc
