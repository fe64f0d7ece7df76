"""
Orchestration between the board UI, the local chess rules and the protocol client.

Outgoing: a drop gesture is checked against the movement rules, encoded into notation, sent,
and only applied to the local board once the commit window passed without complaints.

Incoming: the protocol client hands over decoded events, which are turned into render instructions here.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

from chessclient.api.events import (
    AssignedMatchEvent,
    ClockUpdateEvent,
    InboundEvent,
    MatchOverEvent,
    PropagateMoveEvent,
    PropagatePositionEvent,
    join_match_event,
    make_move_event,
    new_engine_match_event,
)
from chessclient.chess.board import BoardPosition
from chessclient.chess.castling import castling_direction
from chessclient.chess.fen import active_color
from chessclient.chess.moves import Move, is_en_passant, is_promotion_move, is_valid_move
from chessclient.chess.notation import notate
from chessclient.chess.pieces import PROMOTION_LETTERS, Piece
from chessclient.chess.square import NUM_SQUARES
from chessclient.core.config import ClientConfig
from chessclient.core.exceptions import (
    CommitCancelledError,
    InvalidRequestError,
    MatchRejectedError,
    NotConnectedError,
)
from chessclient.core.shared_types import ClockSide, Color, Endpoint, EventType, PieceType
from chessclient.protocol.client import ProtocolClient
from chessclient.protocol.transport import Connector, websocket_connector

logger = logging.getLogger(__name__)

# What the match server accepts (anything else it refuses anyway, so don't bother sending it)
SUPPORTED_TIME_CONTROLS: tuple[str, ...] = ("1m", "3m", "5m", "10m", "20m")
SUPPORTED_ENGINE_ELOS: tuple[int, ...] = (600, 1000, 1400, 1800, 2200)
ENGINE_MATCH_TIME_CONTROL = "30m"

PromotionPrompt = Callable[[], Awaitable[str]]


class RenderSurface(Protocol):
    """
    Whatever draws the board. Squares are always passed in canonical numbering (0 = a8);
    the surface itself flips them for the dark perspective (see `square.to_display_index()`).
    """

    def create_board(self, perspective: Color) -> None: ...
    def place_piece(self, index: int, piece: Piece) -> None: ...
    def remove_piece(self, index: int) -> None: ...
    def show_message(self, message: str, seconds: float) -> None: ...
    def show_turn(self, turn: Optional[Color]) -> None: ...
    def show_match_info(self, text: str) -> None: ...
    def show_clock(self, side: ClockSide, text: str) -> None: ...


def time_control_seconds(time_control: str) -> int:
    """'5m' -> 300"""
    minutes = time_control.removesuffix("m")
    if not minutes.isdigit():
        raise InvalidRequestError(f"Cannot interpret time control {time_control!r}.")
    return int(minutes) * 60


def describe_rejection(reason: Any) -> str:
    """Text shown to the user for a refused action. Server payloads are shown as they came in."""
    if isinstance(reason, (str, Exception)):
        return str(reason)
    return json.dumps(reason)


class MatchSession:
    """Session scoped state of one player in one match."""

    def __init__(
        self,
        render: RenderSurface,
        promotion_prompt: PromotionPrompt,
        config: Optional[ClientConfig] = None,
        connector: Connector = websocket_connector,
    ) -> None:
        self.config = config or ClientConfig()
        self.render = render
        self.promotion_prompt = promotion_prompt
        self.client = ProtocolClient(
            self.config,
            connector,
            on_event=self.handle_event,
            on_disconnect=self.handle_disconnect,
        )

        self.position = BoardPosition()
        self.match_id: Optional[str] = None
        self.player_pieces: Optional[Color] = None
        self.player_turn = Color.LIGHT
        self.time_control: Optional[str] = None
        self.concluded = False

        self._handlers: dict[EventType, Callable[[Any], None]] = {
            EventType.ASSIGNED_MATCH: self._on_assigned_match,
            EventType.PROPAGATE_POSITION: self._on_propagate_position,
            EventType.PROPAGATE_MOVE: self._on_propagate_move,
            EventType.CLOCK_UPDATE: self._on_clock_update,
            EventType.MATCH_OVER: self._on_match_over,
        }

    # -- STARTING A MATCH ---
    async def join_match(self, time_control: str) -> None:
        """Queue up for a match against another player."""
        if time_control not in SUPPORTED_TIME_CONTROLS:
            raise InvalidRequestError(
                f"Time control {time_control!r} not in {','.join(SUPPORTED_TIME_CONTROLS)}."
            )
        self.time_control = time_control
        await self.client.connect(Endpoint.MATCHMAKING, join_match_event(time_control))

    async def new_engine_match(self, elo: int) -> None:
        """Play against the server's engine at the given strength."""
        if elo not in SUPPORTED_ENGINE_ELOS:
            raise InvalidRequestError(
                f"Engine ELO {elo} not in {','.join(str(e) for e in SUPPORTED_ENGINE_ELOS)}."
            )
        self.time_control = ENGINE_MATCH_TIME_CONTROL
        await self.client.connect(Endpoint.ENGINE, new_engine_match_event(elo))

    async def leave(self) -> None:
        await self.client.close()

    # -- DRAG AND DROP ---
    async def drop(self, start: int, target: int) -> Optional[str]:
        """
        The player dropped the piece from `start` onto `target`.

        Returns the notation that was committed, or None if the move was refused (locally or by the server).
        The local board only changes after the commit.
        """
        if self.concluded:
            return self._reject("match over")

        piece = self.position.piece_at(start)
        if piece is None:
            return self._reject("no piece on that square")
        if piece.color != self.player_turn:
            return self._reject("not your turn buddy")
        if self.player_pieces is not None and piece.color != self.player_pieces:
            return self._reject("not your pieces")

        occupant = self.position.piece_at(target)
        if occupant is not None and occupant.color == piece.color:
            return self._reject("invalid move")
        if not is_valid_move(piece, start, target, self.position.piece_at):
            return self._reject("invalid move")

        move = await self._build_move(piece, start, target)
        if move is None:
            return None

        notation = notate(move)
        position_sent_from = self.position
        if not await self.client.send(make_move_event(notation)):
            raise NotConnectedError(f"Could not send move {notation!r}: not connected.")

        try:
            await self.client.await_commit()
        except MatchRejectedError as exc:
            return self._reject(describe_rejection(exc.payload))
        except CommitCancelledError:
            logger.warning("Connection lost before %r was committed", notation)
            return None

        if self.position is not position_sent_from:
            # the server already pushed the position (and turn) after this move
            logger.info("Move %s committed, position already synced by server", notation)
            return notation

        for index in self.position.apply(move):
            self._render_square(index)
        self._set_turn(self.player_turn.opponent)
        logger.info("Move %s committed", notation)
        return notation

    async def _build_move(self, piece: Piece, start: int, target: int) -> Optional[Move]:
        en_passant = piece.type == PieceType.PAWN and is_en_passant(
            start, target, piece.color, self.position.piece_at
        )
        is_capture = self.position.piece_at(target) is not None or en_passant
        is_castle = (
            piece.type == PieceType.KING
            and castling_direction(start, target, piece.color) is not None
        )

        promotion = None
        if is_promotion_move(piece, target):
            promotion = (await self.promotion_prompt()).strip().upper()
            if promotion not in PROMOTION_LETTERS:
                self._reject(f"cannot promote to {promotion!r}")
                return None

        return Move(
            start=start,
            target=target,
            piece=piece,
            is_capture=is_capture,
            promotion=promotion,
            is_castle=is_castle,
            is_en_passant=en_passant,
        )

    # -- SERVER PUSHES ---
    def handle_event(self, event: InboundEvent) -> None:
        handler = self._handlers.get(EventType(event.type))
        if handler is None:
            logger.debug("No session handler for %r", event.type)
            return
        handler(event)

    def handle_disconnect(self) -> None:
        """Transport gone: nothing about the match on screen can be trusted anymore."""
        self.render.show_turn(None)
        if not self.concluded:
            self.render.show_match_info("")
        logger.info("Session disconnected (match %s)", self.match_id)

    def _on_assigned_match(self, event: AssignedMatchEvent) -> None:
        self.match_id = event.payload.match_id
        self.player_pieces = event.payload.pieces
        self.player_turn = Color.LIGHT
        self.concluded = False
        self.position = BoardPosition.starting_position()

        self.render.create_board(self.player_pieces)
        self._render_all()
        self.render.show_turn(self.player_turn)
        self.render.show_match_info(f"Match ID: {self.match_id}")
        if self.time_control is not None:
            starting_time = str(time_control_seconds(self.time_control))
            for side in ClockSide:
                self.render.show_clock(side, starting_time)
        logger.info("Assigned match %s playing %s", self.match_id, self.player_pieces)

    def _on_propagate_position(self, event: PropagatePositionEvent) -> None:
        # decode completely before touching anything, a bad FEN leaves the board as it was
        fen = event.payload.fen
        self.position = BoardPosition.from_fen(fen)
        self._render_all()

        next_turn = active_color(fen)
        self._set_turn(next_turn if next_turn is not None else self.player_turn.opponent)

    def _on_propagate_move(self, event: PropagateMoveEvent) -> None:
        self._set_turn(self.player_turn.opponent)

    def _on_clock_update(self, event: ClockUpdateEvent) -> None:
        side = (
            ClockSide.PLAYER
            if event.payload.clock_owner == self.player_pieces
            else ClockSide.OPPONENT
        )
        self.render.show_clock(side, event.payload.whole_seconds)

    def _on_match_over(self, event: MatchOverEvent) -> None:
        self.concluded = True
        self.render.show_turn(None)
        self.render.show_match_info("match over")
        logger.info("Match %s over: %r", self.match_id, event.payload)

    # -- INTERNAL HELPERS ---
    def _set_turn(self, color: Color) -> None:
        self.player_turn = color
        self.render.show_turn(color)

    def _render_square(self, index: int) -> None:
        piece = self.position.piece_at(index)
        if piece is None:
            self.render.remove_piece(index)
        else:
            self.render.place_piece(index, piece)

    def _render_all(self) -> None:
        for index in range(NUM_SQUARES):
            self._render_square(index)

    def _reject(self, message: str) -> None:
        logger.info("Move refused: %s", message)
        self.render.show_message(message, self.config.message_seconds)
        return None
