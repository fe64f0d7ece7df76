"""Line based front end: play a match from the terminal."""

import argparse
import asyncio
import logging
from dataclasses import replace
from typing import Optional

from chessclient.chess.pieces import Piece
from chessclient.chess.square import BOARD_WIDTH, NUM_SQUARES, algebraic_to_square, to_display_index
from chessclient.core.config import ClientConfig
from chessclient.core.exceptions import (
    ChessClientError,
    ConfigError,
    FormatError,
    NotConnectedError,
)
from chessclient.core.shared_types import ClockSide, Color, ConnectionState
from chessclient.services.match_session import (
    SUPPORTED_ENGINE_ELOS,
    SUPPORTED_TIME_CONTROLS,
    MatchSession,
)

logger = logging.getLogger(__name__)


class TextRenderSurface:
    """Prints the board whenever the turn display changes (that happens after every position update)."""

    def __init__(self) -> None:
        self.perspective = Color.LIGHT
        self.squares: dict[int, str] = {}

    def create_board(self, perspective: Color) -> None:
        self.perspective = perspective
        self.squares = {}

    def place_piece(self, index: int, piece: Piece) -> None:
        self.squares[index] = piece.to_fen()

    def remove_piece(self, index: int) -> None:
        self.squares.pop(index, None)

    def show_message(self, message: str, seconds: float) -> None:
        print(f"! {message}")

    def show_turn(self, turn: Optional[Color]) -> None:
        if turn is None:
            print("-- no turn --")
            return
        print(self.draw())
        print(f"{turn} to move")

    def show_match_info(self, text: str) -> None:
        if text:
            print(text)

    def show_clock(self, side: ClockSide, text: str) -> None:
        print(f"[{side} clock] {text}s")

    def draw(self) -> str:
        rows: list[str] = []
        for row_start in range(0, NUM_SQUARES, BOARD_WIDTH):
            row = [
                self.squares.get(to_display_index(display_index, self.perspective), ".")
                for display_index in range(row_start, row_start + BOARD_WIDTH)
            ]
            rows.append(" ".join(row))
        return "\n".join(rows)


def parse_move(line: str) -> tuple[int, int]:
    """'e2 e4' or 'e2e4' -> (52, 36)"""
    text = line.replace(" ", "").strip()
    if len(text) != 4:
        raise FormatError(f"Cannot read {line!r} as a move, expected something like 'e2 e4'.")
    return algebraic_to_square(text[:2]), algebraic_to_square(text[2:])


async def prompt_promotion() -> str:
    return await asyncio.to_thread(input, "promote to (Q/R/B/N): ")


async def play(session: MatchSession) -> None:
    while session.client.state == ConnectionState.OPEN:
        try:
            line = await asyncio.to_thread(input, "make your move: ")
        except EOFError:
            break

        try:
            start, target = parse_move(line)
        except FormatError as exc:
            print(f"! {exc}")
            continue

        try:
            await session.drop(start, target)
        except NotConnectedError as exc:
            print(f"! {exc}")
            break


async def run(args: argparse.Namespace) -> int:
    try:
        config = ClientConfig.from_env()
    except ConfigError as exc:
        logger.error("%s", exc)
        print(f"! {exc}")
        return 1
    if args.host:
        config = replace(config, host=args.host)
    if args.insecure:
        config = replace(config, scheme="ws")

    session = MatchSession(TextRenderSurface(), prompt_promotion, config)
    try:
        if args.command == "join":
            await session.join_match(args.time_control)
        else:
            await session.new_engine_match(args.elo)
        await play(session)
    except ChessClientError as exc:
        logger.error("%s", exc)
        print(f"! {exc}")
        return 1
    finally:
        await session.leave()
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="chessclient")
    parser.add_argument("--host", default=None, help="Match server host[:port]")
    parser.add_argument(
        "--insecure", action="store_true", help="Use ws:// instead of wss://"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    join = subparsers.add_parser("join", help="Join the matchmaking queue")
    join.add_argument(
        "--time-control",
        default="5m",
        choices=SUPPORTED_TIME_CONTROLS,
        help="Time control per player (default: 5m).",
    )

    engine = subparsers.add_parser("engine", help="Play against the server's engine")
    engine.add_argument(
        "--elo",
        type=int,
        default=1000,
        choices=SUPPORTED_ENGINE_ELOS,
        help="Engine strength (default: 1000).",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
