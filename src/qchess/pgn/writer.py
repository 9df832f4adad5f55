"""
PGN export for self-play and arena games.

Outputs a PGN string and writes to runs/<run_id>/games/.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from pathlib import Path

import chess
import chess.pgn


@dataclass(frozen=True, slots=True)
class PgnHeaders:
    """Seven-tag-roster PGN headers."""

    event: str
    site: str
    date: date
    round: str
    white: str
    black: str
    result: str  # "1-0", "0-1", "1/2-1/2", "*"


def format_pgn(headers: PgnHeaders, moves: Sequence[str]) -> str:
    """Format headers and a UCI move list into a PGN string.

    Moves are replayed from the standard start position and rendered in SAN.

    Raises:
        ValueError: If a move token is malformed.
    """
    game = chess.pgn.Game()
    game.headers["Event"] = headers.event
    game.headers["Site"] = headers.site
    game.headers["Date"] = headers.date.strftime("%Y.%m.%d")
    game.headers["Round"] = headers.round
    game.headers["White"] = headers.white
    game.headers["Black"] = headers.black
    game.headers["Result"] = headers.result
    node: chess.pgn.GameNode = game
    for uci in moves:
        node = node.add_variation(chess.Move.from_uci(uci))
    exporter = chess.pgn.StringExporter(
        headers=True, variations=False, comments=False
    )
    return game.accept(exporter) + "\n"


def write_pgn_file(path: Path, pgn: str) -> None:
    """Write PGN to disk (UTF-8)."""
    path.write_text(pgn, encoding="utf-8")
