"""Tests for PGN formatting."""

from __future__ import annotations

import io
from datetime import date

import chess
import chess.pgn
import pytest

from qchess.pgn.writer import PgnHeaders, format_pgn, write_pgn_file


def _headers(result: str = "1-0") -> PgnHeaders:
    """Seven-tag roster used across tests."""
    return PgnHeaders(
        event="SelfPlay",
        site="Local",
        date=date(2025, 1, 1),
        round="1",
        white="White",
        black="Black",
        result=result,
    )


def test_format_and_write_pgn(tmp_path) -> None:
    """format_pgn renders SAN movetext and write_pgn_file persists it."""
    moves = ["e2e4", "e7e5", "g1f3"]
    pgn = format_pgn(_headers(), moves)
    # Validate headers and movetext content.
    assert '[Event "SelfPlay"]' in pgn
    assert '[Date "2025.01.01"]' in pgn
    assert '[Result "1-0"]' in pgn
    assert "1. e4 e5 2. Nf3 1-0" in pgn
    path = tmp_path / "game.pgn"
    write_pgn_file(path, pgn)
    assert path.read_text(encoding="utf-8") == pgn


def test_pgn_parses_back() -> None:
    """python-chess reads the exported game back move for move."""
    moves = ["d2d4", "d7d5", "c2c4", "e7e6", "b1c3"]
    pgn = format_pgn(_headers("*"), moves)
    game = chess.pgn.read_game(io.StringIO(pgn))
    assert game is not None
    assert [move.uci() for move in game.mainline_moves()] == moves
    assert game.headers["Result"] == "*"


def test_empty_game() -> None:
    """A game without moves still carries headers and a result."""
    pgn = format_pgn(_headers("1/2-1/2"), [])
    assert pgn.endswith("1/2-1/2\n")


def test_invalid_move_token() -> None:
    """Malformed move tokens raise ValueError."""
    with pytest.raises(ValueError):
        _ = format_pgn(_headers(), ["e2e9"])
