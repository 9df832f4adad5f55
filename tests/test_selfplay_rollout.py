"""Tests for the self-play driver."""

from __future__ import annotations

import chess
import jax
import numpy as np
import pytest
from stubs import ConstantApproximator, PreferMovesApproximator, SequenceRandom

from qchess.env.chess_rules import apply_move, legal_moves, new_position
from qchess.errors import InternalConsistencyError
from qchess.features.encode import encode_action, encode_state
from qchess.rng import RngStream
from qchess.selfplay.rollout import (
    SelfPlayConfig,
    _require_move,
    play_self_game,
)
from qchess.types import GameId


def _index_of(board: chess.Board, uci: str) -> int:
    """Position of a move in the legal-move enumeration."""
    return legal_moves(board).index(chess.Move.from_uci(uci))


def test_policy_move_updates_state() -> None:
    """A policy turn pair records the squares vacated and occupied."""
    approx = PreferMovesApproximator(["e2e4"], mover_is_first=True)
    cfg = SelfPlayConfig(retain_rate=1.0, max_plies=2)
    game = play_self_game(
        approximator=approx, rng=SequenceRandom([0.9]), cfg=cfg
    )

    # d7d5 mirrors e2e4, so B prefers it from its own viewpoint.
    assert game.moves == ("e2e4", "d7d5")
    assert game.policy_moves == 1
    assert game.random_moves == 0
    assert game.result == "*"
    assert len(game.transitions) == 1
    transition = game.transitions[0]
    np.testing.assert_array_equal(
        transition.state, encode_state(new_position(), True)
    )
    np.testing.assert_array_equal(
        transition.action, encode_action("e2e4", True)
    )
    # First block is the mover's pawns.
    assert transition.state[chess.E2] == 1.0
    assert transition.next_state[chess.E2] == 0.0
    assert transition.next_state[chess.E4] == 1.0
    assert transition.reward == 0.0
    assert transition.next_position.fullmove_number == 2


def test_retention_gate_drops_turn_pairs() -> None:
    """A draw above retain_rate drops the completed turn pair."""
    game = play_self_game(
        approximator=ConstantApproximator(),
        rng=SequenceRandom([0.9]),
        cfg=SelfPlayConfig(max_plies=4),
    )
    assert game.plies == 4
    assert game.transitions == ()


def test_random_move_branch() -> None:
    """A low draw plays a random move and retains the turn pair."""
    rng = SequenceRandom([0.1], [0])
    game = play_self_game(
        approximator=ConstantApproximator(),
        rng=rng,
        cfg=SelfPlayConfig(max_plies=2),
    )
    first = legal_moves(new_position())[0]
    assert game.moves[0] == first.uci()
    assert game.random_moves == 1
    assert rng.randint_calls == 1
    assert len(game.transitions) == 1
    np.testing.assert_array_equal(
        game.transitions[0].action, encode_action(first.uci(), True)
    )


def test_reply_checkmate_is_recorded_as_loss() -> None:
    """B mating A yields a -100 reward and a 0-1 result."""
    board = new_position()
    first = _index_of(board, "f2f3")
    board = apply_move(board, chess.Move.from_uci("f2f3"))
    board = apply_move(board, chess.Move.from_uci("e7e5"))
    second = _index_of(board, "g2g4")

    game = play_self_game(
        approximator=PreferMovesApproximator(
            ["e7e5", "d8h4"], mover_is_first=False
        ),
        rng=SequenceRandom([0.1], [first, second]),
        cfg=SelfPlayConfig(),
    )
    assert game.moves == ("f2f3", "e7e5", "g2g4", "d8h4")
    assert game.result == "0-1"
    assert game.random_moves == 2
    assert [t.reward for t in game.transitions] == [0.0, -100.0]
    assert game.transitions[-1].next_position.is_checkmate()


def test_checkmate_on_own_move_is_always_recorded() -> None:
    """A game-ending A move is recorded regardless of the retention draw."""
    start = chess.Board("6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1")
    game = play_self_game(
        approximator=PreferMovesApproximator(["a1a8"], mover_is_first=True),
        rng=SequenceRandom([0.9]),
        cfg=SelfPlayConfig(),
        start=start,
    )
    assert game.moves == ("a1a8",)
    assert game.result == "1-0"
    assert len(game.transitions) == 1
    assert game.transitions[0].reward == 100.0


def test_claimable_draw_uses_material_heuristic() -> None:
    """A claimable draw after A's move ends the game with the heuristic."""
    start = chess.Board("7k/8/8/8/8/8/8/R6K w - - 99 80")
    game = play_self_game(
        approximator=PreferMovesApproximator(["a1a2"], mover_is_first=True),
        rng=SequenceRandom([0.9]),
        cfg=SelfPlayConfig(),
        start=start,
    )
    assert game.moves == ("a1a2",)
    assert game.result == "1/2-1/2"
    assert len(game.transitions) == 1
    # One extra rook for the mover: 2 * 5.
    assert game.transitions[0].reward == pytest.approx(10.0)


def test_rejects_second_player_to_move() -> None:
    """Self-play must start with the first player to move."""
    with pytest.raises(ValueError, match="side A"):
        _ = play_self_game(
            approximator=ConstantApproximator(),
            rng=SequenceRandom([0.9]),
            cfg=SelfPlayConfig(),
            start=apply_move(new_position(), chess.Move.from_uci("e2e4")),
        )


def test_require_move_raises() -> None:
    """A missing move is an internal consistency failure."""
    with pytest.raises(InternalConsistencyError, match="Side B"):
        _ = _require_move(None, "B")
    move = chess.Move.from_uci("e2e4")
    assert _require_move(move, "A") == move


def test_deterministic_given_game_key() -> None:
    """The same per-game key replays the same game."""
    stream = RngStream(jax.random.PRNGKey(0))
    cfg = SelfPlayConfig(max_plies=8)
    games = [
        play_self_game(
            approximator=ConstantApproximator(),
            rng=stream.game_random(GameId(3)),
            cfg=cfg,
        )
        for _ in range(2)
    ]
    assert games[0].moves == games[1].moves
    assert len(games[0].transitions) == len(games[1].transitions)
    assert games[0].plies <= 8


def test_gate_predicates_on_raw_draws() -> None:
    """About half the draws explore and about a fifth are retained."""
    rng = RngStream(jax.random.PRNGKey(7)).game_random(GameId(1))
    cfg = SelfPlayConfig()
    draws = [rng.uniform() for _ in range(1000)]
    by_policy = sum(cfg.moves_by_policy(draw) for draw in draws)
    retained = sum(cfg.retains(draw) for draw in draws)
    assert 430 <= by_policy <= 570
    assert 150 <= retained <= 250


def test_driver_gate_rates_over_many_turns() -> None:
    """Over ~1000 A-turns about half are policy moves and a fifth retained."""
    stream = RngStream(jax.random.PRNGKey(11))
    cfg = SelfPlayConfig(max_plies=2)
    approx = ConstantApproximator()
    by_policy = 0
    retained = 0
    for index in range(1000):
        game = play_self_game(
            approximator=approx,
            rng=stream.game_random(GameId(index)),
            cfg=cfg,
        )
        assert game.policy_moves + game.random_moves == 1
        by_policy += game.policy_moves
        retained += len(game.transitions)
    assert 430 <= by_policy <= 570
    assert 150 <= retained <= 250
    # The shared draw makes every retained turn a random-move turn.
    assert retained <= 1000 - by_policy


def test_odd_ply_cap_stops_after_first_player() -> None:
    """An odd cap ends the game on A's move without recording it."""
    game = play_self_game(
        approximator=ConstantApproximator(),
        rng=SequenceRandom([0.1], [0]),
        cfg=SelfPlayConfig(max_plies=3),
    )
    assert game.plies == 3
    assert game.random_moves == 2
    # Only the first, completed turn pair is kept.
    assert len(game.transitions) == 1
    assert game.result == "*"
