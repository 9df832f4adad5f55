"""
Self-play and online-play drivers.
"""

from qchess.selfplay.live import (
    GameClient,
    LiveConfig,
    TurnEvent,
    play_online_game,
)
from qchess.selfplay.rollout import (
    SelfPlayConfig,
    SelfPlayGame,
    play_self_game,
)

__all__ = [
    "GameClient",
    "LiveConfig",
    "SelfPlayConfig",
    "SelfPlayGame",
    "TurnEvent",
    "play_online_game",
    "play_self_game",
]
