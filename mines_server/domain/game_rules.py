"""Economic constants, pot math and lifecycle rules.

All probabilities and multipliers are in basis points of BASIS_POINTS.
"""

from enum import Enum

BASIS_POINTS = 10_000

DEFAULT_MINE_PROBABILITY = 2_000  # 20%
DEFAULT_REWARD_MULTIPLIER = 12_000  # 1.2x

MINE_PROBABILITY_BOUNDS = (100, 5_000)
REWARD_MULTIPLIER_BOUNDS = (10_000, 20_000)

TIMELOCK_DELAY_SECONDS = 24 * 60 * 60


class GameParameter(str, Enum):
    mine_probability = "mine_probability"
    reward_multiplier = "reward_multiplier"


class GameState(str, Enum):
    awaiting_randomness = "awaiting_randomness"
    awaiting_first_reveal = "awaiting_first_reveal"
    playing = "playing"
    lost = "lost"
    cashed_out = "cashed_out"


PARAMETER_DEFAULTS = {
    GameParameter.mine_probability: DEFAULT_MINE_PROBABILITY,
    GameParameter.reward_multiplier: DEFAULT_REWARD_MULTIPLIER,
}

PARAMETER_BOUNDS = {
    GameParameter.mine_probability: MINE_PROBABILITY_BOUNDS,
    GameParameter.reward_multiplier: REWARD_MULTIPLIER_BOUNDS,
}


def is_in_range(parameter: GameParameter, value: int) -> bool:
    low, high = PARAMETER_BOUNDS[parameter]
    return low <= value <= high


def net_wager(value: int, fee: int) -> int:
    """Part of the supplied value that goes into the pot once the oracle fee is paid."""
    return value - fee


def apply_reward(pot: int, multiplier: int) -> int:
    """Grow the pot after a safe reveal. Truncates toward zero on every step.

    >>> apply_reward(apply_reward(10, 12_000), 12_000)
    14
    """
    return pot * multiplier // BASIS_POINTS


def game_state(
    *,
    active: bool,
    lost: bool,
    randomness_fulfilled: bool,
    secret_revealed: bool,
) -> GameState:
    """Derive the lifecycle state from the stored flags."""
    if lost:
        return GameState.lost
    if not active:
        return GameState.cashed_out
    if not randomness_fulfilled:
        return GameState.awaiting_randomness
    if not secret_revealed:
        return GameState.awaiting_first_reveal
    return GameState.playing


def is_finished(*, active: bool, lost: bool) -> bool:
    return not active or lost
