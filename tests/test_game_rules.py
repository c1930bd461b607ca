import pytest

from mines_server.domain.game_rules import (
    GameParameter,
    GameState,
    apply_reward,
    game_state,
    is_in_range,
    net_wager,
)


class TestPotMath:
    def test_truncates_on_every_step(self):
        pot = 10
        pot = apply_reward(pot, 12_000)
        assert pot == 12
        pot = apply_reward(pot, 12_000)
        assert pot == 14

    def test_nested_truncation_over_many_steps(self):
        pot = 10**16
        expected = pot
        for _ in range(30):
            pot = apply_reward(pot, 13_333)
            expected = expected * 13_333 // 10_000
        assert pot == expected

    def test_neutral_multiplier_keeps_pot(self):
        assert apply_reward(777, 10_000) == 777

    def test_net_wager(self):
        assert net_wager(110, 100) == 10
        assert net_wager(100, 100) == 0


class TestBounds:
    @pytest.mark.parametrize(
        "parameter, value, expected",
        [
            (GameParameter.mine_probability, 99, False),
            (GameParameter.mine_probability, 100, True),
            (GameParameter.mine_probability, 5_000, True),
            (GameParameter.mine_probability, 5_001, False),
            (GameParameter.reward_multiplier, 9_999, False),
            (GameParameter.reward_multiplier, 10_000, True),
            (GameParameter.reward_multiplier, 20_000, True),
            (GameParameter.reward_multiplier, 20_001, False),
        ],
    )
    def test_governed_ranges(self, parameter, value, expected):
        assert is_in_range(parameter, value) is expected


class TestLifecycle:
    def test_states(self):
        assert game_state(active=True, lost=False, randomness_fulfilled=False, secret_revealed=False) == GameState.awaiting_randomness
        assert game_state(active=True, lost=False, randomness_fulfilled=True, secret_revealed=False) == GameState.awaiting_first_reveal
        assert game_state(active=True, lost=False, randomness_fulfilled=True, secret_revealed=True) == GameState.playing
        assert game_state(active=False, lost=True, randomness_fulfilled=True, secret_revealed=True) == GameState.lost
        assert game_state(active=False, lost=False, randomness_fulfilled=True, secret_revealed=True) == GameState.cashed_out
