import asyncio
from datetime import datetime, timedelta

import pytest

from mines_server.crud import ReadData
from mines_server.domain.commit_reveal import ZERO_BYTES32
from mines_server.domain.game_rules import (
    DEFAULT_MINE_PROBABILITY,
    TIMELOCK_DELAY_SECONDS,
    GameParameter,
    GameState,
)
from mines_server.domain.grid_rules import is_unsafe
from mines_server.errors import ErrorKind, GameError
from mines_server.models.dc_models import CellStateModel
from mines_server.models.schemas import Game
from tests.helpers import (
    ALICE,
    ALICE_DELEGATE,
    BOB,
    COMMIT_A,
    FEE,
    GOVERNOR,
    MALLORY,
    PROVIDER,
    RANDOM_A,
    SECRET_A,
    cells,
    seed_for,
)

SEED_A = seed_for(ALICE)
SAFE = cells(SEED_A, DEFAULT_MINE_PROBABILITY, unsafe=False)
MINES = cells(SEED_A, DEFAULT_MINE_PROBABILITY, unsafe=True)


async def expect_error(kind: ErrorKind, call):
    with pytest.raises(GameError) as exc_info:
        await call
    assert exc_info.value.kind == kind
    return exc_info.value


class TestStart:
    async def test_start_game(self, game_service, treasury, publisher):
        summary = await game_service.start_game(ALICE, COMMIT_A, FEE + 10)
        assert summary.game_id == 1
        assert summary.principal == ALICE
        assert summary.wager == 10
        assert summary.pot == 10
        assert summary.state == GameState.awaiting_randomness
        assert summary.external_random is None
        assert (await treasury.balance()).balance == 10
        assert publisher.kinds() == ["game_requested"]

    async def test_payment_below_fee(self, game_service, publisher):
        await expect_error(ErrorKind.insufficient_payment, game_service.start_game(ALICE, COMMIT_A, FEE - 1))
        assert publisher.kinds() == []

    async def test_payment_must_exceed_fee(self, game_service, treasury, publisher):
        error = await expect_error(ErrorKind.insufficient_payment, game_service.start_game(ALICE, COMMIT_A, FEE))
        assert not error.retryable
        assert (await treasury.balance()).balance == 0
        assert publisher.kinds() == []

    async def test_concurrent_starts_get_distinct_ids(self, game_service, treasury):
        summaries = await asyncio.gather(
            game_service.start_game(ALICE, COMMIT_A, FEE + 10),
            game_service.start_game(BOB, COMMIT_A, FEE + 20),
            game_service.start_game(ALICE, COMMIT_A, FEE + 30),
        )
        assert sorted(summary.game_id for summary in summaries) == [1, 2, 3]
        assert (await treasury.balance()).balance == 60

    async def test_colliding_request_id_leaves_original_game(self, game_service, Session, treasury, publisher):
        # An active game already holds the id the gateway is about to issue.
        async with Session() as session:
            async with session.begin():
                session.add(Game(game_id=1, principal=ALICE, wager=10, pot=10, commitment=COMMIT_A))
        original = await game_service.get_game_summary(1)

        await expect_error(ErrorKind.duplicate_id, game_service.start_game(BOB, COMMIT_A, FEE + 50))

        assert await game_service.get_game_summary(1) == original
        assert (await treasury.balance()).balance == 0
        assert publisher.kinds() == []
        async with Session() as session:
            assert await ReadData.read_randomness_request(1, session) is None


class TestFulfillment:
    async def test_random_value_is_bound_to_game(self, fulfilled_game, publisher):
        summary = await fulfilled_game()
        assert summary.external_random == RANDOM_A
        assert summary.state == GameState.awaiting_first_reveal
        assert publisher.kinds() == ["game_requested", "randomness_fulfilled"]

    async def test_only_provider_may_deliver(self, game_service):
        summary = await game_service.start_game(ALICE, COMMIT_A, FEE + 10)
        await expect_error(ErrorKind.unauthorized, game_service.on_fulfilled(MALLORY, summary.game_id, RANDOM_A))
        await expect_error(ErrorKind.unauthorized, game_service.on_fulfilled(MALLORY, 99, RANDOM_A))

    async def test_delivered_once(self, game_service, fulfilled_game):
        summary = await fulfilled_game()
        await expect_error(
            ErrorKind.already_fulfilled,
            game_service.on_fulfilled(PROVIDER, summary.game_id, "0x" + "99" * 32),
        )
        assert (await game_service.get_game_summary(summary.game_id)).external_random == RANDOM_A

    async def test_unknown_game(self, game_service):
        await expect_error(ErrorKind.game_not_found, game_service.on_fulfilled(PROVIDER, 7, RANDOM_A))


class TestSecret:
    async def test_reveal_before_randomness(self, game_service):
        summary = await game_service.start_game(ALICE, COMMIT_A, FEE + 10)
        error = await expect_error(
            ErrorKind.randomness_not_ready,
            game_service.reveal_cell(ALICE, summary.game_id, 0, 0, SECRET_A),
        )
        assert error.retryable
        await expect_error(
            ErrorKind.randomness_not_ready,
            game_service.reveal_secret(ALICE, summary.game_id, SECRET_A),
        )

    async def test_wrong_secret(self, game_service, fulfilled_game):
        summary = await fulfilled_game()
        await expect_error(
            ErrorKind.commit_mismatch,
            game_service.reveal_cell(ALICE, summary.game_id, 0, 0, "0x" + "01" * 32),
        )
        await expect_error(
            ErrorKind.commit_mismatch,
            game_service.reveal_cell(ALICE, summary.game_id, 0, 0, ZERO_BYTES32),
        )
        after = await game_service.get_game_summary(summary.game_id)
        assert after.revealed_mask == 0
        assert not after.secret_revealed

    async def test_reveal_secret_alone(self, game_service, fulfilled_game, publisher):
        summary = await fulfilled_game()
        revealed = await game_service.reveal_secret(ALICE, summary.game_id, SECRET_A)
        assert revealed.state == GameState.playing
        assert revealed.revealed_mask == 0
        assert publisher.kinds()[-1] == "secret_revealed"

        await expect_error(
            ErrorKind.already_revealed,
            game_service.reveal_secret(ALICE, summary.game_id, SECRET_A),
        )
        x, y = SAFE[0]
        await expect_error(
            ErrorKind.already_revealed,
            game_service.reveal_cell(ALICE, summary.game_id, x, y, SECRET_A),
        )
        played = await game_service.reveal_cell(ALICE, summary.game_id, x, y)
        assert played.pot == 12

    async def test_seed_stays_hidden_while_playing(self, game_service, fulfilled_game):
        summary = await fulfilled_game()
        x, y = SAFE[0]
        playing = await game_service.reveal_cell(ALICE, summary.game_id, x, y, SECRET_A)
        assert playing.seed is None
        assert playing.secret is None

        finished = await game_service.cash_out(ALICE, summary.game_id)
        assert finished.seed == SEED_A
        assert finished.secret == SECRET_A


class TestRevealCell:
    async def test_first_reveal_at_three_four(self, game_service, fulfilled_game):
        summary = await fulfilled_game(value=FEE + 10**16)
        after = await game_service.reveal_cell(ALICE, summary.game_id, 3, 4, SECRET_A)

        if is_unsafe(SEED_A, 3, 4, DEFAULT_MINE_PROBABILITY):
            assert after.lost
            assert after.pot == 0
            assert after.state == GameState.lost
            await expect_error(ErrorKind.game_finished, game_service.reveal_cell(ALICE, summary.game_id, 0, 0))
        else:
            assert after.pot == 10**16 * 12_000 // 10_000
            assert after.state == GameState.playing

    async def test_mine_ends_the_game(self, game_service, fulfilled_game, publisher):
        summary = await fulfilled_game()
        x, y = MINES[0]
        after = await game_service.reveal_cell(ALICE, summary.game_id, x, y, SECRET_A)
        assert after.lost
        assert not after.active
        assert after.pot == 0
        assert after.mine_cell == (x, y)
        assert after.ended_at is not None
        assert publisher.kinds()[-3:] == ["secret_revealed", "cell_revealed", "game_ended"]
        assert publisher.events[-1].payload["outcome"] == "loss"

        sx, sy = SAFE[0]
        await expect_error(ErrorKind.game_finished, game_service.reveal_cell(ALICE, summary.game_id, sx, sy))
        await expect_error(ErrorKind.already_lost, game_service.cash_out(ALICE, summary.game_id))

    async def test_pot_grows_and_truncates(self, game_service, fulfilled_game):
        summary = await fulfilled_game()
        (x1, y1), (x2, y2) = SAFE[0], SAFE[1]
        first = await game_service.reveal_cell(ALICE, summary.game_id, x1, y1, SECRET_A)
        assert first.pot == 12
        second = await game_service.reveal_cell(ALICE, summary.game_id, x2, y2)
        assert second.pot == 14
        assert second.revealed_count == 2

    async def test_cell_cannot_be_opened_twice(self, game_service, fulfilled_game):
        summary = await fulfilled_game()
        x, y = SAFE[0]
        await game_service.reveal_cell(ALICE, summary.game_id, x, y, SECRET_A)
        await expect_error(ErrorKind.cell_already_revealed, game_service.reveal_cell(ALICE, summary.game_id, x, y))
        assert (await game_service.get_game_summary(summary.game_id)).pot == 12

    @pytest.mark.parametrize("x, y", [(10, 0), (0, 10), (-1, 3)])
    async def test_outside_grid(self, game_service, fulfilled_game, x, y):
        summary = await fulfilled_game()
        await expect_error(ErrorKind.invalid_coordinate, game_service.reveal_cell(ALICE, summary.game_id, x, y, SECRET_A))

    async def test_unknown_game(self, game_service):
        await expect_error(ErrorKind.game_not_found, game_service.reveal_cell(ALICE, 5, 0, 0, SECRET_A))

    async def test_stranger_is_rejected(self, game_service, fulfilled_game):
        summary = await fulfilled_game()
        await expect_error(ErrorKind.unauthorized, game_service.reveal_cell(MALLORY, summary.game_id, 0, 0, SECRET_A))

    async def test_delegate_plays_for_principal(self, game_service, fulfilled_game, authority):
        summary = await fulfilled_game()
        await authority.register_delegate(ALICE, ALICE_DELEGATE)
        x, y = SAFE[0]
        after = await game_service.reveal_cell(ALICE_DELEGATE, summary.game_id, x, y, SECRET_A)
        assert after.pot == 12
        # The seed is bound to the principal, not to whoever revealed.
        assert (await game_service.cash_out(ALICE_DELEGATE, summary.game_id)).seed == SEED_A

    async def test_applied_probability_is_used_by_later_reveals(self, game_service, fulfilled_game, governor, clock):
        summary = await fulfilled_game()
        x, y = SAFE[0]
        await game_service.reveal_cell(ALICE, summary.game_id, x, y, SECRET_A)

        await governor.propose(GOVERNOR, GameParameter.mine_probability, 3_000)
        clock.advance(TIMELOCK_DELAY_SECONDS)
        await governor.execute(GOVERNOR, GameParameter.mine_probability)

        newly_unsafe = [
            cell for cell in cells(SEED_A, 3_000, unsafe=True) if cell not in MINES and cell != (x, y)
        ]
        assert newly_unsafe
        nx, ny = newly_unsafe[0]
        after = await game_service.reveal_cell(ALICE, summary.game_id, nx, ny)
        assert after.lost

    async def test_multiplier_change_applies_mid_game(self, game_service, fulfilled_game, governor, clock):
        summary = await fulfilled_game()
        (x1, y1), (x2, y2) = SAFE[0], SAFE[1]
        await game_service.reveal_cell(ALICE, summary.game_id, x1, y1, SECRET_A)

        await governor.propose(GOVERNOR, GameParameter.reward_multiplier, 20_000)
        clock.advance(TIMELOCK_DELAY_SECONDS)
        await governor.execute(GOVERNOR, GameParameter.reward_multiplier)

        assert (await game_service.reveal_cell(ALICE, summary.game_id, x2, y2)).pot == 24


class TestCashOut:
    async def test_cash_out_pays_principal(self, game_service, fulfilled_game, treasury, Session, publisher):
        summary = await fulfilled_game()
        await treasury.fund(GOVERNOR, 1_000)
        x, y = SAFE[0]
        await game_service.reveal_cell(ALICE, summary.game_id, x, y, SECRET_A)

        after = await game_service.cash_out(ALICE, summary.game_id)
        assert after.state == GameState.cashed_out
        assert after.pot == 12
        assert (await treasury.balance()).balance == 1_010 - 12
        assert publisher.events[-1].payload == {"outcome": "win", "payout": 12, "principal": ALICE}

        async with Session() as session:
            payouts = await ReadData.read_payouts(summary.game_id, session)
        assert [(p.recipient, p.amount) for p in payouts] == [(ALICE, 12)]

        await expect_error(ErrorKind.game_finished, game_service.cash_out(ALICE, summary.game_id))
        await expect_error(ErrorKind.game_finished, game_service.reveal_cell(ALICE, summary.game_id, *SAFE[1]))

    async def test_delegate_cash_out_pays_principal(self, game_service, fulfilled_game, authority, treasury, Session):
        summary = await fulfilled_game()
        await treasury.fund(GOVERNOR, 1_000)
        await authority.register_delegate(ALICE, ALICE_DELEGATE)
        await game_service.reveal_cell(ALICE_DELEGATE, summary.game_id, *SAFE[0], SECRET_A)

        await game_service.cash_out(ALICE_DELEGATE, summary.game_id)
        async with Session() as session:
            payouts = await ReadData.read_payouts(summary.game_id, session)
        assert [p.recipient for p in payouts] == [ALICE]

    async def test_cash_out_before_first_reveal(self, game_service, fulfilled_game):
        summary = await fulfilled_game()
        error = await expect_error(ErrorKind.seed_not_ready, game_service.cash_out(ALICE, summary.game_id))
        assert error.retryable

    async def test_stranger_cannot_cash_out(self, game_service, fulfilled_game):
        summary = await fulfilled_game()
        await game_service.reveal_cell(ALICE, summary.game_id, *SAFE[0], SECRET_A)
        await expect_error(ErrorKind.unauthorized, game_service.cash_out(MALLORY, summary.game_id))

    async def test_failed_transfer_leaves_game_unchanged(self, game_service, fulfilled_game, treasury, Session, publisher):
        summary = await fulfilled_game()
        await game_service.reveal_cell(ALICE, summary.game_id, *SAFE[0], SECRET_A)
        before = await game_service.get_game_summary(summary.game_id)
        published = len(publisher.events)

        # Only the wager of 10 is in the treasury, the pot is 12.
        error = await expect_error(ErrorKind.transfer_failed, game_service.cash_out(ALICE, summary.game_id))
        assert error.retryable
        assert await game_service.get_game_summary(summary.game_id) == before
        assert (await treasury.balance()).balance == 10
        assert len(publisher.events) == published
        async with Session() as session:
            assert await ReadData.read_payouts(summary.game_id, session) == []

        await treasury.fund(GOVERNOR, 2)
        after = await game_service.cash_out(ALICE, summary.game_id)
        assert after.state == GameState.cashed_out
        assert (await treasury.balance()).balance == 0


class TestQueries:
    async def test_cells_view(self, game_service, fulfilled_game):
        summary = await fulfilled_game()
        (sx, sy), (mx, my) = SAFE[0], MINES[0]
        await game_service.reveal_cell(ALICE, summary.game_id, sx, sy, SECRET_A)
        await game_service.reveal_cell(ALICE, summary.game_id, mx, my)

        safe_cells = await game_service.get_revealed_safe_cells(summary.game_id)
        assert [(cell.x, cell.y) for cell in safe_cells] == [(sx, sy)]
        assert (await game_service.get_cell_status(summary.game_id, sx, sy)).state == CellStateModel.safe
        assert (await game_service.get_cell_status(summary.game_id, mx, my)).state == CellStateModel.mine
        hidden = next(cell for cell in SAFE if cell != (sx, sy))
        assert (await game_service.get_cell_status(summary.game_id, *hidden)).state == CellStateModel.hidden
        await expect_error(ErrorKind.invalid_coordinate, game_service.get_cell_status(summary.game_id, 10, 10))

    async def test_list_games(self, game_service, fulfilled_game):
        first = await fulfilled_game(ALICE)
        second = await fulfilled_game(ALICE)
        await fulfilled_game(BOB)
        await game_service.reveal_cell(ALICE, first.game_id, *MINES[0], SECRET_A)

        listed = await game_service.list_games(ALICE)
        assert sorted(game.game_id for game in listed) == [first.game_id, second.game_id]
        active = await game_service.list_games(ALICE, active_only=True)
        assert [game.game_id for game in active] == [second.game_id]

    async def test_events_in_order(self, game_service, fulfilled_game):
        summary = await fulfilled_game()
        await game_service.reveal_cell(ALICE, summary.game_id, *SAFE[0], SECRET_A)
        await expect_error(ErrorKind.cell_already_revealed, game_service.reveal_cell(ALICE, summary.game_id, *SAFE[0]))

        events = await game_service.read_events(summary.game_id)
        assert [event.kind for event in events] == [
            "game_requested",
            "randomness_fulfilled",
            "secret_revealed",
            "cell_revealed",
        ]
        assert events[-1].payload == {"x": SAFE[0][0], "y": SAFE[0][1], "unsafe": False, "pot": 12}
        await expect_error(ErrorKind.game_not_found, game_service.read_events(404))

    async def test_unrevealed_games_are_reported(self, game_service, fulfilled_game, Session):
        stale = await fulfilled_game()
        played = await fulfilled_game()
        await game_service.start_game(ALICE, COMMIT_A, FEE + 10)
        await game_service.reveal_secret(ALICE, played.game_id, SECRET_A)

        async with Session() as session:
            async with session.begin():
                for game_id in (stale.game_id, played.game_id):
                    game = await session.get(Game, game_id)
                    game.fulfilled_at = datetime.now() - timedelta(hours=3)

        assert await game_service.log_unrevealed_games(1) == [stale.game_id]
        assert await game_service.log_unrevealed_games(5) == []
        # Reporting never closes anything.
        assert (await game_service.get_game_summary(stale.game_id)).active
