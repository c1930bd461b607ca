"""DB service layer for game use cases.

- Routers should not touch DB sessions directly; they call this module.
- This layer owns session/transaction boundaries: one ``session.begin()`` per operation.
- Every check runs before the first mutation. A GameError raised anywhere inside the
  transaction rolls back all of it, so a rejected call leaves nothing behind.
- Events are stored in the same transaction and published only after commit.
"""

import logging
from datetime import datetime, timedelta
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mines_server.converter import DataConverter
from mines_server.crud import CreateData, ReadData
from mines_server.domain.commit_reveal import (
    ZERO_BYTES32,
    derive_seed,
    is_zero,
    normalize_address,
    normalize_bytes32,
    verify_commitment,
)
from mines_server.domain.game_rules import GameParameter, apply_reward, net_wager
from mines_server.domain.grid_rules import (
    cell_index,
    is_revealed,
    is_unsafe,
    is_valid_coordinate,
    with_revealed,
)
from mines_server.errors import ErrorKind, GameError
from mines_server.event_bus import EventPublisher
from mines_server.models.dc_models import EventKindModel
from mines_server.models.schema_models import (
    CellSchema,
    CellStatusSchema,
    GameEventSchema,
    GameSummarySchema,
)
from mines_server.models.schemas import Game
from mines_server.services.parameter_governor import ParameterGovernor
from mines_server.services.randomness_gateway import RandomnessGateway
from mines_server.services.session_authority import SessionAuthority
from mines_server.services.treasury import Treasury

data_converter = DataConverter()


class GameService:
    def __init__(
        self,
        Session: async_sessionmaker,
        publisher: EventPublisher,
        gateway: RandomnessGateway,
        authority: SessionAuthority,
        governor: ParameterGovernor,
        treasury: Treasury,
    ):
        self.Session = Session
        self.publisher = publisher
        self.gateway = gateway
        self.authority = authority
        self.governor = governor
        self.treasury = treasury

    async def _read_game(self, game_id: int, session: AsyncSession, *, for_update: bool = False) -> Game:
        game = await ReadData.read_game(game_id, session, for_update=for_update)
        if game is None:
            raise GameError(ErrorKind.game_not_found, f"game {game_id} does not exist")
        return game

    async def start_game(self, caller: str, commitment: str, value: int) -> GameSummarySchema:
        """Place a wager, pay the randomness fee and open a game awaiting randomness.

        Args:
            caller (str): Principal of the new game
            commitment (str): sha256 of the secret the principal will reveal on the first move
            value (int): Total supplied amount; the fee is taken out, the rest is the wager

        Returns:
            GameSummarySchema: The new game, keyed by the gateway's request id
        """
        caller = normalize_address(caller)
        commitment = normalize_bytes32(commitment)
        fee = await self.gateway.query_fee()
        if value <= fee:
            raise GameError(ErrorKind.insufficient_payment, f"value must exceed the fee of {fee}, got {value}")
        wager = net_wager(value, fee)
        if wager <= 0:
            raise GameError(ErrorKind.zero_wager, "nothing left to wager after the fee")

        async with self.Session() as session:
            async with session.begin():
                game_id = await self.gateway.request(fee, caller, session)
                if await ReadData.read_game(game_id, session) is not None:
                    raise GameError(ErrorKind.duplicate_id, f"game {game_id} already exists")

                game = await CreateData.add_game(
                    Game(
                        game_id=game_id,
                        principal=caller,
                        wager=wager,
                        pot=wager,
                        commitment=commitment,
                        revealed_mask=0,
                        active=True,
                        lost=False,
                        secret_revealed=False,
                    ),
                    session,
                )
                await self.treasury.deposit(wager, session)
                event = await CreateData.add_game_event(
                    EventKindModel.game_requested.value,
                    session,
                    game_id=game_id,
                    actor=caller,
                    payload={"principal": caller, "commitment": commitment, "wager": wager, "fee": fee},
                )
                summary = data_converter.convert_game_to_summary(game)
        logging.info(f"Game {game_id} requested by {caller}: wager={wager}, fee={fee}")
        await self.publisher.publish_all([event])
        return summary

    async def on_fulfilled(self, caller: str, request_id: int, random_value: str) -> GameSummarySchema:
        """Callback entry point of the randomness source for ``request_id``."""
        self.gateway.require_provider(caller)
        async with self.Session() as session:
            async with session.begin():
                game = await self._read_game(request_id, session, for_update=True)
                request = await self.gateway.fulfill(caller, request_id, random_value, session)
                game.external_random = request.random_value
                game.fulfilled_at = request.fulfilled_at
                await session.flush()
                event = await CreateData.add_game_event(
                    EventKindModel.randomness_fulfilled.value,
                    session,
                    game_id=game.game_id,
                    actor=normalize_address(caller),
                    payload={"random_value": request.random_value},
                )
                summary = data_converter.convert_game_to_summary(game)
        logging.info(f"Game {request_id} received its random value")
        await self.publisher.publish_all([event])
        return summary

    def _check_secret(self, game: Game, secret: str) -> str:
        """Validate a first-move secret against the game and return the seed it yields."""
        if not game.active:
            raise GameError(ErrorKind.game_finished, f"game {game.game_id} is finished")
        if game.secret_revealed:
            raise GameError(ErrorKind.already_revealed, f"secret of game {game.game_id} is already revealed")
        if is_zero(game.external_random):
            raise GameError(ErrorKind.randomness_not_ready, f"game {game.game_id} has no random value yet")
        if not verify_commitment(secret, game.commitment):
            raise GameError(ErrorKind.commit_mismatch, "secret does not match the commitment")
        return derive_seed(game.external_random, secret, game.principal)

    async def _bind_secret(self, game: Game, secret: str, seed: str, caller: str, session: AsyncSession) -> GameEventSchema:
        game.secret = normalize_bytes32(secret)
        game.secret_revealed = True
        game.seed = seed
        await session.flush()
        return await CreateData.add_game_event(
            EventKindModel.secret_revealed.value,
            session,
            game_id=game.game_id,
            actor=caller,
        )

    async def reveal_secret(self, caller: str, game_id: int, secret: str) -> GameSummarySchema:
        """Reveal the committed secret without opening a cell."""
        caller = normalize_address(caller)
        async with self.Session() as session:
            async with session.begin():
                game = await self._read_game(game_id, session, for_update=True)
                await self.authority.require_authorized(game, caller, session)
                seed = self._check_secret(game, secret)
                event = await self._bind_secret(game, secret, seed, caller, session)
                summary = data_converter.convert_game_to_summary(game)
        logging.info(f"Secret of game {game_id} revealed by {caller}")
        await self.publisher.publish_all([event])
        return summary

    async def reveal_cell(self, caller: str, game_id: int, x: int, y: int, secret: str = ZERO_BYTES32) -> GameSummarySchema:
        """Open cell (x, y). On the first move ``secret`` must open the commitment.

        Args:
            caller (str): Principal or one of its delegates
            game_id (int): Game to play
            x (int): Column, 0-based
            y (int): Row, 0-based
            secret (str): The committed secret on the first move, ZERO_BYTES32 afterwards

        Returns:
            GameSummarySchema: Game after the move
        """
        caller = normalize_address(caller)
        secret = normalize_bytes32(secret)
        events: List[GameEventSchema] = []

        async with self.Session() as session:
            async with session.begin():
                game = await self._read_game(game_id, session, for_update=True)
                await self.authority.require_authorized(game, caller, session)
                if not game.active:
                    raise GameError(ErrorKind.game_finished, f"game {game_id} is finished")
                if not is_valid_coordinate(x, y):
                    raise GameError(ErrorKind.invalid_coordinate, f"({x}, {y}) is outside the grid")
                if is_revealed(game.revealed_mask, x, y):
                    raise GameError(ErrorKind.cell_already_revealed, f"({x}, {y}) is already revealed")

                first_move = not game.secret_revealed
                if first_move:
                    seed = self._check_secret(game, secret)
                else:
                    if not is_zero(secret):
                        raise GameError(ErrorKind.already_revealed, "secret must only be sent on the first move")
                    if is_zero(game.seed):
                        raise GameError(ErrorKind.seed_not_ready, f"game {game_id} has no seed")
                    seed = game.seed

                threshold = await self.governor.current_value(GameParameter.mine_probability, session)
                multiplier = await self.governor.current_value(GameParameter.reward_multiplier, session)

                if first_move:
                    events.append(await self._bind_secret(game, secret, seed, caller, session))

                game.revealed_mask = with_revealed(game.revealed_mask, x, y)
                unsafe = is_unsafe(seed, x, y, threshold)
                if unsafe:
                    game.lost = True
                    game.active = False
                    game.pot = 0
                    game.mine_cell = cell_index(x, y)
                    game.ended_at = datetime.now()
                else:
                    game.pot = apply_reward(game.pot, multiplier)
                await session.flush()

                events.append(
                    await CreateData.add_game_event(
                        EventKindModel.cell_revealed.value,
                        session,
                        game_id=game_id,
                        actor=caller,
                        payload={"x": x, "y": y, "unsafe": unsafe, "pot": game.pot},
                    )
                )
                if unsafe:
                    events.append(
                        await CreateData.add_game_event(
                            EventKindModel.game_ended.value,
                            session,
                            game_id=game_id,
                            actor=caller,
                            payload={"outcome": "loss", "payout": 0, "principal": game.principal},
                        )
                    )
                summary = data_converter.convert_game_to_summary(game)
        logging.info(f"Game {game_id}: ({x}, {y}) {'mine' if unsafe else 'safe'}, pot={summary.pot}")
        await self.publisher.publish_all(events)
        return summary

    async def cash_out(self, caller: str, game_id: int) -> GameSummarySchema:
        """End the game and pay the pot to the principal, whoever of principal/delegate calls.

        If the transfer fails the game stays exactly as it was, so the call can be retried.
        """
        caller = normalize_address(caller)
        async with self.Session() as session:
            async with session.begin():
                game = await self._read_game(game_id, session, for_update=True)
                await self.authority.require_authorized(game, caller, session)
                if game.lost:
                    raise GameError(ErrorKind.already_lost, f"game {game_id} was lost")
                if not game.active:
                    raise GameError(ErrorKind.game_finished, f"game {game_id} is finished")
                if not game.secret_revealed:
                    raise GameError(ErrorKind.seed_not_ready, f"game {game_id} has not been played yet")

                payout = game.pot
                await self.treasury.transfer(game_id, game.principal, payout, session)
                game.active = False
                game.ended_at = datetime.now()
                await session.flush()
                event = await CreateData.add_game_event(
                    EventKindModel.game_ended.value,
                    session,
                    game_id=game_id,
                    actor=caller,
                    payload={"outcome": "win", "payout": payout, "principal": game.principal},
                )
                summary = data_converter.convert_game_to_summary(game)
        logging.info(f"Game {game_id} cashed out: {payout} paid to {summary.principal}")
        await self.publisher.publish_all([event])
        return summary

    async def get_game_summary(self, game_id: int) -> GameSummarySchema:
        async with self.Session() as session:
            game = await self._read_game(game_id, session)
            return data_converter.convert_game_to_summary(game)

    async def get_revealed_safe_cells(self, game_id: int) -> List[CellSchema]:
        async with self.Session() as session:
            game = await self._read_game(game_id, session)
            return data_converter.convert_game_to_safe_cells(game)

    async def get_cell_status(self, game_id: int, x: int, y: int) -> CellStatusSchema:
        if not is_valid_coordinate(x, y):
            raise GameError(ErrorKind.invalid_coordinate, f"({x}, {y}) is outside the grid")
        async with self.Session() as session:
            game = await self._read_game(game_id, session)
            return data_converter.convert_game_to_cell_status(game, x, y)

    async def list_games(self, principal: str, active_only: bool = False) -> List[GameSummarySchema]:
        principal = normalize_address(principal)
        async with self.Session() as session:
            games = await ReadData.read_games_by_principal(principal, session, active_only)
            return [data_converter.convert_game_to_summary(game) for game in games]

    async def read_events(self, game_id: int) -> List[GameEventSchema]:
        async with self.Session() as session:
            await self._read_game(game_id, session)
            return await ReadData.read_game_events(game_id, session)

    async def log_unrevealed_games(self, older_than_hours: int) -> List[int]:
        """Report games whose secret was never revealed after randomness arrived.

        Such games keep their wager locked. Nothing is refunded or closed here.
        """
        cutoff = datetime.now() - timedelta(hours=older_than_hours)
        async with self.Session() as session:
            games = await ReadData.read_unrevealed_games(session)
        stale = [game.game_id for game in games if game.fulfilled_at is not None and game.fulfilled_at <= cutoff]
        for game_id in stale:
            logging.warning(f"Game {game_id} has waited more than {older_than_hours}h for its secret")
        return stale
