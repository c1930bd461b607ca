# import database
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import desc, insert, select
from typing import List
import logging

from mines_server.models.schema_models import GameEventSchema
from mines_server.models.schemas import (
    Base,
    Game,
    GameEvent,
    GameParameterValue,
    Payout,
    PendingChange,
    RandomnessRequest,
    SessionDelegate,
    Treasury,
)

TREASURY_ID = 1

# These helpers never commit. The caller owns the transaction
# (``async with session.begin()``) so that a failed check rolls everything back.


class CreateData:
    @staticmethod
    async def create_table(engine) -> None:
        """Create tables if they do not exist, plus the single treasury row"""
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            result = await conn.execute(select(Treasury.treasury_id).where(Treasury.treasury_id == TREASURY_ID))
            if result.first() is None:
                await conn.execute(insert(Treasury).values(treasury_id=TREASURY_ID, balance=0))
        logging.info("Tables are ready")

    @staticmethod
    async def add_game(game: Game, session: AsyncSession) -> Game:
        session.add(game)
        await session.flush()
        return game

    @staticmethod
    async def add_randomness_request(request: RandomnessRequest, session: AsyncSession) -> RandomnessRequest:
        session.add(request)
        await session.flush()
        return request

    @staticmethod
    async def add_payout(payout: Payout, session: AsyncSession) -> None:
        session.add(payout)
        await session.flush()

    @staticmethod
    async def add_game_event(
        kind: str,
        session: AsyncSession,
        *,
        game_id: int | None = None,
        actor: str | None = None,
        payload: dict | None = None,
    ) -> GameEventSchema:
        """Store an event row inside the current transaction

        Args:
            kind (str): Event kind, see EventKindModel
            game_id (int | None): Game the event belongs to, None for global events
            actor (str | None): Address that triggered the event

        Returns:
            GameEventSchema: The stored event, to be published after commit
        """
        event = GameEvent(kind=kind, game_id=game_id, actor=actor, payload=payload or {})
        session.add(event)
        await session.flush()
        return GameEventSchema.model_validate(event)


class ReadData:
    @staticmethod
    async def read_game(game_id: int, session: AsyncSession, *, for_update: bool = False) -> Game | None:
        """Read a game row

        Args:
            game_id (int): Request id issued by the randomness gateway
            for_update (bool): Lock the row until the end of the transaction

        Returns:
            Game | None: The game row, None if it does not exist
        """
        stmt = select(Game).where(Game.game_id == game_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_games_by_principal(principal: str, session: AsyncSession, active_only: bool = False) -> List[Game]:
        stmt = select(Game).where(Game.principal == principal)
        if active_only:
            stmt = stmt.where(Game.active.is_(True))
        stmt = stmt.order_by(desc(Game.created_at), desc(Game.game_id))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_unrevealed_games(session: AsyncSession) -> List[Game]:
        """Active games whose randomness arrived but whose secret was never revealed."""
        stmt = (
            select(Game)
            .where(
                Game.active.is_(True),
                Game.secret_revealed.is_(False),
                Game.external_random.is_not(None),
            )
            .order_by(Game.fulfilled_at)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_randomness_request(request_id: int, session: AsyncSession, *, for_update: bool = False) -> RandomnessRequest | None:
        stmt = select(RandomnessRequest).where(RandomnessRequest.request_id == request_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_delegate(delegate: str, session: AsyncSession) -> SessionDelegate | None:
        result = await session.execute(
            select(SessionDelegate).where(SessionDelegate.delegate == delegate)
        )
        return result.scalars().first()

    @staticmethod
    async def read_parameter(name: str, session: AsyncSession) -> GameParameterValue | None:
        result = await session.execute(
            select(GameParameterValue).where(GameParameterValue.name == name)
        )
        return result.scalars().first()

    @staticmethod
    async def read_pending_change(name: str, session: AsyncSession, *, for_update: bool = False) -> PendingChange | None:
        stmt = select(PendingChange).where(PendingChange.name == name)
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_treasury(session: AsyncSession, *, for_update: bool = False) -> Treasury | None:
        stmt = select(Treasury).where(Treasury.treasury_id == TREASURY_ID)
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_payouts(game_id: int, session: AsyncSession) -> List[Payout]:
        result = await session.execute(
            select(Payout).where(Payout.game_id == game_id).order_by(Payout.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    async def read_game_events(game_id: int, session: AsyncSession) -> List[GameEventSchema]:
        """Read the stored events of a game in emission order"""
        result = await session.execute(
            select(GameEvent)
            .where(GameEvent.game_id == game_id)
            .order_by(GameEvent.created_at, GameEvent.event_id)
        )
        return [GameEventSchema.model_validate(row) for row in result.scalars().all()]


class UpdateData:
    @staticmethod
    async def upsert_delegate(delegate: str, principal: str, session: AsyncSession) -> None:
        row = await ReadData.read_delegate(delegate, session)
        if row is None:
            session.add(SessionDelegate(delegate=delegate, principal=principal))
        else:
            row.principal = principal
        await session.flush()

    @staticmethod
    async def delete_delegate(row: SessionDelegate, session: AsyncSession) -> None:
        await session.delete(row)
        await session.flush()

    @staticmethod
    async def upsert_parameter(name: str, value: int, session: AsyncSession) -> None:
        row = await ReadData.read_parameter(name, session)
        if row is None:
            session.add(GameParameterValue(name=name, value=value))
        else:
            row.value = value
        await session.flush()

    @staticmethod
    async def upsert_pending_change(name: str, new_value: int, effective_at: int, session: AsyncSession) -> None:
        row = await ReadData.read_pending_change(name, session, for_update=True)
        if row is None:
            session.add(PendingChange(name=name, new_value=new_value, effective_at=effective_at))
        else:
            row.new_value = new_value
            row.effective_at = effective_at
        await session.flush()

    @staticmethod
    async def get_or_create_treasury(session: AsyncSession) -> Treasury:
        treasury = await ReadData.read_treasury(session, for_update=True)
        if treasury is None:
            treasury = Treasury(treasury_id=TREASURY_ID, balance=0)
            session.add(treasury)
            await session.flush()
        return treasury
