"""House bankroll: takes in net wagers and pays out cash-outs.

``transfer`` is the single outbound movement per cash-out. It raises TransferFailed when
the bankroll cannot cover the amount; the caller's transaction is then rolled back.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mines_server.crud import CreateData, ReadData, UpdateData
from mines_server.domain.commit_reveal import normalize_address
from mines_server.errors import ErrorKind, GameError
from mines_server.event_bus import EventPublisher
from mines_server.models.dc_models import EventKindModel
from mines_server.models.schema_models import TreasurySchema
from mines_server.models.schemas import Payout


class Treasury:
    def __init__(self, Session: async_sessionmaker, publisher: EventPublisher, governor_address: str):
        self.Session = Session
        self.publisher = publisher
        self.governor_address = normalize_address(governor_address)

    async def deposit(self, amount: int, session: AsyncSession) -> int:
        treasury = await UpdateData.get_or_create_treasury(session)
        treasury.balance = treasury.balance + amount
        await session.flush()
        return treasury.balance

    async def transfer(self, game_id: int, recipient: str, amount: int, session: AsyncSession) -> Payout:
        """Pay ``amount`` to ``recipient`` for ``game_id``"""
        treasury = await UpdateData.get_or_create_treasury(session)
        if treasury.balance < amount:
            logging.error(f"Treasury cannot cover {amount} for game {game_id} (balance {treasury.balance})")
            raise GameError(ErrorKind.transfer_failed, f"treasury cannot cover a payout of {amount}")
        treasury.balance = treasury.balance - amount
        payout = Payout(game_id=game_id, recipient=recipient, amount=amount)
        await CreateData.add_payout(payout, session)
        return payout

    async def fund(self, caller: str, amount: int) -> TreasurySchema:
        """Top up the bankroll. Governing authority only."""
        caller = normalize_address(caller)
        if caller != self.governor_address:
            raise GameError(ErrorKind.unauthorized, f"{caller} is not the governing authority")
        if amount <= 0:
            raise GameError(ErrorKind.out_of_range, "amount must be positive")

        async with self.Session() as session:
            async with session.begin():
                balance = await self.deposit(amount, session)
                event = await CreateData.add_game_event(
                    EventKindModel.treasury_funded.value,
                    session,
                    actor=caller,
                    payload={"amount": amount, "balance": balance},
                )
        logging.info(f"Treasury funded with {amount}, balance {balance}")
        await self.publisher.publish_all([event])
        return TreasurySchema(balance=balance)

    async def balance(self) -> TreasurySchema:
        async with self.Session() as session:
            treasury = await ReadData.read_treasury(session)
        return TreasurySchema(balance=treasury.balance if treasury else 0)
