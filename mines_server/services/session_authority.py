"""Delegated-signer registry.

A delegate (session key) acts for exactly one principal. Delegates may play a principal's
games, but payouts always go to the principal stored on the game.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mines_server.crud import CreateData, ReadData, UpdateData
from mines_server.domain.commit_reveal import ZERO_ADDRESS, normalize_address
from mines_server.errors import ErrorKind, GameError
from mines_server.event_bus import EventPublisher
from mines_server.models.dc_models import EventKindModel
from mines_server.models.schema_models import DelegationSchema
from mines_server.models.schemas import Game


class SessionAuthority:
    def __init__(self, Session: async_sessionmaker, publisher: EventPublisher):
        self.Session = Session
        self.publisher = publisher

    async def register_delegate(self, caller: str, delegate: str) -> DelegationSchema:
        """Make ``caller`` the principal of ``delegate``. An existing mapping is overwritten.

        Args:
            caller (str): Address of the principal
            delegate (str): Address of the session key

        Returns:
            DelegationSchema: The stored mapping
        """
        caller = normalize_address(caller)
        delegate = normalize_address(delegate)
        if delegate == ZERO_ADDRESS:
            raise GameError(ErrorKind.zero_delegate, "delegate must not be the zero address")
        if delegate == caller:
            raise GameError(ErrorKind.self_delegation, "an address cannot delegate to itself")

        async with self.Session() as session:
            async with session.begin():
                await UpdateData.upsert_delegate(delegate, caller, session)
                event = await CreateData.add_game_event(
                    EventKindModel.delegate_registered.value,
                    session,
                    actor=caller,
                    payload={"principal": caller, "delegate": delegate},
                )
        logging.info(f"Delegate {delegate} registered for {caller}")
        await self.publisher.publish_all([event])
        return DelegationSchema(delegate=delegate, principal=caller)

    async def revoke_delegate(self, caller: str, delegate: str) -> DelegationSchema:
        """Remove ``delegate``. Only the principal currently stored for it may do this."""
        caller = normalize_address(caller)
        delegate = normalize_address(delegate)

        async with self.Session() as session:
            async with session.begin():
                row = await ReadData.read_delegate(delegate, session)
                if row is None or row.principal != caller:
                    raise GameError(ErrorKind.not_your_delegate, f"{delegate} is not delegated by {caller}")
                await UpdateData.delete_delegate(row, session)
                event = await CreateData.add_game_event(
                    EventKindModel.delegate_revoked.value,
                    session,
                    actor=caller,
                    payload={"principal": caller, "delegate": delegate},
                )
        logging.info(f"Delegate {delegate} revoked by {caller}")
        await self.publisher.publish_all([event])
        return DelegationSchema(delegate=delegate, principal=None)

    async def read_principal(self, delegate: str) -> DelegationSchema:
        delegate = normalize_address(delegate)
        async with self.Session() as session:
            row = await ReadData.read_delegate(delegate, session)
        return DelegationSchema(delegate=delegate, principal=row.principal if row else None)

    async def authorize(self, game: Game, caller: str, session: AsyncSession) -> bool:
        """True if ``caller`` is the game's principal or a delegate of that principal."""
        if caller == game.principal:
            return True
        row = await ReadData.read_delegate(caller, session)
        return row is not None and row.principal == game.principal

    async def require_authorized(self, game: Game, caller: str, session: AsyncSession) -> None:
        if not await self.authorize(game, caller, session):
            raise GameError(ErrorKind.unauthorized, f"{caller} may not act on game {game.game_id}")

    async def is_authorized(self, game_id: int, caller: str) -> bool:
        caller = normalize_address(caller)
        async with self.Session() as session:
            game = await ReadData.read_game(game_id, session)
            if game is None:
                raise GameError(ErrorKind.game_not_found, f"game {game_id} does not exist")
            return await self.authorize(game, caller, session)
