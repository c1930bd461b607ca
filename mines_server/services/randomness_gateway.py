"""Bookkeeping side of the external randomness source.

The source itself lives elsewhere. This gateway quotes its fee, records paid requests under
the id the source will use for its answer, and accepts the answer later through
``fulfill``, which only the source's own identity may call. A request is answered once.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from mines_server.crud import CreateData, ReadData
from mines_server.domain.commit_reveal import is_zero, normalize_address, normalize_bytes32
from mines_server.errors import ErrorKind, GameError
from mines_server.models.schemas import RandomnessRequest


class RandomnessGateway:
    def __init__(self, fee: int, provider_address: str):
        self.fee = fee
        self.provider_address = normalize_address(provider_address)

    async def query_fee(self) -> int:
        return self.fee

    async def request(self, payment: int, requester: str, session: AsyncSession) -> int:
        """Pay for one random value and return the request id it will be delivered under.

        The id comes from the request table's sequence, so concurrent requests never share one.

        Args:
            payment (int): Amount paid to the source, at least the current fee
            requester (str): Address the request is made for

        Returns:
            int: Request id, also used as the game id
        """
        fee = await self.query_fee()
        if payment < fee:
            raise GameError(ErrorKind.insufficient_payment, f"fee is {fee}, got {payment}")

        request = await CreateData.add_randomness_request(
            RandomnessRequest(requester=normalize_address(requester), fee_paid=payment),
            session,
        )
        logging.info(f"Randomness requested: request_id={request.request_id}, fee={payment}")
        return request.request_id

    def require_provider(self, caller: str) -> None:
        if normalize_address(caller) != self.provider_address:
            raise GameError(ErrorKind.unauthorized, "only the randomness provider can fulfill requests")

    async def fulfill(self, caller: str, request_id: int, random_value: str, session: AsyncSession) -> RandomnessRequest:
        """Store the value delivered by the source for ``request_id``."""
        self.require_provider(caller)
        random_value = normalize_bytes32(random_value)
        if is_zero(random_value):
            raise GameError(ErrorKind.out_of_range, "random value must be non-zero")

        request = await ReadData.read_randomness_request(request_id, session, for_update=True)
        if request is None:
            raise GameError(ErrorKind.game_not_found, f"unknown request id {request_id}")
        if request.random_value is not None:
            raise GameError(ErrorKind.already_fulfilled, f"request {request_id} was already fulfilled")

        request.random_value = random_value
        request.fulfilled_at = datetime.now()
        await session.flush()
        logging.info(f"Randomness fulfilled: request_id={request_id}")
        return request
