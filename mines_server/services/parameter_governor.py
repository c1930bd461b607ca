"""Timelocked two-phase changes of the game economics.

propose -> (wait TIMELOCK_DELAY_SECONDS) -> execute. A parameter is always either at its
old value or at the proposed one; there is no partial application.
"""

import logging
import time
from typing import Callable, List

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mines_server.crud import CreateData, ReadData, UpdateData
from mines_server.domain.commit_reveal import normalize_address
from mines_server.domain.game_rules import (
    PARAMETER_BOUNDS,
    PARAMETER_DEFAULTS,
    TIMELOCK_DELAY_SECONDS,
    GameParameter,
    is_in_range,
)
from mines_server.errors import ErrorKind, GameError
from mines_server.event_bus import EventPublisher
from mines_server.models.dc_models import EventKindModel
from mines_server.models.schema_models import ParameterSchema


class ParameterGovernor:
    def __init__(
        self,
        Session: async_sessionmaker,
        publisher: EventPublisher,
        governor_address: str,
        clock: Callable[[], float] = time.time,
        delay: int = TIMELOCK_DELAY_SECONDS,
    ):
        self.Session = Session
        self.publisher = publisher
        self.governor_address = normalize_address(governor_address)
        self.clock = clock
        self.delay = delay

    def _require_governor(self, caller: str) -> str:
        caller = normalize_address(caller)
        if caller != self.governor_address:
            raise GameError(ErrorKind.unauthorized, f"{caller} is not the governing authority")
        return caller

    def _now(self) -> int:
        return int(self.clock())

    async def current_value(self, parameter: GameParameter, session: AsyncSession) -> int:
        """Value in effect right now, inside the caller's transaction."""
        row = await ReadData.read_parameter(parameter.value, session)
        if row is None:
            return PARAMETER_DEFAULTS[parameter]
        return row.value

    async def _describe(self, parameter: GameParameter, session: AsyncSession) -> ParameterSchema:
        value = await self.current_value(parameter, session)
        pending = await ReadData.read_pending_change(parameter.value, session)
        if pending is None or pending.effective_at == 0:
            return ParameterSchema(name=parameter, value=value)
        return ParameterSchema(
            name=parameter,
            value=value,
            pending_value=pending.new_value,
            effective_at=pending.effective_at,
        )

    async def read_parameters(self) -> List[ParameterSchema]:
        async with self.Session() as session:
            return [await self._describe(parameter, session) for parameter in GameParameter]

    async def propose(self, caller: str, parameter: GameParameter, value: int) -> ParameterSchema:
        """Schedule ``parameter`` to become ``value`` after the timelock.

        A newer proposal for the same parameter replaces the pending one and restarts the delay.

        Args:
            caller (str): Must be the governing authority
            parameter (GameParameter): Parameter to change
            value (int): New value in basis points

        Returns:
            ParameterSchema: Current value plus the pending change
        """
        caller = self._require_governor(caller)
        if not is_in_range(parameter, value):
            low, high = PARAMETER_BOUNDS[parameter]
            raise GameError(ErrorKind.out_of_range, f"{parameter.value} must be within [{low}, {high}]")
        effective_at = self._now() + self.delay

        async with self.Session() as session:
            async with session.begin():
                await UpdateData.upsert_pending_change(parameter.value, value, effective_at, session)
                event = await CreateData.add_game_event(
                    EventKindModel.parameter_change_proposed.value,
                    session,
                    actor=caller,
                    payload={"parameter": parameter.value, "value": value, "effective_at": effective_at},
                )
                described = await self._describe(parameter, session)
        logging.info(f"Proposed {parameter.value}={value} effective at {effective_at}")
        await self.publisher.publish_all([event])
        return described

    async def execute(self, caller: str, parameter: GameParameter) -> ParameterSchema:
        """Apply the pending change once its timelock has elapsed."""
        caller = normalize_address(caller)
        now = self._now()

        async with self.Session() as session:
            async with session.begin():
                pending = await ReadData.read_pending_change(parameter.value, session, for_update=True)
                if pending is None or pending.effective_at == 0:
                    raise GameError(ErrorKind.no_pending_change, f"no change pending for {parameter.value}")
                if now < pending.effective_at:
                    raise GameError(
                        ErrorKind.timelock_not_elapsed,
                        f"{parameter.value} change is effective at {pending.effective_at}, now is {now}",
                    )
                value = pending.new_value
                await UpdateData.upsert_parameter(parameter.value, value, session)
                pending.new_value = 0
                pending.effective_at = 0
                event = await CreateData.add_game_event(
                    EventKindModel.parameter_change_applied.value,
                    session,
                    actor=caller,
                    payload={"parameter": parameter.value, "value": value},
                )
                described = await self._describe(parameter, session)
        logging.info(f"Applied {parameter.value}={value}")
        await self.publisher.publish_all([event])
        return described

    async def cancel(self, caller: str, parameter: GameParameter) -> ParameterSchema:
        """Drop any pending change. Cancelling when nothing is pending is not an error."""
        caller = self._require_governor(caller)

        async with self.Session() as session:
            async with session.begin():
                await UpdateData.upsert_pending_change(parameter.value, 0, 0, session)
                event = await CreateData.add_game_event(
                    EventKindModel.parameter_change_cancelled.value,
                    session,
                    actor=caller,
                    payload={"parameter": parameter.value},
                )
                described = await self._describe(parameter, session)
        logging.info(f"Cancelled pending change of {parameter.value}")
        await self.publisher.publish_all([event])
        return described
