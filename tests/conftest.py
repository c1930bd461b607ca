import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from mines_server.crud import CreateData
from mines_server.services.game_db import GameService
from mines_server.services.parameter_governor import ParameterGovernor
from mines_server.services.randomness_gateway import RandomnessGateway
from mines_server.services.session_authority import SessionAuthority
from mines_server.services.treasury import Treasury
from tests.helpers import (
    ALICE,
    COMMIT_A,
    FEE,
    GOVERNOR,
    PROVIDER,
    RANDOM_A,
    FakeClock,
    RecordingPublisher,
)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'mines.sqlite3'}")
    await CreateData.create_table(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def Session(engine):
    return async_sessionmaker(class_=AsyncSession, expire_on_commit=False, bind=engine)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return RandomnessGateway(FEE, PROVIDER)


@pytest.fixture
def authority(Session, publisher):
    return SessionAuthority(Session, publisher)


@pytest.fixture
def governor(Session, publisher, clock):
    return ParameterGovernor(Session, publisher, GOVERNOR, clock=clock)


@pytest.fixture
def treasury(Session, publisher):
    return Treasury(Session, publisher, GOVERNOR)


@pytest.fixture
def game_service(Session, publisher, gateway, authority, governor, treasury):
    return GameService(Session, publisher, gateway, authority, governor, treasury)


@pytest.fixture
def fulfilled_game(game_service):
    """Factory: start a game for ``principal`` and deliver its random value."""

    async def _make(principal=ALICE, value=FEE + 10, commitment=COMMIT_A, random_value=RANDOM_A):
        summary = await game_service.start_game(principal, commitment, value)
        return await game_service.on_fulfilled(PROVIDER, summary.game_id, random_value)

    return _make
