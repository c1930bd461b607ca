from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import async_sessionmaker

from mines_server.domain.commit_reveal import ZERO_ADDRESS
from mines_server.errors import GameError
from mines_server.event_bus import EventPublisher
from mines_server.load_secrets import (
    entropy_fee,
    entropy_provider_address,
    governor_address,
    redis_host,
    redis_port,
    stale_reveal_hours,
)
from mines_server.routers import entropy, game, governance, restapi, session
from mines_server.services.game_db import GameService
from mines_server.services.parameter_governor import ParameterGovernor
from mines_server.services.randomness_gateway import RandomnessGateway
from mines_server.services.session_authority import SessionAuthority
from mines_server.services.treasury import Treasury

logging.basicConfig(level=logging.INFO)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def install_services(app: FastAPI, Session: async_sessionmaker, publisher: EventPublisher, **overrides) -> None:
    """Build the engine components and attach them to app.state.

    ``overrides`` replaces individual components (gateway, governor, ...) when given.
    """
    gateway = overrides.get("gateway") or RandomnessGateway(entropy_fee, entropy_provider_address)
    authority = overrides.get("authority") or SessionAuthority(Session, publisher)
    governor = overrides.get("governor") or ParameterGovernor(Session, publisher, governor_address)
    treasury = overrides.get("treasury") or Treasury(Session, publisher, governor_address)
    app.state.Session = Session
    app.state.randomness_gateway = gateway
    app.state.session_authority = authority
    app.state.parameter_governor = governor
    app.state.treasury = treasury
    app.state.game_service = GameService(Session, publisher, gateway, authority, governor, treasury)


def require_role_addresses(governor: str, provider: str) -> None:
    """Refuse to start while the governor or the randomness provider is unconfigured."""
    missing = [
        name
        for name, address in (("GOVERNOR_ADDRESS", governor), ("ENTROPY_PROVIDER_ADDRESS", provider))
        if address == ZERO_ADDRESS
    ]
    if missing:
        raise RuntimeError(f"{', '.join(missing)} must be set to a non-zero address")


async def handle_game_error(request: Request, exc: GameError) -> JSONResponse:
    logging.warning(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    logging.warning(f"{request.method} {request.url.path} invalid input: {exc}")
    return JSONResponse(status_code=400, content={"kind": "InvalidInput", "detail": str(exc), "retryable": False})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the database and Redis, build the services and start the audit job.
    This function is called to start the server.
    """
    require_role_addresses(governor_address, entropy_provider_address)
    from mines_server.create_postgres_engine import engine
    from mines_server.crud import CreateData
    from mines_server.db import Session

    await CreateData.create_table(engine)
    redis = Redis(host=redis_host, port=redis_port, decode_responses=True, health_check_interval=30)
    app.state.redis = redis
    install_services(app, Session, EventPublisher(redis))

    scheduler = AsyncIOScheduler()
    # Games stuck before their first reveal keep their wager locked; report them.
    scheduler.add_job(
        app.state.game_service.log_unrevealed_games,
        "interval",
        hours=1,
        args=[stale_reveal_hours],
    )
    scheduler.start()
    try:
        yield
    finally:
        scheduler.shutdown()
        await redis.aclose()
        await engine.dispose()
        logging.info("Stop Server")


def create_app(lifespan=None) -> FastAPI:
    app = FastAPI(lifespan=lifespan)
    app.add_exception_handler(GameError, handle_game_error)
    app.add_exception_handler(ValueError, handle_value_error)
    app.include_router(game.game_router)
    app.include_router(restapi.rest_router)
    app.include_router(session.session_router)
    app.include_router(governance.governance_router)
    app.include_router(entropy.entropy_router)
    return app


app = create_app(lifespan)


# if __name__ == "__main__":
#     uvicorn.run(app, host="0.0.0.0", port=8080, reload=True)
