from typing import List

from fastapi import APIRouter, Depends

from mines_server.dependencies import (
    get_game_service,
    get_parameter_governor,
    get_randomness_gateway,
    get_session_authority,
    get_treasury,
)
from mines_server.models.dc_models import FeeModel
from mines_server.models.schema_models import (
    CellSchema,
    CellStatusSchema,
    DelegationSchema,
    GameEventSchema,
    GameSummarySchema,
    ParameterSchema,
    TreasurySchema,
)
from mines_server.services.game_db import GameService
from mines_server.services.parameter_governor import ParameterGovernor
from mines_server.services.randomness_gateway import RandomnessGateway
from mines_server.services.session_authority import SessionAuthority
from mines_server.services.treasury import Treasury

rest_router = APIRouter()


class GameAPI:
    @staticmethod
    @rest_router.get("/games", response_model=List[GameSummarySchema])
    async def list_games(
        principal: str,
        active_only: bool = False,
        game_service: GameService = Depends(get_game_service),
    ):
        return await game_service.list_games(principal, active_only)

    @staticmethod
    @rest_router.get("/games/{game_id}", response_model=GameSummarySchema)
    async def get_game(game_id: int, game_service: GameService = Depends(get_game_service)):
        return await game_service.get_game_summary(game_id)

    @staticmethod
    @rest_router.get("/games/{game_id}/safe-cells", response_model=List[CellSchema])
    async def get_revealed_safe_cells(game_id: int, game_service: GameService = Depends(get_game_service)):
        return await game_service.get_revealed_safe_cells(game_id)

    @staticmethod
    @rest_router.get("/games/{game_id}/cells/{x}/{y}", response_model=CellStatusSchema)
    async def get_cell_status(game_id: int, x: int, y: int, game_service: GameService = Depends(get_game_service)):
        return await game_service.get_cell_status(game_id, x, y)

    @staticmethod
    @rest_router.get("/games/{game_id}/events", response_model=List[GameEventSchema])
    async def get_game_events(game_id: int, game_service: GameService = Depends(get_game_service)):
        return await game_service.read_events(game_id)


class SessionAPI:
    @staticmethod
    @rest_router.get("/session/delegates/{delegate}", response_model=DelegationSchema)
    async def get_delegate(delegate: str, authority: SessionAuthority = Depends(get_session_authority)):
        return await authority.read_principal(delegate)


class GovernanceAPI:
    @staticmethod
    @rest_router.get("/governance/parameters", response_model=List[ParameterSchema])
    async def get_parameters(governor: ParameterGovernor = Depends(get_parameter_governor)):
        return await governor.read_parameters()

    @staticmethod
    @rest_router.get("/treasury", response_model=TreasurySchema)
    async def get_treasury(treasury: Treasury = Depends(get_treasury)):
        return await treasury.balance()


class EntropyAPI:
    @staticmethod
    @rest_router.get("/entropy/fee", response_model=FeeModel)
    async def get_fee(gateway: RandomnessGateway = Depends(get_randomness_gateway)):
        return FeeModel(fee=await gateway.query_fee())
