from fastapi import Request

from mines_server.services.game_db import GameService
from mines_server.services.parameter_governor import ParameterGovernor
from mines_server.services.randomness_gateway import RandomnessGateway
from mines_server.services.session_authority import SessionAuthority
from mines_server.services.treasury import Treasury


def get_game_service(request: Request) -> GameService:
    return request.app.state.game_service


def get_session_authority(request: Request) -> SessionAuthority:
    return request.app.state.session_authority


def get_parameter_governor(request: Request) -> ParameterGovernor:
    return request.app.state.parameter_governor


def get_randomness_gateway(request: Request) -> RandomnessGateway:
    return request.app.state.randomness_gateway


def get_treasury(request: Request) -> Treasury:
    return request.app.state.treasury
