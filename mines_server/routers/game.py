import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from mines_server.authentication.basic_authentication import BasicAuthentication
from mines_server.dependencies import get_game_service
from mines_server.models.basic_authentication_models import UserModel
from mines_server.models.dc_models import (
    RevealCellModel,
    RevealSecretModel,
    StartGameModel,
)
from mines_server.models.schema_models import GameSummarySchema
from mines_server.redis_subscriber import RedisSubscriber
from mines_server.services.game_db import GameService

game_router = APIRouter(prefix="/games", tags=["games"])
basic_auth = BasicAuthentication()


class GameServer:
    @staticmethod
    @game_router.post("", response_model=GameSummarySchema)
    async def start_game(
        start: StartGameModel,
        user_data: UserModel = Depends(basic_auth.check_user_data),
        game_service: GameService = Depends(get_game_service),
    ) -> GameSummarySchema:
        """Place a wager and request randomness for a new game

        Args:
            start (StartGameModel):
                    commitment: sha256 of the secret revealed on the first move
                    value: total supplied amount, randomness fee included
            user_data (UserModel): The authenticated principal

        Returns:
            GameSummarySchema: The new game, waiting for its random value
        """
        return await game_service.start_game(user_data.address, start.commitment, start.value)

    @staticmethod
    @game_router.post("/{game_id}/secret", response_model=GameSummarySchema)
    async def reveal_secret(
        game_id: int,
        reveal: RevealSecretModel,
        user_data: UserModel = Depends(basic_auth.check_user_data),
        game_service: GameService = Depends(get_game_service),
    ) -> GameSummarySchema:
        return await game_service.reveal_secret(user_data.address, game_id, reveal.secret)

    @staticmethod
    @game_router.post("/{game_id}/cells", response_model=GameSummarySchema)
    async def reveal_cell(
        game_id: int,
        reveal: RevealCellModel,
        user_data: UserModel = Depends(basic_auth.check_user_data),
        game_service: GameService = Depends(get_game_service),
    ) -> GameSummarySchema:
        """Open one cell, as the principal or a registered delegate

        Args:
            game_id (int): Game to play
            reveal (RevealCellModel): Coordinates, plus the secret on the first move
        """
        return await game_service.reveal_cell(user_data.address, game_id, reveal.x, reveal.y, reveal.secret)

    @staticmethod
    @game_router.post("/{game_id}/cash-out", response_model=GameSummarySchema)
    async def cash_out(
        game_id: int,
        user_data: UserModel = Depends(basic_auth.check_user_data),
        game_service: GameService = Depends(get_game_service),
    ) -> GameSummarySchema:
        """End the game. The pot is always paid to the game's principal."""
        return await game_service.cash_out(user_data.address, game_id)

    @staticmethod
    @game_router.get("/{game_id}/stream")
    async def stream_game_events(
        game_id: int,
        request: Request,
        user_data: UserModel = Depends(basic_auth.check_user_data),
        game_service: GameService = Depends(get_game_service),
    ):
        # Fail with 404 before opening the stream.
        await game_service.get_game_summary(game_id)
        logging.info(f"{user_data.username} subscribed to game {game_id}")
        redis_subscriber = RedisSubscriber(game_service, game_id)

        return StreamingResponse(
            redis_subscriber.event_generator(request.app.state.redis),
            media_type="text/event-stream; charset=utf-8",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )
