from fastapi import APIRouter, Depends

from mines_server.authentication.basic_authentication import BasicAuthentication
from mines_server.dependencies import get_game_service
from mines_server.models.basic_authentication_models import UserModel
from mines_server.models.dc_models import FulfillmentModel
from mines_server.models.schema_models import GameSummarySchema
from mines_server.services.game_db import GameService

entropy_router = APIRouter(prefix="/entropy", tags=["entropy"])
basic_auth = BasicAuthentication()


class EntropyServer:
    @staticmethod
    @entropy_router.post("/callback", response_model=GameSummarySchema)
    async def fulfill(
        fulfillment: FulfillmentModel,
        user_data: UserModel = Depends(basic_auth.check_user_data),
        game_service: GameService = Depends(get_game_service),
    ) -> GameSummarySchema:
        """Delivery of a random value by the randomness provider's infrastructure

        Args:
            fulfillment (FulfillmentModel): request id and the random value for it
            user_data (UserModel): Must be the configured provider account
        """
        return await game_service.on_fulfilled(
            user_data.address, fulfillment.request_id, fulfillment.random_value
        )
