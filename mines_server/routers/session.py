from fastapi import APIRouter, Depends

from mines_server.authentication.basic_authentication import BasicAuthentication
from mines_server.dependencies import get_session_authority
from mines_server.models.basic_authentication_models import UserModel
from mines_server.models.dc_models import DelegateModel
from mines_server.models.schema_models import DelegationSchema
from mines_server.services.session_authority import SessionAuthority

session_router = APIRouter(prefix="/session", tags=["session"])
basic_auth = BasicAuthentication()


class SessionServer:
    @staticmethod
    @session_router.post("/delegates", response_model=DelegationSchema)
    async def register_delegate(
        delegate: DelegateModel,
        user_data: UserModel = Depends(basic_auth.check_user_data),
        authority: SessionAuthority = Depends(get_session_authority),
    ) -> DelegationSchema:
        """Let ``delegate`` play the caller's games. Payouts still go to the caller."""
        return await authority.register_delegate(user_data.address, delegate.delegate)

    @staticmethod
    @session_router.delete("/delegates/{delegate}", response_model=DelegationSchema)
    async def revoke_delegate(
        delegate: str,
        user_data: UserModel = Depends(basic_auth.check_user_data),
        authority: SessionAuthority = Depends(get_session_authority),
    ) -> DelegationSchema:
        return await authority.revoke_delegate(user_data.address, delegate)
