from fastapi import APIRouter, Depends

from mines_server.authentication.basic_authentication import BasicAuthentication
from mines_server.dependencies import get_parameter_governor, get_treasury
from mines_server.domain.game_rules import GameParameter
from mines_server.models.basic_authentication_models import UserModel
from mines_server.models.dc_models import FundTreasuryModel, ProposeChangeModel
from mines_server.models.schema_models import ParameterSchema, TreasurySchema
from mines_server.services.parameter_governor import ParameterGovernor
from mines_server.services.treasury import Treasury

governance_router = APIRouter(tags=["governance"])
basic_auth = BasicAuthentication()


class GovernanceServer:
    @staticmethod
    @governance_router.post("/governance/proposals", response_model=ParameterSchema)
    async def propose_change(
        proposal: ProposeChangeModel,
        user_data: UserModel = Depends(basic_auth.check_user_data),
        governor: ParameterGovernor = Depends(get_parameter_governor),
    ) -> ParameterSchema:
        """Schedule a parameter change; it can be executed once the timelock has elapsed"""
        return await governor.propose(user_data.address, proposal.parameter, proposal.value)

    @staticmethod
    @governance_router.post("/governance/proposals/{parameter}/execute", response_model=ParameterSchema)
    async def execute_change(
        parameter: GameParameter,
        user_data: UserModel = Depends(basic_auth.check_user_data),
        governor: ParameterGovernor = Depends(get_parameter_governor),
    ) -> ParameterSchema:
        return await governor.execute(user_data.address, parameter)

    @staticmethod
    @governance_router.delete("/governance/proposals/{parameter}", response_model=ParameterSchema)
    async def cancel_change(
        parameter: GameParameter,
        user_data: UserModel = Depends(basic_auth.check_user_data),
        governor: ParameterGovernor = Depends(get_parameter_governor),
    ) -> ParameterSchema:
        return await governor.cancel(user_data.address, parameter)

    @staticmethod
    @governance_router.post("/treasury/fund", response_model=TreasurySchema)
    async def fund_treasury(
        fund: FundTreasuryModel,
        user_data: UserModel = Depends(basic_auth.check_user_data),
        treasury: Treasury = Depends(get_treasury),
    ) -> TreasurySchema:
        return await treasury.fund(user_data.address, fund.amount)
