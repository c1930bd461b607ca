from pydantic import BaseModel, Field, field_validator
from enum import Enum

from mines_server.domain.commit_reveal import ZERO_BYTES32, normalize_address, normalize_bytes32
from mines_server.domain.game_rules import GameParameter


class CellStateModel(str, Enum):
    hidden = "hidden"
    safe = "safe"
    mine = "mine"


class EventKindModel(str, Enum):
    game_requested = "game_requested"
    randomness_fulfilled = "randomness_fulfilled"
    secret_revealed = "secret_revealed"
    cell_revealed = "cell_revealed"
    game_ended = "game_ended"
    delegate_registered = "delegate_registered"
    delegate_revoked = "delegate_revoked"
    parameter_change_proposed = "parameter_change_proposed"
    parameter_change_applied = "parameter_change_applied"
    parameter_change_cancelled = "parameter_change_cancelled"
    treasury_funded = "treasury_funded"


class StartGameModel(BaseModel):
    commitment: str
    value: int = Field(ge=0)  # total supplied, oracle fee included

    @field_validator("commitment")
    @classmethod
    def check_commitment(cls, value: str) -> str:
        return normalize_bytes32(value)


class RevealSecretModel(BaseModel):
    secret: str

    @field_validator("secret")
    @classmethod
    def check_secret(cls, value: str) -> str:
        return normalize_bytes32(value)


class RevealCellModel(BaseModel):
    x: int
    y: int
    # Secret on the first move; the zero sentinel afterwards.
    secret: str = ZERO_BYTES32

    @field_validator("secret")
    @classmethod
    def check_secret(cls, value: str) -> str:
        return normalize_bytes32(value)


class DelegateModel(BaseModel):
    delegate: str

    @field_validator("delegate")
    @classmethod
    def check_delegate(cls, value: str) -> str:
        return normalize_address(value)


class ProposeChangeModel(BaseModel):
    parameter: GameParameter
    value: int


class FulfillmentModel(BaseModel):
    request_id: int
    random_value: str

    @field_validator("random_value")
    @classmethod
    def check_random_value(cls, value: str) -> str:
        return normalize_bytes32(value)


class FundTreasuryModel(BaseModel):
    amount: int = Field(gt=0)


class FeeModel(BaseModel):
    fee: int
