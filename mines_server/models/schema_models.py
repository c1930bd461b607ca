from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime

from mines_server.domain.game_rules import GameParameter, GameState
from mines_server.models.dc_models import CellStateModel


class GameSummarySchema(BaseModel):
    """Public view of a game. ``secret`` and ``seed`` stay hidden until the game is over."""
    game_id: int
    principal: str
    state: GameState
    wager: int
    pot: int
    commitment: str
    external_random: str | None
    secret: str | None
    seed: str | None
    revealed_mask: int
    revealed_count: int
    mine_cell: Optional[tuple[int, int]] = None
    active: bool
    lost: bool
    secret_revealed: bool
    created_at: datetime
    ended_at: datetime | None = None


class CellSchema(BaseModel):
    x: int
    y: int


class CellStatusSchema(BaseModel):
    game_id: int
    x: int
    y: int
    state: CellStateModel


class ParameterSchema(BaseModel):
    name: GameParameter
    value: int
    pending_value: int | None = None
    effective_at: int | None = None


class DelegationSchema(BaseModel):
    delegate: str
    principal: str | None


class TreasurySchema(BaseModel):
    balance: int


class GameEventSchema(BaseModel):
    event_id: UUID
    kind: str
    game_id: int | None
    actor: str | None
    payload: dict
    created_at: datetime

    class Config:
        from_attributes = True
