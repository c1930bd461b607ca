from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.schema import Column
from sqlalchemy.types import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Integer,
    String,
    TypeDecorator,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from uuid6 import uuid7
from datetime import datetime


class Base(DeclarativeBase):
    pass


class Uint256(TypeDecorator):
    """Unsigned integer of any size, stored as its decimal string."""

    impl = String(80)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = int(value)
        if value < 0:
            raise ValueError("Uint256 column cannot hold a negative value")
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


class Game(Base):
    __tablename__ = "game"
    # Issued by the randomness gateway; never generated here.
    game_id = Column(BigInteger, primary_key=True, autoincrement=False)
    principal = Column(String(42), nullable=False, index=True)
    wager = Column(Uint256, nullable=False)
    pot = Column(Uint256, nullable=False)
    commitment = Column(String(66), nullable=False)
    external_random = Column(String(66), nullable=True)
    secret = Column(String(66), nullable=True)
    seed = Column(String(66), nullable=True)
    revealed_mask = Column(Uint256, nullable=False, default=0)
    mine_cell = Column(Integer, nullable=True)  # bit index of the losing reveal
    active = Column(Boolean, nullable=False, default=True)
    lost = Column(Boolean, nullable=False, default=False)
    secret_revealed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.now)
    fulfilled_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)


class RandomnessRequest(Base):
    __tablename__ = "randomness_request"
    # Assigned by the database; SQLite only autoincrements an INTEGER primary key.
    request_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    requester = Column(String(42), nullable=False)
    fee_paid = Column(Uint256, nullable=False)
    random_value = Column(String(66), nullable=True)
    requested_at = Column(DateTime, default=datetime.now)
    fulfilled_at = Column(DateTime, nullable=True)


class SessionDelegate(Base):
    __tablename__ = "session_delegate"
    delegate = Column(String(42), primary_key=True)
    principal = Column(String(42), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.now)


class GameParameterValue(Base):
    __tablename__ = "game_parameter"
    name = Column(String(32), primary_key=True)
    value = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=datetime.now)


class PendingChange(Base):
    __tablename__ = "pending_change"
    name = Column(String(32), primary_key=True)
    new_value = Column(Integer, nullable=False, default=0)
    # Unix seconds; 0 means no change is pending.
    effective_at = Column(BigInteger, nullable=False, default=0)


class Treasury(Base):
    __tablename__ = "treasury"
    treasury_id = Column(Integer, primary_key=True)
    balance = Column(Uint256, nullable=False, default=0)


class Payout(Base):
    __tablename__ = "payout"
    payout_id = Column(Uuid, primary_key=True, default=uuid7)
    game_id = Column(BigInteger, nullable=False, index=True)
    recipient = Column(String(42), nullable=False)
    amount = Column(Uint256, nullable=False)
    created_at = Column(DateTime, default=datetime.now)


class GameEvent(Base):
    __tablename__ = "game_event"
    event_id = Column(Uuid, primary_key=True, default=uuid7)
    kind = Column(String(40), nullable=False)
    game_id = Column(BigInteger, nullable=True, index=True)
    actor = Column(String(42), nullable=True)
    payload = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.now)
