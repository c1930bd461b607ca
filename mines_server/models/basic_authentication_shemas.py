from sqlalchemy.schema import Column
from sqlalchemy.types import String

from mines_server.models.schemas import Base


class UserTable(Base):
    __tablename__ = "users"
    username = Column(String, primary_key=True, index=True)
    hash_password = Column(String)
    salt = Column(String)
    address = Column(String(42), nullable=False, unique=True)
