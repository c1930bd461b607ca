import hashlib
import logging
import secrets
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mines_server.domain.commit_reveal import ZERO_ADDRESS, normalize_address
from mines_server.models.basic_authentication_shemas import UserTable
from mines_server.models.basic_authentication_models import UserModel
from mines_server.load_secrets import pepper_data

logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def hash_password(password: str, salt: str) -> str:
    return hashlib.sha256((password + salt + pepper_data).encode()).hexdigest()


class CreateAuthentication:
    @staticmethod
    async def create_user_data(username: str, password: str, address: str, session: AsyncSession) -> UserModel | None:
        """Create user data to authenticate the user

        Args:
            username (str): Login name
            password (str): Plain password, only its salted hash is stored
            address (str): Address the user acts as

        Returns:
            UserModel | None: The stored user, None if the username or address is taken
                or the address is the zero address
        """
        address = normalize_address(address)
        if address == ZERO_ADDRESS:
            logging.error(f"Refusing to create user {username} with the zero address")
            return None
        salt = secrets.token_hex(8)
        new_user = UserTable(
            username=username,
            hash_password=hash_password(password, salt),
            salt=salt,
            address=address,
        )
        try:
            async with session.begin():
                session.add(new_user)
        except IntegrityError as e:
            logging.error(f"Error creating user data: {e}")
            return None
        return UserModel(
            username=new_user.username,
            hash_password=new_user.hash_password,
            salt=new_user.salt,
            address=new_user.address,
        )


class ReadAuthentication:
    @staticmethod
    async def read_user_data(username: str, session: AsyncSession) -> UserModel | None:
        """Read user data to get salt, password hash and address

        Args:
            username (str): username of the user

        Returns:
            UserModel: username, password hash, salt and address
        """
        stmt = select(UserTable).where(UserTable.username == username)
        result = await session.execute(stmt)
        result = result.scalars().first()
        if result is None:
            logging.warning(f"User not found: {username}")
            return None
        return UserModel(
            username=result.username,
            hash_password=result.hash_password,
            salt=result.salt,
            address=result.address,
        )
