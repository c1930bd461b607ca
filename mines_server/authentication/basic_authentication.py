import argparse
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.ext.asyncio import async_sessionmaker
import secrets
import asyncio

from mines_server.models.basic_authentication_models import UserModel
from mines_server.authentication.basic_authentication_crud import (
    CreateAuthentication,
    ReadAuthentication,
    hash_password,
)

security = HTTPBasic()
create_auth = CreateAuthentication()
read_auth = ReadAuthentication()


class BasicAuthentication:
    def __init__(self):
        pass

    async def check_user_data(
        self, request: Request, credentials: HTTPBasicCredentials = Depends(security)
    ) -> UserModel:
        """Check the credentials and return the user, whose address is the caller identity

        Args:
            credentials (HTTPBasicCredentials, optional): _description_. Defaults to Depends(security).

        Raises:
            HTTPException: The user data is not found in the database
            HTTPException: The password is incorrect

        Returns:
            UserModel: The authenticated user
        """
        Session: async_sessionmaker = request.app.state.Session
        async with Session() as session:
            user_data: UserModel = await read_auth.read_user_data(credentials.username, session)
        if user_data is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username",
                headers={"WWW-Authenticate": "Basic"},
            )

        hashed_password = hash_password(credentials.password, user_data.salt)
        if not secrets.compare_digest(hashed_password, user_data.hash_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid password",
                headers={"WWW-Authenticate": "Basic"},
            )
        return user_data

    async def store_user_data(self, Session: async_sessionmaker, user_name: str, password: str, address: str) -> UserModel | None:
        async with Session() as session:
            return await create_auth.create_user_data(user_name, password, address, session)


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Basic Authentication")
    parser.add_argument("--username", type=str, help="Username", required=True)
    parser.add_argument("--password", type=str, help="Password", required=True)
    parser.add_argument("--address", type=str, help="Address the user plays as", required=True)
    return parser


async def main(user_name: str, password: str, address: str):
    from mines_server.create_postgres_engine import engine
    from mines_server.crud import CreateData
    from mines_server.db import Session

    await CreateData.create_table(engine)
    basic_auth = BasicAuthentication()
    user_data = await basic_auth.store_user_data(Session, user_name, password, address)
    if user_data is None:
        print(f"User {user_name} could not be created: name or address taken, or zero address")
    else:
        print(user_data.username, user_data.address)


if __name__ == "__main__":
    parser = get_parser()
    args = parser.parse_args()
    asyncio.run(main(args.username, args.password, args.address))
