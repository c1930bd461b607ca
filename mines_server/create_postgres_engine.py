from sqlalchemy.ext.asyncio import create_async_engine
from mines_server.load_secrets import database_url, user, password, host, port, db_name

POSTGRES_DATABASE_URL = (
    f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db_name}"
)

if database_url:
    engine = create_async_engine(database_url, echo=False)
else:
    engine = create_async_engine(POSTGRES_DATABASE_URL, pool_size=20, max_overflow=20)
