from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from banksync.config import settings


def build_engine(database_url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    engine = create_async_engine(database_url, echo=echo, future=True, **kwargs)
    if engine.dialect.name == "sqlite":
        # SQLite only honours ON DELETE CASCADE with this pragma.
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


# Do not log SQL statement parameters by default (can contain sensitive data).
async_engine = build_engine(
    settings.database_url,
    echo=(settings.db_echo if settings.app_env.lower() == "development" else False),
)

AsyncSessionLocal = async_sessionmaker(
    async_engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session
