from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from core.environment import get_database_url, get_centers_database_url


DATABASE_URL = get_database_url()
CENTERS_DATABASE_URL = get_centers_database_url()

engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
)

# Service centers live in their own store; same engine when both URLs match
centers_engine = (
    engine
    if CENTERS_DATABASE_URL == DATABASE_URL
    else create_async_engine(CENTERS_DATABASE_URL, echo=False, future=True)
)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)
CentersSessionLocal = async_sessionmaker(centers_engine, expire_on_commit=False)
Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


async def get_centers_db():
    async with CentersSessionLocal() as session:
        yield session


async def init_models():
    """Create missing tables on both stores."""
    import models  # noqa: F401  (registers mappers on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if centers_engine is not engine:
        async with centers_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


async def dispose_engines():
    await engine.dispose()
    if centers_engine is not engine:
        await centers_engine.dispose()
