from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sip_planner.core.config import settings

engine_kwargs = {"echo": False, "future": True}
# SQLite (tests, local runs) uses a pool without size limits
if not settings.DATABASE_URL.startswith("sqlite"):
    engine_kwargs.update(pool_size=settings.DB_POOL_SIZE, max_overflow=0)

# Create async engine
engine = create_async_engine(settings.DATABASE_URL, **engine_kwargs)

# Async session factory
async_session_maker = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

async def get_db():
    async with async_session_maker() as session:
        yield session

async def init_db():
    # Make sure every table is registered on the metadata
    import sip_planner.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
