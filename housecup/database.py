"""
housecup/database.py
Database configuration, schema creation and reference-data seeding
"""
import logging
from typing import Iterable, List

from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from housecup.config import settings
from housecup.orm.base import Base
import housecup.orm  # ensures all models are registered
from housecup.orm.house import Guest, House
from housecup.orm.voting import VOTING_STATUS_ID, VotingStatus

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def build_engine(database_url: str) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite gets foreign keys switched on for every connection and a busy
    timeout so concurrent writers queue instead of failing.
    """
    if "sqlite" in database_url.lower():
        if ":memory:" in database_url:
            bound = create_async_engine(database_url, echo=False, future=True)
        else:
            bound = create_async_engine(
                database_url,
                echo=False,
                future=True,
                pool_pre_ping=True,
                pool_size=10,
                max_overflow=20,
                pool_timeout=30,
                connect_args={
                    "timeout": 30.0,   # SQLite busy timeout in seconds
                }
            )
        event.listen(bound.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return bound

    # PostgreSQL/MySQL: Use standard pool with larger size
    return create_async_engine(
        database_url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=30,
        pool_timeout=30,
        pool_recycle=3600,
    )


engine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db():
    """Dependency for getting async database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_schema(bind: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def house_names() -> List[str]:
    """Names of the HOUSE_COUNT houses to seed."""
    names = list(settings.HOUSE_NAMES[:settings.HOUSE_COUNT])
    for number in range(len(names) + 1, settings.HOUSE_COUNT + 1):
        names.append(f"House {number}")
    return names


async def seed_reference_data(db: AsyncSession) -> None:
    """
    Seed the houses and the voting_status singleton.
    Idempotent: safe to run on every startup.
    """
    if settings.HOUSE_COUNT < 1:
        raise ValueError(f"HOUSE_COUNT must be at least 1, got {settings.HOUSE_COUNT}")

    result = await db.execute(select(House.name))
    existing = set(result.scalars().all())

    missing = [name for name in house_names() if name not in existing]
    for name in missing:
        db.add(House(name=name, score=0))

    status = await db.get(VotingStatus, VOTING_STATUS_ID)
    if status is None:
        db.add(VotingStatus(id=VOTING_STATUS_ID, is_open=False, round_number=0))

    await db.commit()

    if missing:
        logger.info("Seeded houses: %s", ", ".join(missing))


async def seed_guests(db: AsyncSession, names: Iterable[str]) -> List[Guest]:
    """
    Pre-populate unregistered guest placeholders.

    Names already on the roster are skipped, so re-running with the same
    file is harmless.
    """
    cleaned = [name.strip() for name in names if name and name.strip()]

    result = await db.execute(select(Guest.name))
    existing = set(result.scalars().all())

    created = []
    for name in cleaned:
        if name in existing:
            continue
        guest = Guest(name=name, house_id=None, personal_score=0, is_active=False)
        db.add(guest)
        created.append(guest)
        existing.add(name)

    await db.commit()
    logger.info("Seeded %d guests (%d already present)", len(created), len(cleaned) - len(created))
    return created


async def init_db() -> None:
    """
    Initialize database:
    1. Create tables if they don't exist
    2. Seed houses and the voting singleton
    """
    logger.info("Initializing database...")
    logger.info(f"Database dialect: {engine.url.get_backend_name()}")

    try:
        await create_schema(engine)
        async with AsyncSessionLocal() as session:
            await seed_reference_data(session)
            count = (await session.execute(select(func.count()).select_from(Guest))).scalar()
            logger.info("✓ Database initialization complete (%d guests on roster)", count)
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise


async def close_db():
    """Close database connection"""
    await engine.dispose()
    logger.info("Database connection closed")
