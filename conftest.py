import os
from typing import AsyncGenerator

import pytest_asyncio
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Load .env.test when present so tests never pick up a developer's .env
from dotenv import load_dotenv

env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

from libs.common.config import get_settings
from libs.db.base import Base
from libs.db.factory import register_models

# Import all models so metadata includes every table
register_models()

# Clear cached settings to reload with new env vars
get_settings.cache_clear()
settings = get_settings()


@pytest_asyncio.fixture
async def test_engine():
    """
    Create a test engine that connects to the database.

    Tests that need it are skipped when DATABASE_URL is unset or the
    database cannot be reached.
    """
    if not settings.DATABASE_URL:
        pytest.skip("DATABASE_URL not configured for tests")

    # Fix for running tests on host where host.docker.internal might not resolve
    db_url = settings.DATABASE_URL.replace("host.docker.internal", "localhost")

    engine = create_async_engine(db_url, future=True)

    # Create tables
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except OperationalError:
        await engine.dispose()
        pytest.skip("Database not available for tests")

    yield engine

    # Drop tables after session
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session_factory(
    test_engine,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    Yield a session factory bound to one connection that rolls back after the test.

    join_transaction_mode="create_savepoint" lets code under test commit as if
    it owned the transaction while everything is undone at the end.
    """
    connection = await test_engine.connect()
    transaction = await connection.begin()

    session_factory = async_sessionmaker(
        bind=connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )

    try:
        yield session_factory
    finally:
        await transaction.rollback()
        await connection.close()
