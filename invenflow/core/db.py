# invenflow/core/db.py

import ssl
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from invenflow.core.config import (
    DATABASE_URL,
    DB_TYPE,
    DB_POOL_SIZE,
    DB_MAX_OVERFLOW,
    DB_POOL_TIMEOUT,
    DB_COMMAND_TIMEOUT,
    DB_SSL_VERIFY,
    DB_ECHO_POOL,
    APP_ENV,
)
from invenflow.utils.logger import get_logger

logger = get_logger(__name__)

# =====================================================
# BASE
# =====================================================
Base = declarative_base()


# =====================================================
# CONNECTION CONFIG
# =====================================================
def _postgres_options() -> tuple[dict, dict]:
    ssl_ctx = ssl.create_default_context()
    if not DB_SSL_VERIFY:
        ssl_ctx.check_hostname = False
        ssl_ctx.verify_mode = ssl.CERT_NONE

    connect_args = {
        "ssl": ssl_ctx,
        # every statement is bounded; row locks never wait forever
        "command_timeout": DB_COMMAND_TIMEOUT,
        "statement_cache_size": 0,
    }
    pool_args = {
        "pool_size": DB_POOL_SIZE,
        "max_overflow": DB_MAX_OVERFLOW,
        "pool_timeout": DB_POOL_TIMEOUT,
        "pool_pre_ping": True,
    }
    return connect_args, pool_args


def _sqlite_options() -> tuple[dict, dict]:
    # busy timeout: writers wait at most this long for the file lock
    return {"check_same_thread": False, "timeout": DB_COMMAND_TIMEOUT}, {}


connect_args, pool_args = (
    _postgres_options() if DB_TYPE == "postgres" else _sqlite_options()
)

# =====================================================
# ENGINE + SESSION
# =====================================================
engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    echo_pool=DB_ECHO_POOL,
    connect_args=connect_args,
    **pool_args,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


# =====================================================
# SQLITE FK ENFORCEMENT
# =====================================================
def enable_sqlite_foreign_keys(dbapi_connection, _):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


if DB_TYPE == "sqlite":
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)

# =====================================================
# MODEL IMPORT
# =====================================================
import invenflow.models  # noqa


# =====================================================
# LIFECYCLE
# =====================================================
async def init_models():
    """Create tables. Development only; other environments run migrations."""
    if APP_ENV != "development":
        raise RuntimeError("init_models() is forbidden outside development")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine():
    await engine.dispose()
    logger.info("Database engine disposed")
