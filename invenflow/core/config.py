# invenflow/core/config.py

import os
from dotenv import load_dotenv
from invenflow.utils.logger import get_logger

logger = get_logger(__name__)

load_dotenv()

# =====================================================
# APPLICATION
# =====================================================
APP_ENV = os.getenv("APP_ENV")
if APP_ENV not in {"development", "staging", "production"}:
    raise ValueError("APP_ENV must be development | staging | production")

IS_PRODUCTION = APP_ENV == "production"

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if APP_ENV == "development" else "INFO").upper()

# =====================================================
# DATABASE
# =====================================================
DB_TYPE = os.getenv("DB_TYPE")
if DB_TYPE not in {"postgres", "sqlite"}:
    raise ValueError("DB_TYPE must be postgres | sqlite")

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres")

elif DB_TYPE == "sqlite":
    if IS_PRODUCTION:
        raise ValueError("SQLite is NOT allowed in production")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./invenflow.db")

# ---- Pool tuning (safe defaults) ----
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
DB_ECHO_POOL = os.getenv("DB_ECHO_POOL", "false").lower() == "true"

# ---- Statement timeout (seconds) ----
DB_COMMAND_TIMEOUT = int(os.getenv("DB_COMMAND_TIMEOUT", 30))
if DB_COMMAND_TIMEOUT <= 0:
    raise ValueError("DB_COMMAND_TIMEOUT must be positive")

# ---- SSL ----
DB_SSL_VERIFY = os.getenv("DB_SSL_VERIFY", "true").lower() == "true"
if IS_PRODUCTION and not DB_SSL_VERIFY:
    logger.warning("Running in production with relaxed SSL verification")

# =====================================================
# JWT / AUTH
# =====================================================
JWT_ACCESS_SECRET_KEY = os.getenv("JWT_ACCESS_SECRET_KEY")
if not JWT_ACCESS_SECRET_KEY:
    raise ValueError("JWT_ACCESS_SECRET_KEY must be set")

JWT_ALGORITHM = "HS256"

ACCESS_TOKEN_EXPIRE_MINUTES = int(
    os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 15)
)

# =====================================================
# BULK MOVEMENTS
# =====================================================
BULK_MOVEMENT_TOKEN_TTL_HOURS = int(
    os.getenv("BULK_MOVEMENT_TOKEN_TTL_HOURS", 72)
)
if BULK_MOVEMENT_TOKEN_TTL_HOURS <= 0:
    raise ValueError("BULK_MOVEMENT_TOKEN_TTL_HOURS must be positive")

BULK_MOVEMENT_TOKEN_BYTES = int(os.getenv("BULK_MOVEMENT_TOKEN_BYTES", 32))
if BULK_MOVEMENT_TOKEN_BYTES < 16:
    raise ValueError("BULK_MOVEMENT_TOKEN_BYTES must be at least 16")

# Base of the link handed to the recipient
PUBLIC_APP_URL = os.getenv("PUBLIC_APP_URL", "http://localhost:5173").rstrip("/")

# =====================================================
# SCHEDULER
# =====================================================
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "false").lower() == "true"
EXPIRY_SWEEP_INTERVAL_MINUTES = int(
    os.getenv("EXPIRY_SWEEP_INTERVAL_MINUTES", 15)
)
if EXPIRY_SWEEP_INTERVAL_MINUTES <= 0:
    raise ValueError("EXPIRY_SWEEP_INTERVAL_MINUTES must be positive")
