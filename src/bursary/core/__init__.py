"""
Core module - Configuration, database, security, and utilities.
"""

from bursary.core.config import get_settings, settings
from bursary.core.database import Base, close_db, get_db, init_db
from bursary.core.redis import close_redis, get_redis, init_redis
from bursary.core.security import create_access_token, decode_token

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "get_redis",
    "init_redis",
    "close_redis",
    # Security
    "create_access_token",
    "decode_token",
]
