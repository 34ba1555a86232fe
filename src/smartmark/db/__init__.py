"""Database layer for SMARTMARK.

This module provides:
- Supabase client construction from environment configuration
- Repository access to the hosted bookmarks table
- SQLAlchemy models and Alembic migrations for schema management
"""

from .config import get_config, get_realtime_client, get_supabase_client
from .models import Base, BookmarkRecord
from .repository import BOOKMARKS_TABLE, STORE_ERRORS, BookmarkRepository

__all__ = [
    # Config
    "get_config",
    "get_realtime_client",
    "get_supabase_client",
    # Models
    "Base",
    "BookmarkRecord",
    # Repositories
    "BOOKMARKS_TABLE",
    "STORE_ERRORS",
    "BookmarkRepository",
]
