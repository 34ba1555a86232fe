"""Supabase and site configuration."""

import os
from functools import lru_cache
from typing import Any, cast

from supabase import AsyncClient, Client, ClientOptions, acreate_client, create_client

DEFAULT_SITE_URL = "http://localhost:3000"
DEFAULT_SESSION_SECRET = "smartmark-session-secret-change-in-production"


class DatabaseConfig:
    """Configuration from environment variables."""

    def __init__(self) -> None:
        self.supabase_url = os.getenv("SUPABASE_URL")
        self.supabase_anon_key = os.getenv("SUPABASE_ANON_KEY")
        self.database_url = os.getenv("DATABASE_URL")
        self.database_url_direct = os.getenv("DATABASE_URL_DIRECT")
        self.site_url = (
            os.getenv("SITE_URL") or os.getenv("NEXT_PUBLIC_SITE_URL") or DEFAULT_SITE_URL
        ).rstrip("/")
        self.session_secret = os.getenv("SESSION_SECRET") or DEFAULT_SESSION_SECRET

    def validate(self) -> None:
        """Validate that required configuration is present."""
        if not self.supabase_url:
            raise ValueError("SUPABASE_URL environment variable required")
        if not self.supabase_anon_key:
            raise ValueError("SUPABASE_ANON_KEY environment variable required")

    @property
    def is_configured(self) -> bool:
        """Check if Supabase is configured."""
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def is_database_configured(self) -> bool:
        """Check if a direct database connection is configured."""
        return bool(self.database_url or self.database_url_direct)

    @property
    def oauth_redirect_url(self) -> str:
        """Callback URL the identity provider returns to."""
        return f"{self.site_url}/auth/callback"


@lru_cache
def get_config() -> DatabaseConfig:
    """Get cached configuration."""
    return DatabaseConfig()


def get_supabase_client(storage: Any | None = None) -> Client:
    """Get a Supabase client for auth and table operations.

    Args:
        storage: Auth storage backend (get_item/set_item/remove_item).
                 The web layer passes the signed session cookie so the
                 PKCE code verifier survives the OAuth redirect.

    Returns:
        Supabase client instance
    """
    config = get_config()
    config.validate()

    options = ClientOptions(
        flow_type="pkce",
        persist_session=False,
        auto_refresh_token=False,
    )
    if storage is not None:
        options.storage = storage

    # validate() ensures these are not None
    return create_client(
        cast(str, config.supabase_url),
        cast(str, config.supabase_anon_key),
        options=options,
    )


async def get_realtime_client(access_token: str) -> AsyncClient:
    """Get an async Supabase client authorized for Realtime as the given user.

    Row-level policies on the bookmarks table are evaluated against this
    token, so a channel only ever receives the owner's rows.
    """
    config = get_config()
    config.validate()

    client = await acreate_client(
        cast(str, config.supabase_url),
        cast(str, config.supabase_anon_key),
    )
    await client.realtime.set_auth(access_token)
    return client
