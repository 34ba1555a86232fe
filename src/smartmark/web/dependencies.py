"""FastAPI dependencies for sessions, identity and bookmark access."""

from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, Request

from ..auth import IdentityClient, SessionStorage
from ..db.config import get_config, get_supabase_client
from ..db.repository import BookmarkRepository
from ..models import SessionContext
from ..realtime import BookmarkSubscription, connect

RepositoryFactory = Callable[[SessionContext], BookmarkRepository]
SubscriptionFactory = Callable[[SessionContext], Awaitable[BookmarkSubscription]]


def get_identity(request: Request) -> IdentityClient | None:
    """Identity client bound to this request's session cookie.

    Returns:
        Identity client or None if Supabase is not configured
    """
    config = get_config()
    if not config.is_configured:
        return None

    client = get_supabase_client(storage=SessionStorage(request.session))
    return IdentityClient(client, request.session, config.oauth_redirect_url)


def get_optional_session(
    identity: IdentityClient | None = Depends(get_identity),
) -> SessionContext | None:
    """Get the current session context, if authenticated.

    Returns:
        Session context with the user and tokens, or None
    """
    if identity is None:
        return None
    return identity.get_current_session()


def get_required_session(
    context: SessionContext | None = Depends(get_optional_session),
) -> SessionContext:
    """Get the current session context, raising 401 if not authenticated.

    Raises:
        HTTPException: If user is not authenticated
    """
    if context is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return context


def _repository_for(context: SessionContext) -> BookmarkRepository:
    return BookmarkRepository(get_supabase_client(), context.access_token)


def get_repository_factory() -> RepositoryFactory:
    """Builds a bookmark repository acting as the session user."""
    return _repository_for


def get_subscription_factory() -> SubscriptionFactory:
    """Opens realtime subscriptions for the session user."""
    return connect
