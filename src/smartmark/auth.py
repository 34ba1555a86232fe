"""Identity and session handling on top of Supabase Auth.

The signed session cookie holds two things:
- ``auth``: access token, refresh token and the user's id/email
- ``auth_storage``: Supabase Auth client storage (the PKCE code verifier
  written by the OAuth sign-in and read back by the callback)
"""

import logging
from typing import Any, MutableMapping

import httpx
from supabase import AuthError, Client

from .models import SessionContext, SessionUser

logger = logging.getLogger(__name__)

SESSION_KEY = "auth"
STORAGE_KEY = "auth_storage"
DEFAULT_PROVIDER = "google"

# Failures treated the same as "no user"
AUTH_ERRORS = (AuthError, httpx.HTTPError)


class SessionStorage:
    """Supabase Auth storage backed by the request session dict."""

    def __init__(self, session: MutableMapping[str, Any]) -> None:
        self.session = session

    def get_item(self, key: str) -> str | None:
        return self.session.get(STORAGE_KEY, {}).get(key)

    def set_item(self, key: str, value: str) -> None:
        # Reassign so the session middleware sees the change
        items = dict(self.session.get(STORAGE_KEY, {}))
        items[key] = value
        self.session[STORAGE_KEY] = items

    def remove_item(self, key: str) -> None:
        items = dict(self.session.get(STORAGE_KEY, {}))
        if items.pop(key, None) is not None:
            self.session[STORAGE_KEY] = items


class IdentityClient:
    """Resolves, establishes and ends the current user's session."""

    def __init__(
        self,
        client: Client,
        session: MutableMapping[str, Any],
        redirect_url: str,
    ) -> None:
        self.client = client
        self.session = session
        self.redirect_url = redirect_url

    def get_current_user(self) -> SessionUser | None:
        """Get the authenticated principal, or None."""
        context = self.get_current_session()
        return context.user if context else None

    def get_current_session(self) -> SessionContext | None:
        """Validate the stored tokens and return the session context.

        An expired access token is refreshed once. Any auth or network
        failure is logged and reported as no session.
        """
        stored = self.session.get(SESSION_KEY)
        if not stored or not stored.get("access_token"):
            return None

        try:
            response = self.client.auth.get_user(stored["access_token"])
            if response and response.user:
                return self._context_from(stored, response.user)
        except AUTH_ERRORS as e:
            logger.info(f"Access token rejected, trying refresh: {e}")

        refresh_token = stored.get("refresh_token")
        if not refresh_token:
            self.session.pop(SESSION_KEY, None)
            return None

        try:
            refreshed = self.client.auth.refresh_session(refresh_token)
        except AUTH_ERRORS as e:
            logger.warning(f"Session refresh failed: {e}")
            self.session.pop(SESSION_KEY, None)
            return None

        if not refreshed.session:
            self.session.pop(SESSION_KEY, None)
            return None
        return self._store(refreshed.session)

    def sign_in_with_oauth(self, provider: str = DEFAULT_PROVIDER) -> str | None:
        """Start the OAuth flow.

        Returns:
            Provider authorization URL to redirect to, or None
        """
        try:
            response = self.client.auth.sign_in_with_oauth(
                {
                    "provider": provider,
                    "options": {"redirect_to": self.redirect_url},
                }
            )
        except AUTH_ERRORS as e:
            logger.error(f"Error starting {provider} sign-in: {e}")
            return None
        return response.url or None

    def exchange_code(self, code: str) -> SessionContext | None:
        """Finish the OAuth flow by exchanging the callback code for a session."""
        try:
            response = self.client.auth.exchange_code_for_session(
                {"auth_code": code, "redirect_to": self.redirect_url}
            )
        except AUTH_ERRORS as e:
            logger.error(f"Error exchanging auth code: {e}")
            return None

        if not response.session:
            return None
        context = self._store(response.session)
        logger.info(f"Signed in user {context.user.id}")
        return context

    def sign_out(self) -> None:
        """End the Supabase session and clear the local one."""
        stored = self.session.get(SESSION_KEY) or {}
        access_token = stored.get("access_token")
        if access_token:
            try:
                self.client.auth.admin.sign_out(access_token)
            except AUTH_ERRORS as e:
                logger.warning(f"Error signing out: {e}")
        self.session.clear()

    def _store(self, auth_session) -> SessionContext:
        user = auth_session.user
        data = {
            "access_token": auth_session.access_token,
            "refresh_token": auth_session.refresh_token,
            "user": {"id": str(user.id), "email": user.email},
        }
        self.session[SESSION_KEY] = data
        return SessionContext.model_validate(data)

    @staticmethod
    def _context_from(stored: dict, user) -> SessionContext:
        return SessionContext(
            user=SessionUser(id=str(user.id), email=user.email),
            access_token=stored["access_token"],
            refresh_token=stored.get("refresh_token"),
        )
