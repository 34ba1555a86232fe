"""Page routes for the SMARTMARK web UI.

Serves the landing page, the OAuth entry and callback, the dashboard, and
form fallbacks for clients without JavaScript.
"""

import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from ...auth import IdentityClient
from ...bookmarks import EMPTY_STATE_MESSAGE, BookmarkForm, delete_bookmark, list_bookmarks
from ...models import SessionContext
from ..dependencies import (
    RepositoryFactory,
    get_identity,
    get_optional_session,
    get_repository_factory,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _templates(request: Request):
    """Get templates instance from app state."""
    return request.app.state.templates


# =============================================================================
# LANDING
# =============================================================================


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    context: SessionContext | None = Depends(get_optional_session),
):
    """Landing page with the sign-in action."""
    # Signed-in users belong on the dashboard
    if context:
        return RedirectResponse("/dashboard", status_code=303)

    templates = _templates(request)
    return templates.TemplateResponse(request, "index.html", {"user": None})


# =============================================================================
# AUTH
# =============================================================================


@router.post("/auth/login")
async def login(
    request: Request, identity: IdentityClient | None = Depends(get_identity)
):
    """Start Google sign-in and hand the browser to the provider."""
    url = identity.sign_in_with_oauth() if identity else None
    if not url:
        return RedirectResponse("/", status_code=303)
    return RedirectResponse(url, status_code=303)


@router.get("/auth/callback")
async def auth_callback(
    request: Request,
    code: str | None = None,
    identity: IdentityClient | None = Depends(get_identity),
):
    """OAuth callback: establish the session, then go to the dashboard."""
    if not code or identity is None:
        logger.warning("Auth callback without a code")
        return RedirectResponse("/", status_code=303)

    if identity.exchange_code(code) is None:
        return RedirectResponse("/", status_code=303)
    return RedirectResponse("/dashboard", status_code=303)


@router.post("/auth/logout")
async def logout(
    request: Request, identity: IdentityClient | None = Depends(get_identity)
):
    """Sign out and return to the landing page."""
    if identity:
        identity.sign_out()
    else:
        request.session.clear()
    return RedirectResponse("/", status_code=303)


# =============================================================================
# DASHBOARD
# =============================================================================


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    context: SessionContext | None = Depends(get_optional_session),
    repositories: RepositoryFactory = Depends(get_repository_factory),
):
    """The signed-in user's bookmarks, form and live list."""
    if not context:
        return RedirectResponse("/", status_code=303)

    bookmarks = list_bookmarks(repositories(context), context.user_id)

    templates = _templates(request)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "user": context.user,
            "bookmarks": bookmarks,
            "empty_message": EMPTY_STATE_MESSAGE,
        },
    )


@router.post("/bookmarks")
async def create_bookmark_form(
    request: Request,
    url: str = Form(""),
    title: str = Form(""),
    context: SessionContext | None = Depends(get_optional_session),
    repositories: RepositoryFactory = Depends(get_repository_factory),
):
    """Form fallback for adding a bookmark."""
    if not context:
        return RedirectResponse("/", status_code=303)

    form = BookmarkForm(url=url, title=title)
    form.submit(repositories(context), context.user_id)
    return RedirectResponse("/dashboard", status_code=303)


@router.post("/bookmarks/{bookmark_id}/delete")
async def delete_bookmark_form(
    request: Request,
    bookmark_id: str,
    context: SessionContext | None = Depends(get_optional_session),
    repositories: RepositoryFactory = Depends(get_repository_factory),
):
    """Form fallback for deleting a bookmark."""
    if not context:
        return RedirectResponse("/", status_code=303)

    delete_bookmark(repositories(context), bookmark_id)
    return RedirectResponse("/dashboard", status_code=303)
