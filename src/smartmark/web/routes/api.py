"""JSON API routes for the SMARTMARK web UI.

Handles bookmark creation and deletion from the dashboard script, and the
live bookmark stream.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from ...bookmarks import BookmarkForm, delete_bookmark, list_bookmarks
from ...db.repository import STORE_ERRORS
from ...models import SessionContext
from ...realtime import stream_changes
from ..dependencies import (
    RepositoryFactory,
    SubscriptionFactory,
    get_optional_session,
    get_repository_factory,
    get_required_session,
    get_subscription_factory,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/auth/me")
async def get_current_user(
    context: SessionContext | None = Depends(get_optional_session),
):
    """Return the current user, if any."""
    return {"user": context.user.model_dump() if context else None}


# =============================================================================
# BOOKMARKS
# =============================================================================


@router.get("/bookmarks")
async def list_bookmarks_json(
    context: SessionContext = Depends(get_required_session),
    repositories: RepositoryFactory = Depends(get_repository_factory),
):
    """List the user's bookmarks, newest first."""
    try:
        bookmarks = repositories(context).list_for_user(context.user_id)
    except STORE_ERRORS as e:
        logger.error(f"Error fetching bookmarks: {e}")
        return JSONResponse(
            {"ok": False, "error": "Could not load bookmarks."}, status_code=502
        )
    return {"ok": True, "bookmarks": [b.model_dump(mode="json") for b in bookmarks]}


@router.post("/bookmarks")
async def create_bookmark(
    request: Request,
    context: SessionContext = Depends(get_required_session),
    repositories: RepositoryFactory = Depends(get_repository_factory),
):
    """Create a bookmark. Accepts JSON body {url, title}.

    The new row reaches open lists through the realtime feed.
    """
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse({"ok": False, "error": "Invalid JSON body"}, status_code=400)
    if not isinstance(body, dict):
        return JSONResponse({"ok": False, "error": "Invalid JSON body"}, status_code=400)

    form = BookmarkForm(url=str(body.get("url") or ""), title=str(body.get("title") or ""))
    if not form.is_complete:
        return JSONResponse(
            {"ok": False, "error": "Title and URL are required."}, status_code=400
        )

    bookmark = form.submit(repositories(context), context.user_id)
    if bookmark is None:
        return JSONResponse(
            {"ok": False, "error": "Could not add bookmark."}, status_code=502
        )
    return {"ok": True, "bookmark": bookmark.model_dump(mode="json")}


@router.delete("/bookmarks/{bookmark_id}")
async def delete_bookmark_json(
    bookmark_id: str,
    context: SessionContext = Depends(get_required_session),
    repositories: RepositoryFactory = Depends(get_repository_factory),
):
    """Request deletion. Lists drop the row when the realtime echo arrives."""
    if not delete_bookmark(repositories(context), bookmark_id):
        return JSONResponse(
            {"ok": False, "error": "Could not delete bookmark."}, status_code=502
        )
    return {"ok": True}


@router.get("/bookmarks/stream")
async def stream_bookmarks(
    request: Request,
    context: SessionContext = Depends(get_required_session),
    repositories: RepositoryFactory = Depends(get_repository_factory),
    subscriptions: SubscriptionFactory = Depends(get_subscription_factory),
):
    """Stream the user's live bookmark list as SSE events.

    Sends a ``snapshot`` first, then ``insert``/``delete`` patches.
    """
    repository = repositories(context)
    subscription = await subscriptions(context)

    return StreamingResponse(
        stream_changes(
            subscription,
            lambda: list_bookmarks(repository, context.user_id),
            request.is_disconnected,
        ),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
