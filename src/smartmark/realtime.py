"""Realtime bookmark feed and local list reconciliation.

Supabase Realtime pushes row changes for the bookmarks table. Each browser
connection gets its own subscription filtered to the signed-in user; the
parsed events go through an asyncio queue to a single reconciler that owns
the connection's copy of the list.
"""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable, Iterable
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ValidationError
from supabase import AsyncClient

from .db.config import get_realtime_client
from .db.repository import BOOKMARKS_TABLE
from .models import Bookmark, SessionContext

logger = logging.getLogger(__name__)

KEEPALIVE_SECONDS = 15.0


# =============================================================================
# CHANGE EVENTS
# =============================================================================


class BookmarkInserted(BaseModel):
    """A row was inserted."""

    kind: Literal["insert"] = "insert"
    bookmark: Bookmark

    def payload(self) -> dict:
        return self.bookmark.model_dump(mode="json")


class BookmarkDeleted(BaseModel):
    """A row was deleted."""

    kind: Literal["delete"] = "delete"
    id: str

    def payload(self) -> dict:
        return {"id": self.id}


ChangeEvent = BookmarkInserted | BookmarkDeleted


def parse_change(payload: dict[str, Any]) -> ChangeEvent | None:
    """Convert a postgres_changes payload into a typed event.

    Accepts the realtime-py shape ``{"data": {"type", "record", "old_record"}}``
    as well as the flat ``{"eventType", "new", "old"}`` shape.

    Returns:
        The event, or None for updates and payloads that can't be used
    """
    data = payload.get("data")
    if isinstance(data, dict):
        event_type = data.get("type")
        new = data.get("record") or {}
        old = data.get("old_record") or {}
    else:
        event_type = payload.get("eventType")
        new = payload.get("new") or {}
        old = payload.get("old") or {}

    event_type = str(getattr(event_type, "value", event_type) or "").upper()

    if event_type == "INSERT":
        try:
            return BookmarkInserted(bookmark=Bookmark.model_validate(new))
        except ValidationError as e:
            logger.warning(f"Ignoring malformed insert event: {e}")
            return None

    if event_type == "DELETE":
        bookmark_id = old.get("id")
        if bookmark_id is None:
            logger.warning("Ignoring delete event without an id")
            return None
        return BookmarkDeleted(id=str(bookmark_id))

    return None


# =============================================================================
# RECONCILER
# =============================================================================


class BookmarkReconciler:
    """Owns a local bookmark list and merges change events into it."""

    def __init__(self, bookmarks: Iterable[Bookmark] = ()) -> None:
        self._bookmarks: list[Bookmark] = list(bookmarks)

    @property
    def bookmarks(self) -> list[Bookmark]:
        return list(self._bookmarks)

    def __len__(self) -> int:
        return len(self._bookmarks)

    def __contains__(self, bookmark_id: object) -> bool:
        return any(b.id == bookmark_id for b in self._bookmarks)

    def apply(self, event: ChangeEvent) -> bool:
        """Merge one event into the list.

        Inserts go to the front whatever their created_at; a replayed insert
        for an id already in the list is dropped. Deletes remove the matching
        entry only.

        Returns:
            True if the list changed
        """
        if isinstance(event, BookmarkInserted):
            if event.bookmark.id in self:
                logger.debug(f"Skipping duplicate insert for {event.bookmark.id}")
                return False
            self._bookmarks.insert(0, event.bookmark)
            return True

        if isinstance(event, BookmarkDeleted):
            remaining = [b for b in self._bookmarks if b.id != event.id]
            changed = len(remaining) != len(self._bookmarks)
            self._bookmarks = remaining
            return changed

        return False

    def to_json(self) -> list[dict]:
        return [b.model_dump(mode="json") for b in self._bookmarks]


# =============================================================================
# SUBSCRIPTION
# =============================================================================


class SubscriptionState(str, Enum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBING = "subscribing"
    SUBSCRIBED = "subscribed"


class BookmarkSubscription:
    """Realtime channel for one user's bookmark rows.

    Parsed events are put on ``events``. Reconnection is left to the
    Supabase client.
    """

    def __init__(self, client: AsyncClient, user_id: str) -> None:
        self.client = client
        self.user_id = user_id
        self.state = SubscriptionState.UNSUBSCRIBED
        self.events: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._channel = None

    @property
    def channel_name(self) -> str:
        return f"bookmarks:{self.user_id}"

    @property
    def filter(self) -> str:
        return f"user_id=eq.{self.user_id}"

    async def open(self) -> None:
        """Join the channel for all change types on the user's rows."""
        if self.state is not SubscriptionState.UNSUBSCRIBED:
            return

        logger.info(f"Setting up realtime subscription for user: {self.user_id}")
        self.state = SubscriptionState.SUBSCRIBING
        channel = self.client.channel(self.channel_name)
        channel.on_postgres_changes(
            "*",
            schema="public",
            table=BOOKMARKS_TABLE,
            filter=self.filter,
            callback=self._on_change,
        )
        self._channel = channel
        await channel.subscribe(self._on_status)

    async def close(self) -> None:
        """Tear down the channel. Later events are dropped."""
        if self.state is SubscriptionState.UNSUBSCRIBED and self._channel is None:
            return

        logger.info(f"Cleaning up realtime subscription for user: {self.user_id}")
        self.state = SubscriptionState.UNSUBSCRIBED
        channel, self._channel = self._channel, None
        if channel is not None:
            await self.client.remove_channel(channel)

    def _on_status(self, status: Any, error: Exception | None = None) -> None:
        status = str(getattr(status, "value", status)).upper()
        logger.info(f"Subscription status: {status}")

        if self.state is SubscriptionState.UNSUBSCRIBED:
            return
        if status == "SUBSCRIBED":
            self.state = SubscriptionState.SUBSCRIBED
        elif status in ("CHANNEL_ERROR", "TIMED_OUT"):
            logger.error(f"Realtime channel {self.channel_name} failed: {status} {error or ''}")

    def _on_change(self, payload: dict[str, Any]) -> None:
        if self.state is SubscriptionState.UNSUBSCRIBED:
            return
        logger.debug(f"Realtime event received: {payload}")
        event = parse_change(payload)
        if event is not None:
            self.events.put_nowait(event)


async def connect(context: SessionContext) -> BookmarkSubscription:
    """Create an unopened subscription authorized as the session user."""
    client = await get_realtime_client(context.access_token)
    return BookmarkSubscription(client, context.user_id)


# =============================================================================
# LIVE STREAM
# =============================================================================


def _sse(event: str, data: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


async def stream_changes(
    subscription: BookmarkSubscription,
    load_snapshot: Callable[[], list[Bookmark]],
    is_disconnected: Callable[[], Awaitable[bool]],
    keepalive_seconds: float = KEEPALIVE_SECONDS,
) -> AsyncGenerator[str, None]:
    """Serve one connection's live bookmark list as SSE events.

    The subscription is opened before the snapshot is loaded, so a row
    inserted in between shows up as a duplicate insert and is dropped by
    the reconciler rather than lost.
    """
    try:
        await subscription.open()
        reconciler = BookmarkReconciler(load_snapshot())
        yield _sse("snapshot", {"bookmarks": reconciler.to_json()})

        while not await is_disconnected():
            try:
                event = await asyncio.wait_for(
                    subscription.events.get(), timeout=keepalive_seconds
                )
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue

            if reconciler.apply(event):
                yield _sse(event.kind, event.payload())
    finally:
        await subscription.close()
