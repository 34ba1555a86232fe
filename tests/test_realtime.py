from __future__ import annotations

import asyncio
import json

from conftest import ALICE, make_bookmark

from smartmark.realtime import (
    BookmarkDeleted,
    BookmarkInserted,
    BookmarkReconciler,
    BookmarkSubscription,
    SubscriptionState,
    parse_change,
    stream_changes,
)


class FakeChannel:
    def __init__(self, name: str, status: str = "SUBSCRIBED") -> None:
        self.name = name
        self.status = status
        self.bindings: list[dict] = []

    def on_postgres_changes(self, event, callback, table="*", schema="public", filter=None):
        self.bindings.append(
            {"event": event, "table": table, "schema": schema, "filter": filter, "callback": callback}
        )
        return self

    async def subscribe(self, callback=None):
        if callback is not None:
            callback(self.status, None)
        return self

    def emit(self, payload: dict) -> None:
        for binding in self.bindings:
            binding["callback"](payload)


class FakeRealtimeClient:
    def __init__(self, status: str = "SUBSCRIBED") -> None:
        self.status = status
        self.channels: list[FakeChannel] = []
        self.removed: list[FakeChannel] = []

    def channel(self, name: str) -> FakeChannel:
        channel = FakeChannel(name, self.status)
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel: FakeChannel) -> None:
        self.removed.append(channel)


def insert_payload(bookmark) -> dict:
    return {
        "data": {
            "type": "INSERT",
            "schema": "public",
            "table": "bookmarks",
            "record": bookmark.model_dump(mode="json"),
            "old_record": None,
        },
        "ids": [1],
    }


def delete_payload(bookmark_id: str) -> dict:
    return {
        "data": {
            "type": "DELETE",
            "schema": "public",
            "table": "bookmarks",
            "record": None,
            "old_record": {"id": bookmark_id},
        },
        "ids": [2],
    }


def parse_sse(chunk: str) -> tuple[str, dict]:
    lines = chunk.strip().split("\n")
    assert lines[0].startswith("event: ")
    assert lines[1].startswith("data: ")
    return lines[0][len("event: "):], json.loads(lines[1][len("data: "):])


# =============================================================================
# parse_change
# =============================================================================


def test_parse_change_realtime_py_shape() -> None:
    bookmark = make_bookmark("Realtime")

    inserted = parse_change(insert_payload(bookmark))
    assert isinstance(inserted, BookmarkInserted)
    assert inserted.bookmark == bookmark

    deleted = parse_change(delete_payload(bookmark.id))
    assert deleted == BookmarkDeleted(id=bookmark.id)


def test_parse_change_flat_shape() -> None:
    bookmark = make_bookmark("Flat")

    inserted = parse_change({"eventType": "INSERT", "new": bookmark.model_dump(mode="json"), "old": {}})
    assert isinstance(inserted, BookmarkInserted)
    assert inserted.bookmark.id == bookmark.id

    deleted = parse_change({"eventType": "DELETE", "new": {}, "old": {"id": bookmark.id}})
    assert deleted == BookmarkDeleted(id=bookmark.id)


def test_parse_change_ignores_updates_and_malformed_rows() -> None:
    bookmark = make_bookmark("Updated")
    assert parse_change({"eventType": "UPDATE", "new": bookmark.model_dump(mode="json")}) is None
    assert parse_change({"eventType": "INSERT", "new": {"id": "x"}}) is None
    assert parse_change({"eventType": "DELETE", "old": {}}) is None
    assert parse_change({}) is None


# =============================================================================
# BookmarkReconciler
# =============================================================================


def test_insert_goes_to_front_regardless_of_timestamp() -> None:
    existing = make_bookmark("Existing", minutes=10)
    older = make_bookmark("Older but pushed later", minutes=1)
    reconciler = BookmarkReconciler([existing])

    assert reconciler.apply(BookmarkInserted(bookmark=older)) is True
    assert [b.id for b in reconciler.bookmarks] == [older.id, existing.id]


def test_duplicate_insert_is_dropped() -> None:
    bookmark = make_bookmark("Once")
    reconciler = BookmarkReconciler([bookmark])

    assert reconciler.apply(BookmarkInserted(bookmark=bookmark)) is False
    assert len(reconciler) == 1


def test_delete_removes_exactly_that_entry() -> None:
    first, second, third = make_bookmark("1"), make_bookmark("2"), make_bookmark("3")
    reconciler = BookmarkReconciler([first, second, third])

    assert reconciler.apply(BookmarkDeleted(id=second.id)) is True
    assert [b.id for b in reconciler.bookmarks] == [first.id, third.id]

    assert reconciler.apply(BookmarkDeleted(id="not-there")) is False
    assert len(reconciler) == 2


def test_reconciler_copies_seed_list() -> None:
    seed = [make_bookmark("Seed")]
    reconciler = BookmarkReconciler(seed)
    reconciler.apply(BookmarkDeleted(id=seed[0].id))

    assert len(seed) == 1
    assert reconciler.bookmarks == []


# =============================================================================
# BookmarkSubscription
# =============================================================================


def test_subscription_lifecycle_and_filter() -> None:
    async def scenario() -> None:
        client = FakeRealtimeClient()
        subscription = BookmarkSubscription(client, ALICE.user_id)
        assert subscription.state is SubscriptionState.UNSUBSCRIBED

        await subscription.open()
        assert subscription.state is SubscriptionState.SUBSCRIBED

        (channel,) = client.channels
        (binding,) = channel.bindings
        assert binding["event"] == "*"
        assert binding["schema"] == "public"
        assert binding["table"] == "bookmarks"
        assert binding["filter"] == f"user_id=eq.{ALICE.user_id}"

        bookmark = make_bookmark("Live")
        channel.emit(insert_payload(bookmark))
        event = subscription.events.get_nowait()
        assert isinstance(event, BookmarkInserted)
        assert event.bookmark.id == bookmark.id

        await subscription.close()
        assert subscription.state is SubscriptionState.UNSUBSCRIBED
        assert client.removed == [channel]

        # Nothing reaches the queue after teardown
        channel.emit(insert_payload(make_bookmark("Too late")))
        assert subscription.events.empty()

    asyncio.run(scenario())


def test_subscription_stays_subscribing_on_channel_error() -> None:
    async def scenario() -> None:
        client = FakeRealtimeClient(status="CHANNEL_ERROR")
        subscription = BookmarkSubscription(client, ALICE.user_id)

        await subscription.open()
        assert subscription.state is SubscriptionState.SUBSCRIBING

        await subscription.close()
        assert subscription.state is SubscriptionState.UNSUBSCRIBED

    asyncio.run(scenario())


# =============================================================================
# stream_changes
# =============================================================================


def test_stream_sends_snapshot_then_patches() -> None:
    async def scenario() -> None:
        client = FakeRealtimeClient()
        subscription = BookmarkSubscription(client, ALICE.user_id)
        existing = make_bookmark("Existing")
        pushed = make_bookmark("Pushed")

        async def is_disconnected() -> bool:
            return False

        stream = stream_changes(subscription, lambda: [existing], is_disconnected)

        event, data = parse_sse(await stream.__anext__())
        assert event == "snapshot"
        assert [b["id"] for b in data["bookmarks"]] == [existing.id]

        (channel,) = client.channels
        channel.emit(insert_payload(pushed))
        event, data = parse_sse(await stream.__anext__())
        assert (event, data["id"]) == ("insert", pushed.id)

        # The duplicate produces no output; the delete comes next
        channel.emit(insert_payload(pushed))
        channel.emit(delete_payload(existing.id))
        event, data = parse_sse(await stream.__anext__())
        assert (event, data) == ("delete", {"id": existing.id})

        await stream.aclose()
        assert subscription.state is SubscriptionState.UNSUBSCRIBED
        assert client.removed == [channel]

    asyncio.run(scenario())


def test_stream_keepalive_and_disconnect() -> None:
    async def scenario() -> None:
        client = FakeRealtimeClient()
        subscription = BookmarkSubscription(client, ALICE.user_id)
        disconnected = False

        async def is_disconnected() -> bool:
            return disconnected

        stream = stream_changes(
            subscription, lambda: [], is_disconnected, keepalive_seconds=0.01
        )

        event, data = parse_sse(await stream.__anext__())
        assert (event, data) == ("snapshot", {"bookmarks": []})
        assert await stream.__anext__() == ": keepalive\n\n"

        disconnected = True
        chunks = [chunk async for chunk in stream]
        assert chunks == []
        assert client.removed == client.channels

    asyncio.run(scenario())
