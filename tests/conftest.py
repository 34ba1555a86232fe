from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from supabase import PostgrestAPIError

from smartmark.db.config import get_config
from smartmark.models import Bookmark, SessionContext, SessionUser
from smartmark.web.app import create_app
from smartmark.web.dependencies import get_identity, get_repository_factory

ALICE = SessionContext(
    user=SessionUser(id="user-alice", email="alice@example.com"),
    access_token="alice-access",
    refresh_token="alice-refresh",
)
BOB = SessionContext(
    user=SessionUser(id="user-bob", email="bob@example.com"),
    access_token="bob-access",
    refresh_token="bob-refresh",
)

_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_bookmark(
    title: str,
    user_id: str = ALICE.user_id,
    url: str | None = None,
    minutes: int = 0,
) -> Bookmark:
    return Bookmark(
        id=str(uuid4()),
        user_id=user_id,
        url=url or f"https://example.com/{title.lower().replace(' ', '-')}",
        title=title,
        created_at=_EPOCH + timedelta(minutes=minutes),
    )


class FakeRepository:
    """In-memory stand-in for the hosted bookmarks table."""

    def __init__(self, rows: list[Bookmark] | None = None, fail: bool = False) -> None:
        self.rows = list(rows or [])
        self.fail = fail
        self.created: list[Bookmark] = []
        self.deleted: list[str] = []

    def _check(self) -> None:
        if self.fail:
            raise PostgrestAPIError({"message": "request failed", "code": "500"})

    def list_for_user(self, user_id: str) -> list[Bookmark]:
        self._check()
        owned = [b for b in self.rows if b.user_id == user_id]
        return sorted(owned, key=lambda b: b.created_at, reverse=True)

    def create(self, user_id: str, url: str, title: str) -> Bookmark:
        self._check()
        bookmark = Bookmark(
            id=str(uuid4()),
            user_id=user_id,
            url=url,
            title=title,
            created_at=datetime.now(timezone.utc),
        )
        self.rows.append(bookmark)
        self.created.append(bookmark)
        return bookmark

    def delete(self, bookmark_id: str) -> None:
        self._check()
        self.deleted.append(bookmark_id)
        self.rows = [b for b in self.rows if b.id != bookmark_id]


class FakeIdentity:
    """Identity client with a fixed session."""

    def __init__(self, context: SessionContext | None = None) -> None:
        self.context = context
        self.signed_out = False
        self.oauth_url: str | None = "https://accounts.example.com/authorize?state=abc"
        self.exchanged: list[str] = []

    def get_current_session(self) -> SessionContext | None:
        return self.context

    def get_current_user(self) -> SessionUser | None:
        return self.context.user if self.context else None

    def sign_in_with_oauth(self, provider: str = "google") -> str | None:
        return self.oauth_url

    def exchange_code(self, code: str) -> SessionContext | None:
        self.exchanged.append(code)
        if code == "bad":
            return None
        self.context = ALICE
        return ALICE

    def sign_out(self) -> None:
        self.signed_out = True
        self.context = None


@pytest.fixture(autouse=True)
def supabase_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
    monkeypatch.delenv("SITE_URL", raising=False)
    monkeypatch.delenv("NEXT_PUBLIC_SITE_URL", raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def identity() -> FakeIdentity:
    return FakeIdentity(ALICE)


@pytest.fixture
def app(identity: FakeIdentity, repository: FakeRepository):
    app = create_app()
    app.dependency_overrides[get_identity] = lambda: identity
    app.dependency_overrides[get_repository_factory] = lambda: (lambda context: repository)
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
