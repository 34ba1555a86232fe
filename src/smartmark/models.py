"""Data models for bookmarks and sessions."""

from datetime import datetime

from pydantic import BaseModel


class Bookmark(BaseModel):
    """A user-owned bookmark row."""

    id: str
    user_id: str
    url: str
    title: str
    created_at: datetime | None = None  # Set by the database default


class SessionUser(BaseModel):
    """The authenticated principal."""

    id: str
    email: str | None = None


class SessionContext(BaseModel):
    """Explicit session value handed to each request handler."""

    user: SessionUser
    access_token: str
    refresh_token: str | None = None

    @property
    def user_id(self) -> str:
        return self.user.id
