"""Repository for the hosted bookmarks table.

All calls go through the Supabase REST API with the signed-in user's JWT,
so the table's row-level policies decide what each user can see and touch.
"""

import httpx
from supabase import Client, PostgrestAPIError

from ..models import Bookmark

BOOKMARKS_TABLE = "bookmarks"

# Failures raised by the table API for a single request
STORE_ERRORS = (PostgrestAPIError, httpx.HTTPError)


class BookmarkRepository:
    """Repository for bookmark operations."""

    def __init__(self, client: Client, access_token: str | None = None) -> None:
        self.client = client
        if access_token:
            self.client.postgrest.auth(access_token)

    def list_for_user(self, user_id: str) -> list[Bookmark]:
        """List a user's bookmarks, newest first.

        Args:
            user_id: The owner's UUID

        Returns:
            Bookmarks ordered by created_at descending
        """
        response = (
            self.client.table(BOOKMARKS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [Bookmark.model_validate(row) for row in response.data or []]

    def create(self, user_id: str, url: str, title: str) -> Bookmark:
        """Insert a new bookmark.

        Args:
            user_id: The owner's UUID
            url: The bookmarked URL
            title: Display title

        Returns:
            The inserted row
        """
        response = (
            self.client.table(BOOKMARKS_TABLE)
            .insert([{"user_id": user_id, "url": url, "title": title}])
            .execute()
        )
        return Bookmark.model_validate(response.data[0])

    def delete(self, bookmark_id: str) -> None:
        """Delete a bookmark by ID."""
        self.client.table(BOOKMARKS_TABLE).delete().eq("id", bookmark_id).execute()
