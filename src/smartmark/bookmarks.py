"""Bookmark creation and deletion."""

import logging

from pydantic import BaseModel

from .db.repository import STORE_ERRORS, BookmarkRepository
from .models import Bookmark

logger = logging.getLogger(__name__)

EMPTY_STATE_MESSAGE = "No bookmarks yet. Add your first one above!"


class BookmarkForm(BaseModel):
    """State of the bookmark creation form."""

    url: str = ""
    title: str = ""
    submitting: bool = False

    @property
    def is_complete(self) -> bool:
        return bool(self.url.strip() and self.title.strip())

    def submit(self, repository: BookmarkRepository, user_id: str) -> Bookmark | None:
        """Insert the bookmark described by the form.

        Empty fields short-circuit without touching the table. On success
        the fields are cleared; on failure they are kept and the error is
        logged. The submitting flag is reset either way.

        Returns:
            The created bookmark, or None if nothing was inserted
        """
        if not self.is_complete:
            return None

        self.submitting = True
        try:
            bookmark = repository.create(
                user_id=user_id,
                url=self.url.strip(),
                title=self.title.strip(),
            )
        except STORE_ERRORS as e:
            logger.error(f"Error adding bookmark: {e}")
            return None
        finally:
            self.submitting = False

        self.url = ""
        self.title = ""
        return bookmark


def delete_bookmark(repository: BookmarkRepository, bookmark_id: str) -> bool:
    """Request deletion of a bookmark.

    Local lists are not touched here; they drop the row when the realtime
    delete event comes back.

    Returns:
        True if the request succeeded
    """
    logger.info(f"Deleting bookmark with id: {bookmark_id}")
    try:
        repository.delete(bookmark_id)
    except STORE_ERRORS as e:
        logger.error(f"Error deleting bookmark: {e}")
        return False
    return True


def list_bookmarks(repository: BookmarkRepository, user_id: str) -> list[Bookmark]:
    """Fetch a user's bookmarks newest first, or an empty list on failure."""
    try:
        return repository.list_for_user(user_id)
    except STORE_ERRORS as e:
        logger.error(f"Error fetching bookmarks: {e}")
        return []
