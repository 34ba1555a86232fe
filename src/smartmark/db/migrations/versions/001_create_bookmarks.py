"""Create bookmarks table with RLS policies and realtime publication.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_create_bookmarks"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the bookmarks table, policies and realtime setup."""

    # ==========================================================================
    # BOOKMARKS
    # ==========================================================================
    op.create_table(
        "bookmarks",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("auth.users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "idx_bookmarks_user_created", "bookmarks", ["user_id", "created_at"]
    )

    # ==========================================================================
    # ROW LEVEL SECURITY POLICIES
    # ==========================================================================
    op.execute("ALTER TABLE bookmarks ENABLE ROW LEVEL SECURITY")

    op.execute(
        """
        CREATE POLICY "Users can view own bookmarks"
        ON bookmarks FOR SELECT
        USING (auth.uid() = user_id)
        """
    )

    op.execute(
        """
        CREATE POLICY "Users can insert own bookmarks"
        ON bookmarks FOR INSERT
        WITH CHECK (auth.uid() = user_id)
        """
    )

    op.execute(
        """
        CREATE POLICY "Users can delete own bookmarks"
        ON bookmarks FOR DELETE
        USING (auth.uid() = user_id)
        """
    )

    # ==========================================================================
    # REALTIME
    # ==========================================================================
    # Delete events carry the full old row so the user_id filter matches them
    op.execute("ALTER TABLE bookmarks REPLICA IDENTITY FULL")
    op.execute("ALTER PUBLICATION supabase_realtime ADD TABLE bookmarks")


def downgrade() -> None:
    """Drop the bookmarks table."""
    op.execute("ALTER PUBLICATION supabase_realtime DROP TABLE bookmarks")
    op.drop_index("idx_bookmarks_user_created", table_name="bookmarks")
    op.drop_table("bookmarks")
