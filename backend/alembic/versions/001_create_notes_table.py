"""Create notes table

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the `notes` table holding uploaded Markdown and its rendered,
       sanitized HTML.
How:   Integer identity primary key, TIMESTAMP WITH TIME ZONE creation time,
       and a descending index for newest-first listing.

Rollback: downgrade() drops the table and all stored notes.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "notes",
        sa.Column(
            "id",
            sa.Integer(),
            autoincrement=True,
            nullable=False,
            comment="Store-assigned identifier, increasing with creation order",
        ),
        sa.Column(
            "title",
            sa.Text(),
            nullable=False,
            comment="HTML-escaped file name without the .md extension",
        ),
        sa.Column(
            "content",
            sa.Text(),
            nullable=False,
            comment="Markdown exactly as decoded from the upload",
        ),
        sa.Column(
            "html_content",
            sa.Text(),
            nullable=False,
            comment="Sanitized HTML rendered from content at creation time",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this note was created (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index(
        "idx_notes_created_at",
        "notes",
        [sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_notes_created_at", table_name="notes")
    op.drop_table("notes")
