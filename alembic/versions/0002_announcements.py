"""announcements

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

Adds the announcements table behind the app banner.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "announcements",
        sa.Column("announcement_id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("author_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("author_name", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_announcements_active", "announcements", ["is_active"])


def downgrade() -> None:
    op.drop_index("ix_announcements_active", table_name="announcements")
    op.drop_table("announcements")
