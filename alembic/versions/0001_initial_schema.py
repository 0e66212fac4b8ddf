"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for the TAARA adoption backend:
users, pets, kapon_schedules, requests, notifications.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum("admin", "user", name="userrole")
pet_status = sa.Enum("available", "pending", "adopted", name="petstatus")
schedule_status = sa.Enum("active", "cancelled", name="schedulestatus")
request_kind = sa.Enum("adoption", "volunteer", "kapon_registration", "donation", name="requestkind")
request_status = sa.Enum("pending", "approved", "rejected", "completed", name="requeststatus")


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("phone_number", sa.String(30), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="user"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- pets ---
    op.create_table(
        "pets",
        sa.Column("pet_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("breed", sa.String(100), nullable=True),
        sa.Column("age", sa.String(30), nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("image_ref", sa.Text, nullable=True),
        sa.Column("status", pet_status, nullable=False, server_default="available"),
        sa.Column("adopted_by", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("adopted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("added_by", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- kapon_schedules ---
    op.create_table(
        "kapon_schedules",
        sa.Column("schedule_id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("start_time", sa.String(20), nullable=False),
        sa.Column("end_time", sa.String(20), nullable=True),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("requirements", sa.Text, nullable=True),
        sa.Column("capacity", sa.Integer, nullable=False, server_default="50"),
        sa.Column("registered_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", schedule_status, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("capacity > 0", name="ck_kapon_schedules_capacity_positive"),
        sa.CheckConstraint("registered_count >= 0", name="ck_kapon_schedules_count_non_negative"),
    )

    # --- requests ---
    op.create_table(
        "requests",
        sa.Column("request_id", sa.String(36), primary_key=True),
        sa.Column("kind", request_kind, nullable=False),
        sa.Column("owner_user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("subject_ref", sa.String(36), nullable=True),
        sa.Column("status", request_status, nullable=False, server_default="pending"),
        sa.Column("hidden", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("admin_notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_requests_kind_status", "requests", ["kind", "status"])
    op.create_index("ix_requests_owner", "requests", ["owner_user_id"])
    op.create_index("ix_requests_subject", "requests", ["subject_ref"])

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("notification_id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("related_id", sa.String(36), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "read"])


def downgrade() -> None:
    op.drop_index("ix_notifications_user_read", table_name="notifications")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_requests_subject", table_name="requests")
    op.drop_index("ix_requests_owner", table_name="requests")
    op.drop_index("ix_requests_kind_status", table_name="requests")
    op.drop_table("requests")
    op.drop_table("kapon_schedules")
    op.drop_table("pets")
    op.drop_table("users")
    for enum_type in (request_status, request_kind, schedule_status, pet_status, user_role):
        enum_type.drop(op.get_bind(), checkfirst=True)
