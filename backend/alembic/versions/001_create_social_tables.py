"""Create users, posts and notifications tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  The three collections of the social graph.
How:   UUID primary keys, JSONB columns for the denormalized ID lists and
       embedded comments, check constraints on notification type/post_id.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this row was created (UTC)",
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="Last modification time (UTC)",
        ),
    ]


def _id_list(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(),
        nullable=False,
        server_default=sa.text("'[]'::jsonb"),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(30), nullable=False, comment="Lowercase"),
        sa.Column("email", sa.String(255), nullable=False, comment="Lowercase"),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(50), nullable=False),
        sa.Column("bio", sa.String(250), nullable=False, server_default=sa.text("''")),
        sa.Column("link", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("profile_img", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("cover_img", sa.Text(), nullable=False, server_default=sa.text("''")),
        _id_list("followers"),
        _id_list("following"),
        _id_list("liked_posts"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("uq_users_username", "users", ["username"], unique=True)
    op.create_index("uq_users_email", "users", ["email"], unique=True)

    op.create_table(
        "posts",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("text", sa.String(280), nullable=False, server_default=sa.text("''")),
        sa.Column("img", sa.Text(), nullable=False, server_default=sa.text("''")),
        _id_list("likes"),
        _id_list("comments"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_posts_user_id", "posts", ["user_id"])
    op.create_index("idx_posts_created_at", "posts", [sa.text("created_at DESC")])

    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("from_user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("to_user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("post_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["from_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["to_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "type IN ('follow', 'like', 'comment')",
            name="ck_notifications_type",
        ),
        sa.CheckConstraint(
            "(type = 'follow' AND post_id IS NULL) OR (type != 'follow' AND post_id IS NOT NULL)",
            name="ck_notifications_post_ref",
        ),
    )
    op.create_index("idx_notifications_to_user_id", "notifications", ["to_user_id"])


def downgrade() -> None:
    op.drop_index("idx_notifications_to_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("idx_posts_created_at", table_name="posts")
    op.drop_index("idx_posts_user_id", table_name="posts")
    op.drop_table("posts")
    op.drop_index("uq_users_email", table_name="users")
    op.drop_index("uq_users_username", table_name="users")
    op.drop_table("users")
