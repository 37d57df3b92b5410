"""add account platform data and member activity stats tables

Revision ID: 20261019_ingestion
Revises: 20261019_processes
Create Date: 2026-10-19

Unique constraints on the natural keys enable idempotent batch upserts.
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "20261019_ingestion"
down_revision: str | None = "20261019_processes"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

RECORD_ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("deleted_at", sa.BigInteger(), nullable=False, server_default="0"),
    ]


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", RECORD_ID, autoincrement=True, nullable=False),
        sa.Column("hash", sa.String(length=32), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("hash"),
    )
    op.create_table(
        "account_platforms",
        sa.Column("id", RECORD_ID, autoincrement=True, nullable=False),
        sa.Column("account", sa.BigInteger(), nullable=False),
        sa.Column("hash", sa.String(length=32), nullable=False),
        sa.Column("platform", sa.String(length=32), nullable=False),
        sa.Column("platform_user", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["account"], ["accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("hash"),
    )
    op.create_index("ix_account_platforms_account", "account_platforms", ["account"])
    op.create_table(
        "account_platform_data",
        sa.Column("id", RECORD_ID, autoincrement=True, nullable=False),
        sa.Column("account", sa.BigInteger(), nullable=False),
        sa.Column("platform", sa.BigInteger(), nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("value", sa.String(length=255), nullable=False),
        sa.Column("value_bigint", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("value_big", sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["account"], ["accounts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["platform"], ["account_platforms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "account",
            "platform",
            "key",
            name="uq_account_platform_data_account_platform_key",
        ),
    )
    op.create_table(
        "member_activity_stats",
        sa.Column("id", RECORD_ID, autoincrement=True, nullable=False),
        sa.Column("membership_id", sa.BigInteger(), nullable=False),
        sa.Column("character_id", sa.BigInteger(), nullable=False),
        sa.Column("instance_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("value_display", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "character_id",
            "instance_id",
            "name",
            name="uq_member_activity_stats_character_instance_name",
        ),
    )
    op.create_index(
        "ix_member_activity_stats_membership_name",
        "member_activity_stats",
        ["membership_id", "name"],
    )


def downgrade() -> None:
    op.drop_index("ix_member_activity_stats_membership_name", table_name="member_activity_stats")
    op.drop_table("member_activity_stats")
    op.drop_table("account_platform_data")
    op.drop_index("ix_account_platforms_account", table_name="account_platforms")
    op.drop_table("account_platforms")
    op.drop_table("accounts")
