"""Initial schema: applications and layered settings.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: str | None = None
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
        "applications",
        sa.Column("id", RECORD_ID, autoincrement=True, nullable=False),
        sa.Column("hash", sa.String(length=32), nullable=False),
        sa.Column("hash_secret", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=32), nullable=False),
        sa.Column("host", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("hash"),
    )
    op.create_table(
        "application_settings",
        sa.Column("id", RECORD_ID, autoincrement=True, nullable=False),
        sa.Column("application", sa.BigInteger(), nullable=False),
        sa.Column("hash", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["application"], ["applications.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("hash"),
        sa.UniqueConstraint(
            "application", "name", name="uq_application_settings_application_name"
        ),
    )
    op.create_table(
        "application_global_settings",
        sa.Column("id", RECORD_ID, autoincrement=True, nullable=False),
        sa.Column("application", sa.BigInteger(), nullable=False),
        sa.Column("hash", sa.String(length=32), nullable=False),
        sa.Column("setting", sa.BigInteger(), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["application"], ["applications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["setting"], ["application_settings.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("hash"),
        sa.UniqueConstraint(
            "application",
            "setting",
            name="uq_application_global_settings_application_setting",
        ),
    )
    op.create_table(
        "application_user_settings",
        sa.Column("id", RECORD_ID, autoincrement=True, nullable=False),
        sa.Column("application", sa.BigInteger(), nullable=False),
        sa.Column("hash", sa.String(length=32), nullable=False),
        sa.Column("hash_user", sa.String(length=255), nullable=False),
        sa.Column("setting", sa.BigInteger(), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["application"], ["applications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["setting"], ["application_settings.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("hash"),
        sa.UniqueConstraint(
            "application",
            "setting",
            "hash_user",
            name="uq_application_user_settings_application_setting_user",
        ),
    )


def downgrade() -> None:
    op.drop_table("application_user_settings")
    op.drop_table("application_global_settings")
    op.drop_table("application_settings")
    op.drop_table("applications")
