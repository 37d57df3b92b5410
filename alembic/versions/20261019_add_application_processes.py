"""add application_processes and application_process_logs

Revision ID: 20261019_processes
Revises: 001
Create Date: 2026-10-19

Durable process logs written by the background persistence worker.
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_processes"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

RECORD_ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "application_processes",
        sa.Column("id", RECORD_ID, autoincrement=True, nullable=False),
        sa.Column("application", sa.BigInteger(), nullable=False),
        sa.Column("hash", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("deleted_at", sa.BigInteger(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["application"], ["applications.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("hash"),
        sa.UniqueConstraint(
            "application", "name", name="uq_application_processes_application_name"
        ),
    )
    op.create_table(
        "application_process_logs",
        sa.Column("id", RECORD_ID, autoincrement=True, nullable=False),
        sa.Column("application", sa.BigInteger(), nullable=False),
        sa.Column("process", sa.BigInteger(), nullable=False),
        sa.Column("hash", sa.String(length=32), nullable=False),
        sa.Column("hash_sub", sa.String(length=32), nullable=False),
        sa.Column("type", sa.SmallInteger(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("deleted_at", sa.BigInteger(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["application"], ["applications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["process"], ["application_processes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_application_process_logs_process",
        "application_process_logs",
        ["process"],
    )


def downgrade() -> None:
    op.drop_index("ix_application_process_logs_process", table_name="application_process_logs")
    op.drop_table("application_process_logs")
    op.drop_table("application_processes")
