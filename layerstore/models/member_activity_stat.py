"""MemberActivityStat model — per-character, per-activity-instance statistics.

One row per (character_id, instance_id, name).
"""

from sqlalchemy import BigInteger, Float, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from layerstore.db.session import Base
from layerstore.db.types import RecordId

STAT_DISPLAY_WIDTH = 255


class MemberActivityStat(Base):
    __tablename__ = "member_activity_stats"

    __table_args__ = (
        UniqueConstraint(
            "character_id",
            "instance_id",
            "name",
            name="uq_member_activity_stats_character_instance_name",
        ),
        Index("ix_member_activity_stats_membership_name", "membership_id", "name"),
    )

    id: Mapped[int] = mapped_column(RecordId, primary_key=True, autoincrement=True)
    membership_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    character_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    instance_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    value_display: Mapped[str] = mapped_column(String(STAT_DISPLAY_WIDTH), nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    deleted_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
