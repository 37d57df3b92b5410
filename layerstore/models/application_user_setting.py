"""ApplicationUserSetting model — per-user override for a setting."""

from sqlalchemy import BigInteger, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from layerstore.db.session import Base
from layerstore.db.types import RecordId


class ApplicationUserSetting(Base):
    """User override. Unique per (application, setting, hash_user).

    ``hash_user`` is the caller's opaque user identifier, stored verbatim.
    """

    __tablename__ = "application_user_settings"

    __table_args__ = (
        UniqueConstraint(
            "application",
            "setting",
            "hash_user",
            name="uq_application_user_settings_application_setting_user",
        ),
    )

    id: Mapped[int] = mapped_column(RecordId, primary_key=True, autoincrement=True)
    application: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    hash: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    hash_user: Mapped[str] = mapped_column(String(255), nullable=False)
    setting: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("application_settings.id", ondelete="CASCADE"),
        nullable=False,
    )
    value: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    deleted_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
