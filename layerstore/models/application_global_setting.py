"""ApplicationGlobalSetting model — application-wide value for a setting."""

from sqlalchemy import BigInteger, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from layerstore.db.session import Base
from layerstore.db.types import RecordId


class ApplicationGlobalSetting(Base):
    """Global override. Unique per (application, setting)."""

    __tablename__ = "application_global_settings"

    __table_args__ = (
        UniqueConstraint(
            "application",
            "setting",
            name="uq_application_global_settings_application_setting",
        ),
    )

    id: Mapped[int] = mapped_column(RecordId, primary_key=True, autoincrement=True)
    application: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    hash: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    setting: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("application_settings.id", ondelete="CASCADE"),
        nullable=False,
    )
    value: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    deleted_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
