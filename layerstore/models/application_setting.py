"""ApplicationSetting model — setting definitions, one per (application, name)."""

from sqlalchemy import BigInteger, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from layerstore.db.session import Base
from layerstore.db.types import RecordId


class ApplicationSetting(Base):
    """Named setting within one application.

    Created lazily on the first write of a name. Global and user values point
    at it through their ``setting`` column.
    """

    __tablename__ = "application_settings"

    __table_args__ = (
        UniqueConstraint("application", "name", name="uq_application_settings_application_name"),
    )

    id: Mapped[int] = mapped_column(RecordId, primary_key=True, autoincrement=True)
    application: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    hash: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    deleted_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
