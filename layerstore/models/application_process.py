"""ApplicationProcess and ApplicationProcessLog models."""

from sqlalchemy import BigInteger, ForeignKey, SmallInteger, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from layerstore.db.session import Base
from layerstore.db.types import RecordId


class ApplicationProcess(Base):
    """Named long-running process (job, worker) owned by an application."""

    __tablename__ = "application_processes"

    __table_args__ = (
        UniqueConstraint("application", "name", name="uq_application_processes_application_name"),
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


class ApplicationProcessLog(Base):
    """One log line written by a process. ``type`` holds the LogLevel value."""

    __tablename__ = "application_process_logs"

    id: Mapped[int] = mapped_column(RecordId, primary_key=True, autoincrement=True)
    application: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    process: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("application_processes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    hash: Mapped[str] = mapped_column(String(32), nullable=False)
    hash_sub: Mapped[str] = mapped_column(String(32), nullable=False)
    type: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    deleted_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
