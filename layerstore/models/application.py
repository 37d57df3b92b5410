"""Application model — one row per registered tenant application."""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from layerstore.db.session import Base
from layerstore.db.types import RecordId


class Application(Base):
    """Registered application. ``hash`` + ``hash_secret`` are its credentials."""

    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(RecordId, primary_key=True, autoincrement=True)
    hash: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    hash_secret: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(String(32), nullable=False)
    host: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    deleted_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
