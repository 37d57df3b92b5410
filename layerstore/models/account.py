"""Account, AccountPlatform and AccountPlatformData models.

Platform data rows are keyed naturally by (account, platform, key) and are
written in batches by the platform data reconciler.
"""

from sqlalchemy import BigInteger, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from layerstore.db.session import Base
from layerstore.db.types import RecordId

# Width of the indexed display column; the full value lives in value_big.
PLATFORM_VALUE_WIDTH = 255


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(RecordId, primary_key=True, autoincrement=True)
    hash: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    deleted_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)


class AccountPlatform(Base):
    """An external platform identity (e.g. discord, bungie) linked to an account."""

    __tablename__ = "account_platforms"

    id: Mapped[int] = mapped_column(RecordId, primary_key=True, autoincrement=True)
    account: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    hash: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    platform: Mapped[str] = mapped_column(String(32), nullable=False)
    platform_user: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    deleted_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)


class AccountPlatformData(Base):
    """Key/value attribute reported by a platform for one account."""

    __tablename__ = "account_platform_data"

    __table_args__ = (
        UniqueConstraint(
            "account",
            "platform",
            "key",
            name="uq_account_platform_data_account_platform_key",
        ),
    )

    id: Mapped[int] = mapped_column(RecordId, primary_key=True, autoincrement=True)
    account: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    platform: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("account_platforms.id", ondelete="CASCADE"),
        nullable=False,
    )
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[str] = mapped_column(String(PLATFORM_VALUE_WIDTH), nullable=False)
    value_bigint: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    value_big: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    deleted_at: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
