"""ORM model for issued vouchers."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base

#: Decimal digits of 2**256 - 1; uint256 columns are zero-padded to this width.
UINT256_DIGITS = 78


def encode_uint(value: int) -> str:
    """Fixed-width decimal text for a uint256, so text order is numeric order."""
    return str(value).zfill(UINT256_DIGITS)


def decode_uint(value: str) -> int:
    return int(value)


class VoucherRecord(Base):
    """Append-only ledger row for one issued voucher."""

    __tablename__ = "vouchers"

    # (claimant, nonce) -> at most one voucher; the primary key is the atomic
    # uniqueness check shared by every process using the database.
    claimant: Mapped[str] = mapped_column(String(42), primary_key=True)
    nonce: Mapped[str] = mapped_column(String(UINT256_DIGITS), primary_key=True)

    token: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    amount: Mapped[str] = mapped_column(String(UINT256_DIGITS), nullable=False)
    expire_at: Mapped[str] = mapped_column(String(UINT256_DIGITS), nullable=False)
    message_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    signature: Mapped[str] = mapped_column(String(132), nullable=False)
    signer: Mapped[str] = mapped_column(String(42), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
