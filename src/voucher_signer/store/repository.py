"""
Voucher Store

Durable, append-only record of every issued voucher keyed by
``(claimant, nonce)``. The store offers inserts and reads only: a voucher is
never updated or deleted once written.

``put`` is a conditional insert. Atomicity comes from the table's composite
primary key, so two processes racing on the same pair get exactly one
success and one ``DuplicateVoucher``.

All methods are blocking; async callers run them via ``asyncio.to_thread``.
Each call opens its own session, so the store is safe to share across
threads.

A caller that gives up waiting on ``put`` passes a ``CommitGuard`` and
abandons it; an insert that has not started committing is then rolled back
instead of landing after the caller has already reported failure.
"""

import logging
import threading
from datetime import timezone
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .database import create_session_factory, create_tables
from .models import VoucherRecord, decode_uint, encode_uint
from ..engine.exceptions import DuplicateVoucher, StoreUnavailable
from ..schemas.vouchers import Voucher

logger = logging.getLogger(__name__)


def _to_record(voucher: Voucher) -> VoucherRecord:
    return VoucherRecord(
        claimant=voucher.claimant,
        nonce=encode_uint(voucher.nonce),
        token=voucher.token,
        amount=encode_uint(voucher.amount),
        expire_at=encode_uint(voucher.expire_at),
        message_hash=voucher.message_hash,
        signature=voucher.signature,
        signer=voucher.signer,
        created_at=voucher.created_at,
    )


def _to_voucher(record: VoucherRecord) -> Voucher:
    created_at = record.created_at
    # SQLite drops tzinfo on the way back.
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return Voucher(
        claimant=record.claimant,
        token=record.token,
        amount=decode_uint(record.amount),
        nonce=decode_uint(record.nonce),
        expire_at=decode_uint(record.expire_at),
        message_hash=record.message_hash,
        signature=record.signature,
        signer=record.signer,
        created_at=created_at,
    )


class CommitGuard:
    """
    Hand-off between a blocking ``put`` and the coroutine waiting on it.

    Exactly one side wins: either the insert starts committing, or the waiter
    abandons it first and the insert is rolled back.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._abandoned = False
        self._committing = False

    def begin_commit(self) -> bool:
        with self._lock:
            if self._abandoned:
                return False
            self._committing = True
            return True

    def abandon(self) -> bool:
        """Abandon the insert; False if its commit has already started."""
        with self._lock:
            if self._committing:
                return False
            self._abandoned = True
            return True


class VoucherStore:
    """
    SQLAlchemy-backed voucher ledger.

    Claimant addresses are expected in checksum form (as produced by the
    hash builder), so lookups are exact matches.

    Example::

        store = VoucherStore.from_engine(create_store_engine("sqlite:///vouchers.db"))
        store.put(voucher)
        store.exists_nonce(voucher.claimant, voucher.nonce)  # True
    """

    def __init__(self, session_factory: "sessionmaker[Session]") -> None:
        self._session_factory = session_factory

    @classmethod
    def from_engine(cls, engine: Engine, *, create_schema: bool = True) -> "VoucherStore":
        """Build a store on ``engine``, creating tables unless told not to."""
        if create_schema:
            create_tables(engine)
        return cls(create_session_factory(engine))

    def put(self, voucher: Voucher, guard: Optional[CommitGuard] = None) -> None:
        """
        Insert ``voucher`` unless one already exists for its claimant and nonce.

        Args:
            voucher: Voucher to record.
            guard: If given and abandoned before the commit starts, the insert
                is rolled back and nothing is recorded.

        Raises:
            DuplicateVoucher: If the pair is already recorded.
            StoreUnavailable: On any other database failure, or if the insert
                was abandoned.
        """
        with self._session_factory() as session:
            session.add(_to_record(voucher))
            try:
                session.flush()
                if guard is not None and not guard.begin_commit():
                    session.rollback()
                    raise StoreUnavailable("voucher insert abandoned before commit")
                session.commit()
            except IntegrityError:
                session.rollback()
                raise DuplicateVoucher(voucher.claimant, voucher.nonce)
            except SQLAlchemyError as e:
                session.rollback()
                logger.error("Voucher insert failed: %s", type(e).__name__)
                raise StoreUnavailable("voucher could not be recorded") from e

    def get(self, claimant: str, nonce: int) -> Optional[Voucher]:
        """Return the voucher for ``(claimant, nonce)``, or ``None``."""
        try:
            with self._session_factory() as session:
                record = session.get(VoucherRecord, (claimant, encode_uint(nonce)))
                return _to_voucher(record) if record is not None else None
        except SQLAlchemyError as e:
            raise StoreUnavailable("voucher lookup failed") from e

    def exists_nonce(self, claimant: str, nonce: int) -> bool:
        """Whether a voucher has been issued for ``(claimant, nonce)``."""
        stmt = (
            select(VoucherRecord.nonce)
            .where(VoucherRecord.claimant == claimant, VoucherRecord.nonce == encode_uint(nonce))
            .limit(1)
        )
        try:
            with self._session_factory() as session:
                return session.execute(stmt).first() is not None
        except SQLAlchemyError as e:
            raise StoreUnavailable("nonce lookup failed") from e

    def max_nonce(self, claimant: str) -> Optional[int]:
        """Largest nonce issued to ``claimant``, or ``None`` if there is none."""
        stmt = select(func.max(VoucherRecord.nonce)).where(VoucherRecord.claimant == claimant)
        try:
            with self._session_factory() as session:
                value = session.execute(stmt).scalar()
        except SQLAlchemyError as e:
            raise StoreUnavailable("nonce lookup failed") from e
        return decode_uint(value) if value is not None else None

    def count_for_claimant(self, claimant: str) -> int:
        """Number of vouchers issued to ``claimant``."""
        stmt = select(func.count()).select_from(VoucherRecord).where(VoucherRecord.claimant == claimant)
        try:
            with self._session_factory() as session:
                return int(session.execute(stmt).scalar_one())
        except SQLAlchemyError as e:
            raise StoreUnavailable("voucher count failed") from e

    def list_for_claimant(self, claimant: str, limit: int = 100) -> List[Voucher]:
        """Vouchers issued to ``claimant``, newest first."""
        stmt = (
            select(VoucherRecord)
            .where(VoucherRecord.claimant == claimant)
            .order_by(VoucherRecord.created_at.desc(), VoucherRecord.nonce.desc())
            .limit(limit)
        )
        try:
            with self._session_factory() as session:
                return [_to_voucher(record) for record in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise StoreUnavailable("voucher history lookup failed") from e
