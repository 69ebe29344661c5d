from .database import Base, create_store_engine, create_session_factory, create_tables, drop_tables
from .models import VoucherRecord
from .repository import CommitGuard, VoucherStore

__all__ = [
    "Base",
    "CommitGuard",
    "create_store_engine",
    "create_session_factory",
    "create_tables",
    "drop_tables",
    "VoucherRecord",
    "VoucherStore",
]
