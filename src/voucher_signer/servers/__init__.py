from .apps import VoucherSignerServer
from .flows import setup_event_bus, status_code_for

__all__ = [
    "VoucherSignerServer",
    "setup_event_bus",
    "status_code_for",
]
