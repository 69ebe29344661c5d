"""
Client module for the voucher signing service.

Provides an async httpx client for requesting and re-checking vouchers.
"""

from .http_client import VoucherClient

__all__ = ["VoucherClient"]
