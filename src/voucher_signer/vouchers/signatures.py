"""
Voucher Signer

Holds the service's single secp256k1 signing key and signs voucher digests
with the EIP-191 personal-message convention::

    keccak256("\\x19Ethereum Signed Message:\\n32" || messageHash)

which is what the airdrop contract reproduces (``toEthSignedMessageHash``)
before ``ecrecover``. All cryptographic operations are performed in-process
using ``eth_account``; no RPC calls are made.

The private key is converted to an ``eth_account`` ``LocalAccount`` once, at
startup, and is never logged, printed or returned.
"""

import logging
from typing import Optional

from eth_account import Account
from eth_account.messages import SignableMessage, encode_defunct
from eth_account.signers.local import LocalAccount

from ..engine.exceptions import SigningUnavailable
from ..schemas.vouchers import VoucherSignature

logger = logging.getLogger(__name__)


def encode_voucher_message(digest: bytes) -> SignableMessage:
    """
    Wrap a 32-byte voucher digest as an EIP-191 personal message.

    Raises:
        ValueError: If ``digest`` is not exactly 32 bytes.
    """
    if not isinstance(digest, (bytes, bytearray)) or len(digest) != 32:
        raise ValueError("voucher digest must be 32 bytes")
    return encode_defunct(primitive=bytes(digest))


class VoucherSigner:
    """
    Scoped, immutable handle to the service signing key.

    Build it with :meth:`load`, which never raises: when the key is missing
    or malformed the signer is created in an unavailable state, and
    :meth:`sign` / :attr:`address` raise ``SigningUnavailable`` so the server
    can report itself unhealthy instead of issuing unsigned vouchers.

    Example::

        signer = VoucherSigner.load(os.getenv("SIGNER_PRIVATE_KEY"))
        signature = signer.sign(build_message_hash(...))
        signature.to_packed_hex()
    """

    __slots__ = ("_account", "_load_error")

    def __init__(self, account: Optional[LocalAccount], load_error: Optional[str] = None) -> None:
        self._account = account
        self._load_error = load_error

    @classmethod
    def load(cls, private_key: Optional[str]) -> "VoucherSigner":
        """
        Create a signer from a hex private key (``0x`` prefix optional).

        Args:
            private_key: Hex-encoded secp256k1 private key, or ``None``.

        Returns:
            A ``VoucherSigner``; check :attr:`available` before serving.
        """
        if not private_key:
            logger.error("Signer private key is not configured")
            return cls(None, "signing key is not configured")

        key = private_key.strip()
        if not key.startswith(("0x", "0X")):
            key = "0x" + key
        try:
            account = Account.from_key(key)
        except (ValueError, TypeError) as e:
            # Never include the key or the library message, which may echo it.
            logger.error("Signer private key failed to load (%s)", type(e).__name__)
            return cls(None, "signing key failed to load")

        logger.info("Voucher signer initialized: %s", account.address)
        return cls(account)

    def __repr__(self) -> str:
        if self._account is None:
            return "VoucherSigner(unavailable)"
        return f"VoucherSigner(address={self._account.address})"

    @property
    def available(self) -> bool:
        """Whether a signing key is loaded."""
        return self._account is not None

    @property
    def unavailable_reason(self) -> Optional[str]:
        """Why the signer is unavailable, or ``None`` when it is usable."""
        return self._load_error

    def _require_account(self) -> LocalAccount:
        if self._account is None:
            raise SigningUnavailable(self._load_error or "signing key is not loaded")
        return self._account

    @property
    def address(self) -> str:
        """
        Checksummed address derived from the signing key.

        Raises:
            SigningUnavailable: If no key is loaded.
        """
        return self._require_account().address

    def sign(self, digest: bytes) -> VoucherSignature:
        """
        Sign a voucher digest as an EIP-191 personal message.

        Args:
            digest: 32-byte output of ``build_message_hash``.

        Returns:
            ``VoucherSignature`` with v in {27, 28}.

        Raises:
            SigningUnavailable: If no key is loaded.
            ValueError: If ``digest`` is not 32 bytes.
        """
        account = self._require_account()
        signed = account.sign_message(encode_voucher_message(digest))
        return VoucherSignature(
            v=signed.v,
            r="0x" + signed.r.to_bytes(32, "big").hex(),
            s="0x" + signed.s.to_bytes(32, "big").hex(),
        )
