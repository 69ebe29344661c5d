"""
Voucher Message Hash Builder

Builds the exact digest the airdrop contract recomputes on-chain::

    keccak256(abi.encodePacked(claimant, token, amount, nonce, expireAt))

Packed layout (136 bytes, big-endian, no separators or length prefixes)::

    claimant(20) | token(20) | amount(32) | nonce(32) | expireAt(32)

Any deviation from this layout breaks signer recovery in the contract, so the
functions here are pure and deterministic and validate every field before
encoding.
"""

from typing import Tuple

from eth_abi.packed import encode_packed
from eth_utils import is_checksum_address, is_hex_address, keccak, to_checksum_address

from ..engine.exceptions import InvalidInputKind

#: Solidity types of the packed fields, in hashing order.
VOUCHER_FIELD_TYPES: Tuple[str, ...] = ("address", "address", "uint256", "uint256", "uint256")

#: Packed byte length: two addresses and three uint256 words.
PACKED_LENGTH: int = 20 + 20 + 32 * 3

UINT256_MAX: int = 2**256 - 1


def normalize_address(value: object, field: str) -> str:
    """
    Validate an EVM address and return its EIP-55 checksum form.

    All-lowercase and all-uppercase hex is accepted as-is. Mixed-case input
    is treated as checksummed and must pass the EIP-55 check.

    Args:
        value: Candidate address (0x-prefixed, 40 hex digits).
        field: Wire name of the field, used in the error.

    Returns:
        Checksummed address string.

    Raises:
        InvalidInputKind: If the value is not a well-formed address.
    """
    if not isinstance(value, str) or not is_hex_address(value) or not value.startswith(("0x", "0X")):
        raise InvalidInputKind(field, "must be a 0x-prefixed 20-byte hex address")

    body = value[2:]
    if body != body.lower() and body != body.upper() and not is_checksum_address(value):
        raise InvalidInputKind(field, "address checksum is invalid")

    return to_checksum_address(value)


def ensure_uint256(value: object, field: str) -> int:
    """
    Validate that ``value`` is an integer in ``[0, 2**256 - 1]``.

    Raises:
        InvalidInputKind: If the value is not an int, or is out of range.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputKind(field, "must be an integer")
    if value < 0:
        raise InvalidInputKind(field, "must not be negative")
    if value > UINT256_MAX:
        raise InvalidInputKind(field, "exceeds 256 bits")
    return value


def pack_voucher_fields(
    claimant: str,
    token: str,
    amount: int,
    nonce: int,
    expire_at: int,
) -> bytes:
    """
    Encode the five voucher fields with Solidity ``abi.encodePacked`` rules.

    Returns:
        The 136-byte packed message.

    Raises:
        InvalidInputKind: If any field is malformed.
    """
    values = (
        normalize_address(claimant, "claimant"),
        normalize_address(token, "token"),
        ensure_uint256(amount, "amount"),
        ensure_uint256(nonce, "nonce"),
        ensure_uint256(expire_at, "expireAt"),
    )
    return encode_packed(VOUCHER_FIELD_TYPES, values)


def build_message_hash(
    claimant: str,
    token: str,
    amount: int,
    nonce: int,
    expire_at: int,
) -> bytes:
    """
    Compute the 32-byte voucher message hash.

    Identical inputs always produce the identical digest; this is the value
    the signer signs (after the personal-message prefix) and the contract
    recomputes from ``claimTokens`` arguments.

    Args:
        claimant:  Address allowed to redeem the voucher.
        token:     ERC-20 token being airdropped.
        amount:    Amount in the token's smallest unit.
        nonce:     Per-claimant replay-protection nonce.
        expire_at: Unix timestamp at which the voucher stops being valid.

    Returns:
        keccak-256 digest of the packed fields.

    Raises:
        InvalidInputKind: If any field is malformed.

    Example::

        digest = build_message_hash(
            "0xAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA",
            "0xBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBB",
            1_000_000,      # 1.0 of a 6-decimal token
            42,
            1_900_000_000,
        )
        "0x" + digest.hex()
    """
    return keccak(pack_voucher_fields(claimant, token, amount, nonce, expire_at))
