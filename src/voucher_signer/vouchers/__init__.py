from .hashing import (
    PACKED_LENGTH,
    UINT256_MAX,
    build_message_hash,
    ensure_uint256,
    normalize_address,
    pack_voucher_fields,
)
from .nonces import (
    NonceAllocator,
    RandomNonceAllocator,
    SequentialNonceAllocator,
    create_nonce_allocator,
)
from .signatures import VoucherSigner, encode_voucher_message
from .verifies import recover_voucher_signer, verify_voucher

__all__ = [
    "PACKED_LENGTH",
    "UINT256_MAX",
    "build_message_hash",
    "ensure_uint256",
    "normalize_address",
    "pack_voucher_fields",
    "NonceAllocator",
    "RandomNonceAllocator",
    "SequentialNonceAllocator",
    "create_nonce_allocator",
    "VoucherSigner",
    "encode_voucher_message",
    "recover_voucher_signer",
    "verify_voucher",
]
