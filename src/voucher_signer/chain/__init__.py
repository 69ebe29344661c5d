from .AIRDROP_ABI import get_airdrop_read_abi, get_nonce_used_abi, get_signer_abi
from .reader import AirdropContractReader

__all__ = [
    "AirdropContractReader",
    "get_airdrop_read_abi",
    "get_nonce_used_abi",
    "get_signer_abi",
]
