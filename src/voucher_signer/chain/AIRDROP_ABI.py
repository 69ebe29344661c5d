"""
Airdrop Contract ABI Module

Minimal ABI fragments for the read-only views of the airdrop contract that
redeems vouchers via ``claimTokens(token, amount, nonce, expireAt, signature)``.

Usage:
    from AIRDROP_ABI import get_nonce_used_abi, get_signer_abi

    contract = w3.eth.contract(address=airdrop, abi=get_airdrop_read_abi())
    used = await contract.functions.nonceUsed(claimant, nonce).call()
"""

from typing import Any, Dict, List


def get_nonce_used_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ``nonceUsed(user, nonce)``.

    Returns:
        List[Dict[str, Any]]: ABI for the per-claimant consumed-nonce view.
    """
    return [
        {
            "name": "nonceUsed",
            "type": "function",
            "stateMutability": "view",
            "inputs": [
                {"name": "user", "type": "address"},
                {"name": "nonce", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        }
    ]


def get_signer_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ``signer()``, the address the contract accepts vouchers from.
    """
    return [
        {
            "name": "signer",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "address"}],
        }
    ]


def get_airdrop_read_abi() -> List[Dict[str, Any]]:
    """Combined ABI of every read-only view used by the service."""
    return get_nonce_used_abi() + get_signer_abi()
