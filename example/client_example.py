import time

import httpx

from voucher_signer.clients import VoucherClient

claimant = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"  # Replace with the claiming wallet
token = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"  # USDC on Sepolia (6 decimals)


async def main():
    async with VoucherClient(
        base_url="http://localhost:8000",
        timeout=httpx.Timeout(10.0),
    ) as client:
        voucher = await client.generate(
            claimant=claimant,
            token=token,
            amount=1_000_000,  # 1.0 USDC, already scaled
            expire_at=int(time.time()) + 300,
        )
        check = await client.verify_voucher(voucher)
        return voucher, check


if __name__ == "__main__":
    import asyncio
    voucher, check = asyncio.run(main())
    print("Voucher:", voucher.to_wire())
    print("Verification:", check)
