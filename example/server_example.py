from voucher_signer.config import load_config
from voucher_signer.servers import VoucherSignerServer
from voucher_signer.engine.events import IssueVoucherEvent, VoucherIssuedEvent, RequestRejectedEvent
from voucher_signer.utils import setup_logger


# SIGNER_PRIVATE_KEY, DATABASE_URL, ... are read from the environment / .env
config = load_config()
logger = setup_logger(config.log_level)

app = VoucherSignerServer.from_config(config, title="Airdrop Voucher API")


# Optional: Add event hooks for custom logic
@app.hook(IssueVoucherEvent)
async def on_claim_request(event, deps):
    """Log incoming claim requests."""
    logger.info("Claim request: %r", event)

@app.hook(VoucherIssuedEvent)
async def on_voucher_issued(event, deps):
    """Log issued vouchers."""
    logger.info("Voucher issued: %s nonce=%s", event.voucher.claimant, event.voucher.nonce)

@app.hook(RequestRejectedEvent)
async def on_rejected(event, deps):
    """Log rejected requests."""
    logger.warning("Request rejected: %s", event.to_response())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="localhost", port=8000, log_level="debug")
