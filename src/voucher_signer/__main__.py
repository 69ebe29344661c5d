"""Run the voucher signing server: ``python -m voucher_signer``."""

import uvicorn

from .config import load_config
from .servers.apps import VoucherSignerServer
from .utils.logger import setup_logger


def main() -> None:
    config = load_config()
    setup_logger(config.log_level)
    app = VoucherSignerServer.from_config(config)
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
