from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

import uvicorn

from .app import app, gateway


logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="FHE text analytics demo server")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "3001")))
    parser.add_argument("--log-level", default=os.getenv("FHE_LOG_LEVEL", "INFO"))
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )

    asyncio.run(gateway.ensure())
    status = gateway.status()
    logger.info(
        "Relayer available=%s endpoint=%s%s",
        status.available,
        status.endpoint,
        f" error={status.init_error}" if status.init_error else "",
    )

    logger.info("Backend running on port %d", args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
