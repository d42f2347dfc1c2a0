"""Run the API server with ``python -m familybank``."""

import logging
import os
import sys

import uvicorn

logger = logging.getLogger("familybank")


def main() -> int:
    port = int(os.getenv("SERVER_PORT", "8000"))
    server = uvicorn.Server(
        uvicorn.Config("familybank.main:app", host="0.0.0.0", port=port)
    )
    try:
        server.run()
    except Exception:
        logger.exception("Server failed to start")
        return 1
    if not server.started:
        logger.error("Server failed to start")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
