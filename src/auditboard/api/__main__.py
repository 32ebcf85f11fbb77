# src/auditboard/api/__main__.py
from __future__ import annotations

import os

import uvicorn

from auditboard.env import load_dotenv_if_present


def main() -> None:
    # .env must be loaded before anything reads AUDITBOARD_* vars.
    load_dotenv_if_present()

    from auditboard.api.app import create_app

    app = create_app()
    host = os.getenv("AUDITBOARD_API_HOST", "127.0.0.1")
    port = int(os.getenv("AUDITBOARD_API_PORT", "8000"))
    log_level = os.getenv("AUDITBOARD_LOG_LEVEL", "info").strip().lower()

    uvicorn.run(app, host=host, port=port, log_level=log_level)


if __name__ == "__main__":
    main()
