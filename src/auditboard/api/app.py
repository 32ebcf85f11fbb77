from __future__ import annotations

import os

from fastapi import FastAPI

from auditboard.api.errors import install_error_handlers
from auditboard.api.routes_public import public_router
from auditboard.api.security import RequestSizeLimitMiddleware
from auditboard.api.structured_logging import RequestLogMiddleware, configure_structured_logging
from auditboard.runtime.executor_boot import build_executor as _build_executor
from auditboard.runtime.node_config import apply_node_config_to_env, load_node_config


def build_executor():
    """Build a BoardExecutor for the API runtime.

    Tests monkeypatch `auditboard.api.app.build_executor` instead of reaching
    into runtime modules.
    """
    return _build_executor()


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load node config into the environment and attach an
        executor as app.state.executor
      - False: no executor; callers attach one themselves
    """
    if boot_runtime:
        apply_node_config_to_env(load_node_config())
    configure_structured_logging()

    mode = os.environ.get("AUDITBOARD_MODE", "prod").strip().lower()
    if mode == "prod":
        app = FastAPI(title="Auditor Board API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="Auditor Board API")

    app.state.executor = build_executor() if boot_runtime else None

    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_middleware(RequestLogMiddleware)
    install_error_handlers(app)

    app.include_router(public_router)
    return app
