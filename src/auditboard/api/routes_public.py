# src/auditboard/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from auditboard.api.routes_public_parts.actions import router as actions_router
from auditboard.api.routes_public_parts.board import router as board_router
from auditboard.api.routes_public_parts.health import router as health_router
from auditboard.api.routes_public_parts.metrics import router as metrics_router
from auditboard.api.routes_public_parts.token import router as token_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(board_router, prefix="/v1", tags=["board"])
public_router.include_router(actions_router, prefix="/v1", tags=["actions"])
public_router.include_router(token_router, prefix="/v1", tags=["token"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])
