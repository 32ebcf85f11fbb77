from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from auditboard.api.structured_logging import log_event
from auditboard.runtime.errors import ApplyError

logger = logging.getLogger("auditboard.api")

# ApplyError.code -> HTTP status.
_STATUS_BY_CODE: Dict[str, int] = {
    "invalid_tx": 400,
    "invalid_payload": 400,
    "tx_unimplemented": 400,
    "forbidden": 403,
    "not_found": 404,
    "conflict": 409,
    "time_locked": 409,
    "payload_too_large": 413,
}


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})

    @staticmethod
    def from_rejection(code: str, reason: str, details: Any = None) -> "ApiError":
        """Map an action rejection (code, reason) onto an HTTP error."""
        status = _STATUS_BY_CODE.get(str(code), 500)
        d = details if isinstance(details, dict) else ({"details": details} if details is not None else {})
        return ApiError(status, str(reason), f"action rejected: {code}", {**d, "category": str(code)})

    def to_json(self, request_id: Optional[str] = None) -> Dict[str, Any]:
        err: Dict[str, Any] = {"code": self.code, "message": self.message, "details": self.details}
        if request_id:
            err["request_id"] = request_id
        return {"ok": False, "error": err}


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    if exc.status_code >= 500:
        log_event(logger, "api_error", level=logging.ERROR, path=request.url.path, code=exc.code, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_json(request_id))


async def apply_error_handler(request: Request, exc: ApplyError) -> JSONResponse:
    return await api_error_handler(request, ApiError.from_rejection(exc.code, exc.reason, exc.details))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ApplyError, apply_error_handler)  # type: ignore[arg-type]
