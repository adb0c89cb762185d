from typing import Any

from app.core.errors import SmartImportError


def success_response(data: Any, meta: dict | None = None, message: str | None = None) -> dict:
    payload_meta = dict(meta or {})
    if message:
        payload_meta["message"] = message
    return {
        "data": data,
        "error": None,
        "meta": payload_meta,
    }


def error_response(
    code: str,
    message: str,
    trace_id: str,
    status: int = 400,
    details: dict | None = None,
) -> tuple[dict, int]:
    return (
        {
            "data": None,
            "error": {
                "code": code,
                "message": message,
                "trace_id": trace_id,
                "details": details or {},
            },
            "meta": {},
        },
        status,
    )


def import_error_response(exc: SmartImportError, trace_id: str) -> tuple[dict, int]:
    details = {"category": exc.category, **exc.details}
    return error_response(exc.code, exc.message, trace_id, exc.status_code, details)
