from fastapi import HTTPException, Request

from app.core.config import get_settings


AUTH_HEADER = "X-API-Key"
BEARER_PREFIX = "Bearer "


def _presented_token(request: Request) -> str | None:
    token = request.headers.get(AUTH_HEADER)
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    if authorization.startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):].strip() or None
    return None


def enforce_api_auth(request: Request) -> None:
    settings = get_settings()
    if not settings.api_auth_enabled:
        return

    token = _presented_token(request)
    if not token or token != settings.api_auth_token:
        raise HTTPException(status_code=401, detail="Unauthorized")


def client_identifier(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded.strip():
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
