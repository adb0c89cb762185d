from datetime import timedelta

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.time import now_utc
from app.models.entities import IdempotencyKey
from app.utils.text import stable_request_hash

IDEMPOTENCY_HEADER = "Idempotency-Key"


def _expiry_cutoff():
    # stored timestamps are naive on SQLite, so compare without tzinfo
    cutoff = now_utc() - timedelta(hours=get_settings().idempotency_ttl_hours)
    return cutoff.replace(tzinfo=None)


def resolve_cached_response(db: Session, key: str | None, endpoint: str, payload: dict) -> dict | None:
    """Stored response for a replayed key, ``None`` for a fresh one; 409 on payload mismatch."""
    if not key or not key.strip():
        raise HTTPException(status_code=400, detail=f"Missing {IDEMPOTENCY_HEADER} header")

    existing = (
        db.query(IdempotencyKey)
        .filter(IdempotencyKey.key == key, IdempotencyKey.endpoint == endpoint)
        .one_or_none()
    )
    if existing is None:
        return None
    created_at = existing.created_at.replace(tzinfo=None)
    if created_at < _expiry_cutoff():
        db.delete(existing)
        db.flush()
        return None
    if existing.request_hash != stable_request_hash(payload):
        raise HTTPException(status_code=409, detail="Idempotency key reused with different payload")
    return existing.response_json


def store_response(db: Session, key: str, endpoint: str, payload: dict, response_json: dict) -> None:
    db.add(
        IdempotencyKey(
            key=key,
            endpoint=endpoint,
            request_hash=stable_request_hash(payload),
            response_json=response_json,
        )
    )


def cleanup_expired_keys(db: Session) -> int:
    return (
        db.query(IdempotencyKey)
        .filter(IdempotencyKey.created_at < _expiry_cutoff())
        .delete(synchronize_session=False)
    )
