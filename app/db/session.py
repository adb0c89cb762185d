from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import get_settings

_engine: Engine | None = None
_session_maker: sessionmaker[Session] | None = None


def _connect_args(database_url: str) -> dict:
    # request sessions are opened in the threadpool and used on the event loop
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"check_same_thread": False}
    return {}


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        database_url = get_settings().database_url
        _engine = create_engine(database_url, pool_pre_ping=True, connect_args=_connect_args(database_url))
    return _engine


def get_session_maker() -> sessionmaker[Session]:
    global _session_maker
    if _session_maker is None:
        _session_maker = sessionmaker(autocommit=False, autoflush=False, bind=get_engine(), class_=Session)
    return _session_maker


def reset_session_for_tests() -> None:
    global _engine, _session_maker
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_maker = None


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session. Anything not committed by the handler is rolled back."""
    db = get_session_maker()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
