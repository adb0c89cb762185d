import logging

from app import models  # noqa: F401
from app.db.base import Base
from app.db.session import get_engine

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create the post, author, audit and idempotency tables when missing.

    Production schemas are managed by Alembic; this covers local and test runs.
    """
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info(
        "Database ready at %s (%s)",
        engine.url.render_as_string(hide_password=True),
        ", ".join(sorted(Base.metadata.tables)),
    )
