"""Storage sink for finished post records."""

import logging
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.time import now_utc
from app.models.entities import AuditLog, Author, Post, PostStatus
from app.schemas.smart_import import PostRecord

logger = logging.getLogger(__name__)


class PostSink(Protocol):
    def create_post(self, record: PostRecord) -> tuple[int, str]: ...


class SqlAlchemyPostSink:
    """Adds the post, its author and an audit row to ``db`` without committing.

    The caller commits once, so a failed or cancelled request leaves nothing behind.
    """

    def __init__(self, db: Session, actor: str = "smart-import", create_author: bool = True) -> None:
        self.db = db
        self.actor = actor
        self.create_author = create_author

    def _author(self, name: str | None) -> Author | None:
        if not name or not name.strip():
            return None
        name = name.strip()
        existing = self.db.scalars(
            select(Author).where(func.lower(Author.name) == name.lower()).limit(1)
        ).first()
        if existing is not None or not self.create_author:
            return existing
        author = Author(name=name)
        self.db.add(author)
        self.db.flush()
        logger.info("Created author %s (%s)", author.id, name)
        return author

    def _unique_slug(self, slug: str) -> str:
        taken = self.db.scalar(select(Post.id).where(Post.slug == slug).limit(1))
        if taken is None:
            return slug
        suffixed = f"{slug}-{int(now_utc().timestamp() * 1000)}"
        logger.info("Slug %s already taken, using %s", slug, suffixed)
        return suffixed

    def create_post(self, record: PostRecord) -> tuple[int, str]:
        author = self._author(record.author_name)
        post = Post(
            title=record.title,
            slug=self._unique_slug(record.slug),
            content_json=[block.model_dump(mode="json") for block in record.content],
            excerpt=record.excerpt,
            cover_image_url=record.cover_image_url,
            cover_image_alt=record.cover_image_alt,
            author_id=author.id if author else None,
            published_at=record.published_at,
            seo_title=record.seo_title,
            seo_description=record.seo_description,
            word_count=record.word_count,
            reading_time=record.reading_time,
            status=PostStatus(record.status),
            categories_json=list(record.categories),
            content_hash=record.content_hash,
        )
        self.db.add(post)
        self.db.flush()
        self.db.add(
            AuditLog(
                actor=self.actor,
                action="create",
                entity_type="post",
                entity_id=post.id,
                payload_json={"slug": post.slug, "title": post.title, "status": record.status},
            )
        )
        return post.id, post.slug
