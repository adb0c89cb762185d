import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session

from app.db.base import Base
from app.models import AuditLog, Author, Post, PostStatus
from app.schemas import HeadingBlock, ParagraphBlock, PostRecord
from app.services.sink import SqlAlchemyPostSink


@pytest.fixture
def db():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


def _record(**overrides) -> PostRecord:
    values = {
        "title": "Leading Through Change",
        "slug": "leading-through-change",
        "content": [HeadingBlock(level=1, text="Leading Through Change"), ParagraphBlock.plain("Body text.")],
        "seo_title": "Leading Through Change",
        "seo_description": "Body text.",
        "word_count": 5,
        "reading_time": 1,
        "status": "draft",
        "categories": ["Leadership"],
        "content_hash": "0" * 64,
        "author_name": "Sam Rivera",
    }
    values.update(overrides)
    return PostRecord(**values)


def test_create_post_writes_post_author_and_audit(db):
    post_id, slug = SqlAlchemyPostSink(db).create_post(_record())
    db.commit()

    post = db.get(Post, post_id)
    assert slug == "leading-through-change"
    assert post.status == PostStatus.draft
    assert post.author.name == "Sam Rivera"
    assert post.content_json[0] == {"type": "heading", "level": 1, "text": "Leading Through Change"}
    assert post.categories_json == ["Leadership"]

    audit = db.scalars(select(AuditLog)).one()
    assert (audit.action, audit.entity_type, audit.entity_id) == ("create", "post", post_id)
    assert audit.actor == "smart-import"


def test_slug_collision_gets_suffix(db):
    sink = SqlAlchemyPostSink(db)
    _, first = sink.create_post(_record())
    _, second = sink.create_post(_record())
    assert first == "leading-through-change"
    assert second.startswith("leading-through-change-")
    assert second[len("leading-through-change-"):].isdigit()


def test_existing_author_is_reused_case_insensitively(db):
    sink = SqlAlchemyPostSink(db)
    sink.create_post(_record())
    sink.create_post(_record(slug="second-post", author_name="sam rivera"))
    assert db.scalar(select(func.count()).select_from(Author)) == 1


def test_unknown_author_left_empty_when_creation_disabled(db):
    post_id, _ = SqlAlchemyPostSink(db, create_author=False).create_post(_record())
    assert db.get(Post, post_id).author_id is None
    assert db.scalar(select(func.count()).select_from(Author)) == 0


def test_nothing_persists_without_commit(db):
    SqlAlchemyPostSink(db).create_post(_record())
    db.rollback()
    assert db.scalar(select(func.count()).select_from(Post)) == 0
    assert db.scalar(select(func.count()).select_from(AuditLog)) == 0
