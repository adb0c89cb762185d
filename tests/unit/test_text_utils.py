import pytest

from app.utils.text import count_words, reading_time_minutes, slugify, stable_request_hash, truncate


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Leading Through Change", "leading-through-change"),
        ("  What's Next?  For the Church!  ", "whats-next-for-the-church"),
        ("Faith -- and -- Works", "faith-and-works"),
        ("!!!", "untitled"),
    ],
)
def test_slugify(title, expected):
    assert slugify(title) == expected


@pytest.mark.parametrize("title", ["Leading Through Change", "A -- B", "x" * 300, "Ünïcode Tïtle", "-edge-"])
def test_slugify_is_idempotent(title):
    once = slugify(title)
    assert slugify(once) == once


def test_slug_is_capped_without_trailing_hyphen():
    slug = slugify(("word " * 40).strip())
    assert len(slug) <= 96
    assert not slug.endswith("-")


def test_reading_time_rounds_up_with_minimum():
    assert reading_time_minutes(0) == 1
    assert reading_time_minutes(200) == 1
    assert reading_time_minutes(201) == 2


def test_truncate_adds_suffix_within_limit():
    assert truncate("short", 10) == "short"
    result = truncate("x" * 150, 100)
    assert len(result) == 100 and result.endswith("...")


def test_count_words():
    assert count_words("one two\nthree\tfour") == 4


def test_request_hash_ignores_key_order():
    assert stable_request_hash({"a": 1, "b": 2}) == stable_request_hash({"b": 2, "a": 1})
