import pytest

from app.core.errors import ContentInvariantError
from app.schemas import BlockquoteBlock, HeadingBlock, ListBlock, ParagraphBlock
from app.services.formatting.preservation import (
    assert_reading_order_preserved,
    block_words,
    content_words,
)
from app.services.formatting.segmenter import (
    classify,
    enforce_quote_blocks,
    is_quote,
    normalize,
    split_segments,
)

ARTICLE = (
    "Leading Through Change\n\n"
    "By Jane Doe\n\n"
    "Change is hard. Every pastor knows it.\n\n"
    '"Be strong and courageous." - Joshua\n\n'
    "What comes next?\n\n"
    "1. Pray\n2. Plan\n3. Act\n\n"
    "The **best** leaders *listen* first."
)


def test_numbered_list_scenario():
    blocks = normalize("1. First\n2. Second\n3. Third")
    assert len(blocks) == 1
    block = blocks[0]
    assert isinstance(block, ListBlock)
    assert block.ordered is True
    assert [item.text for item in block.items] == ["First", "Second", "Third"]


def test_article_cascade():
    blocks = normalize(ARTICLE)
    assert [type(block).__name__ for block in blocks] == [
        "HeadingBlock",
        "HeadingBlock",
        "ParagraphBlock",
        "BlockquoteBlock",
        "HeadingBlock",
        "ListBlock",
        "ParagraphBlock",
    ]
    assert blocks[0].level == 1 and blocks[0].text == "Leading Through Change"
    assert blocks[1].level == 3 and blocks[1].text == "By Jane Doe"
    assert blocks[4].level == 2
    assert blocks[3].paragraphs[0].text == '"Be strong and courageous." - Joshua'


def test_emphasis_runs():
    paragraph = normalize("Intro line that is long enough to be a paragraph.\n\nThe **best** leaders *listen* first.")[1]
    assert isinstance(paragraph, ParagraphBlock)
    assert [(run.text, run.emphasis) for run in paragraph.runs] == [
        ("The ", "none"),
        ("best", "bold"),
        (" leaders ", "none"),
        ("listen", "italic"),
        (" first.", "none"),
    ]


def test_plain_paragraph_is_single_run():
    block = normalize("Some words. More words follow in this plain paragraph.")[0]
    assert isinstance(block, ParagraphBlock)
    assert len(block.runs) == 1 and block.runs[0].emphasis == "none"


@pytest.mark.parametrize(
    "segment",
    [
        '"Lead well"',
        "“Lead well”",
        "He paused. \"Be still, and know that I am God.\" The room was silent after that.",
        "She told me ‘never give up’ and walked out of the meeting room quietly.",
        "Leadership is influence - John Maxwell",
        "Jesus said to love one another.",
        "John 3:16 reminds us how deeply we are loved by God.",
    ],
)
def test_quoted_segments_become_blockquotes(segment):
    blocks = normalize("Opening paragraph that ends with a period.\n\n" + segment)
    assert isinstance(blocks[1], BlockquoteBlock)
    assert blocks[1].paragraphs[0].text == segment


def test_short_quote_is_not_a_subheading():
    [segment] = split_segments('"Grace"')
    assert classify(segment).name == "quote"


def test_quoted_first_line_is_not_main_title():
    blocks = normalize('"Come, follow me"')
    assert isinstance(blocks[0], BlockquoteBlock)


def test_mixed_markers_form_one_list_numbered_by_majority():
    [block] = normalize("- one\n2. two\n3. three")
    assert isinstance(block, ListBlock)
    assert block.ordered is True
    assert [item.text for item in block.items] == ["one", "two", "three"]


def test_bullet_majority_is_unordered():
    [block] = normalize("Things to try:\n- pray\n- rest\n- listen")
    assert isinstance(block, ListBlock)
    assert block.ordered is False
    assert [item.text for item in block.items] == ["Things to try:", "pray", "rest", "listen"]


def test_markdown_heading_keeps_level():
    blocks = normalize("## The Shepherd's Task\n\nSome words about shepherding that end here.")
    assert isinstance(blocks[0], HeadingBlock)
    assert blocks[0].level == 2 and blocks[0].text == "The Shepherd's Task"


def test_question_subheading():
    blocks = normalize("First paragraph of the piece ends here.\n\nWhy does it matter?")
    assert isinstance(blocks[1], HeadingBlock) and blocks[1].level == 2


def test_long_question_is_paragraph():
    question = "Why would any leader want to keep doing this when the results take so long?"
    blocks = normalize("First paragraph of the piece ends here.\n\n" + question)
    assert isinstance(blocks[1], ParagraphBlock)


@pytest.mark.parametrize(
    "text",
    [
        ARTICLE,
        "# Heading One\n\nSome text with a 2) marker inside\nthat spans lines.\n\n- bullet\n- another bullet",
        "Just one paragraph without any structure at all, ending with a period.",
        "Line one\r\nline two\r\n\r\n\r\n  Indented paragraph after blank lines.  ",
        "- \n- real item\n\n* star bullet\n* second",
        "# 1. Introduction\n\nSome text here that is a normal paragraph of prose.",
        "**1.** First, gather your team together before the meeting starts.",
    ],
)
def test_normalize_preserves_words_in_order(text):
    blocks = normalize(text)
    assert block_words(blocks) == content_words(text)


def test_block_order_matches_paragraph_order():
    paragraphs = [f"Paragraph number {n} carries its own sentence." for n in range(1, 8)]
    blocks = normalize("\n\n".join(paragraphs))
    assert [block.text for block in blocks] == paragraphs


def test_reading_order_check_fails_loudly():
    with pytest.raises(ContentInvariantError):
        assert_reading_order_preserved("alpha beta", [ParagraphBlock.plain("beta alpha")])


def test_auto_emphasis_bolds_lead_sentence():
    text = "First para. More text here.\n\nSecond para. Even more text."
    blocks = normalize(text, emphasis_interval=2)
    assert blocks[0].runs[0].emphasis == "none"
    assert [(run.text, run.emphasis) for run in blocks[1].runs] == [
        ("Second para.", "bold"),
        (" Even more text.", "none"),
    ]


def test_enforce_quote_blocks_wraps_quoted_headings_and_paragraphs():
    blocks = enforce_quote_blocks(
        [
            HeadingBlock(level=2, text="“Feed my sheep”"),
            ParagraphBlock.plain("He said \"go\" and we went."),
            ParagraphBlock.plain("Nothing quoted here."),
        ]
    )
    assert isinstance(blocks[0], BlockquoteBlock)
    assert isinstance(blocks[1], BlockquoteBlock)
    assert isinstance(blocks[2], ParagraphBlock)


def test_is_quote_negative():
    assert not is_quote("A plain statement about leadership and vision.")
    assert not is_quote("The church’s mission")


def test_numbered_line_inside_paragraph_keeps_its_number():
    text = "Opening words of this paragraph\n1. only this line is numbered\nthen prose continues\nand ends here."
    [block] = normalize(text)
    assert isinstance(block, ParagraphBlock)
    assert "1. only this line is numbered" in block.text


def test_numbered_heading_and_bold_number_keep_their_numbers():
    heading, _ = normalize("# 1. Introduction\n\nSome text here that is a normal paragraph of prose.")
    assert heading.text == "1. Introduction"
    [paragraph] = normalize("**1.** First, gather your team together before the meeting starts.")
    assert (paragraph.runs[0].text, paragraph.runs[0].emphasis) == ("1.", "bold")


@pytest.mark.parametrize("segment", ["He told us to 'keep going'", "She whispered ‘stay the course’"])
def test_single_quote_endings_are_quotes(segment):
    assert is_quote(segment)
    blocks = normalize("Opening paragraph that ends with a period.\n\n" + segment)
    assert isinstance(blocks[1], BlockquoteBlock)
