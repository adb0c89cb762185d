from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Emphasis = Literal["none", "bold", "italic"]
PostStatus = Literal["draft", "published"]


class ImportOptions(BaseModel):
    generate_excerpt: bool = True
    detect_author: bool = True
    extract_images: bool = True
    suggest_categories: bool = True
    custom_prompt: str | None = None

    @field_validator("custom_prompt")
    @classmethod
    def blank_prompt_is_absent(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()


class ExtractedImage(BaseModel):
    url: str
    alt: str | None = None
    caption: str | None = None
    width: int | None = None
    height: int | None = None


class DocumentMetadata(BaseModel):
    word_count: int = Field(ge=0)
    reading_time_minutes: int = Field(ge=1)
    source_url: str | None = None
    extracted_at: datetime


class RawDocument(BaseModel):
    """Extraction output. Frozen: enrichment returns a modified copy."""

    model_config = ConfigDict(frozen=True)

    title: str
    body: str
    excerpt: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    images: list[ExtractedImage] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    metadata: DocumentMetadata | None = None

    @field_validator("categories")
    @classmethod
    def dedupe_categories(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for item in value:
            label = item.strip()
            if label and label not in seen:
                seen.append(label)
        return seen


class TextRun(BaseModel):
    text: str
    emphasis: Emphasis = "none"


class ParagraphBlock(BaseModel):
    type: Literal["paragraph"] = "paragraph"
    runs: list[TextRun] = Field(min_length=1)

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)

    @classmethod
    def plain(cls, text: str) -> "ParagraphBlock":
        return cls(runs=[TextRun(text=text)])


class HeadingBlock(BaseModel):
    type: Literal["heading"] = "heading"
    level: int = Field(ge=1, le=6)
    text: str


class BlockquoteBlock(BaseModel):
    type: Literal["blockquote"] = "blockquote"
    paragraphs: list[ParagraphBlock] = Field(min_length=1)


class ListBlock(BaseModel):
    type: Literal["list"] = "list"
    ordered: bool = False
    items: list[ParagraphBlock] = Field(min_length=1)


class ImageBlock(BaseModel):
    type: Literal["image"] = "image"
    url: str
    alt: str = ""


ContentBlock = Annotated[
    HeadingBlock | ParagraphBlock | BlockquoteBlock | ListBlock | ImageBlock,
    Field(discriminator="type"),
]


class StructuredContent(BaseModel):
    blocks: list[ContentBlock] = Field(default_factory=list)


class EnrichmentOutput(BaseModel):
    title: str | None = None
    excerpt: str | None = None
    author: str | None = None
    categories: list[str] = Field(default_factory=list)
    confidence: float | None = Field(default=None, ge=0, le=1)


class PostRecord(BaseModel):
    title: str
    slug: str
    content: list[ContentBlock]
    excerpt: str | None = None
    cover_image_url: str | None = None
    cover_image_alt: str | None = None
    author_name: str | None = None
    published_at: datetime | None = None
    seo_title: str
    seo_description: str
    word_count: int
    reading_time: int
    status: PostStatus = "draft"
    categories: list[str] = Field(default_factory=list)
    content_hash: str


class PostFormatOptions(BaseModel):
    author_name: str | None = Field(default=None, max_length=100)
    create_author: bool = True
    status: PostStatus = "published"
    format_with_ai: bool = False


class UrlImportRequest(BaseModel):
    url: str
    options: ImportOptions = Field(default_factory=ImportOptions)


class TextImportRequest(BaseModel):
    text: str
    title: str | None = None
    options: ImportOptions = Field(default_factory=ImportOptions)


class PreviewRequest(BaseModel):
    parsed_content: RawDocument
    options: PostFormatOptions = Field(default_factory=PostFormatOptions)


class CreatePostRequest(PostFormatOptions):
    parsed_content: RawDocument


class FormatRequest(BaseModel):
    text: str = Field(min_length=1)
    custom_prompt: str | None = None


class PreviewOut(BaseModel):
    parsed_content: RawDocument
    post: PostRecord
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class CreatePostOut(BaseModel):
    post_id: int
    slug: str
