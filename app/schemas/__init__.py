from app.schemas.common import ApiEnvelope, ApiError
from app.schemas.smart_import import (
    BlockquoteBlock,
    ContentBlock,
    CreatePostOut,
    CreatePostRequest,
    DocumentMetadata,
    EnrichmentOutput,
    ExtractedImage,
    FormatRequest,
    HeadingBlock,
    ImageBlock,
    ImportOptions,
    ListBlock,
    ParagraphBlock,
    PostFormatOptions,
    PostRecord,
    PreviewOut,
    PreviewRequest,
    RawDocument,
    StructuredContent,
    TextImportRequest,
    TextRun,
    UrlImportRequest,
)

__all__ = [
    "ApiEnvelope",
    "ApiError",
    "BlockquoteBlock",
    "ContentBlock",
    "CreatePostOut",
    "CreatePostRequest",
    "DocumentMetadata",
    "EnrichmentOutput",
    "ExtractedImage",
    "FormatRequest",
    "HeadingBlock",
    "ImageBlock",
    "ImportOptions",
    "ListBlock",
    "ParagraphBlock",
    "PostFormatOptions",
    "PostRecord",
    "PreviewOut",
    "PreviewRequest",
    "RawDocument",
    "StructuredContent",
    "TextImportRequest",
    "TextRun",
    "UrlImportRequest",
]
