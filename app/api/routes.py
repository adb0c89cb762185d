from fastapi import APIRouter, Depends, File, Form, Header, Request, UploadFile
from sqlalchemy.orm import Session

from app.core.auth import client_identifier
from app.core.config import get_settings
from app.core.errors import RateLimitExceeded
from app.core.responses import success_response
from app.db.session import get_db
from app.schemas import (
    ApiEnvelope,
    CreatePostOut,
    CreatePostRequest,
    FormatRequest,
    ImportOptions,
    PostFormatOptions,
    PreviewRequest,
    TextImportRequest,
    UrlImportRequest,
)
from app.services import pipeline
from app.services.enhancement import format_content
from app.services.idempotency import cleanup_expired_keys, resolve_cached_response, store_response
from app.services.llm.client import ai_status
from app.services.sink import SqlAlchemyPostSink
from app.services.validation import ensure_valid, validate_import_options

router = APIRouter(prefix="/v1", tags=["v1"])

CREATE_POST_ENDPOINT = "/v1/smart-import/create-post"


def rate_limited(action: str):
    def enforce(request: Request) -> None:
        limiter = request.app.state.rate_limiter
        if not limiter.try_consume(client_identifier(request), action):
            raise RateLimitExceeded(action)

    return Depends(enforce)


@router.post("/smart-import/parse-url", response_model=ApiEnvelope, dependencies=[rate_limited("parse-url")])
async def parse_url(payload: UrlImportRequest):
    doc = await pipeline.import_from_url(payload.url, payload.options)
    return success_response(doc.model_dump(mode="json"), message="Content parsed successfully")


@router.post("/smart-import/parse-text", response_model=ApiEnvelope, dependencies=[rate_limited("parse-text")])
async def parse_text(payload: TextImportRequest):
    doc = await pipeline.import_from_text(payload.text, payload.title, payload.options)
    return success_response(doc.model_dump(mode="json"), message="Content parsed successfully")


@router.post("/smart-import/parse-file", response_model=ApiEnvelope, dependencies=[rate_limited("parse-file")])
async def parse_file(
    file: UploadFile = File(...),
    generate_excerpt: bool = Form(True),
    detect_author: bool = Form(True),
    extract_images: bool = Form(True),
    suggest_categories: bool = Form(True),
    custom_prompt: str | None = Form(None),
):
    options = ImportOptions(
        generate_excerpt=generate_excerpt,
        detect_author=detect_author,
        extract_images=extract_images,
        suggest_categories=suggest_categories,
        custom_prompt=custom_prompt,
    )
    # read one byte past the ceiling so oversize uploads are detected without buffering them whole
    data = await file.read(get_settings().max_upload_bytes + 1)
    doc = await pipeline.import_from_file(file.filename or "", file.content_type or "", data, options)
    return success_response(doc.model_dump(mode="json"), message="File parsed successfully")


@router.post("/smart-import/preview", response_model=ApiEnvelope)
async def preview(payload: PreviewRequest):
    result = await pipeline.preview(payload.parsed_content, payload.options)
    return success_response(result.model_dump(mode="json"), message="Preview generated successfully")


@router.post("/smart-import/create-post", response_model=ApiEnvelope, dependencies=[rate_limited("create-post")])
async def create_post(
    payload: CreatePostRequest,
    idempotency_key: str = Header(alias="Idempotency-Key"),
    db: Session = Depends(get_db),
):
    request_body = payload.model_dump(mode="json")
    cleanup_expired_keys(db)
    cached = resolve_cached_response(db, idempotency_key, CREATE_POST_ENDPOINT, request_body)
    if cached:
        return success_response(cached, meta={"idempotent_replay": True})

    options = PostFormatOptions.model_validate(payload.model_dump(exclude={"parsed_content"}))
    record = await pipeline.build_post_record(payload.parsed_content, options)
    sink = SqlAlchemyPostSink(db, create_author=options.create_author)
    post_id, slug = sink.create_post(record)
    response = CreatePostOut(post_id=post_id, slug=slug).model_dump()
    store_response(db, idempotency_key, CREATE_POST_ENDPOINT, request_body, response)
    db.commit()
    return success_response(response, message="Post created successfully")


@router.post("/content/format", response_model=ApiEnvelope)
async def format_text(payload: FormatRequest):
    ensure_valid(validate_import_options(ImportOptions(custom_prompt=payload.custom_prompt)))
    blocks = await format_content(payload.text, payload.custom_prompt)
    return success_response({"blocks": [block.model_dump(mode="json") for block in blocks]})


@router.get("/smart-import/status", response_model=ApiEnvelope)
def smart_import_status():
    return success_response(ai_status())
