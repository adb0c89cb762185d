"""Source acquisition: remote pages, pasted text and uploaded files."""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import urljoin

import httpx

from app.core.config import get_settings
from app.core.errors import EmptyContent, FetchFailed, FetchTimeout, TooLarge
from app.services.validation import ensure_valid, validate_file_upload, validate_url
from app.utils.network import assert_allowed_url

logger = logging.getLogger(__name__)


async def _read_capped(response: httpx.Response, limit: int) -> bytes:
    chunks: list[bytes] = []
    received = 0
    async for chunk in response.aiter_bytes():
        received += len(chunk)
        if received > limit:
            raise TooLarge(f"Remote document exceeds {limit} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def _follow(client: httpx.AsyncClient, url: str, headers: dict[str, str]) -> tuple[str, str]:
    settings = get_settings()
    current = url
    for _ in range(settings.ingest_max_redirects + 1):
        # every hop is re-checked so a redirect cannot point into the local network
        await asyncio.to_thread(assert_allowed_url, current)
        async with client.stream("GET", current, headers=headers) as response:
            if response.is_redirect:
                location = response.headers.get("location")
                if not location:
                    raise FetchFailed(
                        "Redirect without Location header",
                        status_code=response.status_code,
                        status_text=response.reason_phrase,
                    )
                current = urljoin(str(response.url), location)
                continue
            if not response.is_success:
                raise FetchFailed(
                    f"Failed to fetch URL: {response.status_code} {response.reason_phrase}",
                    status_code=response.status_code,
                    status_text=response.reason_phrase,
                )
            body = await _read_capped(response, settings.max_upload_bytes)
            markup = body.decode(response.charset_encoding or "utf-8", errors="replace")
            return markup, str(response.url)
    raise FetchFailed(f"Too many redirects (limit {settings.ingest_max_redirects})")


async def fetch_from_url(url: str, transport: httpx.AsyncBaseTransport | None = None) -> tuple[str, str]:
    """Return ``(markup, resolved_base_url)`` for an http(s) page.

    The whole exchange, redirects included, is bounded by
    ``ingest_http_timeout_seconds``. Nothing is retried here.
    """
    ensure_valid(validate_url(url))
    settings = get_settings()
    headers = {
        "User-Agent": settings.ingest_user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    }
    timeout = settings.ingest_http_timeout_seconds
    try:
        async with asyncio.timeout(timeout):
            async with httpx.AsyncClient(
                timeout=timeout, follow_redirects=False, transport=transport
            ) as client:
                markup, base_url = await _follow(client, url.strip(), headers)
    except (TimeoutError, httpx.TimeoutException) as exc:
        raise FetchTimeout(f"Fetching {url} did not complete within {timeout}s") from exc
    except httpx.HTTPError as exc:
        raise FetchFailed(f"Failed to fetch URL: {exc}") from exc

    logger.info("Fetched %s (%d chars)", base_url, len(markup))
    return markup, base_url


def accept_text(text: str | None) -> str:
    cleaned = (text or "").strip()
    if not cleaned:
        raise EmptyContent("Text content is empty")
    return cleaned


def accept_file(data: bytes, mime_type: str | None, filename: str | None) -> bytes:
    ensure_valid(validate_file_upload(filename, mime_type, len(data)))
    return data
