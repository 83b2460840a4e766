"""
Segment Relay

Fetches one media segment with bounded retry and streams its raw bytes to
the client, still encoded if the origin compressed them. 401/403 from the
origin counts as a failed attempt. After a failed attempt n the relay waits
``retry_delay * n`` before trying again.
"""

import asyncio
import httpx
import logging
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from config import settings
from errors import BadRequest, UpstreamBlocked, UpstreamError, UpstreamStatusError
from headers import NO_STORE, get_content_type
from upstream import UpstreamClient, is_http_url

logger = logging.getLogger(__name__)

BLOCKED_STATUSES = (401, 403)


def build_segment_headers(target_url: str, upstream_headers: httpx.Headers) -> Dict[str, str]:
    headers = {
        "Content-Type": upstream_headers.get("content-type") or get_content_type(target_url),
    }
    # The body is relayed raw, so length and ranges refer to the encoded bytes
    for name in ("Content-Encoding", "Content-Length"):
        value = upstream_headers.get(name)
        if value:
            headers[name] = value
    content_range = upstream_headers.get("content-range")
    if content_range:
        headers["Content-Range"] = content_range
    headers["Accept-Ranges"] = upstream_headers.get("accept-ranges") or "bytes"
    headers["Cache-Control"] = NO_STORE
    headers["Access-Control-Allow-Origin"] = "*"
    headers["Access-Control-Expose-Headers"] = "Content-Length,Content-Range"
    headers["Vary"] = "Origin"
    return headers


class SegmentRelay:
    def __init__(
        self,
        upstream: UpstreamClient,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
        chunk_size: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.upstream = upstream
        self.max_attempts = max_attempts or settings.SEGMENT_MAX_ATTEMPTS
        self.retry_delay = retry_delay if retry_delay is not None else settings.SEGMENT_RETRY_DELAY
        self.timeout = timeout or settings.SEGMENT_TIMEOUT
        self.chunk_size = chunk_size or settings.SEGMENT_CHUNK_SIZE
        self._sleep = sleep

    async def relay(self, target_url: str, range_header: Optional[str] = None) -> StreamingResponse:
        if not is_http_url(target_url):
            raise BadRequest("Invalid segment URL")

        request_headers = {"Range": range_header} if range_header else None
        last_error: Optional[UpstreamError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self._fetch(target_url, request_headers)
            except UpstreamError as e:
                last_error = e
                logger.warning(
                    f"Segment fetch attempt {attempt}/{self.max_attempts} failed: {e}")
                if attempt < self.max_attempts:
                    await self._sleep(self.retry_delay * attempt)
                continue

            logger.debug(f"Relaying segment {target_url} with status {response.status_code}")
            return StreamingResponse(
                self._iter_body(response),
                status_code=response.status_code,
                headers=build_segment_headers(target_url, response.headers),
                background=BackgroundTask(response.aclose),
            )

        logger.error(f"All segment fetch attempts failed for {target_url}")
        raise UpstreamError(f"Failed to fetch segment: {last_error}")

    async def _fetch(self, target_url: str, headers: Optional[Dict[str, str]]) -> httpx.Response:
        response = await self.upstream.open_stream(target_url, headers=headers, timeout=self.timeout)
        if response.status_code in BLOCKED_STATUSES:
            await response.aclose()
            raise UpstreamBlocked(target_url, response.status_code)
        if not response.is_success:
            await response.aclose()
            raise UpstreamStatusError(target_url, response.status_code)
        return response

    async def _iter_body(self, response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_raw(chunk_size=self.chunk_size):
                yield chunk
        finally:
            await response.aclose()
