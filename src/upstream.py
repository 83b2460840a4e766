"""
Upstream HTTP Client

Every outbound fetch goes through here: the browser-like identity headers are
attached, each request carries its own timeout, and httpx exceptions are
translated into the proxy's UpstreamError family.
"""

import httpx
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from config import settings
from errors import UpstreamError, UpstreamStatusError, UpstreamTimeout
from headers import browser_headers

logger = logging.getLogger(__name__)


def is_http_url(value: Optional[str]) -> bool:
    return bool(value) and value.lower().startswith(("http://", "https://"))


@dataclass
class UpstreamDocument:
    url: str
    final_url: str
    status_code: int
    text: str


class UpstreamClient:
    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout if timeout is not None else settings.UPSTREAM_TIMEOUT
        self.http_client = httpx.AsyncClient(
            headers=browser_headers(user_agent),
            timeout=self.timeout,
            follow_redirects=True,
            max_redirects=settings.MAX_REDIRECTS,
            limits=httpx.Limits(
                max_keepalive_connections=20,
                max_connections=100,
                keepalive_expiry=30.0
            ),
            transport=transport,
        )

    async def aclose(self):
        await self.http_client.aclose()

    async def fetch_text(self, url: str, timeout: Optional[float] = None) -> UpstreamDocument:
        """GET a text resource; non-2xx responses raise UpstreamStatusError."""
        logger.debug(f"Fetching: {url}")
        try:
            response = await self.http_client.get(
                url, timeout=timeout if timeout is not None else self.timeout)
        except httpx.TimeoutException as e:
            logger.warning(f"Fetch timed out for {url}: {e!r}")
            raise UpstreamTimeout(f"Timed out fetching {url}") from e
        except httpx.HTTPError as e:
            logger.warning(f"Fetch failed for {url}: {e!r}")
            raise UpstreamError(f"Fetch failed for {url}: {e}") from e

        if not response.is_success:
            raise UpstreamStatusError(url, response.status_code)

        return UpstreamDocument(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            text=response.text,
        )

    async def open_stream(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """
        Start a streaming GET and return the response with its body unread.

        The status code is not checked; the caller classifies it and must
        close the response.
        """
        logger.debug(f"Opening stream: {url}")
        request = self.http_client.build_request(
            "GET",
            url,
            headers=headers,
            timeout=timeout if timeout is not None else self.timeout,
        )
        try:
            return await self.http_client.send(request, stream=True)
        except httpx.TimeoutException as e:
            logger.warning(f"Stream open timed out for {url}: {e!r}")
            raise UpstreamTimeout(f"Timed out fetching {url}") from e
        except httpx.HTTPError as e:
            logger.warning(f"Stream open failed for {url}: {e!r}")
            raise UpstreamError(f"Fetch failed for {url}: {e}") from e
