"""
HLS Proxy service

Composes the upstream client, manifest locator, playlist rewriter and segment
relay into the three proxy modes. Nothing here outlives a request except the
shared HTTP client and the observability counters.
"""

import httpx
import logging
from typing import Dict, Optional

from fastapi import Response

from errors import BadRequest, UpstreamError
from headers import playlist_headers, text_headers
from manifest_locator import ManifestLocator
from playlist_rewriter import PlaylistRewriter, RewrittenPlaylist
from segment_relay import SegmentRelay
from stats import ProxyStats
from upstream import UpstreamClient, is_http_url

logger = logging.getLogger(__name__)


class HLSProxy:
    def __init__(
        self,
        upstream: Optional[UpstreamClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.upstream = upstream or UpstreamClient(transport=transport)
        self.locator = ManifestLocator(self.upstream)
        self.relay = SegmentRelay(self.upstream)
        self.stats = ProxyStats()

    async def stop(self):
        await self.upstream.aclose()
        logger.info("HLS proxy stopped")

    async def master_playlist(self, channel_ref: str, proxy_base_url: str, debug: bool = False) -> Response:
        """Discover the channel's master playlist and serve it rewritten to ``?variant=`` links."""
        manifest_url = await self.locator.locate(channel_ref)

        try:
            document = await self.upstream.fetch_text(manifest_url)
        except UpstreamError as e:
            logger.error(f"Error processing manifest: {e}")
            raise UpstreamError(f"Error processing manifest: {e}") from e

        rewritten = PlaylistRewriter(proxy_base_url).rewrite_master(document.text, manifest_url)
        logger.info(f"Serving master playlist for {channel_ref} (encrypted={rewritten.encrypted})")
        return self._playlist_response(rewritten, debug)

    async def variant_playlist(self, variant_url: str, proxy_base_url: str, debug: bool = False) -> Response:
        """Fetch a variant playlist fresh and serve it rewritten to ``?url=`` links."""
        if not is_http_url(variant_url):
            raise BadRequest("Invalid variant URL")

        try:
            document = await self.upstream.fetch_text(variant_url)
        except UpstreamError as e:
            logger.error(f"Error processing variant playlist: {e}")
            raise UpstreamError(f"Error processing variant playlist: {e}") from e

        # Relative segment references resolve against the requested URL, even after a redirect
        rewritten = PlaylistRewriter(proxy_base_url).rewrite_variant(document.text, variant_url)
        return self._playlist_response(rewritten, debug)

    async def segment(self, target_url: str, range_header: Optional[str] = None) -> Response:
        return await self.relay.relay(target_url, range_header)

    def _playlist_response(self, rewritten: RewrittenPlaylist, debug: bool) -> Response:
        if debug:
            return Response(content=rewritten.debug_dump(), status_code=200, headers=text_headers())
        return Response(content=rewritten.content, status_code=200, headers=playlist_headers())

    def get_stats(self) -> Dict:
        return self.stats.snapshot()
