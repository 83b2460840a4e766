"""
Manifest Locator

The live manifest URL is not published anywhere stable, so it is discovered by
probing a fixed, priority-ordered list of page shapes for a channel reference
and pulling the embedded ``hlsManifestUrl`` field out of the page body.
Candidates are tried one at a time; the first page that yields an HTTP(S) URL
wins and the rest are never fetched.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
from urllib.parse import quote, unquote

from errors import ExtractionError, ManifestNotFound, ProxyError, UpstreamError
from upstream import UpstreamClient, is_http_url

logger = logging.getLogger(__name__)

PRIMARY_HOST = "https://www.youtube.com"
MOBILE_HOST = "https://m.youtube.com"

# Alternate origins, each crossed with the handle / video-id page shape
ALTERNATE_HOSTS = [
    "https://youtube.com",
    "https://m.youtube.com",
    "https://www.youtube.com/embed",
    "https://www.youtube-nocookie.com",
]

MANIFEST_FIELD = "hlsManifestUrl"


@dataclass(frozen=True)
class PageCandidate:
    shape: str
    url: str


def _ref(channel_ref: str) -> str:
    return quote(channel_ref, safe="@-_.")


def _alternate_shape(host: str) -> Callable[[str], str]:
    def build(channel_ref: str) -> str:
        if channel_ref.startswith("@"):
            return f"{host}/{_ref(channel_ref)}/live"
        return f"{host}/watch?v={_ref(channel_ref)}"
    return build


# Order is the search priority. New page shapes are appended here.
PAGE_SHAPES: List[Tuple[str, Callable[[str], str]]] = [
    ("handle live page", lambda ref: f"{PRIMARY_HOST}/{_ref(ref)}/live"),
    ("channel id live page", lambda ref: f"{PRIMARY_HOST}/channel/{_ref(ref)}/live"),
    ("watch page", lambda ref: f"{PRIMARY_HOST}/watch?v={_ref(ref)}"),
    ("embed page", lambda ref: f"{PRIMARY_HOST}/embed/{_ref(ref)}"),
    ("mobile watch page", lambda ref: f"{MOBILE_HOST}/watch?v={_ref(ref)}"),
] + [
    (f"alternate host {host}", _alternate_shape(host)) for host in ALTERNATE_HOSTS
]


def build_candidates(channel_ref: str) -> List[PageCandidate]:
    return [PageCandidate(shape=name, url=build(channel_ref)) for name, build in PAGE_SHAPES]


# Extraction strategies: page text -> raw matched value, or None when the
# pattern does not occur.

_MARKER_ADJACENT = re.compile(r'(?<=hlsManifestUrl":")[^"]+\.m3u8')
_LABELED_FIELD = re.compile(r'"hlsManifestUrl"\s*:\s*"([^"]+\.m3u8)"')
_BARE_URL = re.compile(r'https?://[^"\']+\.m3u8[^"\']*')
_ALTERNATE_FIELD = re.compile(r'"url"\s*:\s*"([^"]+\.m3u8[^"]*)"')
_STREAMING_DATA = re.compile(r'"streamingData"\s*:\s*(\{[^}]+\})')


def extract_marker_adjacent(text: str) -> Optional[str]:
    match = _MARKER_ADJACENT.search(text)
    return match.group(0) if match else None


def extract_labeled_field(text: str) -> Optional[str]:
    match = _LABELED_FIELD.search(text)
    return match.group(1) if match else None


def extract_bare_url(text: str) -> Optional[str]:
    match = _BARE_URL.search(text)
    return match.group(0) if match else None


def extract_alternate_field(text: str) -> Optional[str]:
    match = _ALTERNATE_FIELD.search(text)
    return match.group(1) if match else None


def extract_streaming_data(text: str) -> Optional[str]:
    """Parse the ``streamingData`` object and read the manifest field from it."""
    match = _STREAMING_DATA.search(text)
    if not match:
        return None
    try:
        data = json.loads(match.group(1))
    except ValueError:
        logger.debug("streamingData object is not valid JSON")
        return None
    value = data.get(MANIFEST_FIELD) if isinstance(data, dict) else None
    return value if isinstance(value, str) and value else None


EXTRACTORS: List[Tuple[str, Callable[[str], Optional[str]]]] = [
    ("marker-adjacent", extract_marker_adjacent),
    ("labeled field", extract_labeled_field),
    ("bare url", extract_bare_url),
    ("alternate field", extract_alternate_field),
    ("streamingData object", extract_streaming_data),
]


def normalize_manifest_url(raw: str) -> str:
    value = raw.replace("\\u0026", "&").replace("&amp;", "&")
    return unquote(value)


def extract_manifest_url(text: str) -> Optional[str]:
    """
    Run the extractors in order. The first one that matches decides the
    outcome for this page: its value is returned if it normalizes to an
    HTTP(S) URL, otherwise None.
    """
    for name, extractor in EXTRACTORS:
        raw = extractor(text)
        if not raw:
            continue
        candidate = normalize_manifest_url(raw)
        if is_http_url(candidate):
            logger.debug(f"Manifest URL matched by {name} strategy")
            return candidate
        logger.debug(f"{name} strategy matched a non-HTTP value: {candidate[:80]!r}")
        return None
    return None


class ManifestLocator:
    def __init__(self, upstream: UpstreamClient):
        self.upstream = upstream

    async def locate(self, channel_ref: str) -> str:
        """Return the master playlist URL for a channel handle, channel id or video id."""
        if not channel_ref:
            raise ManifestNotFound("Could not find hlsManifestUrl: empty channel reference")

        last_error: Optional[ProxyError] = None
        for candidate in build_candidates(channel_ref):
            try:
                manifest_url = await self._try_candidate(candidate)
            except (UpstreamError, ExtractionError) as e:
                last_error = e
                logger.warning(f"Approach failed ({candidate.shape}): {e}")
                continue

            logger.info(f"Found manifest URL via {candidate.shape}: {manifest_url}")
            return manifest_url

        logger.error(f"All approaches failed to find manifest URL for {channel_ref}")
        raise ManifestNotFound(
            "Could not find hlsManifestUrl for this handle/id. "
            f"Last error: {last_error or 'Unknown error'}"
        )

    async def _try_candidate(self, candidate: PageCandidate) -> str:
        page = await self.upstream.fetch_text(candidate.url)
        manifest_url = extract_manifest_url(page.text)
        if not manifest_url:
            raise ExtractionError(f"hlsManifestUrl not found in page HTML ({candidate.url})")
        return manifest_url
