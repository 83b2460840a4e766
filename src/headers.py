"""Static header sets shared by the proxy responses and the upstream client."""

from typing import Dict, Iterable, Optional
from urllib.parse import urlsplit

from config import settings

NO_STORE = "no-store, no-cache, must-revalidate, max-age=0"
PLAYLIST_MEDIA_TYPE = "application/vnd.apple.mpegurl"


def get_content_type(url: str) -> str:
    """Determine content type based on URL extension (query string ignored)"""
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        path = url.lower()
    if path.endswith('.m3u8'):
        return PLAYLIST_MEDIA_TYPE
    elif path.endswith('.ts'):
        return 'video/mp2t'
    elif path.endswith(('.mp4', '.m4s')):
        return 'video/mp4'
    elif path.endswith('.aac'):
        return 'audio/aac'
    elif path.endswith('.vtt'):
        return 'text/vtt'
    else:
        return 'application/octet-stream'


def cors_headers(additional: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    headers = {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "Range,Accept,Content-Type",
        "Access-Control-Expose-Headers": "Content-Length,Content-Range",
        "Access-Control-Allow-Methods": "GET,HEAD,OPTIONS",
        "Cache-Control": NO_STORE,
    }
    if additional:
        headers.update(additional)
    return headers


def text_headers() -> Dict[str, str]:
    """Headers for plain-text bodies (errors, debug dumps)"""
    return cors_headers({"Content-Type": "text/plain; charset=utf-8"})


def playlist_headers() -> Dict[str, str]:
    return cors_headers({"Content-Type": PLAYLIST_MEDIA_TYPE})


def browser_headers(user_agent: Optional[str] = None) -> Dict[str, str]:
    """The fixed identity attached to every outbound fetch."""
    return {
        "User-Agent": user_agent or settings.DEFAULT_USER_AGENT,
        "Accept": "*/*",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate, br",
        "DNT": "1",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    }


def merge_vary(values: Iterable[str]) -> str:
    """Join Vary header values, keeping each token once (case-insensitive, first spelling wins)."""
    tokens = []
    seen = set()
    for value in values:
        for token in value.split(","):
            token = token.strip()
            if token and token.lower() not in seen:
                seen.add(token.lower())
                tokens.append(token)
    return ", ".join(tokens)
