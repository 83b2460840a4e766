"""
Playlist Rewriter

Rewrites master and variant playlists so every reference routes back through
the proxy. Rewriting is textual: directive lines, blank lines and line count
are preserved exactly and only reference text changes.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urljoin, urlsplit

import m3u8

logger = logging.getLogger(__name__)

ENCRYPTION_MARKER = re.compile(r"#EXT-X-KEY", re.IGNORECASE)
# Absolute URLs anywhere in the text; a comma, quote or whitespace ends one
ABSOLUTE_URL = re.compile(r"https?://[^\s,\"']+")
LINE_BREAK = re.compile(r"\r\n|\r|\n")


def is_encrypted(text: str) -> bool:
    return ENCRYPTION_MARKER.search(text) is not None


def proxy_link(proxy_base_url: str, param: str, target: str) -> str:
    return f"{proxy_base_url}?{param}={quote(target, safe='')}"


def resolve_reference(reference: str, source_url: str) -> Optional[str]:
    """Resolve a playlist line against its playlist URL; None if malformed."""
    try:
        resolved = urljoin(source_url, reference.strip())
        parsed = urlsplit(resolved)
        # Accessing the port validates it
        parsed.port
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return resolved


def summarize_playlist(text: str) -> str:
    """Short structural description for debug output."""
    try:
        playlist = m3u8.loads(text)
    except Exception as e:
        logger.debug(f"m3u8 could not load playlist for summary: {e}")
        return "unparsed"
    if playlist.is_variant:
        return f"master, {len(playlist.playlists)} variants, {len(playlist.media)} media renditions"
    return f"media, {len(playlist.segments)} segments"


@dataclass
class RewrittenPlaylist:
    source_url: str
    original: str
    content: str
    encrypted: bool
    is_master: bool

    def debug_dump(self) -> str:
        summary = summarize_playlist(self.original)
        if self.is_master:
            return (
                "# Proxy debugging\n"
                f"# source_manifest: {self.source_url}\n"
                f"# master_encrypted: {str(self.encrypted).lower()}\n"
                f"# playlist: {summary}\n\n"
                f"{self.original}\n\n--- rewritten ---\n\n{self.content}"
            )
        return (
            "# Proxy debugging\n"
            f"# variant_source: {self.source_url}\n"
            f"# encrypted: {str(self.encrypted).lower()}\n"
            f"# playlist: {summary}\n\n"
            f"--- original variant ---\n\n{self.original}\n\n"
            f"--- rewritten variant ---\n\n{self.content}"
        )


class PlaylistRewriter:
    def __init__(self, proxy_base_url: str):
        self.proxy_base_url = proxy_base_url

    def rewrite_master(self, text: str, source_url: str = "") -> RewrittenPlaylist:
        """Point every absolute URL, wherever it sits, at ``?variant=``."""
        rewritten = ABSOLUTE_URL.sub(
            lambda m: proxy_link(self.proxy_base_url, "variant", m.group(0)), text)
        return RewrittenPlaylist(
            source_url=source_url,
            original=text,
            content=rewritten,
            encrypted=is_encrypted(text),
            is_master=True,
        )

    def rewrite_variant(self, text: str, source_url: str) -> RewrittenPlaylist:
        """Point every reference line at ``?url=``, resolved against ``source_url``."""
        lines = []
        for line in LINE_BREAK.split(text):
            if not line.strip() or line.startswith("#"):
                lines.append(line)
                continue
            resolved = resolve_reference(line, source_url)
            if resolved is None:
                logger.warning(f"Failed to resolve URL: {line!r}")
                lines.append(line)
                continue
            lines.append(proxy_link(self.proxy_base_url, "url", resolved))

        return RewrittenPlaylist(
            source_url=source_url,
            original=text,
            content="\n".join(lines),
            encrypted=is_encrypted(text),
            is_master=False,
        )
