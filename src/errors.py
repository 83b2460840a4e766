"""
Error taxonomy for the proxy.

Every error that can reach a client is a ProxyError carrying the HTTP status
it renders as. The api module turns them into plain-text responses.
"""

from typing import Optional


class ProxyError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class BadRequest(ProxyError):
    """Malformed path, wrong suffix or an unusable url/variant value."""
    status_code = 400


class ManifestNotFound(ProxyError):
    """Every manifest candidate page was exhausted without a result."""
    status_code = 404


class ExtractionError(ProxyError):
    """A candidate page was fetched but held no usable manifest URL."""
    status_code = 404


class UpstreamError(ProxyError):
    """Transport failure or unusable response from the origin."""
    status_code = 502


class UpstreamStatusError(UpstreamError):
    def __init__(self, url: str, upstream_status: int, message: Optional[str] = None):
        super().__init__(message or f"Upstream returned {upstream_status} for {url}")
        self.url = url
        self.upstream_status = upstream_status


class UpstreamBlocked(UpstreamStatusError):
    def __init__(self, url: str, upstream_status: int):
        super().__init__(url, upstream_status,
                         f"Upstream blocked ({upstream_status}) for {url}")


class UpstreamTimeout(UpstreamError):
    pass


class InternalError(ProxyError):
    status_code = 500
