import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import httpx
import pytest


class FakeOrigin:
    """Routes outbound requests to canned responses and records every request."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    @staticmethod
    def response(status=200, text=None, content=None, headers=None):
        """
        A response whose body is still unread, like one off the network, so
        the relay can stream its raw bytes.
        """
        response_headers = {}
        if text is not None:
            content = text.encode("utf-8")
            response_headers["Content-Type"] = "text/plain; charset=utf-8"
        body = content or b""
        response_headers["Content-Length"] = str(len(body))
        response_headers.update(headers or {})
        return httpx.Response(status, headers=response_headers, stream=httpx.ByteStream(body))

    def add(self, url, status=200, text=None, content=None, headers=None):
        self.routes[url] = lambda request: self.response(status, text, content, headers)

    def add_handler(self, url, handler):
        self.routes[url] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return self.response(404, text="not found")
        return route(request)

    @property
    def transport(self):
        return httpx.MockTransport(self.handle)

    @property
    def requested_urls(self):
        return [str(r.url) for r in self.requests]


@pytest.fixture
def origin():
    return FakeOrigin()
