from fastapi import FastAPI, HTTPException, Query, Request, Depends, Header
from fastapi.responses import PlainTextResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from contextlib import asynccontextmanager
import logging
from urllib.parse import urlparse
from typing import Optional

from config import settings, VERSION
from errors import BadRequest, InternalError, ProxyError
from headers import merge_vary, text_headers
from hls_proxy import HLSProxy
from models import HealthCheck, ProxyMode, RequestStats

logger = logging.getLogger(__name__)


# Reverse proxy header -> predicate on its (lower-cased) value
HTTPS_HINTS = [
    ("x-forwarded-proto", lambda value: value == "https"),
    # NGINX Proxy Manager sets this even when X-Forwarded-Proto is wrong
    ("x-forwarded-scheme", lambda value: value == "https"),
    ("x-forwarded-ssl", lambda value: value == "on"),
    ("front-end-https", lambda value: value == "on"),
    ("forwarded", lambda value: "proto=https" in value),
    ("x-forwarded-port", lambda value: value == "443"),
]


def detect_https_from_headers(request: Request) -> bool:
    """True when a fronting proxy reports that the client connected over HTTPS."""
    for header, matches in HTTPS_HINTS:
        value = request.headers.get(header)
        if value and matches(value.lower()):
            logger.debug(f"Detected HTTPS via {header}: {value}")
            return True
    return False


def build_proxy_base_url(request: Request) -> str:
    """
    The URL rewritten playlist links point back to: this request's URL
    without its query string. PUBLIC_URL, when set, supplies the scheme, host,
    port and any path prefix instead.
    """
    https_detected = detect_https_from_headers(request)
    public_url = settings.PUBLIC_URL

    if public_url:
        public_with_scheme = public_url if public_url.startswith(('http://', 'https://')) else f"http://{public_url}"
        parsed = urlparse(public_with_scheme)
        scheme = "https" if https_detected else (parsed.scheme or "http")
        prefix = (parsed.path or "").rstrip("/")
        return f"{scheme}://{parsed.netloc}{prefix}{request.url.path}"

    base = str(request.url).split("?", 1)[0]
    if https_detected and base.startswith("http://"):
        base = "https://" + base[len("http://"):]
    return base


def get_client_info(request: Request):
    """Extract client information from request"""
    # X-Forwarded-For can contain multiple IPs: "client, proxy1, proxy2"
    ip_address = "unknown"
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        ip_address = forwarded_for.split(",")[0].strip()
    elif request.client:
        ip_address = request.client.host

    return {
        "user_agent": request.headers.get("user-agent") or "unknown",
        "ip_address": ip_address
    }


hls_proxy = HLSProxy()


def get_hls_proxy() -> HLSProxy:
    return hls_proxy


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("live-hls-proxy starting up...")
    yield
    logger.info("live-hls-proxy shutting down...")
    await hls_proxy.stop()


app = FastAPI(
    title="live-hls-proxy",
    version=VERSION,
    description="Resolves a channel's live HLS manifest and proxies the playlist hierarchy",
    lifespan=lifespan,
    root_path=settings.ROOT_PATH,
    docs_url=settings.DOCS_URL,
    redoc_url=settings.REDOC_URL,
    openapi_url=settings.OPENAPI_URL,
)

# Preflight handling; proxy responses also carry explicit CORS headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "HEAD", "OPTIONS"],
    allow_headers=["Range", "Accept", "Content-Type"],
    expose_headers=["Content-Length", "Content-Range"],
)


class VaryMergeMiddleware:
    """
    Collapse repeated Vary tokens on the way out. Relayed segments already say
    `Vary: Origin` and newer CORSMiddleware releases append it again.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_merged_vary(message: Message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                headers = MutableHeaders(scope=message)
                vary = merge_vary(headers.getlist("vary"))
                if vary:
                    headers["Vary"] = vary
            await send(message)

        await self.app(scope, receive, send_with_merged_vary)


# Added last so it wraps CORSMiddleware and sees its headers
app.add_middleware(VaryMergeMiddleware)


@app.exception_handler(ProxyError)
async def proxy_error_handler(request: Request, exc: ProxyError):
    return PlainTextResponse(str(exc), status_code=exc.status_code, headers=text_headers())


async def verify_token(
    x_api_token: Optional[str] = Header(None, alias="X-API-Token"),
    api_token: Optional[str] = Query(None, description="Alternative to the X-API-Token header"),
):
    """Guard for the management endpoints; a no-op unless API_TOKEN is configured."""
    expected = settings.API_TOKEN
    if not expected:
        return

    provided = x_api_token or api_token
    if not provided:
        status_code, detail = 401, "API token required (X-API-Token header or api_token query parameter)"
    elif provided != expected:
        status_code, detail = 403, "Invalid API token"
    else:
        return

    logger.warning(f"Rejected management request: {detail}")
    raise HTTPException(status_code=status_code, detail=detail, headers={"WWW-Authenticate": "Bearer"})


@app.get("/health", response_model=HealthCheck, dependencies=[Depends(verify_token)])
async def health_check(proxy: HLSProxy = Depends(get_hls_proxy)):
    """Health check endpoint with request counters"""
    return HealthCheck(
        status="healthy",
        version=VERSION,
        stats=RequestStats(**proxy.get_stats()),
    )


@app.get("/stats", dependencies=[Depends(verify_token)])
async def get_stats(proxy: HLSProxy = Depends(get_hls_proxy)):
    return proxy.get_stats()


@app.get("/{full_path:path}")
async def dispatch(
    full_path: str,
    request: Request,
    proxy: HLSProxy = Depends(get_hls_proxy),
) -> Response:
    """
    Route /{channel_ref}/{name}.m3u8 to one proxy mode:
    ``?url=`` segment relay, else ``?variant=`` variant playlist, else master playlist.
    """
    client_info = get_client_info(request)
    logger.info(f"Processing request for: /{full_path} from {client_info['ip_address']}")

    parts = [part for part in full_path.split("/") if part]
    if len(parts) < 2:
        raise BadRequest("Usage: /@handle/stream.m3u8")

    channel_ref, filename = parts[0], parts[1]
    if not filename.endswith(".m3u8"):
        raise BadRequest("Only .m3u8 supported")

    params = request.query_params
    if "url" in params:
        mode = ProxyMode.SEGMENT
    elif "variant" in params:
        mode = ProxyMode.VARIANT
    else:
        mode = ProxyMode.MASTER
    debug = bool(params.get("debug"))

    proxy.stats.request_started(mode)
    failed = True
    try:
        if mode == ProxyMode.SEGMENT:
            response = await proxy.segment(params.get("url"), request.headers.get("range"))
        else:
            proxy_base_url = build_proxy_base_url(request)
            if mode == ProxyMode.VARIANT:
                response = await proxy.variant_playlist(params.get("variant"), proxy_base_url, debug)
            else:
                response = await proxy.master_playlist(channel_ref, proxy_base_url, debug)
        failed = False
        return response
    except ProxyError:
        raise
    except Exception as e:
        logger.error(f"Error handling {mode.value} request: {e}")
        raise InternalError(f"Internal error: {e}")
    finally:
        proxy.stats.request_finished(failed)
