import asyncio
import logging
import uuid
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from vidrelay.api import health, info, download
from vidrelay.config.settings import config
from vidrelay.core.errors import VidRelayError
from vidrelay.core.logging import log_error, log_warning, setup_logging
from vidrelay.core.state import state
from vidrelay.i18n import i18n
from vidrelay.services.ytdlp import SubprocessExecutor, YTDLPCommandBuilder
from vidrelay.utils.locale import get_locale

setup_logging()
logger = logging.getLogger("vidrelay")

app = FastAPI(
    title=config.api.title,
    description=config.api.description,
    version=config.api.version,
    docs_url="/docs" if config.api.debug else None,
    redoc_url=None
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)

class RequestIdMiddleware:
    """Tag each HTTP request with a short id (request.state.request_id, X-Request-ID)"""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = uuid.uuid4().hex[:8]
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).append("X-Request-ID", request_id)
            await send(message)

        await self.app(scope, receive, send_with_request_id)

app.add_middleware(RequestIdMiddleware)

@app.exception_handler(VidRelayError)
async def vidrelay_error_handler(request: Request, exc: VidRelayError):
    locale = get_locale(request.headers.get("accept-language"))
    message = i18n.get(exc.message_key, locale=locale, **exc.params)

    if exc.status_code >= 500:
        log_error(request, f"{request.url.path} failed: {exc.message_key}")
    else:
        log_warning(request, f"{request.url.path} rejected: {exc.message_key}")

    return JSONResponse(status_code=exc.status_code, content={"error": message})

# Routes
app.include_router(health.router, tags=["Health"])
app.include_router(info.router, tags=["Info"])
app.include_router(download.router, tags=["Download"])

@app.on_event("startup")
async def startup_event():
    try:
        result = await SubprocessExecutor.run(YTDLPCommandBuilder.build_version_command(), timeout=10.0)
    except (OSError, asyncio.TimeoutError) as e:
        logger.warning(f"yt-dlp not available: {e}")
        return

    if result.returncode == 0:
        state.ytdlp_version = result.stdout.decode(errors="ignore").strip()
        logger.info(f"yt-dlp {state.ytdlp_version}")
    else:
        logger.warning("yt-dlp --version failed")
