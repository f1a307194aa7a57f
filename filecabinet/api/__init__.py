"""FastAPI application factory.

Run with ``uvicorn filecabinet.api:create_app --factory`` or ``python main.py serve``.
"""

import secrets
import time

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import RequestResponseEndpoint
from starlette.middleware.sessions import SessionMiddleware

from filecabinet import __version__
from filecabinet.config import config
from filecabinet.pipeline import ChatPipeline

from .errors import register_error_handlers
from .routes import router

logger = config.get_logger(__name__)

SESSION_COOKIE = "filecabinet_session"


def create_app(
    pipeline: ChatPipeline | None = None,
    session_secret: str | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        pipeline: Pipeline serving the routes. If None, one is built from config.
        session_secret: Secret signing the session cookie. If None, uses
            SESSION_SECRET, or an ephemeral secret when that is unset.

    Returns:
        The configured application.
    """
    logger.info("Starting application setup...")

    if pipeline is None:
        pipeline = ChatPipeline()
    pipeline.initialize()

    secret = session_secret or config.get_session_secret()
    if not secret:
        logger.warning(
            "SESSION_SECRET not set; sessions will not survive a restart"
        )
        secret = secrets.token_urlsafe(32)

    app = FastAPI(
        title="FileCabinet",
        description="Chat over uploaded PDFs with similarity-based retrieval",
        version=__version__,
    )
    app.state.pipeline = pipeline

    app.add_middleware(
        SessionMiddleware,
        secret_key=secret,
        session_cookie=SESSION_COOKIE,
        https_only=config.is_production(),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Log each request with its status and latency."""  # noqa: DOC201
        start_time = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.3fs)",
            request.method,
            request.url.path,
            response.status_code,
            time.perf_counter() - start_time,
        )
        return response

    register_error_handlers(app)
    app.include_router(router)

    logger.info("Application setup complete")
    return app


__all__ = ["create_app"]
