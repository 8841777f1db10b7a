# src/bosschat/api_server/main.py
"""
Main FastAPI application for the bosschat server.

`create_app` builds every component eagerly and owns it on ``app.state``;
the lifespan handler only does the async parts (creating tables, starting the
session sweep) and tears everything down on shutdown. Run with::

    uvicorn bosschat.api_server.main:create_app --factory
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import Settings, get_settings
from ..exceptions import BossChatError, ConfigError
from ..pipeline import ChatPipeline
from ..providers import AnthropicProvider, BaseProvider
from ..ratelimit import RateLimiter
from ..sessions import SessionStore
from ..storage import ConversationGateway
from ..summarization import Summarizer
from ..tasks import BackgroundTasks, sweep_loop
from .auth import SupabaseTokenVerifier
from .middleware import RequestContextMiddleware
from .models import ErrorResponse
from .routes import chat_router, conversations_router, core_router, pages_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def _build_provider(settings: Settings) -> Optional[BaseProvider]:
    try:
        return AnthropicProvider(
            api_key=settings.anthropic_api_key,
            base_url=settings.anthropic_base_url,
            default_model=settings.chat_model,
            default_max_tokens=settings.max_tokens,
            timeout=settings.upstream_timeout,
        )
    except ConfigError as e:
        logger.critical(f"Fatal error during provider initialization: {e}", exc_info=True)
        logger.warning("API server will start but the chat endpoint will be unavailable")
        return None


def _validation_field(exc: RequestValidationError) -> Optional[str]:
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        if loc:
            return loc[0]
    return None


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    message = str(errors[0].get("msg", "Invalid request"))
    # pydantic prefixes messages raised from validators
    return message.removeprefix("Value error, ")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are a client error: 400 with the offending field."""
    field = _validation_field(exc)
    message = _validation_message(exc)
    logger.info(f"Rejected request to {request.url.path}: {message} (field={field})")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=ErrorResponse(error=message, field=field).model_dump())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error = ErrorResponse(error=str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=error.model_dump(exclude_none=True), headers=exc.headers)


async def bosschat_exception_handler(request: Request, exc: BossChatError) -> JSONResponse:
    logger.error(f"Unhandled service error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=ErrorResponse(error="Internal server error").model_dump(exclude_none=True))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages the lifecycle of the FastAPI application.

    Startup creates missing conversation tables and starts the periodic
    session sweep; shutdown cancels background work and closes the upstream
    client, the database engine and the identity provider client.
    """
    logger.info("API Server starting up...")
    settings: Settings = app.state.settings

    gateway: Optional[ConversationGateway] = app.state.gateway
    if gateway is not None:
        try:
            await gateway.create_tables()
        except Exception as e:
            logger.error(f"Failed to prepare conversation tables: {e}", exc_info=True)
            logger.warning("API server will start but conversation persistence may fail")

    sweep_task = asyncio.create_task(
        sweep_loop(app.state.sessions, app.state.rate_limiter, settings.sweep_interval),
        name="session-sweep",
    )
    logger.info("API Server startup complete")

    yield

    logger.info("API Server shutting down...")
    sweep_task.cancel()
    try:
        await sweep_task
    except asyncio.CancelledError:
        pass

    await app.state.background_tasks.shutdown()

    if app.state.provider is not None:
        await app.state.provider.close()
    if gateway is not None:
        try:
            await gateway.close()
        except Exception as e:
            logger.error(f"Error during database engine cleanup: {e}", exc_info=True)
    if app.state.token_verifier is not None:
        await app.state.token_verifier.close()
    logger.info("API Server shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[BaseProvider] = None,
    gateway: Optional[ConversationGateway] = None,
    verifier: Optional[SupabaseTokenVerifier] = None,
) -> FastAPI:
    """
    Build the application and all of its components.

    Args:
        settings: Runtime settings; read from the environment when None.
        provider: Upstream completion provider; an Anthropic provider is built when None.
        gateway: Conversation store; built from ``settings.database_url`` when None.
        verifier: Token verifier; built from the Supabase settings when None.

    Returns:
        A configured FastAPI instance.
    """
    settings = settings or get_settings()

    if provider is None:
        provider = _build_provider(settings)
    if gateway is None and settings.database_url:
        gateway = ConversationGateway.from_url(settings.database_url)
    if verifier is None and settings.auth_configured:
        verifier = SupabaseTokenVerifier(settings.supabase_url, settings.supabase_anon_key)
    if gateway is None:
        logger.warning("DATABASE_URL not set; conversations will not be persisted")
    if verifier is None:
        logger.warning("Identity provider not configured; only anonymous chat is available")

    sessions = SessionStore(
        ttl_seconds=settings.session_ttl,
        history_window=settings.history_window,
        max_sessions=settings.max_sessions,
    )
    background_tasks = BackgroundTasks()
    pipeline = None
    if provider is not None:
        summarizer = Summarizer(
            provider,
            gateway,
            model=settings.summary_model,
            max_tokens=settings.summary_max_tokens,
            every=settings.summary_every,
        )
        pipeline = ChatPipeline(
            provider,
            sessions,
            background_tasks,
            summarizer=summarizer,
            gateway=gateway,
            chat_model=settings.chat_model,
            max_tokens=settings.max_tokens,
        )

    app = FastAPI(
        title="bosschat",
        description="Persona-driven business advice chat with streamed replies",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.provider = provider
    app.state.gateway = gateway
    app.state.token_verifier = verifier
    app.state.sessions = sessions
    app.state.rate_limiter = RateLimiter(settings.rate_limit_max, settings.rate_limit_window)
    app.state.background_tasks = background_tasks
    app.state.pipeline = pipeline

    app.add_middleware(RequestContextMiddleware, enable_request_logging=True)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins, allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(BossChatError, bosschat_exception_handler)

    app.include_router(core_router, prefix=API_PREFIX, tags=["core"])
    app.include_router(chat_router, prefix=API_PREFIX, tags=["chat"])
    app.include_router(conversations_router, prefix=API_PREFIX, tags=["conversations"])
    app.include_router(pages_router, tags=["pages"])

    return app
