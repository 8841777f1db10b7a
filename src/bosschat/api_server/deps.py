# src/bosschat/api_server/deps.py
"""
FastAPI dependencies resolving the per-app components on `app.state`.

Components are created by `create_app` and owned by the application instance;
routes never reach for module-level singletons.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status

from ..config import Settings
from ..pipeline import ChatPipeline
from ..ratelimit import RateLimiter
from ..storage.gateway import ConversationGateway

logger = logging.getLogger(__name__)


def client_key(request: Request, trust_proxy: bool = False) -> str:
    """
    Client address for rate limiting.

    The first X-Forwarded-For hop is used only when `trust_proxy` is set;
    otherwise the header is client-controlled and ignored.
    """
    forwarded = request.headers.get("x-forwarded-for") if trust_proxy else None
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else "unknown"


def get_settings_from_app(request: Request) -> Settings:
    return request.app.state.settings


def get_pipeline(request: Request) -> ChatPipeline:
    pipeline: Optional[ChatPipeline] = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        logger.error("Chat pipeline not available (upstream provider failed to initialize)")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The chat service is not available. The service may be starting up or misconfigured.",
        )
    return pipeline


def get_optional_gateway(request: Request) -> Optional[ConversationGateway]:
    return getattr(request.app.state, "gateway", None)


def get_gateway(request: Request) -> ConversationGateway:
    gateway = get_optional_gateway(request)
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Conversation storage is not configured",
        )
    return gateway


async def enforce_rate_limit(request: Request) -> None:
    """Reject the request with 429 once the client exceeds its window budget."""
    limiter: RateLimiter = request.app.state.rate_limiter
    if not limiter.admit(client_key(request, request.app.state.settings.trust_proxy)):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please wait a minute and try again.",
            headers={"Retry-After": str(int(limiter.window_seconds))},
        )
