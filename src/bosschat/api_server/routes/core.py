# src/bosschat/api_server/routes/core.py
"""
Core API routes: persona catalog, client bootstrap config and health.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from ...config import Settings
from ...personas import get_all_personas
from ..deps import get_settings_from_app

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/personas")
async def list_personas() -> List[Dict[str, str]]:
    """Public persona metadata for the landing page."""
    return get_all_personas()


@router.get("/config")
async def get_client_config(settings: Settings = Depends(get_settings_from_app)) -> Dict[str, str]:
    """Identity provider bootstrap values for the browser client."""
    if not settings.auth_configured:
        logger.error("Client config requested but SUPABASE_URL / SUPABASE_ANON_KEY are not set")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication provider is not configured",
        )
    return {"supabaseUrl": settings.supabase_url, "supabaseAnonKey": settings.supabase_anon_key}


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    return {"status": "ok", "time": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")}
