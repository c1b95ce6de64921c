"""
Routes API pour le health check.
"""
from fastapi import APIRouter, Depends

from ...bridge import Bridge
from ...core.models import now_iso
from ..dependencies import get_bridge

router = APIRouter()


@router.get("/api/health")
async def health_check(bridge: Bridge = Depends(get_bridge)):
    """Health check: connexions canal ouvertes et état de la config MCP."""
    return {
        "status": "ok",
        "connections": bridge.manager.get_connection_count(),
        "sessions": bridge.store.session_count(),
        "mcpConfigured": bridge.store.has_tool_config(),
        "assistant": bridge.settings.assistant.backend,
        "timestamp": now_iso(),
    }
