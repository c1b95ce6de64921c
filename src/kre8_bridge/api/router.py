"""
Router principal de l'API.
"""
from fastapi import APIRouter

from .routes import (
    health,
    commands,
    files,
    mcp,
    ollama,
    websocket,
)

# Router principal
api_router = APIRouter()

# Inclusion des sous-routers
api_router.include_router(health.router, prefix="", tags=["health"])
api_router.include_router(commands.router, prefix="", tags=["commands"])
api_router.include_router(files.router, prefix="/api/file", tags=["files"])
api_router.include_router(mcp.router, prefix="/api/mcp", tags=["mcp"])
api_router.include_router(ollama.router, prefix="/api/ollama", tags=["ollama"])

# Canal WebSocket
api_router.include_router(websocket.router, prefix="", tags=["websocket"])
