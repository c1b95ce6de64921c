"""
KRE8 Bridge - Application FastAPI Factory.
Relais HTTP + WebSocket entre le dashboard KRE8-Styler et les exécuteurs
locaux (shell, CLI Claude, Ollama).
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .bridge import Bridge, create_bridge
from .config.loader import get_bridge_settings
from .config.settings import BridgeSettings
from .core.exceptions import Kre8BridgeError
from .api.router import api_router

logger = logging.getLogger(__name__)


def create_app(settings: BridgeSettings = None, bridge: Bridge = None) -> FastAPI:
    """
    Factory pour créer l'application FastAPI.

    Args:
        settings: Configuration typée (chargée depuis config.toml si None)
        bridge: Bridge déjà câblé (tests)

    Returns:
        Instance configurée de FastAPI
    """
    if bridge is None:
        bridge = create_bridge(settings or get_bridge_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Gestion du cycle de vie de l'application."""
        # Startup
        _startup(app)
        yield
        # Shutdown
        await _shutdown(app)

    app = FastAPI(
        title="KRE8 Bridge",
        description="Relais de commandes et canal de session pour le dashboard KRE8-Styler",
        version=__version__,
        lifespan=lifespan
    )
    app.state.bridge = bridge

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=bridge.settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Kre8BridgeError)
    async def bridge_error_handler(request: Request, exc: Kre8BridgeError):
        logger.warning("Erreur bridge non gérée sur %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": exc.message, "code": exc.code})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # Corps structuré invalide: 500 avec le message de parsing
        return JSONResponse(status_code=500, content={"error": _format_validation_error(exc)})

    # Inclusion des routes API
    app.include_router(api_router)

    return app


def _format_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request body"


def _startup(app: FastAPI):
    """Initialisation au démarrage."""
    bridge: Bridge = app.state.bridge
    settings = bridge.settings

    print("🚀 Démarrage du KRE8 Bridge...")
    print(f"✅ Assistant: {settings.assistant.backend}")
    if settings.executor.timeout_s:
        print(f"✅ Timeout exécuteur: {settings.executor.timeout_s}s")

    # Heartbeat du canal (ne ferme jamais une connexion muette)
    bridge.manager.start_heartbeat(settings.channel.heartbeat_interval_s)

    print(f"🌐 HTTP: http://localhost:{settings.server.port}")
    print(f"🔌 WebSocket: ws://localhost:{settings.server.port}/ws")


async def _shutdown(app: FastAPI):
    """Arrêt de l'application."""
    print("\n👋 Arrêt du bridge...")
    await app.state.bridge.manager.stop_heartbeat()
    print("✅ Bridge arrêté proprement")
