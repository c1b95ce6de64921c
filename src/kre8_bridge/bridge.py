"""
Assemblage des collaborateurs du bridge.

Une instance de `Bridge` par application FastAPI (stockée dans
`app.state.bridge`): aucun registre global, chaque test peut construire la
sienne.
"""
from dataclasses import dataclass
from typing import Optional

import httpx

from .config.settings import BridgeSettings
from .services.assistant import Assistant, OllamaClient, create_assistant
from .services.command_router import CommandRouter
from .services.events import CommandEventBus
from .services.executor import CommandExecutor, create_executor
from .services.session_store import SessionStore, create_session_store
from .services.tool_config import ToolConfigLoader
from .services.websocket_manager import ConnectionManager, create_connection_manager


@dataclass
class Bridge:
    settings: BridgeSettings
    store: SessionStore
    executor: CommandExecutor
    bus: CommandEventBus
    manager: ConnectionManager
    tool_loader: ToolConfigLoader
    router: CommandRouter
    ollama: OllamaClient
    assistant: Optional[Assistant] = None


def create_bridge(
    settings: BridgeSettings = None,
    store: SessionStore = None,
    executor: CommandExecutor = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Bridge:
    """
    Construit et câble un bridge complet.

    Args:
        settings: Configuration typée (défauts si None)
        store: Registre de sessions injecté (nouveau registre en mémoire si None)
        executor: Exécuteur injecté (tests)
        http_transport: Transport httpx pour les appels aval (tests)

    Returns:
        Bridge prêt à l'emploi; le manager est abonné au bus
    """
    settings = settings or BridgeSettings()
    store = store or create_session_store()
    executor = executor or create_executor(settings.executor, http_transport=http_transport)
    bus = CommandEventBus()
    manager = create_connection_manager(store)
    tool_loader = ToolConfigLoader(settings.tools)
    assistant = create_assistant(settings.assistant, executor)

    router = CommandRouter(
        store=store,
        executor=executor,
        bus=bus,
        tool_loader=tool_loader,
        assistant=assistant,
        connection_counter=manager.get_connection_count,
    )
    bus.subscribe(manager.handle_event)

    return Bridge(
        settings=settings,
        store=store,
        executor=executor,
        bus=bus,
        manager=manager,
        tool_loader=tool_loader,
        router=router,
        ollama=OllamaClient(executor, settings.assistant),
        assistant=assistant,
    )
