"""
Dataclasses pour la configuration.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from ..core.constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_CORS_ORIGINS,
    HEARTBEAT_INTERVAL_S,
    DEFAULT_CHANNEL_SESSION_ID,
    DEFAULT_SHELL,
    DEFAULT_TOOL_CONFIG_PATH,
    DEFAULT_CLAUDE_COMMAND,
    DEFAULT_CLAUDE_ARGS,
    DEFAULT_OLLAMA_URL,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_HTTP_TIMEOUT_S,
)


@dataclass(frozen=True)
class ServerSettings:
    """Écoute HTTP/WebSocket."""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


@dataclass(frozen=True)
class ChannelSettings:
    """Canal WebSocket (heartbeat, session par défaut)."""
    heartbeat_interval_s: float = HEARTBEAT_INTERVAL_S
    default_session_id: str = DEFAULT_CHANNEL_SESSION_ID


@dataclass(frozen=True)
class ExecutorSettings:
    """
    Exécuteur de commandes.

    timeout_s=None: pas de timeout (comportement historique du bridge).
    """
    shell: str = DEFAULT_SHELL
    timeout_s: Optional[float] = None
    cwd: Optional[str] = None


@dataclass(frozen=True)
class ToolConfigSettings:
    """Fichier de configuration des serveurs MCP (lu à la première session)."""
    path: str = DEFAULT_TOOL_CONFIG_PATH


@dataclass(frozen=True)
class AssistantSettings:
    """Backend utilisé pour le texte libre non reconnu par les heuristiques."""
    backend: str = "echo"
    claude_command: str = DEFAULT_CLAUDE_COMMAND
    claude_args: List[str] = field(default_factory=lambda: list(DEFAULT_CLAUDE_ARGS))
    allow_tools: bool = True
    ollama_url: str = DEFAULT_OLLAMA_URL
    ollama_model: str = DEFAULT_OLLAMA_MODEL
    http_timeout_s: float = DEFAULT_HTTP_TIMEOUT_S


@dataclass(frozen=True)
class BridgeSettings:
    """Configuration globale du bridge."""
    server: ServerSettings = field(default_factory=ServerSettings)
    channel: ChannelSettings = field(default_factory=ChannelSettings)
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)
    tools: ToolConfigSettings = field(default_factory=ToolConfigSettings)
    assistant: AssistantSettings = field(default_factory=AssistantSettings)
