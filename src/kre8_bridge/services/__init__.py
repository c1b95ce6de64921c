"""
Services métier de KRE8 Bridge.
"""

from .executor import CommandExecutor, create_executor
from .session_store import (
    AttachPolicy,
    OpenAttachPolicy,
    SessionStore,
    InMemorySessionStore,
    create_session_store,
)
from .events import CommandEventBus, CommandCompleted, CommandStreamChunk
from .command_router import CommandRouter, classify
from .websocket_manager import ConnectionManager, ChannelConnection, create_connection_manager
from .tool_config import ToolConfigLoader
from .assistant import Assistant, ClaudeCliAssistant, OllamaAssistant, OllamaClient, create_assistant

__all__ = [
    "CommandExecutor",
    "create_executor",
    "AttachPolicy",
    "OpenAttachPolicy",
    "SessionStore",
    "InMemorySessionStore",
    "create_session_store",
    "CommandEventBus",
    "CommandCompleted",
    "CommandStreamChunk",
    "CommandRouter",
    "classify",
    "ConnectionManager",
    "ChannelConnection",
    "create_connection_manager",
    "ToolConfigLoader",
    "Assistant",
    "ClaudeCliAssistant",
    "OllamaAssistant",
    "OllamaClient",
    "create_assistant",
]
