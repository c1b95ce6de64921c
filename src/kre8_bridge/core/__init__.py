"""
Cœur métier de KRE8 Bridge.
Modules indépendants sans dépendances externes au package.
"""

from .exceptions import (
    Kre8BridgeError,
    ConfigurationError,
    ExecutorError,
    FileOperationError,
    CommandParseError,
    ChannelError,
)
from .constants import (
    DEFAULT_PORT,
    HEARTBEAT_INTERVAL_S,
    DEFAULT_CHANNEL_SESSION_ID,
    STATELESS_SESSION_ID,
    SLASH_COMMANDS,
)
from .models import (
    CommandKind,
    EnvelopeStatus,
    Session,
    Command,
    ResponseEnvelope,
    ProcessSpec,
    HttpCallSpec,
    ExecutorResult,
    now_iso,
)

__all__ = [
    # Exceptions
    "Kre8BridgeError",
    "ConfigurationError",
    "ExecutorError",
    "FileOperationError",
    "CommandParseError",
    "ChannelError",
    # Constants
    "DEFAULT_PORT",
    "HEARTBEAT_INTERVAL_S",
    "DEFAULT_CHANNEL_SESSION_ID",
    "STATELESS_SESSION_ID",
    "SLASH_COMMANDS",
    # Models
    "CommandKind",
    "EnvelopeStatus",
    "Session",
    "Command",
    "ResponseEnvelope",
    "ProcessSpec",
    "HttpCallSpec",
    "ExecutorResult",
    "now_iso",
]
