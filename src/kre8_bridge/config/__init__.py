"""
Configuration de KRE8 Bridge.
"""

from .loader import load_config, reload_config, get_config, get_bridge_settings
from .settings import (
    BridgeSettings,
    ServerSettings,
    ChannelSettings,
    ExecutorSettings,
    ToolConfigSettings,
    AssistantSettings,
)

__all__ = [
    "load_config",
    "reload_config",
    "get_config",
    "get_bridge_settings",
    "BridgeSettings",
    "ServerSettings",
    "ChannelSettings",
    "ExecutorSettings",
    "ToolConfigSettings",
    "AssistantSettings",
]
