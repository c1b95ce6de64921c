"""
Routes API par domaine.
"""

from . import health
from . import commands
from . import files
from . import mcp
from . import ollama
from . import websocket

__all__ = [
    "health",
    "commands",
    "files",
    "mcp",
    "ollama",
    "websocket",
]
