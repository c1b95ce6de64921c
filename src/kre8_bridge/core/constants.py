"""
Constantes globales pour KRE8 Bridge.
"""

# ============================================================================
# SERVEUR
# ============================================================================
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3001
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://localhost:3001"]

# ============================================================================
# SESSIONS & CANAL
# ============================================================================
HEARTBEAT_INTERVAL_S = 30.0
DEFAULT_CHANNEL_SESSION_ID = "websocket"  # Session des frames reçues avant "init"
STATELESS_SESSION_ID = "stateless"        # Appels HTTP sans sessionId

# ============================================================================
# EXÉCUTEUR
# ============================================================================
DEFAULT_SHELL = "bash"
STREAM_CHUNK_SIZE = 4096
EXECUTOR_FAILURE_EXIT_CODE = -1  # Échec côté adaptateur (spawn, timeout, réseau)

# ============================================================================
# CONFIGURATION OUTILS (MCP)
# ============================================================================
DEFAULT_TOOL_CONFIG_PATH = "~/.claude/claude_desktop_config.json"
TOOL_CONFIG_SERVERS_KEY = "mcpServers"

# ============================================================================
# ASSISTANT
# ============================================================================
ASSISTANT_BACKENDS = ("echo", "claude_cli", "ollama")
DEFAULT_CLAUDE_COMMAND = "claude"
DEFAULT_CLAUDE_ARGS = ["chat", "--no-interactive"]
DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "llama3"
DEFAULT_HTTP_TIMEOUT_S = 120.0

# ============================================================================
# COMMANDES SLASH
# ============================================================================
SLASH_COMMANDS = {
    "/help": "Show this help",
    "/status": "Bridge status (connections, tools)",
    "/tools": "List available Claude tools",
    "/mcp": "List configured MCP servers",
    "/style": "Apply a style preset (optional JSON parameters)",
    "/clear": "Clear the conversation",
}

SHELL_ESCAPE_PREFIX = "!"
FILE_READ_PREFIX = "read "
