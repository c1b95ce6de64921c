"""
Routeur de commandes.

Classification (premier match gagnant):
1. `/...`     -> slash: table fixe de handlers purs (aucun exécuteur)
2. `!...`     -> shellEscape: le reste est transmis tel quel à l'exécuteur
3. `read ...` -> fileRead (préfixe insensible à la casse)
4. sinon      -> freeText: heuristiques "search" / "task" / "init", puis
                 backend assistant ou accusé de réception générique

Toute commande produit exactement une enveloppe terminale. Le routeur ne lève
jamais: les erreurs deviennent des enveloppes `error`. Chaque enveloppe avec
sortie est aussi publiée sur le bus (écho vers le canal de la session).
"""
import json
import logging
from typing import Any, Callable, Dict, Optional

from ..core.constants import (
    FILE_READ_PREFIX,
    SHELL_ESCAPE_PREFIX,
    SLASH_COMMANDS,
    STATELESS_SESSION_ID,
)
from ..core.exceptions import CommandParseError, FileOperationError
from ..core.models import Command, CommandKind, ResponseEnvelope, Session
from .assistant import Assistant
from .events import CommandCompleted, CommandEventBus, CommandStreamChunk
from .executor import ChunkSink, CommandExecutor
from .file_ops import read_text_file
from .session_store import SessionStore
from .tool_config import ToolConfigLoader

logger = logging.getLogger(__name__)

BUILTIN_TOOLS = [
    "Bash - run shell commands (!<command>)",
    "Read - read a file (read <path>)",
    "Write - write a file (POST /api/file/write)",
    "Execute - run a bash command over the channel ({\"type\": \"execute\"})",
]

STYLE_PRESETS = ("cyber", "holo", "neon", "minimal")


# ============================================================================
# CLASSIFICATION
# ============================================================================

def classify(raw: str, session_id: str = STATELESS_SESSION_ID) -> Command:
    """Construit la `Command` correspondant au texte brut."""
    text = (raw or "").strip()

    if text.startswith("/"):
        return Command(raw=raw, kind=CommandKind.SLASH, session_id=session_id, body=text[1:])
    if text.startswith(SHELL_ESCAPE_PREFIX):
        return Command(
            raw=raw,
            kind=CommandKind.SHELL_ESCAPE,
            session_id=session_id,
            body=text[len(SHELL_ESCAPE_PREFIX):],
        )
    if text.lower().startswith(FILE_READ_PREFIX):
        return Command(
            raw=raw,
            kind=CommandKind.FILE_READ,
            session_id=session_id,
            body=text[len(FILE_READ_PREFIX):].strip(),
        )
    return Command(raw=raw, kind=CommandKind.FREE_TEXT, session_id=session_id, body=text)


# ============================================================================
# HANDLERS SLASH (fonctions pures de l'état de session)
# ============================================================================

def help_text() -> str:
    lines = ["Available commands:"]
    for name, description in SLASH_COMMANDS.items():
        lines.append(f"  {name} - {description}")
    lines.append(f"  {SHELL_ESCAPE_PREFIX}<command> - Run a shell command")
    lines.append(f"  {FILE_READ_PREFIX}<path> - Read a file")
    return "\n".join(lines)


def _slash_help(session: Session, args: str, state: Dict[str, Any]) -> str:
    return help_text()


def _slash_status(session: Session, args: str, state: Dict[str, Any]) -> str:
    return "\n".join([
        "Bridge status: online",
        f"Session: {session.session_id}",
        f"Connections: {state.get('connections', 0)}",
        f"Configured tools: {session.tool_count}",
        f"Assistant: {state.get('assistant', 'echo')}",
    ])


def _slash_tools(session: Session, args: str, state: Dict[str, Any]) -> str:
    lines = ["Available Claude Tools:"]
    lines.extend(f"  • {tool}" for tool in BUILTIN_TOOLS)
    lines.append("")
    if session.tool_config:
        lines.append(f"MCP servers ({session.tool_count}):")
        lines.extend(f"  • {name}" for name in sorted(session.tool_config))
    else:
        lines.append("MCP servers: none configured")
    return "\n".join(lines)


def _slash_style(session: Session, args: str, state: Dict[str, Any]) -> str:
    """
    `/style` seul: liste des presets. `/style {json}`: applique un preset.

    Raises:
        CommandParseError: paramètres JSON malformés ou non objet
    """
    args = args.strip()
    if not args:
        return (
            f"KRE8 style presets: {', '.join(STYLE_PRESETS)}\n"
            'Usage: /style {"theme": "cyber", "component": "CyberButton"}'
        )

    try:
        params = json.loads(args)
    except json.JSONDecodeError as e:
        raise CommandParseError(f"Invalid /style parameters: {e}", command="/style") from e
    if not isinstance(params, dict):
        raise CommandParseError("Invalid /style parameters: expected a JSON object", command="/style")

    theme = str(params.get("theme", STYLE_PRESETS[0]))
    component = str(params.get("component", "all components"))
    if theme not in STYLE_PRESETS:
        return f"Unknown style preset '{theme}'. Available presets: {', '.join(STYLE_PRESETS)}"
    return f"Applying style preset '{theme}' to {component}"


def _slash_clear(session: Session, args: str, state: Dict[str, Any]) -> str:
    return "Conversation cleared."


SLASH_HANDLERS: Dict[str, Callable[[Session, str, Dict[str, Any]], str]] = {
    "help": _slash_help,
    "status": _slash_status,
    "tools": _slash_tools,
    "mcp": _slash_tools,
    "style": _slash_style,
    "clear": _slash_clear,
}


def _slash_unknown(name: str) -> str:
    return f"Unknown command: /{name}\n\n{help_text()}"


# ============================================================================
# TEXTE LIBRE
# ============================================================================

def _search_template(command: Command) -> str:
    return (
        f'Search request received: "{command.body}"\n\n'
        "Search results:\n"
        "  • Found relevant information\n"
        "  • Updated documentation available\n"
        "  • Latest best practices identified"
    )


def _task_template(command: Command) -> str:
    return (
        f'Task received: "{command.body}"\n\n'
        "Task agent system is available. Use /status to check the bridge."
    )


def _init_template(command: Command) -> str:
    return f"Session {command.session_id} initialized. Type /help to list commands."


def acknowledgement(command: Command) -> str:
    return (
        f'I understand you want to: "{command.body}"\n\n'
        f"Available commands: {', '.join(SLASH_COMMANDS)}"
    )


def match_heuristic(command: Command) -> Optional[str]:
    """Réponse canned si une heuristique s'applique, sinon None."""
    text = command.body.lower()
    if "search" in text:
        return _search_template(command)
    if "task" in text:
        return _task_template(command)
    if text == "init":
        return _init_template(command)
    return None


# ============================================================================
# ROUTEUR
# ============================================================================

class CommandRouter:
    """Classe, dispatche et publie les commandes."""

    def __init__(
        self,
        store: SessionStore,
        executor: CommandExecutor,
        bus: CommandEventBus,
        tool_loader: ToolConfigLoader = None,
        assistant: Optional[Assistant] = None,
        connection_counter: Callable[[], int] = None,
    ):
        self.store = store
        self.executor = executor
        self.bus = bus
        self.tool_loader = tool_loader or ToolConfigLoader()
        self.assistant = assistant
        self.connection_counter = connection_counter or (lambda: 0)

    def classify(self, raw: str, session_id: str = STATELESS_SESSION_ID) -> Command:
        return classify(raw, session_id)

    async def route_text(self, raw: str, session_id: str = STATELESS_SESSION_ID,
                         on_chunk: ChunkSink = None, use_tools: Optional[bool] = None) -> ResponseEnvelope:
        command = self.classify(raw, session_id)
        command.use_tools = use_tools
        return await self.route(command, on_chunk=on_chunk)

    async def route(self, command: Command, on_chunk: ChunkSink = None) -> ResponseEnvelope:
        """
        Route une commande et retourne son enveloppe terminale.

        Args:
            command: Commande classée
            on_chunk: Sink optionnel pour la sortie streamée de l'exécuteur

        Returns:
            Enveloppe `success` ou `error` (jamais d'exception)
        """
        try:
            envelope = await self._dispatch(command, self._stream_sink(command, on_chunk))
        except Exception as e:
            logger.exception("Erreur de routage (%s)", command.kind.value)
            envelope = ResponseEnvelope.failure(command, str(e) or type(e).__name__)

        if envelope.has_output:
            await self.bus.publish(CommandCompleted(command=command, envelope=envelope))
        return envelope

    def _stream_sink(self, command: Command, on_chunk: Optional[ChunkSink]) -> ChunkSink:
        async def sink(chunk: str) -> None:
            await self.bus.publish(CommandStreamChunk(session_id=command.session_id, content=chunk))
            if on_chunk is not None:
                await on_chunk(chunk)
        return sink

    async def _dispatch(self, command: Command, sink: ChunkSink) -> ResponseEnvelope:
        if command.kind == CommandKind.SLASH:
            return await self._route_slash(command)
        if command.kind == CommandKind.SHELL_ESCAPE:
            return await self._route_shell(command, sink)
        if command.kind == CommandKind.FILE_READ:
            return await self._route_file_read(command)
        return await self._route_free_text(command, sink)

    async def session_for(self, session_id: str) -> Session:
        """
        Session existante, ou session transitoire non enregistrée.

        La config d'outils est chargée au premier passage.
        """
        session = self.store.lookup(session_id) or Session(session_id=session_id)
        await self.tool_loader.ensure_loaded(session)
        return session

    def state_snapshot(self) -> Dict[str, Any]:
        return {
            "connections": self.connection_counter(),
            "assistant": self.assistant.name if self.assistant else "echo",
        }

    async def _route_slash(self, command: Command) -> ResponseEnvelope:
        name, _, args = command.body.partition(" ")
        name = name.strip().lower()
        session = await self.session_for(command.session_id)

        handler = SLASH_HANDLERS.get(name)
        if handler is None:
            return ResponseEnvelope.success(command, _slash_unknown(name))
        try:
            text = handler(session, args, self.state_snapshot())
        except CommandParseError as e:
            return ResponseEnvelope.failure(command, e.message)
        return ResponseEnvelope.success(command, text)

    async def _route_shell(self, command: Command, sink: ChunkSink) -> ResponseEnvelope:
        result = await self.executor.run_shell(command.body, on_chunk=sink)
        output = f"$ {command.body}\n{result.stdout}{result.stderr}"
        if not result.ok:
            return ResponseEnvelope.failure(command, result.error_message, payload=output)
        return ResponseEnvelope.success(command, output)

    async def _route_file_read(self, command: Command) -> ResponseEnvelope:
        try:
            content = await read_text_file(command.body)
        except FileOperationError as e:
            return ResponseEnvelope.failure(command, e.message)
        return ResponseEnvelope.success(command, content)

    async def _route_free_text(self, command: Command, sink: ChunkSink) -> ResponseEnvelope:
        canned = match_heuristic(command)
        if canned is not None:
            return ResponseEnvelope.success(command, canned)
        if self.assistant is not None:
            return await self.assistant.respond(command, on_chunk=sink)
        return ResponseEnvelope.success(command, acknowledgement(command))
