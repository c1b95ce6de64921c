"""
Tests unitaires pour le routeur de commandes.

Pourquoi: chaque commande doit produire exactement une enveloppe terminale,
sans jamais lever, et chaque enveloppe non vide doit être publiée sur le bus.
"""
import pytest

from kre8_bridge.config.settings import ToolConfigSettings
from kre8_bridge.core.models import CommandKind, EnvelopeStatus
from kre8_bridge.services.command_router import (
    CommandRouter,
    acknowledgement,
    classify,
    help_text,
    match_heuristic,
)
from kre8_bridge.services.events import CommandCompleted, CommandEventBus, CommandStreamChunk
from kre8_bridge.services.executor import CommandExecutor, create_executor
from kre8_bridge.services.session_store import create_session_store
from kre8_bridge.services.tool_config import ToolConfigLoader


class _ExplodingExecutor(CommandExecutor):
    async def run_shell(self, command, on_chunk=None):
        raise RuntimeError("executor exploded")


@pytest.fixture
def events():
    return []


@pytest.fixture
def make_router(tmp_path, events):
    """Construit un routeur isolé; le bus enregistre les événements publiés."""
    def _make(tools_path=None, executor=None, connection_counter=None):
        bus = CommandEventBus()

        async def record(event):
            events.append(event)

        bus.subscribe(record)
        loader = ToolConfigLoader(ToolConfigSettings(path=str(tools_path or tmp_path / "none.json")))
        return CommandRouter(
            store=create_session_store(),
            executor=executor or create_executor(),
            bus=bus,
            tool_loader=loader,
            connection_counter=connection_counter,
        )
    return _make


class TestClassify:
    """Classification, premier match gagnant."""

    @pytest.mark.unit
    def test_slash(self):
        command = classify("  /style {}", "s1")
        assert command.kind == CommandKind.SLASH
        assert command.body == "style {}"
        assert command.session_id == "s1"

    @pytest.mark.unit
    def test_shell_escape(self):
        command = classify("!ls -la | wc -l")
        assert command.kind == CommandKind.SHELL_ESCAPE
        assert command.body == "ls -la | wc -l"

    @pytest.mark.unit
    def test_file_read_prefix_is_case_insensitive(self):
        command = classify("READ   /tmp/notes.txt ")
        assert command.kind == CommandKind.FILE_READ
        assert command.body == "/tmp/notes.txt"

    @pytest.mark.unit
    def test_free_text(self):
        command = classify("ready to go")
        assert command.kind == CommandKind.FREE_TEXT
        assert command.session_id == "stateless"


class TestSlashCommands:
    """Handlers slash: pas d'exécuteur, texte pur."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_help_lists_commands(self, make_router):
        envelope = await make_router().route_text("/help", "s1")

        assert envelope.ok
        assert envelope.kind == CommandKind.SLASH
        for name in ("/help", "/status", "/tools", "/mcp", "/style", "/clear"):
            assert name in envelope.payload
        assert envelope.payload == help_text()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_slash_is_success_with_help(self, make_router):
        envelope = await make_router().route_text("/frobnicate")

        assert envelope.status == EnvelopeStatus.SUCCESS
        assert envelope.payload.startswith("Unknown command: /frobnicate")
        assert "Available commands:" in envelope.payload

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_style_without_args_lists_presets(self, make_router):
        envelope = await make_router().route_text("/style")

        assert envelope.ok
        assert "cyber" in envelope.payload
        assert "/style" in envelope.payload

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_style_with_preset(self, make_router):
        envelope = await make_router().route_text('/style {"theme": "neon", "component": "Card"}')

        assert envelope.payload == "Applying style preset 'neon' to Card"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_style_malformed_json_is_error(self, make_router):
        envelope = await make_router().route_text("/style {not json")

        assert envelope.status == EnvelopeStatus.ERROR
        assert envelope.error.startswith("Invalid /style parameters")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_style_non_object_is_error(self, make_router):
        envelope = await make_router().route_text("/style [1, 2]")

        assert not envelope.ok
        assert "expected a JSON object" in envelope.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_tools_without_config(self, make_router):
        envelope = await make_router().route_text("/tools")

        assert "Available Claude Tools:" in envelope.payload
        assert "MCP servers: none configured" in envelope.payload

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_mcp_lists_configured_servers(self, make_router, tool_config_file):
        envelope = await make_router(tools_path=tool_config_file).route_text("/mcp")

        assert "MCP servers (2):" in envelope.payload
        assert envelope.payload.index("filesystem") < envelope.payload.index("github")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_status_reports_connections(self, make_router):
        router = make_router(connection_counter=lambda: 2)
        envelope = await router.route_text("/status", "abc")

        assert "Session: abc" in envelope.payload
        assert "Connections: 2" in envelope.payload
        assert "Assistant: echo" in envelope.payload

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unregistered_session_stays_transient(self, make_router):
        router = make_router()
        await router.route_text("/tools", "http-only")

        assert router.store.lookup("http-only") is None


class TestShellEscape:
    """`!<command>` passe par l'exécuteur et diffuse sa sortie."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success_payload_and_events(self, make_router, events):
        chunks = []

        async def on_chunk(chunk):
            chunks.append(chunk)

        envelope = await make_router().route_text("!echo hi", "s1", on_chunk=on_chunk)

        assert envelope.ok
        assert envelope.kind == CommandKind.SHELL_ESCAPE
        assert envelope.payload == "$ echo hi\nhi\n"
        assert "".join(chunks) == "hi\n"

        assert isinstance(events[0], CommandStreamChunk)
        assert events[0].session_id == "s1"
        assert isinstance(events[-1], CommandCompleted)
        assert events[-1].envelope is envelope

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_zero_exit_is_error_with_output(self, make_router):
        envelope = await make_router().route_text("!exit 4")

        assert envelope.status == EnvelopeStatus.ERROR
        assert envelope.error == "Process exited with code 4"
        assert envelope.payload == "$ exit 4\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_router_never_raises(self, make_router, events):
        router = make_router(executor=_ExplodingExecutor())
        envelope = await router.route_text("!echo hi", "s1")

        assert envelope.status == EnvelopeStatus.ERROR
        assert envelope.error == "executor exploded"
        assert isinstance(events[-1], CommandCompleted)


class TestFileRead:
    """`read <path>` retourne le contenu exact."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_existing_file(self, make_router, tmp_path):
        target = tmp_path / "notes.txt"
        target.write_text("ligne 1\nligne 2", encoding="utf-8")

        envelope = await make_router().route_text(f"read {target}")

        assert envelope.ok
        assert envelope.kind == CommandKind.FILE_READ
        assert envelope.payload == "ligne 1\nligne 2"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_file_is_error(self, make_router, tmp_path):
        envelope = await make_router().route_text(f"read {tmp_path / 'absent.txt'}")

        assert not envelope.ok
        assert "No such file or directory" in envelope.error


class TestFreeText:
    """Heuristiques puis accusé de réception (backend echo)."""

    @pytest.mark.unit
    def test_heuristic_order(self):
        assert "Search request received" in match_heuristic(classify("search the task list"))
        assert "Task received" in match_heuristic(classify("Task: refactor"))
        assert "initialized" in match_heuristic(classify("init", "s9"))
        assert match_heuristic(classify("initialize everything")) is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_acknowledgement(self, make_router):
        envelope = await make_router().route_text("hello there")

        assert envelope.ok
        assert envelope.payload == acknowledgement(classify("hello there"))
        assert envelope.payload.startswith('I understand you want to: "hello there"')

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_output_is_not_published(self, make_router, events, tmp_path):
        target = tmp_path / "empty.txt"
        target.write_text("", encoding="utf-8")

        envelope = await make_router().route_text(f"read {target}")

        assert envelope.ok
        assert events == []
