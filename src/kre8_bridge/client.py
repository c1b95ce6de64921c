"""
Client WebSocket du bridge et smoke test.

Utilisé par `python -m kre8_bridge smoke` pour vérifier qu'un bridge en
cours d'exécution répond aux commandes de base (init, /tools, /mcp, /style,
texte libre).
"""
import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import websockets

logger = logging.getLogger(__name__)

# Messages qui ne terminent pas une commande
_NON_TERMINAL_TYPES = {"connected", "heartbeat", "stream", "pong"}


class BridgeClient:
    """Client minimal: une connexion, une session."""

    def __init__(self, url: str, session_id: str = None, timeout_s: float = 5.0):
        self.url = url
        self.session_id = session_id or uuid.uuid4().hex
        self.timeout_s = timeout_s
        self._ws = None

    async def __aenter__(self) -> "BridgeClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self):
        self._ws = await websockets.connect(self.url)

    async def close(self):
        if self._ws is not None:
            await self._ws.close()
            self._ws = None

    async def send_json(self, message: Dict[str, Any]):
        await self._ws.send(json.dumps(message))

    async def receive(self) -> Dict[str, Any]:
        raw = await asyncio.wait_for(self._ws.recv(), timeout=self.timeout_s)
        return json.loads(raw)

    async def receive_until(self, *types: str) -> Dict[str, Any]:
        """Lit les messages jusqu'à un message de l'un des types donnés."""
        while True:
            message = await self.receive()
            if message.get("type") in types:
                return message

    async def init(self) -> Dict[str, Any]:
        await self.send_json({"type": "init", "sessionId": self.session_id})
        return await self.receive_until("initialized", "error")

    async def ping(self) -> Dict[str, Any]:
        await self.send_json({"type": "ping"})
        return await self.receive_until("pong")

    async def send_command(self, text: str) -> Dict[str, Any]:
        """
        Envoie du texte brut et attend le message terminal.

        Les chunks `stream` sont concaténés dans la clé `streamed`.
        """
        await self._ws.send(text)
        streamed: List[str] = []
        while True:
            message = await self.receive()
            message_type = message.get("type")
            if message_type == "stream":
                streamed.append(message.get("content", ""))
                continue
            if message_type in _NON_TERMINAL_TYPES:
                continue
            message["streamed"] = "".join(streamed)
            return message


@dataclass
class SmokeResult:
    name: str
    passed: bool
    detail: str = ""


@dataclass
class SmokeReport:
    results: List[SmokeResult] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def pass_rate(self) -> float:
        return (self.passed / self.total) * 100 if self.total else 0.0


def _response_text(message: Dict[str, Any]) -> str:
    return str(message.get("response") or message.get("content") or "")


async def run_smoke_test(url: str, timeout_s: float = 5.0) -> SmokeReport:
    """
    Déroule la séquence de vérification contre un bridge en cours d'exécution.

    Une erreur de connexion est remontée à l'appelant; une commande qui
    échoue ou expire est simplement notée FAIL.
    """
    report = SmokeReport()

    async with BridgeClient(url, timeout_s=timeout_s) as client:
        checks = [
            ("Initialize", None, lambda m: m.get("type") == "initialized"),
            ("List Tools", "/tools", lambda m: "Available Claude Tools" in _response_text(m)),
            ("MCP Servers", "/mcp", lambda m: "Available Claude Tools" in _response_text(m)),
            ("Web Search", "Search: test query", lambda m: m.get("status") == "success"),
            ("Task Agent", "Task: test task", lambda m: m.get("status") == "success"),
            ("Claude-Styler", "/style", lambda m: "style" in _response_text(m)),
        ]
        for name, command, check in checks:
            try:
                message = await (client.init() if command is None else client.send_command(command))
            except (asyncio.TimeoutError, websockets.ConnectionClosed) as e:
                report.results.append(SmokeResult(name, False, f"{type(e).__name__}: {e}"))
                continue
            passed = bool(check(message))
            report.results.append(SmokeResult(name, passed, _response_text(message)[:100]))

    return report


def format_report(report: SmokeReport) -> str:
    lines = []
    for result in report.results:
        status = "✓ PASS" if result.passed else "✗ FAIL"
        lines.append(f"  {status} - {result.name}")
        if not result.passed and result.detail:
            lines.append(f"      {result.detail}")
    lines.append("")
    lines.append(f"Total: {report.total}  Passed: {report.passed}  Pass rate: {report.pass_rate:.0f}%")
    return "\n".join(lines)


def default_ws_url(host: Optional[str], port: int) -> str:
    if not host or host == "0.0.0.0":
        host = "localhost"
    return f"ws://{host}:{port}/ws"
