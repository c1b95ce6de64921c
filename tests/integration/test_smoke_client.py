"""Tests d'intégration: client WebSocket de smoke test.

Le serveur est un `websockets.serve` local qui délègue le texte brut à un
vrai `CommandRouter`: le client est exercé sur un port libre, sans uvicorn.
"""
import json
import sys

import pytest
import websockets

from kre8_bridge.__main__ import main
from kre8_bridge.config.loader import CONFIG_ENV_VAR
from kre8_bridge.bridge import create_bridge
from kre8_bridge.client import BridgeClient, run_smoke_test
from kre8_bridge.services.websocket_manager import response_message


def _router_handler(bridge):
    async def handler(websocket):
        session_id = "smoke"
        await websocket.send(json.dumps({"type": "connected"}))
        async for raw in websocket:
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                data = None
            if isinstance(data, dict) and data.get("type") == "init":
                session_id = data["sessionId"]
                await websocket.send(json.dumps({"type": "initialized", "sessionId": session_id, "mcpReady": False}))
            elif isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send(json.dumps({"type": "pong"}))
            else:
                await websocket.send(json.dumps({"type": "stream", "content": "..."}))
                envelope = await bridge.router.route_text(raw, session_id)
                await websocket.send(json.dumps(response_message(envelope)))
    return handler


@pytest.mark.integration
@pytest.mark.asyncio
async def test_smoke_test_passes_against_router(bridge_settings):
    bridge = create_bridge(bridge_settings)
    async with websockets.serve(_router_handler(bridge), "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        report = await run_smoke_test(f"ws://127.0.0.1:{port}/ws", timeout_s=5.0)

    assert report.total == 6
    assert report.passed == 6, [(r.name, r.detail) for r in report.results if not r.passed]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_client_collects_stream_chunks(bridge_settings):
    bridge = create_bridge(bridge_settings)
    async with websockets.serve(_router_handler(bridge), "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        async with BridgeClient(f"ws://127.0.0.1:{port}/ws", session_id="c1") as client:
            initialized = await client.init()
            pong = await client.ping()
            message = await client.send_command("/clear")

    assert initialized["sessionId"] == "c1"
    assert pong == {"type": "pong"}
    assert message["type"] == "response"
    assert message["sessionId"] == "c1"
    assert message["content"] == "Conversation cleared."
    assert message["streamed"] == "..."


@pytest.mark.integration
def test_smoke_cli_reports_unreachable_bridge(monkeypatch, tmp_path, capsys):
    config = tmp_path / "config.toml"
    config.write_text("[server]\nport = 3001\n", encoding="utf-8")
    # Restauré par monkeypatch: main() écrit la variable pour les workers uvicorn
    monkeypatch.setenv(CONFIG_ENV_VAR, str(config))
    monkeypatch.setattr(sys, "argv", [
        "kre8-bridge", "--config", str(config),
        "smoke", "--url", "ws://127.0.0.1:1/ws", "--timeout", "1",
    ])

    assert main() == 1
    assert "Connexion impossible" in capsys.readouterr().out
