"""
Route WebSocket: canal de publication par session.

Reçoit:
- {"type": "init", "sessionId"}       -> attache la connexion, répond `initialized`
- {"type": "ping"}                    -> `pong`, sans autre effet
- {"type": "execute", "command", "cmdType": "bash"} -> `result` (hors routeur)
- texte non JSON (ou JSON non objet)  -> routé comme une commande

Envoie en plus: `connected`, `heartbeat`, `stream`, `response`, `error`.
"""
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ...bridge import Bridge
from ...services.websocket_manager import ChannelConnection, response_message

logger = logging.getLogger(__name__)

router = APIRouter()

FrameHandler = Callable[[Bridge, ChannelConnection, Dict[str, Any]], Awaitable[None]]


async def _send_error(bridge: Bridge, connection: ChannelConnection, message: str):
    await bridge.manager.send_to(connection, {"type": "error", "message": message})


async def handle_init(bridge: Bridge, connection: ChannelConnection, data: Dict[str, Any]):
    session_id = data.get("sessionId")
    if not isinstance(session_id, str) or not session_id:
        await _send_error(bridge, connection, "init requires a sessionId")
        return

    session = bridge.manager.attach(connection, session_id)
    mcp_ready = await bridge.tool_loader.ensure_loaded(session)
    await bridge.manager.send_to(connection, {
        "type": "initialized",
        "sessionId": session_id,
        "mcpReady": mcp_ready,
    })


async def handle_ping(bridge: Bridge, connection: ChannelConnection, data: Dict[str, Any]):
    await bridge.manager.send_to(connection, {"type": "pong"})


async def handle_execute(bridge: Bridge, connection: ChannelConnection, data: Dict[str, Any]):
    """Exécution directe: contourne la classification du routeur."""
    command = data.get("command")
    cmd_type = data.get("cmdType") or data.get("commandType") or "bash"
    if cmd_type != "bash":
        await _send_error(bridge, connection, f"Unsupported execute type: {cmd_type}")
        return
    if not isinstance(command, str):
        await _send_error(bridge, connection, "execute requires a command")
        return

    result = await bridge.executor.run_shell(command)
    await bridge.manager.send_to(connection, {
        "type": "result",
        "command": command,
        "output": result.stdout,
        "error": result.stderr or result.error or None,
        "exitCode": result.exit_code,
    })


FRAME_HANDLERS: Dict[str, FrameHandler] = {
    "init": handle_init,
    "ping": handle_ping,
    "execute": handle_execute,
}


async def handle_raw_command(bridge: Bridge, connection: ChannelConnection, raw: str):
    """
    Route une frame texte comme une commande de la session de la connexion.

    Si la connexion n'est pas la connexion vivante de la session (pas encore
    de `init`), la réponse et le streaming lui sont envoyés directement; sinon
    ils arrivent par le bus. Une enveloppe vide est toujours envoyée
    directement: chaque commande reçoit une réponse terminale.
    """
    session_id = connection.session_id or bridge.settings.channel.default_session_id
    attached = bridge.store.connection_for(session_id) is connection

    on_chunk = None
    if not attached:
        async def on_chunk(chunk: str) -> None:
            await bridge.manager.send_to(connection, {"type": "stream", "content": chunk})

    envelope = await bridge.router.route_text(raw, session_id, on_chunk=on_chunk)
    # Le bus ne publie pas les enveloppes sans sortie
    if not attached or not envelope.has_output:
        await bridge.manager.send_to(connection, response_message(envelope))


async def handle_frame(bridge: Bridge, connection: ChannelConnection, data_raw: str):
    """Dispatch d'une frame entrante; les erreurs deviennent un message `error`."""
    try:
        data = json.loads(data_raw)
    except json.JSONDecodeError:
        data = None

    try:
        if not isinstance(data, dict):
            await handle_raw_command(bridge, connection, data_raw)
            return

        message_type = data.get("type")
        handler = FRAME_HANDLERS.get(message_type)
        if handler is None:
            logger.info("Type de message WebSocket inconnu: %s", message_type)
            await _send_error(bridge, connection, f"Unknown message type: {message_type}")
            return
        await handler(bridge, connection, data)
    except Exception as e:
        logger.warning("Erreur traitement message WebSocket: %s", e)
        await _send_error(bridge, connection, str(e) or type(e).__name__)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Endpoint WebSocket: une connexion = un `ChannelConnection`."""
    bridge: Bridge = websocket.app.state.bridge
    manager = bridge.manager
    connection = await manager.connect(websocket)
    logger.info("Nouvelle connexion WebSocket #%s", connection.connection_id)

    try:
        while True:
            data_raw = await websocket.receive_text()
            # Une frame lente (execute, !cmd) ne bloque pas les suivantes
            connection.track(asyncio.create_task(handle_frame(bridge, connection, data_raw)))
    except WebSocketDisconnect:
        logger.info("Connexion WebSocket #%s fermée", connection.connection_id)
    except Exception as e:
        logger.warning("Erreur WebSocket #%s: %s", connection.connection_id, e)
    finally:
        manager.disconnect(connection)
