"""
Gestionnaire de connexions WebSocket (canal de publication).

Chaque connexion est enveloppée dans un `ChannelConnection` qui porte l'id
de la session à laquelle elle est attachée. Le gestionnaire:
- envoie `connected` à l'ouverture
- diffuse un heartbeat périodique (sans jamais fermer une connexion muette)
- reçoit les événements du routeur et les pousse vers la session concernée
"""
import asyncio
import itertools
import logging
from typing import Any, Dict, Optional, Set, TYPE_CHECKING

from ..core.models import now_iso
from .events import BridgeEvent, CommandCompleted, CommandStreamChunk
from .session_store import SessionStore

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = logging.getLogger(__name__)

_connection_ids = itertools.count(1)


class ChannelConnection:
    """Une connexion canal et la session à laquelle elle est attachée."""

    def __init__(self, websocket: "WebSocket"):
        self.websocket = websocket
        self.connection_id = next(_connection_ids)
        self.session_id: Optional[str] = None
        self.connected_at = now_iso()
        # Frames en cours: traitées en parallèle, réponses entrelacées possibles
        self.tasks: Set[asyncio.Task] = set()

    def track(self, task: asyncio.Task) -> asyncio.Task:
        """Garde une référence sur la tâche jusqu'à sa fin."""
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        task.add_done_callback(self._log_task_failure)
        return task

    def _log_task_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Frame en erreur sur %r: %s", self, exc)

    def __repr__(self) -> str:
        return f"<ChannelConnection #{self.connection_id} session={self.session_id}>"


class ConnectionManager:
    """Gère les connexions WebSocket actives."""

    def __init__(self, store: SessionStore):
        self.store = store
        self.active_connections: Set[ChannelConnection] = set()
        self._heartbeat_task: Optional[asyncio.Task] = None

    async def connect(self, websocket: "WebSocket") -> ChannelConnection:
        """Accepte une nouvelle connexion WebSocket et envoie `connected`."""
        await websocket.accept()
        connection = ChannelConnection(websocket)
        self.active_connections.add(connection)
        await self.send_to(connection, {"type": "connected", "timestamp": now_iso()})
        return connection

    def disconnect(self, connection: ChannelConnection):
        """
        Déconnecte une connexion et la détache de sa session.

        Le détachement ne libère la session que si cette connexion en est
        encore la connexion vivante.
        """
        self.active_connections.discard(connection)
        if connection.session_id is not None:
            self.store.detach(connection.session_id, connection)

    def attach(self, connection: ChannelConnection, session_id: str):
        """Attache la connexion à une session (remplace l'éventuelle précédente)."""
        if connection.session_id is not None and connection.session_id != session_id:
            self.store.detach(connection.session_id, connection)
        session = self.store.attach_connection(session_id, connection)
        connection.session_id = session_id
        return session

    async def broadcast(self, message: Dict[str, Any]):
        """
        Diffuse un message à toutes les connexions actives.

        Args:
            message: Message à diffuser (sera converti en JSON)
        """
        for connection in list(self.active_connections):
            await self.send_to(connection, message)

    async def send_to(self, connection: ChannelConnection, message: Dict[str, Any]) -> bool:
        """
        Envoie un message à une connexion spécifique.

        Args:
            connection: Connexion cible
            message: Message à envoyer

        Returns:
            True si envoyé avec succès, False sinon
        """
        try:
            await connection.websocket.send_json(message)
            return True
        except Exception as e:
            logger.info("Envoi impossible vers %r: %s", connection, e)
            self.disconnect(connection)
            return False

    async def send_to_session(self, session_id: str, message: Dict[str, Any]) -> bool:
        """Envoie un message à la connexion vivante de la session, si elle existe."""
        connection = self.store.connection_for(session_id)
        if connection is None or connection not in self.active_connections:
            return False
        return await self.send_to(connection, message)

    def get_connection_count(self) -> int:
        """Retourne le nombre de connexions actives."""
        return len(self.active_connections)

    def is_connected(self, connection: ChannelConnection) -> bool:
        """Vérifie si une connexion est active."""
        return connection in self.active_connections

    async def handle_event(self, event: BridgeEvent) -> None:
        """Listener du bus: pousse la sortie du routeur vers la session."""
        if isinstance(event, CommandStreamChunk):
            await self.send_to_session(event.session_id, {
                "type": "stream",
                "content": event.content,
            })
        elif isinstance(event, CommandCompleted):
            await self.send_to_session(event.session_id, response_message(event.envelope))

    # ------------------------------------------------------------------
    # Heartbeat
    # ------------------------------------------------------------------

    def start_heartbeat(self, interval_s: float) -> asyncio.Task:
        """Démarre la diffusion périodique de `heartbeat`."""
        if self._heartbeat_task is None or self._heartbeat_task.done():
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop(interval_s))
        return self._heartbeat_task

    async def stop_heartbeat(self):
        if self._heartbeat_task:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
            self._heartbeat_task = None

    async def _heartbeat_loop(self, interval_s: float):
        while True:
            await asyncio.sleep(interval_s)
            await self.broadcast({"type": "heartbeat"})


def response_message(envelope) -> Dict[str, Any]:
    """Message `response` sortant pour une enveloppe (contenu sous deux clés)."""
    message = {
        "type": "response",
        "status": envelope.status.value,
        "kind": envelope.kind.value,
        "sessionId": envelope.session_id,
        "content": envelope.text,
        "response": envelope.text,
        "timestamp": envelope.timestamp,
    }
    if envelope.error:
        message["error"] = envelope.error
    return message


def create_connection_manager(store: SessionStore) -> ConnectionManager:
    """
    Crée un gestionnaire de connexions lié à un registre de sessions.

    Returns:
        Instance de ConnectionManager
    """
    return ConnectionManager(store)
