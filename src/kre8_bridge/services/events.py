"""
Bus d'événements entre le routeur de commandes et le canal.

Le routeur publie; le canal s'abonne. La réponse HTTP et l'écho canal sont
donc deux livraisons indépendantes, sans ordre relatif garanti.
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Union

from ..core.models import Command, ResponseEnvelope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandStreamChunk:
    """Sortie partielle d'un exécuteur pour une session."""
    session_id: str
    content: str


@dataclass(frozen=True)
class CommandCompleted:
    """Commande terminée pour une session."""
    command: Command
    envelope: ResponseEnvelope

    @property
    def session_id(self) -> str:
        return self.command.session_id


BridgeEvent = Union[CommandStreamChunk, CommandCompleted]
Listener = Callable[[BridgeEvent], Awaitable[None]]


class CommandEventBus:
    """Observer minimal: liste de listeners async appelés séquentiellement."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def publish(self, event: BridgeEvent) -> None:
        """
        Diffuse l'événement à tous les listeners.

        Une erreur d'un listener est journalisée et n'empêche pas les autres.
        """
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception as e:
                logger.warning("Listener en erreur pour %s: %s", type(event).__name__, e)
