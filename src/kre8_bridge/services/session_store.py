"""
Registre des sessions.

Une session associe un id opaque à zéro ou une connexion canal vivante et à
la configuration d'outils chargée pour elle. Le registre est en mémoire
uniquement et n'est touché que depuis la boucle asyncio (pas de verrou).

Limitation connue: l'attachement se fait par égalité d'id, sans contrôle
d'appartenance. Tout client présentant un id connu reçoit les messages de
cette session. Le point d'extension est `AttachPolicy`.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..core.exceptions import ChannelError
from ..core.models import Session

logger = logging.getLogger(__name__)


class AttachPolicy(ABC):
    """Décide si un handle peut s'attacher à une session."""

    @abstractmethod
    def allow(self, session_id: str, handle: Any) -> bool:
        ...


class OpenAttachPolicy(AttachPolicy):
    """Routage par id sans authentification."""

    def allow(self, session_id: str, handle: Any) -> bool:
        return True


class SessionStore(ABC):
    """Interface du registre de sessions (injectée, jamais globale)."""

    @abstractmethod
    def get_or_create(self, session_id: str) -> Session:
        ...

    @abstractmethod
    def lookup(self, session_id: str) -> Optional[Session]:
        ...

    @abstractmethod
    def attach_connection(self, session_id: str, handle: Any) -> Session:
        ...

    @abstractmethod
    def detach(self, session_id: str, handle: Any = None) -> bool:
        ...

    @abstractmethod
    def connection_for(self, session_id: str) -> Optional[Any]:
        ...

    @abstractmethod
    def session_count(self) -> int:
        ...

    @abstractmethod
    def has_tool_config(self) -> bool:
        ...


class InMemorySessionStore(SessionStore):
    """Implémentation en mémoire (un dict par instance)."""

    def __init__(self, policy: AttachPolicy = None):
        self.policy = policy or OpenAttachPolicy()
        self._sessions: Dict[str, Session] = {}

    def get_or_create(self, session_id: str) -> Session:
        """
        Retourne la session, en la créant au premier appel.

        Idempotent: la config d'outils d'une session existante est conservée.
        """
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id=session_id)
            self._sessions[session_id] = session
            logger.debug("Session créée: %s", session_id)
        return session

    def lookup(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def attach_connection(self, session_id: str, handle: Any) -> Session:
        """
        Attache `handle` comme connexion vivante de la session.

        L'ancienne connexion éventuelle devient orpheline: elle n'est pas
        fermée, elle constatera elle-même la fermeture de son transport.
        """
        if not self.policy.allow(session_id, handle):
            raise ChannelError("Attach refused", session_id=session_id)

        session = self.get_or_create(session_id)
        if session.connection is not None and session.connection is not handle:
            logger.info("Session %s: connexion remplacée", session_id)
        session.connection = handle
        return session

    def detach(self, session_id: str, handle: Any = None) -> bool:
        """
        Détache la connexion et libère l'état de la session.

        Si `handle` est fourni, ne fait rien quand ce n'est plus la connexion
        vivante (cas d'une connexion orpheline qui se ferme après son
        remplacement).

        Returns:
            True si la session a été libérée
        """
        session = self._sessions.get(session_id)
        if session is None:
            return False
        if handle is not None and session.connection is not handle:
            return False

        session.connection = None
        session.tool_config = {}
        session.tool_config_loaded = False
        del self._sessions[session_id]
        logger.debug("Session libérée: %s", session_id)
        return True

    def connection_for(self, session_id: str) -> Optional[Any]:
        session = self._sessions.get(session_id)
        return session.connection if session else None

    def session_count(self) -> int:
        return len(self._sessions)

    def has_tool_config(self) -> bool:
        return any(session.tool_config for session in self._sessions.values())


def create_session_store(policy: AttachPolicy = None) -> SessionStore:
    """Crée un registre isolé (un par application, un par test)."""
    return InMemorySessionStore(policy=policy)
