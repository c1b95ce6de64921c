"""
Dataclasses métier pour KRE8 Bridge.

Tous les objets ici sont en mémoire uniquement: le bridge ne persiste rien.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import STATELESS_SESSION_ID


def now_iso() -> str:
    """Timestamp ISO-8601 utilisé dans tous les messages sortants."""
    return datetime.now().isoformat()


class CommandKind(str, Enum):
    """Classification d'une commande entrante."""
    SLASH = "slash"
    SHELL_ESCAPE = "shellEscape"
    FILE_READ = "fileRead"
    FILE_WRITE = "fileWrite"
    FREE_TEXT = "freeText"
    CONTROL = "control"


class EnvelopeStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Session:
    """Conversation logique identifiée par un id opaque."""
    session_id: str
    connection: Optional[Any] = None
    tool_config: Dict[str, Any] = field(default_factory=dict)
    tool_config_loaded: bool = False
    created_at: str = field(default_factory=now_iso)

    @property
    def is_attached(self) -> bool:
        return self.connection is not None

    @property
    def tool_count(self) -> int:
        return len(self.tool_config)


@dataclass
class Command:
    """Instruction émise par un client (HTTP ou canal)."""
    raw: str
    kind: CommandKind = CommandKind.FREE_TEXT
    session_id: str = STATELESS_SESSION_ID
    # Texte utile une fois le préfixe retiré ("!", "/", "read ")
    body: str = ""
    # Outils de la CLI Claude pour cette commande (None: config)
    use_tools: Optional[bool] = None


@dataclass
class ResponseEnvelope:
    """Résultat normalisé d'une commande routée."""
    status: EnvelopeStatus
    payload: Any
    kind: CommandKind
    session_id: str
    timestamp: str = field(default_factory=now_iso)
    error: Optional[str] = None

    @classmethod
    def success(cls, command: Command, payload: Any) -> "ResponseEnvelope":
        return cls(
            status=EnvelopeStatus.SUCCESS,
            payload=payload,
            kind=command.kind,
            session_id=command.session_id,
        )

    @classmethod
    def failure(cls, command: Command, message: str, payload: Any = None) -> "ResponseEnvelope":
        """
        Crée une enveloppe d'erreur.

        Le message est obligatoire: une erreur n'est jamais silencieuse.
        """
        if not message:
            message = "Unknown error"
        return cls(
            status=EnvelopeStatus.ERROR,
            payload=payload if payload is not None else message,
            kind=command.kind,
            session_id=command.session_id,
            error=message,
        )

    @property
    def ok(self) -> bool:
        return self.status == EnvelopeStatus.SUCCESS

    @property
    def has_output(self) -> bool:
        return self.payload not in (None, "", [], {})

    @property
    def text(self) -> str:
        """Représentation texte du payload pour les messages `response`."""
        if isinstance(self.payload, str):
            return self.payload
        if self.payload is None:
            return self.error or ""
        return str(self.payload)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "status": self.status.value,
            "payload": self.payload,
            "kind": self.kind.value,
            "sessionId": self.session_id,
            "timestamp": self.timestamp,
        }
        if self.ok:
            data["response"] = self.text
        else:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class ProcessSpec:
    """Processus à lancer en argv (sans shell), avec stdin optionnel."""
    argv: List[str]
    stdin_data: Optional[str] = None
    env: Optional[Dict[str, str]] = None


@dataclass(frozen=True)
class HttpCallSpec:
    """Appel HTTP vers un service aval (Ollama, gateway MCP...)."""
    method: str
    url: str
    body: Optional[Any] = None
    timeout_s: Optional[float] = None


@dataclass
class ExecutorResult:
    """
    Résultat terminal d'un appel à l'exécuteur.

    Process: stdout/stderr/exit_code. HTTP: body/http_status.
    Un échec côté adaptateur (spawn, timeout, réseau) a un exit_code non nul
    et un `error` renseigné.
    """
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    body: Any = None
    http_status: Optional[int] = None
    timed_out: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and self.error is None

    @property
    def error_message(self) -> str:
        """Message lisible décrivant l'échec (vide si succès)."""
        if self.ok:
            return ""
        if self.error:
            return self.error
        if self.stderr.strip():
            return self.stderr.strip()
        if self.http_status is not None:
            return f"HTTP {self.http_status}"
        return f"Process exited with code {self.exit_code}"

    def to_dict(self) -> Dict[str, Any]:
        """Corps `{output, error, exitCode}` d'une exécution de processus."""
        return {
            "output": self.stdout,
            "error": self.stderr or self.error or "",
            "exitCode": self.exit_code,
        }
