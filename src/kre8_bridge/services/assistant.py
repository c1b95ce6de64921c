"""
Backends assistant pour le texte libre non couvert par les heuristiques.

- `echo`: aucun backend, le routeur produit un accusé de réception générique
- `claude_cli`: `claude chat --no-interactive`, message envoyé sur stdin
- `ollama`: `POST /api/generate` sur une instance Ollama locale
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..config.settings import AssistantSettings
from ..core.exceptions import ExecutorError
from ..core.models import Command, HttpCallSpec, ProcessSpec, ResponseEnvelope
from .executor import ChunkSink, CommandExecutor

logger = logging.getLogger(__name__)


class Assistant(ABC):
    """Interface commune des backends assistant."""

    name = "base"

    @abstractmethod
    async def respond(self, command: Command, on_chunk: ChunkSink = None) -> ResponseEnvelope:
        ...


class ClaudeCliAssistant(Assistant):
    """Relaie le message vers la CLI Claude et diffuse stdout en streaming."""

    name = "claude_cli"

    def __init__(self, executor: CommandExecutor, settings: AssistantSettings):
        self.executor = executor
        self.settings = settings

    def build_spec(self, message: str, allow_tools: Optional[bool] = None) -> ProcessSpec:
        """`allow_tools` None: valeur de la config."""
        if allow_tools is None:
            allow_tools = self.settings.allow_tools
        argv = [self.settings.claude_command, *self.settings.claude_args]
        env = None
        if allow_tools:
            argv.append("--allow-tools")
            env = {"CLAUDE_ALLOW_TOOLS": "true"}
        return ProcessSpec(argv=argv, stdin_data=message + "\n", env=env)

    async def respond(self, command: Command, on_chunk: ChunkSink = None) -> ResponseEnvelope:
        spec = self.build_spec(command.raw, allow_tools=command.use_tools)
        result = await self.executor.execute(spec, on_chunk=on_chunk)
        if not result.ok:
            return ResponseEnvelope.failure(
                command,
                result.error_message or "Claude process failed",
            )
        return ResponseEnvelope.success(command, result.stdout)


class OllamaClient:
    """Client minimal de l'API Ollama, via l'exécuteur HTTP."""

    def __init__(self, executor: CommandExecutor, settings: AssistantSettings):
        self.executor = executor
        self.settings = settings

    @property
    def base_url(self) -> str:
        return self.settings.ollama_url

    def _spec(self, method: str, path: str, body: Any = None) -> HttpCallSpec:
        return HttpCallSpec(
            method=method,
            url=f"{self.base_url}{path}",
            body=body,
            timeout_s=self.settings.http_timeout_s,
        )

    async def version(self) -> Optional[str]:
        """Version d'Ollama, ou None si le service ne répond pas."""
        result = await self.executor.run_http(self._spec("GET", "/api/version"))
        if not result.ok or not isinstance(result.body, dict):
            return None
        return result.body.get("version")

    async def list_models(self) -> List[Dict[str, Any]]:
        """
        Modèles installés.

        Raises:
            ExecutorError: service injoignable ou réponse en erreur
        """
        result = await self.executor.run_http(self._spec("GET", "/api/tags"))
        if not result.ok:
            raise ExecutorError(result.error_message, http_status=result.http_status)
        body = result.body if isinstance(result.body, dict) else {}
        models = body.get("models")
        return models if isinstance(models, list) else []

    async def generate(self, prompt: str, model: str = None) -> str:
        """
        Génération non streamée.

        Raises:
            ExecutorError: service injoignable ou réponse en erreur
        """
        payload = {
            "model": model or self.settings.ollama_model,
            "prompt": prompt,
            "stream": False,
        }
        result = await self.executor.run_http(self._spec("POST", "/api/generate", payload))
        if not result.ok:
            detail = result.error_message
            if isinstance(result.body, dict) and result.body.get("error"):
                detail = f"{detail}: {result.body['error']}"
            raise ExecutorError(detail, http_status=result.http_status)
        if isinstance(result.body, dict):
            return str(result.body.get("response", ""))
        return str(result.body or "")


class OllamaAssistant(Assistant):
    """Répond au texte libre via un modèle Ollama."""

    name = "ollama"

    def __init__(self, client: OllamaClient):
        self.client = client

    async def respond(self, command: Command, on_chunk: ChunkSink = None) -> ResponseEnvelope:
        try:
            text = await self.client.generate(command.raw)
        except ExecutorError as e:
            return ResponseEnvelope.failure(command, e.message)
        return ResponseEnvelope.success(command, text)


def create_assistant(settings: AssistantSettings, executor: CommandExecutor) -> Optional[Assistant]:
    """
    Construit le backend configuré.

    Returns:
        None pour `echo` (accusé de réception du routeur)
    """
    if settings.backend == "claude_cli":
        return ClaudeCliAssistant(executor, settings)
    if settings.backend == "ollama":
        return OllamaAssistant(OllamaClient(executor, settings))
    return None
