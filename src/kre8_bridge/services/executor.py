"""
Adaptateur d'exécution: processus OS ou appel HTTP aval.

Contrat:
- `execute(spec)` ne lève jamais: tout échec (spawn, timeout, réseau) devient
  un `ExecutorResult` avec exit_code non nul et `error` renseigné.
- Les chunks stdout partiels sont transmis au sink dans l'ordre d'arrivée,
  avant la production du résultat terminal.
- Pas de retry, pas de limite de concurrence: chaque appel est indépendant.
"""
import asyncio
import codecs
import logging
import os
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import httpx

from ..config.settings import ExecutorSettings
from ..core.constants import EXECUTOR_FAILURE_EXIT_CODE, STREAM_CHUNK_SIZE
from ..core.models import ExecutorResult, HttpCallSpec, ProcessSpec

logger = logging.getLogger(__name__)

ChunkSink = Callable[[str], Awaitable[None]]
ExecutorSpec = Union[str, ProcessSpec, HttpCallSpec]


class CommandExecutor:
    """
    Exécute une commande shell, un processus argv ou un appel HTTP.

    Le shell est lancé en `[shell, "-c", command]`: l'adaptateur ne construit
    aucun pipeline lui-même.
    """

    def __init__(
        self,
        settings: ExecutorSettings = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or ExecutorSettings()
        self._http_transport = http_transport

    @property
    def timeout_s(self) -> Optional[float]:
        return self.settings.timeout_s

    def submit(self, spec: ExecutorSpec, on_chunk: ChunkSink = None) -> "asyncio.Task[ExecutorResult]":
        """
        Lance l'exécution en tâche de fond.

        Retourne une `asyncio.Task` annulable; le bridge n'annule jamais,
        mais un appelant plus strict peut le faire.
        """
        return asyncio.create_task(self.execute(spec, on_chunk=on_chunk))

    async def execute(self, spec: ExecutorSpec, on_chunk: ChunkSink = None) -> ExecutorResult:
        """Dispatch selon le type de spec."""
        if isinstance(spec, HttpCallSpec):
            return await self.run_http(spec)
        if isinstance(spec, ProcessSpec):
            return await self.run_process(spec, on_chunk=on_chunk)
        return await self.run_shell(spec, on_chunk=on_chunk)

    async def run_shell(self, command: str, on_chunk: ChunkSink = None) -> ExecutorResult:
        """Exécute `command` via le shell configuré."""
        if not isinstance(command, str) or not command.strip():
            return _failure("Empty command")
        return await self.run_process(
            ProcessSpec(argv=[self.settings.shell, "-c", command]),
            on_chunk=on_chunk,
        )

    async def run_process(self, spec: ProcessSpec, on_chunk: ChunkSink = None) -> ExecutorResult:
        """
        Lance un processus, diffuse stdout par chunks et attend la fin.

        Le timeout (si configuré) tue le processus et produit un résultat
        `timed_out=True`.
        """
        if not spec.argv or not spec.argv[0]:
            return _failure("Empty command")

        env = None
        if spec.env:
            env = {**os.environ, **spec.env}

        try:
            proc = await asyncio.create_subprocess_exec(
                *spec.argv,
                stdin=asyncio.subprocess.PIPE if spec.stdin_data is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                cwd=self.settings.cwd,
            )
        except (OSError, ValueError) as e:
            logger.warning("Impossible de lancer %s: %s", spec.argv[0], e)
            return _failure(f"Failed to start {spec.argv[0]}: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(
                self._communicate(proc, spec.stdin_data, on_chunk),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            await _kill(proc)
            logger.warning("Timeout après %ss: %s", self.timeout_s, " ".join(spec.argv))
            return ExecutorResult(
                exit_code=EXECUTOR_FAILURE_EXIT_CODE,
                timed_out=True,
                error=f"Command timed out after {self.timeout_s}s",
            )
        except asyncio.CancelledError:
            await _kill(proc)
            raise

        exit_code = await proc.wait()
        return ExecutorResult(stdout=stdout, stderr=stderr, exit_code=exit_code)

    async def _communicate(
        self,
        proc: asyncio.subprocess.Process,
        stdin_data: Optional[str],
        on_chunk: ChunkSink,
    ):
        assert proc.stdout is not None
        assert proc.stderr is not None

        if stdin_data is not None and proc.stdin is not None:
            try:
                proc.stdin.write(stdin_data.encode("utf-8"))
                await proc.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                logger.debug("stdin fermé prématurément: %s", e)
            finally:
                proc.stdin.close()

        stderr_task = asyncio.create_task(proc.stderr.read())
        chunks = []
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                raw = await proc.stdout.read(STREAM_CHUNK_SIZE)
                if not raw:
                    break
                text = decoder.decode(raw)
                if not text:
                    continue
                chunks.append(text)
                await _emit(on_chunk, text)
            tail = decoder.decode(b"", final=True)
            if tail:
                chunks.append(tail)
                await _emit(on_chunk, tail)
            stderr_raw = await stderr_task
        finally:
            if not stderr_task.done():
                stderr_task.cancel()

        return "".join(chunks), stderr_raw.decode("utf-8", errors="replace")

    async def run_http(self, spec: HttpCallSpec) -> ExecutorResult:
        """
        Émet un appel HTTP unique.

        Réponse non-2xx: exit_code=1 et `error` renseigné, body conservé.
        Erreur réseau: exit_code=-1.
        """
        if not spec.url:
            return _failure("Empty URL")

        timeout = spec.timeout_s or self.timeout_s or None
        kwargs: Dict[str, Any] = {"timeout": httpx.Timeout(timeout, connect=10.0)}
        if self._http_transport is not None:
            kwargs["transport"] = self._http_transport

        try:
            async with httpx.AsyncClient(**kwargs) as client:
                response = await client.request(
                    spec.method.upper(),
                    spec.url,
                    json=spec.body if spec.body is not None else None,
                )
        except httpx.TimeoutException as e:
            logger.warning("Timeout HTTP %s %s: %s", spec.method, spec.url, e)
            return ExecutorResult(
                exit_code=EXECUTOR_FAILURE_EXIT_CODE,
                timed_out=True,
                error=f"Request to {spec.url} timed out",
            )
        except httpx.HTTPError as e:
            logger.warning("Erreur réseau %s %s: %s", spec.method, spec.url, e)
            return _failure(f"Request to {spec.url} failed: {e}")

        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        if response.is_success:
            return ExecutorResult(body=body, http_status=response.status_code)
        return ExecutorResult(
            body=body,
            http_status=response.status_code,
            exit_code=1,
            error=f"HTTP {response.status_code} from {spec.url}",
        )


def _failure(message: str) -> ExecutorResult:
    return ExecutorResult(exit_code=EXECUTOR_FAILURE_EXIT_CODE, error=message)


async def _emit(on_chunk: Optional[ChunkSink], text: str) -> None:
    """Transmet un chunk au sink; une erreur du sink n'interrompt pas le processus."""
    if on_chunk is None:
        return
    try:
        await on_chunk(text)
    except Exception as e:
        logger.warning("Sink de streaming en erreur: %s", e)


async def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    await proc.wait()


def create_executor(
    settings: ExecutorSettings = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> CommandExecutor:
    """
    Crée un exécuteur.

    Args:
        settings: Shell, timeout et répertoire de travail
        http_transport: Transport httpx injecté (tests)

    Returns:
        Instance de CommandExecutor
    """
    return CommandExecutor(settings=settings, http_transport=http_transport)
