"""
Tests unitaires pour l'exécuteur de commandes.

Pourquoi: l'exécuteur ne doit jamais lever. Spawn impossible, timeout et
erreur réseau deviennent tous un `ExecutorResult` en échec, et les chunks
stdout arrivent dans l'ordre avant le résultat terminal.
"""
import sys

import httpx
import pytest

from kre8_bridge.config.settings import ExecutorSettings
from kre8_bridge.core.models import HttpCallSpec, ProcessSpec
from kre8_bridge.services.executor import CommandExecutor, create_executor


def _collector():
    chunks = []

    async def sink(chunk: str) -> None:
        chunks.append(chunk)

    return chunks, sink


class TestRunShell:
    """Exécution via `bash -c`."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_echo_success(self):
        executor = create_executor()
        result = await executor.run_shell("echo hi")

        assert result.ok
        assert result.exit_code == 0
        assert result.stdout == "hi\n"
        assert result.stderr == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_zero_exit_keeps_stderr(self):
        executor = create_executor()
        result = await executor.run_shell("echo oops 1>&2; exit 3")

        assert not result.ok
        assert result.exit_code == 3
        assert result.stderr == "oops\n"
        assert result.error_message == "oops"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_command_is_a_failure(self):
        executor = create_executor()
        result = await executor.run_shell("   ")

        assert not result.ok
        assert result.exit_code == -1
        assert result.error == "Empty command"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_pipeline_is_left_to_the_shell(self):
        executor = create_executor()
        result = await executor.run_shell("printf 'b\\na\\n' | sort")

        assert result.stdout == "a\nb\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cwd_from_settings(self, tmp_path):
        executor = CommandExecutor(ExecutorSettings(cwd=str(tmp_path)))
        result = await executor.run_shell("pwd")

        assert result.stdout.strip() == str(tmp_path)


class TestRunProcess:
    """Processus argv, streaming et timeout."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_chunks_arrive_in_order(self):
        chunks, sink = _collector()
        code = (
            "import sys, time\n"
            "print('first', flush=True)\n"
            "time.sleep(0.2)\n"
            "print('second', flush=True)\n"
        )
        executor = create_executor()
        result = await executor.run_process(ProcessSpec(argv=[sys.executable, "-c", code]), on_chunk=sink)

        assert result.ok
        assert "".join(chunks) == "first\nsecond\n"
        assert chunks[0].startswith("first")
        assert len(chunks) >= 2
        assert result.stdout == "first\nsecond\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stdin_is_forwarded(self):
        executor = create_executor()
        spec = ProcessSpec(
            argv=[sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"],
            stdin_data="hello",
        )
        result = await executor.run_process(spec)

        assert result.stdout == "HELLO\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_env_is_merged_with_parent_environment(self):
        executor = create_executor()
        spec = ProcessSpec(
            argv=[sys.executable, "-c", "import os; print(os.environ['KRE8_FLAG'], 'PATH' in os.environ)"],
            env={"KRE8_FLAG": "on"},
        )
        result = await executor.run_process(spec)

        assert result.stdout == "on True\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_spawn_failure_becomes_result(self):
        executor = create_executor()
        result = await executor.run_process(ProcessSpec(argv=["/nonexistent/kre8-binary"]))

        assert not result.ok
        assert result.exit_code == -1
        assert result.error.startswith("Failed to start /nonexistent/kre8-binary")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        executor = CommandExecutor(ExecutorSettings(timeout_s=0.3))
        result = await executor.run_shell("sleep 5")

        assert result.timed_out
        assert result.exit_code == -1
        assert "timed out" in result.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failing_sink_does_not_abort_process(self):
        async def broken_sink(chunk: str) -> None:
            raise RuntimeError("sink closed")

        executor = create_executor()
        result = await executor.run_shell("echo still-here", on_chunk=broken_sink)

        assert result.ok
        assert result.stdout == "still-here\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_submit_returns_task(self):
        executor = create_executor()
        task = executor.submit("echo task")
        result = await task

        assert result.stdout == "task\n"


class TestRunHttp:
    """Appels HTTP via un transport httpx simulé."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_json_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = request.content
            return httpx.Response(200, json={"ok": True})

        executor = create_executor(http_transport=httpx.MockTransport(handler))
        result = await executor.execute(HttpCallSpec(method="post", url="http://ollama.test/api", body={"a": 1}))

        assert result.ok
        assert result.body == {"ok": True}
        assert result.http_status == 200
        assert seen["method"] == "POST"
        assert b'"a"' in seen["body"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_2xx_keeps_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="internal failure")

        executor = create_executor(http_transport=httpx.MockTransport(handler))
        result = await executor.run_http(HttpCallSpec(method="GET", url="http://ollama.test/x"))

        assert not result.ok
        assert result.exit_code == 1
        assert result.body == "internal failure"
        assert result.error == "HTTP 500 from http://ollama.test/x"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_network_error_becomes_result(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        executor = create_executor(http_transport=httpx.MockTransport(handler))
        result = await executor.run_http(HttpCallSpec(method="GET", url="http://ollama.test/x"))

        assert not result.ok
        assert result.exit_code == -1
        assert "connection refused" in result.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_http_timeout_is_flagged(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        executor = create_executor(http_transport=httpx.MockTransport(handler))
        result = await executor.run_http(HttpCallSpec(method="GET", url="http://ollama.test/x"))

        assert result.timed_out
        assert result.error == "Request to http://ollama.test/x timed out"
