"""Tests for external process execution."""

import sys
import time

import pytest

from rdfproxy.conversion.process import is_tool_available, run_external, stderr_excerpt
from rdfproxy.errors import ExternalToolError, ProcessTimeoutError, SpawnError


def python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class TestRunExternal:
    """Tests for run_external."""

    @pytest.mark.asyncio
    async def test_echoes_stdin(self) -> None:
        """Stdout of a successful tool is returned."""
        argv = python("import sys; sys.stdout.buffer.write(sys.stdin.buffer.read().upper())")
        assert await run_external(argv, b"hello", timeout=30) == b"HELLO"

    @pytest.mark.asyncio
    async def test_no_input(self) -> None:
        """A tool given no input sees an immediate end of file."""
        argv = python("import sys; print(len(sys.stdin.buffer.read()))")
        assert (await run_external(argv, None, timeout=30)).strip() == b"0"

    @pytest.mark.asyncio
    async def test_non_zero_exit(self) -> None:
        """A failing tool raises with its exit status and stderr."""
        argv = python("import sys; sys.stderr.write('bad input'); sys.exit(3)")
        with pytest.raises(ExternalToolError) as exc_info:
            await run_external(argv, b"", timeout=30)
        assert exc_info.value.exit_code == 3
        assert exc_info.value.stderr_excerpt == "bad input"
        assert "non-zero exit status 3" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_stderr_is_bounded(self) -> None:
        """Only a bounded excerpt of stderr is kept."""
        argv = python("import sys; sys.stderr.write('e' * 10000); sys.exit(1)")
        with pytest.raises(ExternalToolError) as exc_info:
            await run_external(argv, b"", timeout=30, stderr_limit=100)
        excerpt = exc_info.value.stderr_excerpt
        assert excerpt.startswith("e" * 100)
        assert "9900 more bytes of stderr truncated" in excerpt

    @pytest.mark.asyncio
    async def test_timeout_kills_tool(self) -> None:
        """A tool exceeding its budget is killed promptly."""
        argv = python("import time; time.sleep(30)")
        start = time.monotonic()
        with pytest.raises(ProcessTimeoutError) as exc_info:
            await run_external(argv, b"", timeout=0.5)
        assert time.monotonic() - start < 10
        assert exc_info.value.timeout == 0.5

    @pytest.mark.asyncio
    async def test_missing_binary(self) -> None:
        """A missing executable raises SpawnError."""
        with pytest.raises(SpawnError) as exc_info:
            await run_external(["/nonexistent/rdfproxy-tool"], b"", timeout=5)
        assert exc_info.value.command == "/nonexistent/rdfproxy-tool"

    @pytest.mark.asyncio
    async def test_large_output_before_reading_input(self) -> None:
        """Filling stdout before consuming stdin does not deadlock."""
        argv = python(
            "import sys\n"
            "sys.stdout.buffer.write(b'x' * (1 << 20))\n"
            "sys.stdout.flush()\n"
            "data = sys.stdin.buffer.read()\n"
            "sys.stdout.buffer.write(data)\n"
        )
        payload = b"y" * (1 << 20)
        result = await run_external(argv, payload, timeout=30)
        assert len(result) == 2 << 20
        assert result.endswith(b"y" * 16)

    @pytest.mark.asyncio
    async def test_tool_ignoring_stdin(self) -> None:
        """A tool that exits without reading its input still succeeds."""
        argv = python("print('done')")
        result = await run_external(argv, b"z" * (1 << 20), timeout=30)
        assert result.strip() == b"done"


class TestHelpers:
    """Tests for process helpers."""

    def test_stderr_excerpt(self) -> None:
        """Dropped byte counts are appended."""
        assert stderr_excerpt(b"oops\n", 0) == "oops"
        assert stderr_excerpt(b"oops", 12).endswith("[12 more bytes of stderr truncated]")

    def test_is_tool_available(self) -> None:
        """Executables are looked up on the search path."""
        assert is_tool_available(sys.executable)
        assert not is_tool_available("rdfproxy-no-such-tool")
