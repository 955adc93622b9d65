"""External process execution.

Runs a converter tool with all three standard streams on pipes. Input is
written while stdout and stderr are drained concurrently, so a tool that
fills its output pipe before consuming all of its input cannot deadlock
the exchange. Stderr is kept only up to a bounded excerpt.

Failures map to typed errors:
- the tool cannot be started -> SpawnError
- the tool exceeds its time budget -> ProcessTimeoutError (process killed)
- the tool exits non-zero -> ExternalToolError with a stderr excerpt
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shlex
import shutil
import time
from typing import Sequence, cast

from rdfproxy.errors import ExternalToolError, ProcessTimeoutError, SpawnError

logger = logging.getLogger(__name__)

DEFAULT_STDERR_LIMIT = 4096
_CHUNK_SIZE = 64 * 1024


def is_tool_available(binary: str) -> bool:
    """Check whether an executable is on the search path."""
    return shutil.which(binary) is not None


async def _feed(stream: asyncio.StreamWriter, data: bytes) -> None:
    try:
        stream.write(data)
        await stream.drain()
    except (BrokenPipeError, ConnectionResetError):
        # The tool stopped reading; its exit status tells whether that is an error
        logger.debug("Tool closed stdin before consuming all input")
    finally:
        stream.close()
        with contextlib.suppress(BrokenPipeError, ConnectionResetError):
            await stream.wait_closed()


async def _drain_bounded(stream: asyncio.StreamReader, limit: int) -> tuple[bytes, int]:
    """Read a stream to EOF, keeping at most ``limit`` bytes.

    Returns:
        (kept bytes, number of dropped bytes)
    """
    kept = bytearray()
    dropped = 0
    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            return bytes(kept), dropped
        room = limit - len(kept)
        if room > 0:
            kept += chunk[:room]
        dropped += max(0, len(chunk) - max(room, 0))


async def _kill(process: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        process.kill()
    await process.wait()


def stderr_excerpt(kept: bytes, dropped: int) -> str:
    text = kept.decode("utf-8", errors="replace").rstrip()
    if dropped:
        text += f"\n... [{dropped} more bytes of stderr truncated]"
    return text


async def run_external(
    argv: Sequence[str],
    input: bytes | None,
    timeout: float,
    *,
    stderr_limit: int = DEFAULT_STDERR_LIMIT,
    cwd: str | None = None,
) -> bytes:
    """Run a tool and return its standard output.

    Args:
        argv: Executable followed by its arguments
        input: Bytes written to the tool's stdin, None to give it no input
        timeout: Wall-clock budget in seconds
        stderr_limit: Maximum number of stderr bytes kept for diagnostics
        cwd: Working directory of the tool

    Raises:
        SpawnError: If the executable cannot be started
        ProcessTimeoutError: If the tool does not finish in time
        ExternalToolError: If the tool exits with a non-zero status
    """
    command = shlex.join(argv)
    logger.debug("Running %s", command)
    start = time.perf_counter()

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
    except OSError as e:
        raise SpawnError(command, e.strerror or str(e)) from e

    # All three streams were requested as pipes
    stdin = cast(asyncio.StreamWriter, process.stdin)
    stdout_reader = cast(asyncio.StreamReader, process.stdout)
    stderr_reader = cast(asyncio.StreamReader, process.stderr)

    exchange = asyncio.gather(
        _feed(stdin, input or b""),
        stdout_reader.read(),
        _drain_bounded(stderr_reader, stderr_limit),
        process.wait(),
    )

    try:
        _, stdout, (stderr, dropped), exit_code = await asyncio.wait_for(exchange, timeout)
    except asyncio.TimeoutError:
        await _kill(process)
        logger.warning("Killed %s after %gs", command, timeout)
        raise ProcessTimeoutError(command, timeout) from None
    finally:
        if process.returncode is None:
            await _kill(process)

    logger.debug(
        "%s exited with %d after %.3fs", argv[0], exit_code, time.perf_counter() - start
    )

    if exit_code != 0:
        raise ExternalToolError(command, exit_code, stderr_excerpt(stderr, dropped))

    return stdout
