"""External command-line converters.

Each tool is described by a CommandSpec: the executable, an argument
template and the tool's own names for the formats it handles. Templates may
use four placeholders:

- ``{input}``: path of the source document; without it the source is
  piped to the tool's stdin
- ``{output}``: path the tool writes to; without it the result is read
  from the tool's stdout
- ``{from}`` / ``{to}``: the tool's name of the source / target format

Input files are named ``input.<ext>`` for tools that infer the source
format from the file extension.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Iterable, Mapping

import aiofiles
import aiofiles.tempfile

from rdfproxy.conversion.backends.base import BackendKind, ConverterBackend
from rdfproxy.conversion.process import DEFAULT_STDERR_LIMIT, is_tool_available, run_external
from rdfproxy.errors import ConversionError, SpawnError
from rdfproxy.formats.registry import Format

logger = logging.getLogger(__name__)

INPUT = "{input}"
OUTPUT = "{output}"


@dataclass(frozen=True)
class CommandSpec:
    """How to invoke an external converter."""

    binary: str
    args: tuple[str, ...] = ()
    # Format id -> the tool's name for it; ids without an entry are passed as-is
    format_names: Mapping[str, str] = field(default_factory=dict, compare=False)

    @property
    def reads_stdin(self) -> bool:
        return not any(INPUT in arg for arg in self.args)

    @property
    def writes_stdout(self) -> bool:
        return not any(OUTPUT in arg for arg in self.args)

    def format_name(self, fmt: Format) -> str:
        return self.format_names.get(fmt.id, fmt.id)

    def render(
        self,
        source: Format,
        target: Format,
        input_path: str | None = None,
        output_path: str | None = None,
    ) -> list[str]:
        """Build the argument vector for one conversion."""
        values = {
            INPUT: input_path or "",
            OUTPUT: output_path or "",
            "{from}": self.format_name(source),
            "{to}": self.format_name(target),
        }
        argv = [self.binary]
        for arg in self.args:
            for placeholder, value in values.items():
                arg = arg.replace(placeholder, value)
            argv.append(arg)
        return argv


class ExternalBackend(ConverterBackend):
    """Converter backed by an external command-line tool."""

    kind = BackendKind.EXTERNAL

    def __init__(
        self,
        name: str,
        command: CommandSpec,
        sources: Iterable[str],
        targets: Iterable[str],
        *,
        html_target_only: bool = False,
        timeout: float = 60.0,
        stderr_limit: int = DEFAULT_STDERR_LIMIT,
    ) -> None:
        self.name = name
        self.command = command
        self.sources = frozenset(sources)
        self.targets = frozenset(targets)
        self.html_target_only = html_target_only
        self.timeout = timeout
        self.stderr_limit = stderr_limit

    def can_convert(self, source: Format, target: Format) -> bool:
        return source.id in self.sources and target.id in self.targets and source != target

    def is_available(self) -> bool:
        return is_tool_available(self.command.binary)

    async def _convert(self, payload: bytes, source: Format, target: Format) -> bytes:
        if self.command.reads_stdin and self.command.writes_stdout:
            result = await run_external(
                self.command.render(source, target),
                payload,
                self.timeout,
                stderr_limit=self.stderr_limit,
            )
        else:
            result = await self._convert_with_files(payload, source, target)

        if not result:
            raise ConversionError(f"{self.command.binary} produced no output", self.name)
        return result

    async def _convert_with_files(self, payload: bytes, source: Format, target: Format) -> bytes:
        async with aiofiles.tempfile.TemporaryDirectory(prefix="rdfproxy-") as workdir:
            input_path = os.path.join(workdir, f"input.{source.primary_extension}")
            output_path = os.path.join(workdir, f"output.{target.primary_extension}")

            if not self.command.reads_stdin:
                async with aiofiles.open(input_path, "wb") as f:
                    await f.write(payload)

            stdout = await run_external(
                self.command.render(source, target, input_path, output_path),
                payload if self.command.reads_stdin else None,
                self.timeout,
                stderr_limit=self.stderr_limit,
                cwd=workdir,
            )

            if self.command.writes_stdout:
                return stdout

            try:
                async with aiofiles.open(output_path, "rb") as f:
                    return await f.read()
            except FileNotFoundError:
                raise ConversionError(
                    f"{self.command.binary} exited successfully but wrote no output file",
                    self.name,
                ) from None


@dataclass(frozen=True)
class ToolDefinition:
    """A known external tool and the conversions it offers."""

    name: str
    command: CommandSpec
    sources: tuple[str, ...]
    targets: tuple[str, ...]
    html_target_only: bool = False

    def create_backend(
        self, timeout: float = 60.0, stderr_limit: int = DEFAULT_STDERR_LIMIT
    ) -> ExternalBackend:
        return ExternalBackend(
            self.name,
            self.command,
            self.sources,
            self.targets,
            html_target_only=self.html_target_only,
            timeout=timeout,
            stderr_limit=stderr_limit,
        )


_RDFLIB_NAMES = {
    "turtle": "turtle",
    "n-triples": "nt",
    "rdf-xml": "xml",
    "json-ld": "json-ld",
    "trig": "trig",
    "n-quads": "nquads",
    "n3": "n3",
}

BUILTIN_TOOLS: dict[str, ToolDefinition] = {
    "pylode": ToolDefinition(
        name="pylode",
        command=CommandSpec(
            binary="pylode",
            args=(
                "--sort",
                "--css",
                "true",
                "--profile",
                "ontpub",
                "--outputfile",
                OUTPUT,
                INPUT,
            ),
        ),
        sources=tuple(_RDFLIB_NAMES),
        targets=("html",),
        html_target_only=True,
    ),
    "rdf-convert": ToolDefinition(
        name="rdf-convert",
        command=CommandSpec(
            binary="rdf-convert",
            args=("--input", INPUT, "--output", OUTPUT, "--read", "{from}", "--write", "{to}"),
            format_names=_RDFLIB_NAMES,
        ),
        sources=tuple(_RDFLIB_NAMES),
        targets=tuple(_RDFLIB_NAMES),
    ),
    "rdfx": ToolDefinition(
        name="rdfx",
        command=CommandSpec(
            binary="rdfx",
            args=("convert", "--format", "{to}", "--output", OUTPUT, INPUT),
            format_names=_RDFLIB_NAMES,
        ),
        sources=("turtle", "n-triples", "rdf-xml", "json-ld", "n3"),
        targets=("turtle", "n-triples", "rdf-xml", "json-ld", "n3"),
    ),
    "robot": ToolDefinition(
        name="robot",
        command=CommandSpec(
            binary="robot",
            args=("convert", "--input", INPUT, "--format", "{to}", "--output", OUTPUT),
            format_names={
                "turtle": "ttl",
                "rdf-xml": "owl",
                "owl-xml": "owx",
                "owl-functional": "ofn",
                "manchester": "omn",
            },
        ),
        sources=("turtle", "rdf-xml", "owl-xml", "owl-functional", "manchester"),
        targets=("turtle", "rdf-xml", "owl-xml", "owl-functional", "manchester"),
    ),
}


def load_external_backends(
    names: Iterable[str],
    *,
    timeout: float = 60.0,
    stderr_limit: int = DEFAULT_STDERR_LIMIT,
    require: bool = False,
    tools: Mapping[str, ToolDefinition] = BUILTIN_TOOLS,
) -> list[ExternalBackend]:
    """Create backends for the configured tools found on the search path.

    Args:
        names: Tool names, in registration order
        timeout: Per-invocation time budget
        stderr_limit: Stderr excerpt size
        require: Fail instead of skipping tools that are not installed
        tools: Known tool definitions

    Raises:
        ValueError: If a name is not a known tool
        SpawnError: If ``require`` is set and a tool is missing
    """
    backends = []
    for name in names:
        definition = tools.get(name)
        if definition is None:
            raise ValueError(f"Unknown external tool: {name} (known: {', '.join(tools)})")
        backend = definition.create_backend(timeout=timeout, stderr_limit=stderr_limit)
        if not backend.is_available():
            if require:
                raise SpawnError(definition.command.binary, "executable not found on PATH")
            logger.warning(
                "External tool %s not found on PATH, its conversions are disabled",
                definition.command.binary,
            )
            continue
        logger.info("Using external tool %s", definition.command.binary)
        backends.append(backend)
    return backends
