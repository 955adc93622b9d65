"""Tests for external command-line backends."""

import sys

import pytest

from rdfproxy.conversion.backends.external import (
    BUILTIN_TOOLS,
    INPUT,
    OUTPUT,
    CommandSpec,
    ExternalBackend,
    ToolDefinition,
    load_external_backends,
)
from rdfproxy.errors import ConversionError, ExternalToolError, SpawnError
from rdfproxy.formats.registry import FormatRegistry

UPPER = "import sys; sys.stdout.buffer.write(sys.stdin.buffer.read().upper())"
COPY_FILE = (
    "import sys\n"
    "data = open(sys.argv[1], 'rb').read()\n"
    "open(sys.argv[2], 'wb').write(b'<html>' + data + b'</html>')\n"
)


def backend(args: tuple[str, ...], **kwargs) -> ExternalBackend:
    return ExternalBackend(
        "test-tool",
        CommandSpec(binary=sys.executable, args=args, format_names={"turtle": "ttl"}),
        sources=("turtle",),
        targets=("n-triples", "html"),
        **kwargs,
    )


class TestCommandSpec:
    """Tests for command templates."""

    def test_stream_detection(self) -> None:
        """Placeholders decide between pipes and files."""
        assert CommandSpec("tool").reads_stdin
        assert CommandSpec("tool").writes_stdout
        spec = CommandSpec("tool", ("--out", OUTPUT, INPUT))
        assert not spec.reads_stdin
        assert not spec.writes_stdout

    def test_render(self, registry: FormatRegistry) -> None:
        """Placeholders are substituted, including inside arguments."""
        spec = CommandSpec(
            "tool", ("--from={from}", "{to}", INPUT, OUTPUT), format_names={"turtle": "ttl"}
        )
        argv = spec.render(registry["turtle"], registry["json-ld"], "/tmp/in.ttl", "/tmp/out")
        assert argv == ["tool", "--from=ttl", "json-ld", "/tmp/in.ttl", "/tmp/out"]

    def test_builtin_robot_names(self, registry: FormatRegistry) -> None:
        """Robot receives its own format names."""
        spec = BUILTIN_TOOLS["robot"].command
        argv = spec.render(registry["turtle"], registry["owl-xml"], "in.ttl", "out.owx")
        assert argv == [
            "robot", "convert", "--input", "in.ttl", "--format", "owx", "--output", "out.owx"
        ]

    def test_builtin_pylode_is_html_only(self) -> None:
        """The documentation generator may produce HTML."""
        assert BUILTIN_TOOLS["pylode"].html_target_only
        assert BUILTIN_TOOLS["pylode"].targets == ("html",)


class TestExternalBackend:
    """Tests for ExternalBackend conversions."""

    def test_can_convert(self, registry: FormatRegistry) -> None:
        """Declared sources and targets bound the supported pairs."""
        tool = backend(("-c", UPPER))
        assert tool.can_convert(registry["turtle"], registry["n-triples"])
        assert not tool.can_convert(registry["n-triples"], registry["turtle"])
        assert tool.cost == 10

    @pytest.mark.asyncio
    async def test_pipe_mode(self, registry: FormatRegistry) -> None:
        """Without placeholders the payload is piped through the tool."""
        result = await backend(("-c", UPPER)).convert(
            b"abc", registry["turtle"], registry["n-triples"]
        )
        assert result == b"ABC"

    @pytest.mark.asyncio
    async def test_file_mode(self, registry: FormatRegistry) -> None:
        """Input and output files are provided to the tool."""
        tool = backend(("-c", COPY_FILE, INPUT, OUTPUT), html_target_only=True)
        result = await tool.convert(b"doc", registry["turtle"], registry["html"])
        assert result == b"<html>doc</html>"

    @pytest.mark.asyncio
    async def test_input_file_extension(self, registry: FormatRegistry) -> None:
        """The input file carries the source format's extension."""
        code = "import sys, os; print(os.path.basename(sys.argv[1]))"
        result = await backend(("-c", code, INPUT)).convert(
            b"doc", registry["turtle"], registry["n-triples"]
        )
        assert result.strip() == b"input.ttl"

    @pytest.mark.asyncio
    async def test_format_names_passed(self, registry: FormatRegistry) -> None:
        """Format placeholders use the tool's names."""
        code = "import sys; print(sys.argv[1], sys.argv[2])"
        result = await backend(("-c", code, "{from}", "{to}")).convert(
            b"", registry["turtle"], registry["n-triples"]
        )
        assert result.strip() == b"ttl n-triples"

    @pytest.mark.asyncio
    async def test_empty_output(self, registry: FormatRegistry) -> None:
        """A tool producing nothing is a conversion failure."""
        with pytest.raises(ConversionError, match="produced no output"):
            await backend(("-c", "pass")).convert(
                b"abc", registry["turtle"], registry["n-triples"]
            )

    @pytest.mark.asyncio
    async def test_missing_output_file(self, registry: FormatRegistry) -> None:
        """A tool that writes no output file is a conversion failure."""
        with pytest.raises(ConversionError, match="no output file"):
            await backend(("-c", "pass", INPUT, OUTPUT)).convert(
                b"abc", registry["turtle"], registry["n-triples"]
            )

    @pytest.mark.asyncio
    async def test_tool_failure(self, registry: FormatRegistry) -> None:
        """Non-zero exits propagate as ExternalToolError."""
        code = "import sys; sys.stderr.write('syntax error line 1'); sys.exit(2)"
        with pytest.raises(ExternalToolError) as exc_info:
            await backend(("-c", code)).convert(
                b"abc", registry["turtle"], registry["n-triples"]
            )
        assert "syntax error line 1" in exc_info.value.stderr_excerpt


class TestLoadExternalBackends:
    """Tests for tool discovery."""

    TOOLS = {
        "present": ToolDefinition(
            name="present",
            command=CommandSpec(binary=sys.executable),
            sources=("turtle",),
            targets=("owl-xml",),
        ),
        "absent": ToolDefinition(
            name="absent",
            command=CommandSpec(binary="rdfproxy-no-such-tool"),
            sources=("turtle",),
            targets=("owl-xml",),
        ),
    }

    def test_missing_tools_skipped(self) -> None:
        """Tools not on the search path are left out."""
        backends = load_external_backends(["absent", "present"], tools=self.TOOLS, timeout=5)
        assert [b.name for b in backends] == ["present"]
        assert backends[0].timeout == 5

    def test_missing_tools_required(self) -> None:
        """Required tools that are missing fail startup."""
        with pytest.raises(SpawnError):
            load_external_backends(["absent"], tools=self.TOOLS, require=True)

    def test_unknown_tool(self) -> None:
        """Unknown tool names are configuration errors."""
        with pytest.raises(ValueError, match="Unknown external tool"):
            load_external_backends(["nope"], tools=self.TOOLS)
