"""Pytest configuration and fixtures for zanbil tests.

Native toolchains are not invoked by the unit tests: `fake_toolchain` patches
the subprocess runner with a recorder that creates the object files and
archives a real compiler and `ar` would produce.
"""

import io
import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from zanbil import output
from zanbil.build.directives import CargoDirectives


@pytest.fixture(autouse=True)
def _quiet_output():
    """Send timestamped progress output to a buffer instead of the real stdout."""
    buffer = io.StringIO()
    output.init_timer(buffer)
    output.set_verbose(True)
    yield buffer
    output.init_timer(sys.stdout)


class FakeToolchain:
    """Records toolchain commands and fakes their outputs."""

    def __init__(self):
        self.commands: list[list[str]] = []
        self.fail_on: str | None = None
        self.stderr = ""

    def __call__(self, cmd, cwd=None, **kwargs):
        self.commands.append(list(cmd))
        if self.fail_on is not None and any(self.fail_on in arg for arg in cmd):
            return subprocess.CompletedProcess(cmd, returncode=1, stdout="", stderr=f"error: cannot compile {self.fail_on}")

        if "-o" in cmd:
            Path(cmd[cmd.index("-o") + 1]).write_bytes(b"\x7fELF")
        elif "crs" in cmd:
            Path(cmd[cmd.index("crs") + 1]).write_bytes(b"!<arch>\n")
        return subprocess.CompletedProcess(cmd, returncode=0, stdout="", stderr=self.stderr)

    @property
    def compile_commands(self) -> list[list[str]]:
        return [c for c in self.commands if "-c" in c]

    @property
    def archive_commands(self) -> list[list[str]]:
        return [c for c in self.commands if "crs" in c]


@pytest.fixture
def fake_toolchain():
    toolchain = FakeToolchain()
    with patch("zanbil.build.compiler.run_tool", side_effect=toolchain):
        yield toolchain


@pytest.fixture
def directive_stream():
    return io.StringIO()


@pytest.fixture
def directives(directive_stream):
    return CargoDirectives(directive_stream)


def write_unit(root: Path, links: str | None, zanbil_block: str = "", sources: dict[str, str] | None = None) -> Path:
    """Create a minimal Cargo unit under root and return its manifest dir."""
    root.mkdir(parents=True, exist_ok=True)
    lines = ["[package]", f'name = "{links or "unnamed"}"', 'version = "0.1.0"']
    if links is not None:
        lines.append(f'links = "{links}"')
    manifest = "\n".join(lines) + "\n"
    if zanbil_block:
        manifest += "\n[package.metadata.zanbil]\n" + zanbil_block + "\n"
    (root / "Cargo.toml").write_text(manifest)

    src = root / "src"
    src.mkdir(exist_ok=True)
    for rel, content in (sources or {}).items():
        path = src / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def make_unit():
    return write_unit
