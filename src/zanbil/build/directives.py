"""Cargo build-script directives and generated Rust glue.

Cargo reads `cargo:` lines from a build script's stdout. Everything else a
build step wants to say goes through zanbil.output on stderr.
"""

import sys
from pathlib import Path
from typing import Iterable, Optional, TextIO

from .build_context import Dependency

GENERATED_LIB_NAME = "generated_lib.rs"


class CargoDirectives:
    """Writes `cargo:` directives to a stream (stdout by default)."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdout

    def _emit(self, directive: str) -> None:
        self.stream.write(f"cargo:{directive}\n")
        self.stream.flush()

    def rerun_if_changed(self, path: Path) -> None:
        self._emit(f"rerun-if-changed={path}")

    def rerun_if_env_changed(self, name: str) -> None:
        self._emit(f"rerun-if-env-changed={name}")

    def rustc_link_search(self, path: Path, kind: str = "native") -> None:
        self._emit(f"rustc-link-search={kind}={path}")

    def rustc_link_lib(self, name: str, kind: str = "static") -> None:
        self._emit(f"rustc-link-lib={kind}={name}")

    def metadata(self, key: str, value: str) -> None:
        """Publish `key=value` to dependents as DEP_<LINKS>_<KEY>."""
        self._emit(f"{key}={value}")

    def warning(self, message: str) -> None:
        self._emit(f"warning={message}")


def render_generated_lib(dependencies: Iterable[Dependency]) -> str:
    """Rust fragment that links the current crate against every upstream unit."""
    names = sorted({dep.name.lower() for dep in dependencies})
    return "".join(f"extern crate {name};\n" for name in names)


def write_generated_lib(out_dir: Path, dependencies: Iterable[Dependency]) -> Path:
    """Write OUT_DIR/generated_lib.rs, meant to be `include!`d by the crate."""
    path = out_dir / GENERATED_LIB_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_generated_lib(dependencies), encoding="utf-8")
    return path
