"""Native Compiler.

This module compiles a unit's C or C++ sources into one static library and
tells Cargo to link it.

Compilation Process:
    1. Select the language from the unit config (C unless language_mode is set)
    2. Select the compiler: $CC / $CXX if set, otherwise `cc` / `c++`
    3. Walk the source tree for files with the language's extensions
    4. Compile each file against the aggregated include path
    5. Archive all objects into OUT_DIR/libmain.a
    6. Emit rustc-link-search / rustc-link-lib directives

Any failure aborts the build step. Objects compiled with differing include
paths could disagree about which same-named header they saw, so there is no
partial output and no retry.
"""

import logging
import os
import shlex
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from ..config.manifest import UnitConfig
from ..errors import ZanbilError
from ..output import log_detail, log_file, log_warning
from ..subprocess_utils import run_tool
from .directives import CargoDirectives

logger = logging.getLogger(__name__)

LIBRARY_NAME = "main"
DEFAULT_ARCHIVER = "ar"
# Global header of a Unix ar archive; on its own it is a valid archive with no members
AR_MAGIC = b"!<arch>\n"

# Changing any of these must rebuild the unit
TRACKED_ENV_VARS = ("CC", "CXX", "AR", "CFLAGS", "CXXFLAGS")


class NativeCompilerError(ZanbilError):
    """Raised when source discovery, compilation or archiving fails."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(f"{message}\n{stderr}".rstrip() if stderr else message)
        self.stderr = stderr


class SourceLanguage(Enum):
    """Native language of a unit's sources."""

    C = "c"
    CXX = "c++"

    def __str__(self) -> str:
        return self.value

    @property
    def extensions(self) -> tuple[str, ...]:
        return (".c",) if self is SourceLanguage.C else (".cpp", ".cxx", ".cc")

    @property
    def compiler_env_var(self) -> str:
        return "CC" if self is SourceLanguage.C else "CXX"

    @property
    def default_compiler(self) -> str:
        return "cc" if self is SourceLanguage.C else "c++"

    @property
    def flags_env_var(self) -> str:
        return "CFLAGS" if self is SourceLanguage.C else "CXXFLAGS"

    @classmethod
    def for_config(cls, config: UnitConfig) -> "SourceLanguage":
        return cls.CXX if config.is_cpp else cls.C


class NativeCompiler:
    """Compiles one unit's native sources into a static library.

    This class handles:
    - Compiler and language selection
    - Source discovery
    - Per-file compilation
    - Archive creation and link directives
    """

    def __init__(
        self,
        config: UnitConfig,
        source_dir: Path,
        out_dir: Path,
        include_dirs: Sequence[Path],
        env: Mapping[str, str],
        directives: CargoDirectives,
    ):
        """
        Args:
            config: Unit configuration (selects C or C++)
            source_dir: Root of the source tree to walk
            out_dir: Cargo OUT_DIR; objects and the archive are written here
            include_dirs: Aggregated include path, already in search order
            env: Mapping holding compiler overrides and flags
            directives: Sink for cargo directives
        """
        self.config = config
        self.source_dir = source_dir
        self.out_dir = out_dir
        self.include_dirs = list(include_dirs)
        self.env = env
        self.directives = directives
        self.language = SourceLanguage.for_config(config)

    @property
    def archive_path(self) -> Path:
        return self.out_dir / f"lib{LIBRARY_NAME}.a"

    @property
    def obj_dir(self) -> Path:
        return self.out_dir / "obj"

    def _env_command(self, var: str, default: str) -> List[str]:
        # Overrides may carry a wrapper, e.g. CC="ccache gcc"
        value = self.env.get(var, "").strip()
        return shlex.split(value) if value else [default]

    def compiler_command(self) -> List[str]:
        """Compiler executable (plus any wrapper) for this unit's language."""
        return self._env_command(self.language.compiler_env_var, self.language.default_compiler)

    def archiver_command(self) -> List[str]:
        return self._env_command("AR", DEFAULT_ARCHIVER)

    def compile_flags(self) -> List[str]:
        """Flags shared by every source of this unit, include flags excluded."""
        flags = []
        if self.config.is_cpp:
            flags.append(f"-std=c++{self.config.language_mode}")

        opt_level = self.env.get("OPT_LEVEL", "").strip()
        if opt_level:
            flags.append(f"-O{opt_level}")
        if self.env.get("DEBUG", "").strip().lower() == "true":
            flags.append("-g")

        flags.extend(shlex.split(self.env.get(self.language.flags_env_var, "")))
        return flags

    def include_flags(self) -> List[str]:
        return [f"-I{inc}" for inc in self.include_dirs]

    def discover_sources(self) -> List[Path]:
        """Recursively find sources with this language's extensions, sorted.

        Raises:
            NativeCompilerError: If the source tree is missing or cannot be walked
        """
        if not self.source_dir.is_dir():
            raise NativeCompilerError(f"Source directory not found: {self.source_dir}")

        def _raise(error: OSError) -> None:
            raise NativeCompilerError(f"Failed to scan {error.filename}: {error.strerror}")

        sources = []
        for root, dirs, files in os.walk(self.source_dir, onerror=_raise):
            dirs.sort()
            for name in sorted(files):
                if name.endswith(self.language.extensions):
                    sources.append(Path(root) / name)
        return sources

    def _object_path(self, source_path: Path) -> Path:
        # foo.c and foo.cpp must not share an object file
        rel = source_path.relative_to(self.source_dir)
        return self.obj_dir / rel.parent / f"{rel.name}.o"

    def compile_source(self, source_path: Path, output_path: Optional[Path] = None) -> Path:
        """Compile a single source file to an object file.

        Raises:
            NativeCompilerError: If the compiler is missing or exits non-zero
        """
        if output_path is None:
            output_path = self._object_path(source_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        cmd = self.compiler_command()
        cmd.extend(self.compile_flags())
        cmd.extend(self.include_flags())
        cmd.extend(["-c", str(source_path), "-o", str(output_path)])

        log_file(str(self.language), str(source_path.relative_to(self.source_dir)))
        try:
            result = run_tool(cmd)
        except OSError as e:
            raise NativeCompilerError(f"Failed to run compiler {cmd[0]!r}: {e}") from e

        if result.returncode != 0:
            raise NativeCompilerError(
                f"Compilation failed for {source_path.name}\nCommand: {' '.join(cmd)}",
                stderr=result.stderr,
            )
        if result.stderr:
            # Compiler warnings
            log_warning(result.stderr.rstrip())
        return output_path

    def create_archive(self, object_files: Sequence[Path]) -> Path:
        """Archive object files into OUT_DIR/libmain.a.

        With no object files an empty archive is written directly, since BSD
        `ar` refuses to create one.

        Raises:
            NativeCompilerError: If archiving fails
        """
        archive_path = self.archive_path
        if not object_files:
            try:
                archive_path.parent.mkdir(parents=True, exist_ok=True)
                archive_path.write_bytes(AR_MAGIC)
            except OSError as e:
                raise NativeCompilerError(f"Failed to write empty archive {archive_path}: {e}") from e
            return archive_path

        # `ar` appends to an existing archive; stale members must not survive
        archive_path.unlink(missing_ok=True)

        cmd = self.archiver_command()
        cmd.extend(["crs", str(archive_path)])
        cmd.extend(str(obj) for obj in object_files)

        try:
            result = run_tool(cmd)
        except OSError as e:
            raise NativeCompilerError(f"Failed to run archiver {cmd[0]!r}: {e}") from e

        if result.returncode != 0:
            raise NativeCompilerError(f"Archive creation failed\nCommand: {' '.join(cmd)}", stderr=result.stderr)
        if not archive_path.exists():
            raise NativeCompilerError(f"Archive was not created: {archive_path}")
        return archive_path

    def compile(self) -> Path:
        """Compile every matching source and emit link directives.

        The library is always produced and linked, empty when there are no
        matching sources.

        Returns:
            Path to the static library
        """
        for var in TRACKED_ENV_VARS:
            self.directives.rerun_if_env_changed(var)

        sources = self.discover_sources()
        log_detail(f"Language: {self.config.describe_language()} ({' '.join(self.compiler_command())})")
        if not sources:
            log_warning(f"No {'/'.join(self.language.extensions)} sources found under {self.source_dir}; linking an empty library")

        object_files = []
        for source in sources:
            self.directives.rerun_if_changed(source)
            object_files.append(self.compile_source(source))

        archive_path = self.create_archive(object_files)
        log_detail(f"Compiled {len(object_files)} source file(s) into {archive_path.name}")

        self.directives.rustc_link_search(self.out_dir)
        self.directives.rustc_link_lib(LIBRARY_NAME)
        return archive_path
