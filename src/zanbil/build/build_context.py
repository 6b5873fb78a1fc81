"""Build Context - per-step build parameters and the BuildUnit aggregate.

This module defines:
- BuildParams: Inputs of one build step (directories and the side-channel mapping)
- Dependency: One upstream unit's published metadata, keyed by its link name
- BuildUnit: The unit being built, with its aggregated include path

Design:
    BuildParams flows from the CLI into the orchestrator. The orchestrator
    loads the manifest, collects dependencies and assembles a BuildUnit,
    which then flows through the compiler and the header publisher. A
    BuildUnit is created fresh for every build step; nothing survives between
    invocations.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from ..config.manifest import UnitConfig
from ..errors import ZanbilError
from ..metadata import PublishedMetadata


class BuildParamsError(ZanbilError):
    """Raised when the build step environment is incomplete."""

    pass


@dataclass(frozen=True)
class BuildParams:
    """Inputs of one build step.

    Attributes:
        manifest_dir: Directory containing Cargo.toml
        out_dir: Cargo's OUT_DIR for this unit; all artifacts go here
        source_dir: Native source tree (manifest_dir/src unless overridden)
        env: Side-channel mapping holding DEP_* metadata and compiler overrides
        verbose: Whether to enable verbose output
    """

    manifest_dir: Path
    out_dir: Path
    source_dir: Path
    env: Mapping[str, str] = field(default_factory=dict)
    verbose: bool = False

    @property
    def include_dir(self) -> Path:
        """The unit's own published include directory."""
        return self.out_dir / "include"

    @classmethod
    def create(
        cls,
        manifest_dir: Path,
        out_dir: Path,
        env: Mapping[str, str],
        source_dir: Optional[Path] = None,
        verbose: bool = False,
    ) -> "BuildParams":
        manifest_dir = manifest_dir.resolve()
        return cls(
            manifest_dir=manifest_dir,
            out_dir=out_dir.resolve(),
            source_dir=(source_dir or manifest_dir / "src").resolve(),
            env=dict(env),
            verbose=verbose,
        )

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        manifest_dir: Optional[Path] = None,
        out_dir: Optional[Path] = None,
        verbose: bool = False,
    ) -> "BuildParams":
        """Build parameters the way Cargo passes them to a build script.

        Explicit arguments take precedence over CARGO_MANIFEST_DIR and OUT_DIR.

        Raises:
            BuildParamsError: If no output directory is known
        """
        env = os.environ if env is None else env
        if manifest_dir is None:
            manifest_dir = Path(env.get("CARGO_MANIFEST_DIR", os.getcwd()))
        if out_dir is None:
            if "OUT_DIR" not in env:
                raise BuildParamsError("OUT_DIR is not set; run inside a Cargo build script or pass --out-dir")
            out_dir = Path(env["OUT_DIR"])
        return cls.create(manifest_dir=manifest_dir, out_dir=out_dir, env=env, verbose=verbose)


@dataclass(frozen=True)
class Dependency:
    """Metadata published by one direct upstream unit.

    Attributes:
        name: Upstream link name as it appears in DEP_<NAME>_ZANBIL_INCLUDE
        metadata: Decoded include metadata
    """

    name: str
    metadata: PublishedMetadata


@dataclass(frozen=True)
class BuildUnit:
    """The unit being built.

    Invariants:
        own_include_dir is always in aggregated_include_dirs.
        aggregated_include_dirs is sorted and duplicate free, whatever the
        order dependencies were discovered in, so the compiler's include
        search order (and which same-named header wins) is reproducible.

    Attributes:
        name: Unique link name (package.links)
        config: Native build settings from the manifest
        own_include_dir: Fresh directory this unit publishes headers into
        aggregated_include_dirs: Include path handed to the compiler
        upstream_dependencies: Metadata received from direct dependencies
    """

    name: str
    config: UnitConfig
    own_include_dir: Path
    aggregated_include_dirs: tuple[Path, ...]
    upstream_dependencies: tuple[Dependency, ...] = ()
