"""Include path aggregation and visibility policy.

The compiler of a unit always searches the full aggregate: its own include
directory plus every directory its direct dependencies advertised. What the
unit advertises onward depends on `export_transitive`:

    export_transitive = false   dependents see only this unit's include dir
                                (upstream headers stay private)
    export_transitive = true    dependents see the whole aggregate
                                (upstream headers are re-exported)

The aggregate is sorted by path string and deduplicated, so two builds with
the same dependency set produce byte-identical -I arguments regardless of the
order the dependencies were discovered in.
"""

from pathlib import Path
from typing import Iterable, Sequence

from ..config.manifest import UnitConfig
from ..metadata import PublishedMetadata
from .build_context import BuildUnit, Dependency


def aggregate_include_dirs(own_include_dir: Path, dependencies: Iterable[Dependency]) -> tuple[Path, ...]:
    """Sorted, duplicate-free union of the own include dir and all upstream dirs."""
    dirs = {own_include_dir}
    for dep in dependencies:
        dirs.update(dep.metadata.include_dirs)
    return tuple(sorted(dirs, key=str))


def build_unit(
    name: str,
    config: UnitConfig,
    own_include_dir: Path,
    dependencies: Sequence[Dependency],
) -> BuildUnit:
    return BuildUnit(
        name=name,
        config=config,
        own_include_dir=own_include_dir,
        aggregated_include_dirs=aggregate_include_dirs(own_include_dir, dependencies),
        upstream_dependencies=tuple(dependencies),
    )


def republished_metadata(unit: BuildUnit) -> PublishedMetadata:
    """Metadata this unit advertises to its own dependents."""
    if unit.config.export_transitive:
        return PublishedMetadata(include_dirs=unit.aggregated_include_dirs)
    return PublishedMetadata(include_dirs=(unit.own_include_dir,))
