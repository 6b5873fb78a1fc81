"""
Build step orchestration for zanbil units.

One build step is a single sequential pass:

    1. Load the manifest (link name, language mode, export policy)
    2. Collect include metadata published by direct dependencies
    3. Aggregate the include path and reset the unit's own include dir
    4. Write the generated Rust glue (extern crate per dependency)
    5. Compile native sources into libmain.a
    6. Publish headers and republish include metadata

Nothing is kept between invocations. Every failure is raised to the caller;
there is no partial success.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..config.manifest import CargoManifest
from ..metadata import METADATA_KEY, PublishedMetadata, encode
from ..output import TimedLogger, log, log_detail
from .aggregator import build_unit, republished_metadata
from .build_context import BuildUnit
from .compiler import NativeCompiler
from .dependencies import collect_dependencies
from .directives import CargoDirectives, write_generated_lib
from .headers import HeaderPublisher

if TYPE_CHECKING:
    from .build_context import BuildParams

logger = logging.getLogger(__name__)

TOTAL_PHASES = 6


@dataclass
class BuildResult:
    """Outcome of one build step."""

    success: bool
    unit: BuildUnit
    archive_path: Path
    republished: PublishedMetadata
    build_time: float
    message: str


class BuildOrchestrator:
    """Runs the build step of one unit."""

    def __init__(self, directives: Optional[CargoDirectives] = None, verbose: bool = False):
        """
        Args:
            directives: Sink for cargo directives (stdout if omitted)
            verbose: Enable verbose output
        """
        self.directives = directives or CargoDirectives()
        self.verbose = verbose

    def build(self, request: "BuildParams") -> BuildResult:
        """Execute the complete build step.

        Raises:
            ZanbilError: If any phase fails
        """
        start_time = time.time()

        with TimedLogger("Loading manifest", phase=(1, TOTAL_PHASES)) as phase:
            manifest = CargoManifest.from_dir(request.manifest_dir)
            name = manifest.get_link_name()
            config = manifest.get_unit_config()
            self.directives.rerun_if_changed(manifest.manifest_path)
            phase.detail(f"Unit: {name} ({config.describe_language()}, export_transitive={str(config.export_transitive).lower()})")

        with TimedLogger("Collecting upstream include metadata", phase=(2, TOTAL_PHASES)):
            dependencies = collect_dependencies(request.env)
            if not dependencies:
                log_detail("No upstream zanbil units")

        publisher = HeaderPublisher(name, request.source_dir, request.include_dir)
        with TimedLogger("Aggregating include path", phase=(3, TOTAL_PHASES)) as phase:
            unit = build_unit(name, config, request.include_dir, dependencies)
            publisher.reset()
            for include_dir in unit.aggregated_include_dirs:
                phase.detail(f"-I {include_dir}")

        with TimedLogger("Writing generated Rust glue", phase=(4, TOTAL_PHASES), verbose_only=not self.verbose):
            generated = write_generated_lib(request.out_dir, unit.upstream_dependencies)
            logger.debug("Wrote %s", generated)

        with TimedLogger("Compiling native sources", phase=(5, TOTAL_PHASES)):
            compiler = NativeCompiler(
                config=unit.config,
                source_dir=request.source_dir,
                out_dir=request.out_dir,
                include_dirs=unit.aggregated_include_dirs,
                env=request.env,
                directives=self.directives,
            )
            archive_path = compiler.compile()

        with TimedLogger("Publishing headers", phase=(6, TOTAL_PHASES)):
            publisher.publish()
            republished = republished_metadata(unit)
            self.directives.metadata(METADATA_KEY, encode(republished))
            for include_dir in republished.include_dirs:
                log_detail(f"Exported: {include_dir}")

        build_time = time.time() - start_time
        log(f"Build step for '{name}' finished in {build_time:.2f}s")
        return BuildResult(
            success=True,
            unit=unit,
            archive_path=archive_path,
            republished=republished,
            build_time=build_time,
            message=f"Built {name}",
        )
