"""
Build step components for zanbil.

This module provides the build step implementation including:
- Upstream metadata collection
- Include path aggregation and visibility policy
- Native compilation (cc/c++ and ar)
- Header publishing
- Build step orchestration
"""

from .aggregator import aggregate_include_dirs, build_unit, republished_metadata
from .build_context import BuildParams, BuildParamsError, BuildUnit, Dependency
from .compiler import NativeCompiler, NativeCompilerError, SourceLanguage
from .dependencies import collect_dependencies
from .directives import CargoDirectives, write_generated_lib
from .headers import HeaderPublisher, HeaderPublishError
from .orchestrator import BuildOrchestrator, BuildResult

__all__ = [
    "BuildOrchestrator",
    "BuildParams",
    "BuildParamsError",
    "BuildResult",
    "BuildUnit",
    "CargoDirectives",
    "Dependency",
    "HeaderPublishError",
    "HeaderPublisher",
    "NativeCompiler",
    "NativeCompilerError",
    "SourceLanguage",
    "aggregate_include_dirs",
    "build_unit",
    "collect_dependencies",
    "republished_metadata",
    "write_generated_lib",
]
