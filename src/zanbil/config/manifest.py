"""
Cargo manifest reader for zanbil build steps.

Only two things are read from Cargo.toml:

    [package]
    links = "core"              # required: the unit's unique link name

    [package.metadata.zanbil]
    language_mode = 17          # optional: compile C++17 instead of C
    export_transitive = true    # optional: re-export upstream include dirs

A missing or unparsable manifest, or a missing link name, is fatal. The
zanbil block is optional metadata: if it is present but malformed the unit
builds with default settings and a warning is logged.
"""

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import ZanbilError
from ..output import log_warning

logger = logging.getLogger(__name__)

MANIFEST_NAME = "Cargo.toml"


class ManifestError(ZanbilError):
    """Raised when the manifest cannot be read or lacks required fields."""

    pass


@dataclass(frozen=True)
class UnitConfig:
    """
    Per-unit native build settings.

    Attributes:
        language_mode: C++ standard number (e.g. 17 for C++17), or None to compile C
        export_transitive: Whether dependents also see this unit's upstream include dirs
    """

    language_mode: Optional[int] = None
    export_transitive: bool = False

    @property
    def is_cpp(self) -> bool:
        return self.language_mode is not None

    def describe_language(self) -> str:
        return f"C++{self.language_mode}" if self.is_cpp else "C"

    @classmethod
    def from_dict(cls, data: Any) -> "UnitConfig":
        """
        Parse the [package.metadata.zanbil] table.

        `cpp` is accepted as an alias for `language_mode`.

        Raises:
            ValueError: If the table or one of its fields has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected a table, got {type(data).__name__}")

        language_mode = data.get("language_mode", data.get("cpp"))
        # bool is an int subclass; `language_mode = true` is not a standard
        if language_mode is not None and (isinstance(language_mode, bool) or not isinstance(language_mode, int)):
            raise ValueError(f"language_mode must be an integer, got {language_mode!r}")
        if language_mode is not None and language_mode <= 0:
            raise ValueError(f"language_mode must be a positive C++ standard, got {language_mode}")

        export_transitive = data.get("export_transitive", False)
        if not isinstance(export_transitive, bool):
            raise ValueError(f"export_transitive must be a boolean, got {export_transitive!r}")

        return cls(language_mode=language_mode, export_transitive=export_transitive)


class CargoManifest:
    """
    Parsed Cargo.toml of the unit being built.

    Usage:
        manifest = CargoManifest(manifest_dir / "Cargo.toml")
        name = manifest.get_link_name()
        config = manifest.get_unit_config()
    """

    def __init__(self, manifest_path: Path):
        """
        Load and parse the manifest.

        Raises:
            ManifestError: If the file is missing, unreadable or not valid TOML
        """
        self.manifest_path = manifest_path
        try:
            with open(manifest_path, "rb") as f:
                self.data: Dict[str, Any] = tomllib.load(f)
        except FileNotFoundError as e:
            raise ManifestError(f"Manifest not found: {manifest_path}") from e
        except OSError as e:
            raise ManifestError(f"Failed to read {manifest_path}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ManifestError(f"Failed to parse {manifest_path}: {e}") from e

    @classmethod
    def from_dir(cls, manifest_dir: Path) -> "CargoManifest":
        return cls(manifest_dir / MANIFEST_NAME)

    def _package(self) -> Dict[str, Any]:
        package = self.data.get("package")
        if not isinstance(package, dict):
            raise ManifestError(f"[package] table missing from {self.manifest_path}")
        return package

    def get_link_name(self) -> str:
        """
        Return `package.links`, the unit's unique identifier.

        Raises:
            ManifestError: If the link name is absent or empty
        """
        links = self._package().get("links")
        if not isinstance(links, str) or not links.strip():
            raise ManifestError(f"zanbil expects a link name: set `links` in the [package] table of {self.manifest_path}")
        return links.strip()

    def get_unit_config(self) -> UnitConfig:
        """Return the zanbil settings, falling back to defaults when absent or malformed."""
        metadata = self._package().get("metadata", {})
        if not isinstance(metadata, dict) or "zanbil" not in metadata:
            return UnitConfig()

        try:
            return UnitConfig.from_dict(metadata["zanbil"])
        except ValueError as e:
            log_warning(f"Ignoring malformed [package.metadata.zanbil] in {self.manifest_path}: {e}")
            logger.debug("zanbil block: %r", metadata["zanbil"])
            return UnitConfig()
