"""Configuration parsing modules for zanbil."""

from .manifest import MANIFEST_NAME, CargoManifest, ManifestError, UnitConfig

__all__ = ["CargoManifest", "ManifestError", "UnitConfig", "MANIFEST_NAME"]
