"""Include-path metadata carried between build steps.

A unit publishes the include directories its dependents should search through
Cargo's `links` metadata: the producer prints `cargo:ZANBIL_INCLUDE=<value>`
and Cargo hands `<value>` to every direct dependent as the environment
variable `DEP_<LINKS>_ZANBIL_INCLUDE`.

Environment values have no escaping rules, while filesystem paths may contain
almost any character. The record is therefore serialized as a small versioned
JSON document and then base64 encoded with the URL-safe alphabet
(`A-Z a-z 0-9 - _ =`), the same JSON-plus-base64 approach the daemon uses for
binary payloads.
"""

import base64
import binascii
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from .errors import ZanbilError

# Bump when the payload shape changes; consumers reject other versions.
SCHEMA_VERSION = 1

METADATA_KEY = "ZANBIL_INCLUDE"
CHANNEL_PREFIX = "DEP_"
CHANNEL_SUFFIX = f"_{METADATA_KEY}"


class MetadataDecodeError(ZanbilError):
    """Raised when a propagation channel value cannot be decoded."""

    pass


class MetadataVersionError(MetadataDecodeError):
    """Raised when a payload was written with an unsupported schema version."""

    def __init__(self, version: Any, source: Optional[str] = None):
        prefix = f"{source}: " if source else ""
        super().__init__(f"{prefix}Unsupported include metadata version {version!r} (expected {SCHEMA_VERSION}); rebuild the upstream unit with a matching zanbil")
        self.version = version
        self.source = source


@dataclass(frozen=True)
class PublishedMetadata:
    """Include directories a unit advertises to the units depending on it.

    Attributes:
        include_dirs: Absolute include directories, in the order they were published
    """

    include_dirs: tuple[Path, ...]

    @classmethod
    def of(cls, include_dirs: Iterable[Path]) -> "PublishedMetadata":
        return cls(include_dirs=tuple(Path(p) for p in include_dirs))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": SCHEMA_VERSION,
            "include_dirs": [str(p) for p in self.include_dirs],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "PublishedMetadata":
        """Create PublishedMetadata from a decoded payload.

        Unknown keys are ignored so newer producers can add fields without
        bumping the schema version.

        Raises:
            MetadataVersionError: If the payload version is not SCHEMA_VERSION
            MetadataDecodeError: If the payload has the wrong shape
        """
        if not isinstance(data, dict):
            raise MetadataDecodeError(f"Include metadata must be a JSON object, got {type(data).__name__}")
        if "version" not in data:
            raise MetadataDecodeError("Include metadata has no version field")
        # JSON true and 1.0 compare equal to 1 in Python
        if type(data["version"]) is not int or data["version"] != SCHEMA_VERSION:
            raise MetadataVersionError(data["version"])

        raw_dirs = data.get("include_dirs")
        if not isinstance(raw_dirs, list) or not all(isinstance(p, str) for p in raw_dirs):
            raise MetadataDecodeError("Include metadata 'include_dirs' must be a list of strings")

        include_dirs = tuple(Path(p) for p in raw_dirs)
        for path in include_dirs:
            if not path.is_absolute():
                raise MetadataDecodeError(f"Include metadata path is not absolute: {path}")
        return cls(include_dirs=include_dirs)


def encode(metadata: PublishedMetadata) -> str:
    """Encode metadata into a single environment-safe string."""
    payload = json.dumps(metadata.to_dict(), sort_keys=True, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode(value: str) -> PublishedMetadata:
    """Decode a string produced by encode().

    Raises:
        MetadataDecodeError: If the value is not a valid encoded payload
    """
    try:
        raw = base64.b64decode(value.strip().encode("ascii"), altchars=b"-_", validate=True)
    except (UnicodeEncodeError, binascii.Error, ValueError) as e:
        raise MetadataDecodeError(f"Include metadata is not valid base64: {e}") from e

    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MetadataDecodeError(f"Include metadata is not valid JSON: {e}") from e

    return PublishedMetadata.from_dict(data)


def channel_variable(link_name: str) -> str:
    """Environment variable under which Cargo exposes a unit's metadata.

    Cargo upper-cases the `links` value and replaces '-' with '_'.
    """
    return f"{CHANNEL_PREFIX}{link_name.upper().replace('-', '_')}{CHANNEL_SUFFIX}"


def parse_channel_variable(name: str) -> Optional[str]:
    """Return the dependency name encoded in a channel variable, or None."""
    if not name.startswith(CHANNEL_PREFIX) or not name.endswith(CHANNEL_SUFFIX):
        return None
    dep_name = name[len(CHANNEL_PREFIX) : -len(CHANNEL_SUFFIX)]
    return dep_name or None
