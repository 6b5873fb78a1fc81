"""
zanbil - native C/C++ build steps for Cargo units.

A unit's build step compiles its C or C++ sources into a static library,
publishes its headers under a namespaced include directory, and advertises
that directory to dependent units through Cargo's `links` metadata.
"""

__version__ = "0.1.0"

from zanbil.errors import ZanbilError  # noqa: E402
from zanbil.metadata import PublishedMetadata, decode, encode  # noqa: E402

__all__ = ["ZanbilError", "PublishedMetadata", "encode", "decode", "__version__"]
