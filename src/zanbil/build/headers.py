"""Header publishing for downstream units.

A unit's whole source tree is copied into OUT_DIR/include/<link name>/, and
OUT_DIR/include is what gets advertised. Dependents therefore write
`#include <core/lib.h>`, and two unrelated units can both ship a `lib.h`
without colliding.

The include directory is wiped on every run so published headers never go
stale relative to the current sources.
"""

import logging
import shutil
from pathlib import Path

from ..errors import ZanbilError
from ..output import log_detail

logger = logging.getLogger(__name__)


class HeaderPublishError(ZanbilError):
    """Raised when the include directory cannot be recreated or populated."""

    pass


class HeaderPublisher:
    """Materializes a unit's headers into its own include directory."""

    def __init__(self, unit_name: str, source_dir: Path, include_dir: Path):
        """
        Args:
            unit_name: Link name used as the namespace directory
            source_dir: Source tree to publish
            include_dir: The unit's own include directory (OUT_DIR/include)
        """
        self.unit_name = unit_name
        self.source_dir = source_dir
        self.include_dir = include_dir

    @property
    def namespace_dir(self) -> Path:
        return self.include_dir / self.unit_name

    @property
    def _staging_dir(self) -> Path:
        return self.include_dir.with_name(f".{self.include_dir.name}.staging")

    def _remove(self, path: Path) -> None:
        if path.exists():
            logger.debug("Removing %s", path)
            shutil.rmtree(path)

    def reset(self) -> None:
        """Recreate the include directory empty.

        Raises:
            HeaderPublishError: If the directory cannot be removed or created
        """
        try:
            self._remove(self.include_dir)
            self.include_dir.mkdir(parents=True)
        except OSError as e:
            raise HeaderPublishError(f"Failed to recreate {self.include_dir}: {e}") from e

    def publish(self) -> Path:
        """Copy the source tree into include_dir/<unit_name>.

        The copy is assembled in a sibling staging directory and renamed into
        place, so an interrupted run leaves no half-populated include tree.

        Returns:
            The published include directory (include_dir itself)

        Raises:
            HeaderPublishError: If the copy fails
        """
        if not self.source_dir.is_dir():
            raise HeaderPublishError(f"Source directory not found: {self.source_dir}")

        staging = self._staging_dir
        try:
            self._remove(staging)
            shutil.copytree(self.source_dir, staging / self.unit_name, symlinks=False)
            self._remove(self.include_dir)
            staging.rename(self.include_dir)
        except OSError as e:
            raise HeaderPublishError(f"Failed to publish headers from {self.source_dir} to {self.include_dir}: {e}") from e

        log_detail(f"Headers: {self.namespace_dir}")
        return self.include_dir
