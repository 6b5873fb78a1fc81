"""Exception hierarchy for zanbil build steps.

Every failure in a build step is fatal: the error propagates to the CLI, which
reports it and exits non-zero. A partially built native library would be
silently linked, so nothing here is recovered locally.
"""


class ZanbilError(Exception):
    """Base class for all zanbil build step failures."""

    pass
