"""Subprocess utilities for running native toolchain executables.

Toolchain commands never open a console window on Windows and never read
the terminal's stdin. Their output is captured so diagnostics can travel with
the error that aborts the build step.
"""

import logging
import subprocess
import sys
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (prevents console window)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def run_tool(cmd: list[str], cwd: Optional[Path] = None, **kwargs: Any) -> subprocess.CompletedProcess:
    """Run a toolchain command to completion, capturing text output.

    Args:
        cmd: Executable and arguments
        cwd: Optional working directory
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess with stdout/stderr as text. A non-zero return code is
        not an exception here; callers decide how to report it.

    Raises:
        FileNotFoundError: If the executable does not exist
    """
    default_flags = get_subprocess_creation_flags()
    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags
    kwargs.setdefault("stdin", subprocess.DEVNULL)

    logger.debug("Running: %s", " ".join(cmd))
    return subprocess.run(cmd, cwd=cwd, capture_output=True, text=True, **kwargs)
