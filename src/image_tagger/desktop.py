"""Open a path in the operating system's file browser."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import threading
from pathlib import Path

logger = logging.getLogger(__name__)


def _opener_command(path: Path) -> list[str] | None:
    if sys.platform == "darwin":
        return ["open", str(path)]
    if sys.platform.startswith("linux") or "bsd" in sys.platform:
        return ["xdg-open", str(path)]
    return None


def _open(path: Path) -> None:
    try:
        command = _opener_command(path)
        if command is None:
            os.startfile(str(path))  # Windows only
        else:
            subprocess.run(command, check=True, capture_output=True)
    except (OSError, subprocess.CalledProcessError, AttributeError) as e:
        logger.warning(f"Could not open {path} in file browser: {e}")


def open_in_file_browser(path: str | Path) -> threading.Thread:
    """Launch the file browser on a daemon thread and return immediately.

    Failures are logged and never raised to the caller.
    """
    thread = threading.Thread(
        target=_open, args=(Path(path),), name="file-browser", daemon=True
    )
    thread.start()
    return thread
