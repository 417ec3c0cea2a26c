"""devdeploy logging configuration.

The dashboard owns the terminal, so logs go to a file instead of stderr
(default: `~/.devdeploy/logs/devdeploy.log`). Level comes from
`DEVDEPLOY_LOG_LEVEL` unless overridden on the command line.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from devdeploy.constants import DEFAULT_LOG_PATH

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None, log_path: Optional[Path] = None) -> Path:
    """Configure devdeploy logging.

    Args:
        level: Optional override for `DEVDEPLOY_LOG_LEVEL`.
        log_path: Optional override for the log file location.

    Returns:
        The path logs are written to.
    """
    if level:
        os.environ["DEVDEPLOY_LOG_LEVEL"] = level
    resolved = os.environ.get("DEVDEPLOY_LOG_LEVEL", "INFO").upper()

    path = log_path or Path(os.environ.get("DEVDEPLOY_LOG_PATH", str(DEFAULT_LOG_PATH))).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_FORMAT))

    root = logging.getLogger("devdeploy")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, resolved, logging.INFO))
    root.propagate = False
    return path
