"""devdeploy configuration.

Settings come from `~/.devdeploy/config.yml` (validated by pydantic), with
`DEVDEPLOY_*` environment variables taking precedence. A `.env` file next
to the config is loaded first so it can supply those variables.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from devdeploy.config.loader import load_config, load_global_config
from devdeploy.config.schema import DevdeployConfig
from devdeploy.constants import DEVDEPLOY_HOME


def load_env_file() -> None:
    """Load `DEVDEPLOY_ENV_FILE` (default `~/.devdeploy/.env`) without overriding the environment."""
    env_path = os.environ.get("DEVDEPLOY_ENV_FILE")
    dotenv_path = Path(env_path).expanduser() if env_path else DEVDEPLOY_HOME / ".env"
    load_dotenv(dotenv_path, override=False)


__all__ = ["DevdeployConfig", "load_config", "load_env_file", "load_global_config"]
