from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Type, TypeVar

import yaml
from pydantic import BaseModel

from devdeploy.config.schema import DevdeployConfig
from devdeploy.constants import DEFAULT_CONFIG_PATH
from devdeploy.utils import expand_env_vars

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# Environment variables that win over the config file.
ENV_OVERRIDES = {
    "DEVDEPLOY_PROJECTS_DIR": "projects_dir",
    "DEVDEPLOY_WORKSPACE": "workspace_dir",
    "DEVDEPLOY_TMUX_BINARY": "tmux_binary",
}


def _warn_unknown_keys(model: BaseModel, config_path: Path) -> None:
    if model.model_extra:
        logger.warning("Unknown keys in %s: %s", config_path, list(model.model_extra.keys()))


def load_config(path: Path, model_class: Type[T]) -> T:
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to the YAML file.
        model_class: The Pydantic model class to use for validation.

    Returns:
        The validated configuration model (defaults when the file is missing
        or unreadable).
    """
    if not path.exists():
        return model_class()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read config file %s: %s", path, e)
        return model_class()

    expanded = expand_env_vars(raw)
    model = model_class.model_validate(expanded)
    _warn_unknown_keys(model, path)
    return model


def load_global_config(path: Optional[Path] = None) -> DevdeployConfig:
    """Load `~/.devdeploy/config.yml` and apply environment overrides."""
    if path is None:
        env_path = os.environ.get("DEVDEPLOY_CONFIG_PATH")
        path = Path(env_path).expanduser() if env_path else DEFAULT_CONFIG_PATH
    cfg = load_config(path, DevdeployConfig)

    overrides = {field: os.environ[env] for env, field in ENV_OVERRIDES.items() if os.environ.get(env)}
    if overrides:
        cfg = cfg.model_copy(update=overrides)
    return cfg
