"""Small helpers shared across devdeploy modules."""

from __future__ import annotations

import os
import re


def expand_env_vars(config: object) -> object:
    """Recursively expand environment variables in config.

    Replaces ${VAR} patterns with environment variable values; unknown
    variables are left untouched.
    """
    if isinstance(config, dict):
        return {k: expand_env_vars(v) for k, v in config.items()}
    if isinstance(config, list):
        return [expand_env_vars(item) for item in config]
    if isinstance(config, str):

        def replace_env_var(match: re.Match[str]) -> str:
            return os.getenv(match.group(1), match.group(0))

        return re.sub(r"\$\{([^}]+)\}", replace_env_var, config)
    return config


def first_line(text: str) -> str:
    """Return the first non-empty line of subprocess output, stripped."""
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""
