"""Pydantic schema for `~/.devdeploy/config.yml`."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

from devdeploy import constants


class DevdeployConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    projects_dir: str = "~/.devdeploy/projects"
    workspace_dir: str = "~/workspace"
    tmux_binary: str = "tmux"
    agent_command: str = constants.AGENT_COMMAND
    ralph_binary: str = constants.RALPH_BINARY
    ralph_fallback_command: str = constants.RALPH_FALLBACK_COMMAND
    ralph_max_parallel: int = constants.RALPH_MAX_PARALLEL
    tick_interval_s: float = constants.TICK_INTERVAL_S
    pr_cache_ttl_s: float = constants.PR_CACHE_TTL_S
    review_team: str = "adaptive-telemetry"  # gh team slug under the repo owner; empty disables
    merged_prs_limit: int = 5
    merged_pr_max_age_h: float = 20.0

    @field_validator("tick_interval_s", "pr_cache_ttl_s", "merged_pr_max_age_h")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Reject zero or negative durations."""
        if v <= 0:
            raise ValueError(f"Duration must be positive, got: {v}")
        return v

    @field_validator("ralph_max_parallel", "merged_prs_limit")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Value must not be negative, got: {v}")
        return v

    @property
    def projects_path(self) -> Path:
        return Path(self.projects_dir).expanduser()

    @property
    def workspace_path(self) -> Path:
        return Path(self.workspace_dir).expanduser()
