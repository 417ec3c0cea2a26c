"""Shared constants for devdeploy."""

from __future__ import annotations

from pathlib import Path

# Sentinel for counts that have not been loaded yet (rendered as "…").
LOADING = -1

DEVDEPLOY_HOME = Path("~/.devdeploy").expanduser()
DEFAULT_CONFIG_PATH = DEVDEPLOY_HOME / "config.yml"
DEFAULT_LOG_PATH = DEVDEPLOY_HOME / "logs" / "devdeploy.log"

# Project layout
PROJECT_CONFIG_FILE = "config.yaml"
PROJECT_CONFIG_HEADER = "# devdeploy project config\n"
PR_WORKTREE_SEPARATOR = "-pr-"
BRANCH_PREFIX = "devdeploy/"

# Engine timing
TICK_INTERVAL_S = 5.0
PR_CACHE_TTL_S = 45.0

# Numeric quick-focus (SPC 1..9)
MAX_QUICK_FOCUS = 9

# Leader token
LEADER = "SPC"

# Launch commands
AGENT_COMMAND = "agent --model claude-4.5-opus-high-thinking --force"
RALPH_BINARY = "ralph"
RALPH_FALLBACK_COMMAND = "agent --model composer-1 --force"
RALPH_MAX_PARALLEL = 3

# Agent run artifacts (relative to the project directory)
AGENT_PLAN_FILE = "plan.md"
AGENT_DESIGN_FILE = "design.md"
AGENT_POLL_INTERVAL_S = 1.0
