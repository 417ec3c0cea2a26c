"""Shell command lines typed into new panes."""

from __future__ import annotations

import shlex

from devdeploy.project.models import BeadInfo

GENERIC_RALPH_PROMPT = (
    "Run `bd ready` to see available work. Pick one issue, claim it with "
    "`bd update <id> --status in_progress`, implement it, then close it with "
    "`bd close <id>`. Follow the rules in .cursor/rules/."
)


def agent_keys(agent_command: str) -> str:
    return f"{agent_command}\n"


def ralph_prompt(bead: BeadInfo | None) -> str:
    """Prompt for the agent fallback: generic, one bead, or a whole epic."""
    if bead is None:
        return GENERIC_RALPH_PROMPT
    if bead.issue_type == "epic":
        return (
            f"You are working on epic {bead.id}. Run `bd show {bead.id}` to understand the epic. "
            f"Then use `bd ready --parent {bead.id}` to find its children. Process them sequentially: "
            "for each child, claim it with `bd update <id> --status in_progress`, implement it, "
            "then close it with `bd close <id>`. Follow the rules in .cursor/rules/ and AGENTS.md."
        )
    return (
        f"Run `bd show {bead.id}` to understand the issue. Claim it with "
        f"`bd update {bead.id} --status in_progress`, implement it, then close it with "
        f"`bd close {bead.id}`. Follow the rules in .cursor/rules/."
    )


def ralph_keys(ralph_path: str, workdir: str, max_parallel: int, bead: BeadInfo | None) -> str:
    """`ralph --workdir ... --max-parallel N [--epic|--bead <id>]` plus Enter."""
    cmd = f"{ralph_path} --workdir {shlex.quote(workdir)} --max-parallel {max_parallel}"
    if bead is not None:
        flag = "--epic" if bead.issue_type == "epic" else "--bead"
        cmd += f" {flag} {shlex.quote(bead.id)}"
    return cmd + "\n"


def ralph_fallback_keys(fallback_command: str, bead: BeadInfo | None) -> str:
    return f"{fallback_command} {shlex.quote(ralph_prompt(bead))}\n"
