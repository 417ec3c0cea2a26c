"""Idempotent injection of editor rule files into project worktrees."""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path

from devdeploy.project.git import resolve_common_dir

logger = logging.getLogger(__name__)

EXCLUDE_ENTRIES = (".cursor/",)
DEV_LOG_DIR = "dev-log"


def rule_files() -> dict[str, bytes]:
    """Return the bundled rule files keyed by bare filename."""
    root = resources.files("devdeploy.project").joinpath("rules_data")
    return {entry.name: entry.read_bytes() for entry in root.iterdir() if entry.name.endswith(".mdc")}


def inject_worktree_rules(worktree_path: str | Path) -> None:
    """Write rule files and `dev-log/` into a worktree and hide them from git.

    Files whose content already matches are left untouched and exclude
    entries are never duplicated, so repeated calls are no-ops.

    Raises:
        OSError: filesystem writes failed.
        GitError: the worktree's git common dir could not be resolved.
    """
    worktree = Path(worktree_path)
    rules_dir = worktree / ".cursor" / "rules"
    rules_dir.mkdir(parents=True, exist_ok=True)

    for name, content in rule_files().items():
        dst = rules_dir / name
        if dst.is_file() and dst.read_bytes() == content:
            continue
        dst.write_bytes(content)

    (worktree / DEV_LOG_DIR).mkdir(exist_ok=True)

    ensure_exclude_entries(resolve_common_dir(worktree), EXCLUDE_ENTRIES)


def ensure_exclude_entries(git_dir: Path, entries: tuple[str, ...]) -> None:
    """Append missing entries to `<git_dir>/info/exclude`."""
    info_dir = git_dir / "info"
    info_dir.mkdir(parents=True, exist_ok=True)
    exclude_path = info_dir / "exclude"

    existing = exclude_path.read_text(encoding="utf-8") if exclude_path.exists() else ""
    present = {line.strip() for line in existing.splitlines()}
    to_add = [entry for entry in entries if entry not in present]
    if not to_add:
        return

    prefix = "\n" if existing and not existing.endswith("\n") else ""
    with open(exclude_path, "a", encoding="utf-8") as f:
        f.write(prefix + "\n".join(to_add) + "\n")
    logger.debug("Added %s to %s", to_add, exclude_path)
