"""devdeploy command-line entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from devdeploy import __version__
from devdeploy.agent import TmuxAgentRunner
from devdeploy.beads import BeadSource
from devdeploy.config import DevdeployConfig, load_env_file, load_global_config
from devdeploy.logging_config import setup_logging
from devdeploy.project.manager import ProjectManager
from devdeploy.session.tracker import SessionTracker
from devdeploy.tmux import TmuxDriver, in_tmux
from devdeploy.tui.app import DevdeployApp
from devdeploy.tui.dispatcher import Dispatcher, Services

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="devdeploy", description="Multi-repo project dashboard for tmux")
    parser.add_argument("--log-level", default=None, help="Log level (default: DEVDEPLOY_LOG_LEVEL or INFO)")
    parser.add_argument("--projects-dir", default=None, help="Directory holding projects")
    parser.add_argument("--workspace", default=None, help="Directory holding the source repos")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build_services(cfg: DevdeployConfig) -> Services:
    tmux = TmuxDriver(cfg.tmux_binary)
    return Services(
        manager=ProjectManager.from_config(cfg),
        beads=BeadSource(),
        tmux=tmux,
        tracker=SessionTracker(liveness=tmux.list_pane_ids),
        runner=TmuxAgentRunner(tmux, cfg.agent_command),
        config=cfg,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    if not in_tmux():
        sys.stderr.write("devdeploy: run devdeploy inside tmux\n")
        return 1

    load_env_file()
    cfg = load_global_config()
    overrides: dict[str, str] = {}
    if args.projects_dir:
        overrides["projects_dir"] = args.projects_dir
    if args.workspace:
        overrides["workspace_dir"] = args.workspace
    if overrides:
        cfg = cfg.model_copy(update=overrides)

    log_path = setup_logging(args.log_level)
    logger.info("devdeploy %s starting (projects=%s, workspace=%s)", __version__, cfg.projects_path, cfg.workspace_path)

    app = DevdeployApp(Dispatcher(build_services(cfg)))
    try:
        app.run()
    except KeyboardInterrupt:
        return 130
    logger.info("devdeploy exited; log at %s", log_path)
    return 0
