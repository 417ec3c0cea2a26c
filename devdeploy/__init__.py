"""devdeploy: tmux-backed dashboard for multi-repo projects, PRs and beads."""

__version__ = "0.4.0"
