from devdeploy.session.tracker import (
    LivenessOracle,
    PaneKind,
    ResourceKey,
    SessionTracker,
    TrackedPane,
    pane_label,
)

__all__ = ["LivenessOracle", "PaneKind", "ResourceKey", "SessionTracker", "TrackedPane", "pane_label"]
