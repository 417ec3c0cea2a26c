"""Unit tests for configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from devdeploy.config import DevdeployConfig, load_config, load_global_config

pytestmark = pytest.mark.unit


def test_missing_file_yields_defaults(tmp_path) -> None:
    cfg = load_config(tmp_path / "absent.yml", DevdeployConfig)

    assert cfg.tick_interval_s == 5.0
    assert cfg.ralph_max_parallel == 3
    assert cfg.tmux_binary == "tmux"


def test_values_and_env_expansion(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("DD_TEST_ROOT", "/srv/dev")
    config_path = tmp_path / "config.yml"
    config_path.write_text(
        """
projects_dir: "${DD_TEST_ROOT}/projects"
workspace_dir: "~/code"
tick_interval_s: 2.5
review_team: ""
""",
        encoding="utf-8",
    )

    cfg = load_config(config_path, DevdeployConfig)

    assert cfg.projects_path == Path("/srv/dev/projects")
    assert cfg.workspace_path == Path("~/code").expanduser()
    assert cfg.tick_interval_s == 2.5
    assert cfg.review_team == ""


def test_unknown_keys_are_kept_and_warned(tmp_path, caplog) -> None:
    config_path = tmp_path / "config.yml"
    config_path.write_text("colour_scheme: dark\n", encoding="utf-8")

    with caplog.at_level("WARNING", logger="devdeploy.config.loader"):
        cfg = load_config(config_path, DevdeployConfig)

    assert cfg.model_extra == {"colour_scheme": "dark"}
    assert "colour_scheme" in caplog.text


def test_unreadable_yaml_yields_defaults(tmp_path) -> None:
    config_path = tmp_path / "config.yml"
    config_path.write_text("projects_dir: [unclosed\n", encoding="utf-8")

    cfg = load_config(config_path, DevdeployConfig)

    assert cfg == DevdeployConfig()


def test_invalid_durations_are_rejected(tmp_path) -> None:
    config_path = tmp_path / "config.yml"
    config_path.write_text("tick_interval_s: 0\n", encoding="utf-8")

    with pytest.raises(ValidationError, match="Duration must be positive"):
        load_config(config_path, DevdeployConfig)


def test_negative_limits_are_rejected() -> None:
    with pytest.raises(ValidationError, match="must not be negative"):
        DevdeployConfig(merged_prs_limit=-1)


def test_environment_overrides_win(tmp_path, monkeypatch) -> None:
    config_path = tmp_path / "config.yml"
    config_path.write_text("workspace_dir: /from/file\ntmux_binary: tmux\n", encoding="utf-8")
    monkeypatch.setenv("DEVDEPLOY_CONFIG_PATH", str(config_path))
    monkeypatch.setenv("DEVDEPLOY_WORKSPACE", "/from/env")
    monkeypatch.delenv("DEVDEPLOY_PROJECTS_DIR", raising=False)
    monkeypatch.delenv("DEVDEPLOY_TMUX_BINARY", raising=False)

    cfg = load_global_config()

    assert cfg.workspace_dir == "/from/env"
    assert cfg.tmux_binary == "tmux"
