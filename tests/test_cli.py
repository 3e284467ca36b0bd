"""Tests for the omniview command line."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from rich.table import Table

from omniview.cli import apply_overrides, create_parser, render_table, run_cli, run_grid
from omniview.config.schema import Config, GridConfig, ProxyConfig
from omniview.grid.protocols import SessionStatus


def _fast_config(count: int = 3) -> Config:
    return Config(grid=GridConfig(count=count, stagger_delay_ms=0))


class TestParser:
    """Argument parsing."""

    def test_defaults(self) -> None:
        parsed = create_parser().parse_args(["example.com"])
        assert parsed.url == "example.com"
        assert parsed.count is None
        assert parsed.mode == []
        assert parsed.no_sync is False
        assert parsed.verbose == 0

    def test_repeatable_mode(self) -> None:
        parsed = create_parser().parse_args(["-m", "stateless", "-m", "cacheBust", "a.com"])
        assert parsed.mode == ["stateless", "cacheBust"]

    def test_no_url_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_cli([]) == 1
        assert "usage" in capsys.readouterr().out


class TestApplyOverrides:
    """Command-line options layered over config."""

    def test_no_options_keeps_config(self) -> None:
        config = Config()
        parsed = create_parser().parse_args(["a.com"])
        assert apply_overrides(config, parsed) == config

    def test_grid_options(self) -> None:
        parsed = create_parser().parse_args(
            ["-n", "4", "-d", "fast", "-m", "unique_identity", "--no-sync", "a.com"]
        )
        config = apply_overrides(Config(), parsed)
        assert config.grid.count == 4
        assert config.grid.stagger_delay_ms == 200
        assert config.grid.isolation == ["uniqueIdentity"]
        assert config.grid.sync_enabled is False

    def test_negative_count_clamps(self) -> None:
        parsed = create_parser().parse_args(["-n", "-2", "a.com"])
        assert apply_overrides(Config(), parsed).grid.count == 0

    def test_proxy_option(self) -> None:
        parsed = create_parser().parse_args(["--proxy", "https://p/?u=", "a.com"])
        assert apply_overrides(Config(), parsed).proxy == ProxyConfig(prefix="https://p/?u=")

    def test_verbosity(self) -> None:
        parsed = create_parser().parse_args(["-vv", "a.com"])
        assert apply_overrides(Config(), parsed).logging.verbose == 4

    def test_bad_mode_raises(self) -> None:
        parsed = create_parser().parse_args(["-m", "private", "a.com"])
        with pytest.raises(ValueError):
            apply_overrides(Config(), parsed)

    def test_config_not_mutated(self) -> None:
        config = Config()
        apply_overrides(config, create_parser().parse_args(["-n", "2", "a.com"]))
        assert config.grid.count == 10


class TestRunGrid:
    """Headless pool run."""

    async def test_all_sessions_activate(self) -> None:
        views = await run_grid(_fast_config(), "example.com")
        assert len(views) == 3
        assert all(v.status is SessionStatus.ACTIVE for v in views)
        assert {v.effective_url for v in views} == {"https://example.com"}
        assert all(v.generation == 1 for v in views)

    async def test_sync_disabled_leaves_pool_idle(self) -> None:
        config = Config(grid=GridConfig(count=2, sync_enabled=False, stagger_delay_ms=0))
        views = await run_grid(config, "example.com")
        assert [v.status for v in views] == [SessionStatus.IDLE, SessionStatus.IDLE]

    async def test_isolation_applied(self) -> None:
        config = Config(grid=GridConfig(count=1, stagger_delay_ms=0, isolation=["cacheBust"]))
        (view,) = await run_grid(config, "example.com")
        assert view.effective_url.startswith("https://example.com?_cb=")


class TestRenderTable:
    def test_rows_per_session(self) -> None:
        table = render_table(())
        assert isinstance(table, Table)
        assert table.row_count == 0


class TestRunCli:
    """End-to-end CLI runs with a patched config loader."""

    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("omniview.cli.load_config", return_value=_fast_config()):
            assert run_cli(["--json", "example.com"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert [item["id"] for item in data] == [0, 1, 2]
        assert all(item["effective_url"] == "https://example.com" for item in data)
        assert all(item["displayable"] for item in data)

    def test_table_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("omniview.cli.load_config", return_value=_fast_config(2)):
            assert run_cli(["example.com"]) == 0

        out = capsys.readouterr().out
        assert "Viewport Grid" in out
        assert "https://example.com" in out

    def test_bad_delay_returns_2(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("omniview.cli.load_config", return_value=_fast_config()):
            assert run_cli(["-d", "glacial", "example.com"]) == 2
        assert "glacial" in capsys.readouterr().out

    def test_config_file_passed_to_loader(self, tmp_path) -> None:
        config_file = tmp_path / "grid.yaml"
        with patch("omniview.cli.load_config", return_value=_fast_config(1)) as loader:
            run_cli(["--config", str(config_file), "--json", "example.com"])
        loader.assert_called_once_with(config_file=config_file)
