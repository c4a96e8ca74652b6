"""Tests for TOML config file loading."""

from __future__ import annotations

import argparse
from pathlib import Path

import pytest

from kettle.cli import build_parser, load_config, main, resolve_options


def _options(tmp_path: Path, *extra: str):
    src = tmp_path / "app.ktl"
    src.write_text("")
    ns = build_parser().parse_args([str(src), *extra])
    return resolve_options(ns)


class TestLoadConfig:
    def test_missing_config_returns_empty(self, tmp_path: Path) -> None:
        assert load_config(None, tmp_path) == {}

    def test_explicit_path(self, tmp_path: Path) -> None:
        cfg = tmp_path / "custom.toml"
        cfg.write_text("[lexer]\ntab_width = 4\n")
        result = load_config(cfg, tmp_path)
        assert result["lexer"] == {"tab_width": 4}

    def test_auto_discover_kettle_toml(self, tmp_path: Path) -> None:
        cfg = tmp_path / "kettle.toml"
        cfg.write_text('[output]\nformat = "json"\n')
        result = load_config(None, tmp_path)
        assert result["output"] == {"format": "json"}


class TestConfigMerge:
    def test_defaults(self, tmp_path: Path) -> None:
        opts = _options(tmp_path)
        assert opts.tab_width == 2
        assert opts.format == "text"
        assert opts.locations is True
        assert opts.raw is False

    def test_config_tab_width(self, tmp_path: Path) -> None:
        (tmp_path / "kettle.toml").write_text("[lexer]\ntab_width = 8\n")
        assert _options(tmp_path).tab_width == 8

    def test_cli_overrides_config_tab_width(self, tmp_path: Path) -> None:
        (tmp_path / "kettle.toml").write_text("[lexer]\ntab_width = 8\n")
        assert _options(tmp_path, "--tab-width", "3").tab_width == 3

    def test_config_output(self, tmp_path: Path) -> None:
        (tmp_path / "kettle.toml").write_text('[output]\nformat = "json"\nlocations = false\n')
        opts = _options(tmp_path)
        assert opts.format == "json"
        assert opts.locations is False

    def test_cli_overrides_config_format(self, tmp_path: Path) -> None:
        (tmp_path / "kettle.toml").write_text('[output]\nformat = "json"\n')
        assert _options(tmp_path, "--format", "text").format == "text"

    def test_explicit_config_flag(self, tmp_path: Path) -> None:
        cfg = tmp_path / "other.toml"
        cfg.write_text("[lexer]\ntab_width = 4\n")
        assert _options(tmp_path, "--config", str(cfg)).tab_width == 4

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "kettle.toml").write_text("[lexer\n")
        with pytest.raises(argparse.ArgumentTypeError, match="invalid config"):
            _options(tmp_path)

    def test_tab_width_must_be_integer(self, tmp_path: Path) -> None:
        (tmp_path / "kettle.toml").write_text('[lexer]\ntab_width = "wide"\n')
        with pytest.raises(argparse.ArgumentTypeError, match="integer"):
            _options(tmp_path)

    def test_tab_width_bool_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "kettle.toml").write_text("[lexer]\ntab_width = true\n")
        with pytest.raises(argparse.ArgumentTypeError):
            _options(tmp_path)

    def test_unknown_format(self, tmp_path: Path) -> None:
        (tmp_path / "kettle.toml").write_text('[output]\nformat = "xml"\n')
        with pytest.raises(argparse.ArgumentTypeError, match="output.format"):
            _options(tmp_path)

    def test_bad_config_exit_code(self, tmp_path: Path) -> None:
        (tmp_path / "kettle.toml").write_text("[lexer\n")
        src = tmp_path / "app.ktl"
        src.write_text("x\n")
        assert main([str(src)]) == 2
