"""Tests for mdv.config -- settings precedence and layout config."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from mdv.config import (
    FromSelector,
    LinkStyle,
    WrapMode,
    build_layout_config,
    load_settings,
    resolve_width,
)
from mdv.errors import ConfigError


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestSettingsPrecedence:
    """CLI > MDV_NO_COLOR > config file > defaults."""

    def test_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(env={"XDG_CONFIG_HOME": str(tmp_path)})
        assert settings["theme"] == "terminal"
        assert settings["wrap"] == "char"
        assert settings["no_colors"] is False

    def test_user_config_file(self, tmp_path: Path) -> None:
        _write(tmp_path / "mdv" / "config.yaml", "wrap: word\ntheme: monokai\n")
        settings = load_settings(env={"XDG_CONFIG_HOME": str(tmp_path)})
        assert settings["wrap"] == "word"
        assert settings["theme"] == "monokai"

    def test_cli_overrides_file(self, tmp_path: Path) -> None:
        _write(tmp_path / "mdv" / "config.yaml", "wrap: word\n")
        settings = load_settings(
            {"wrap": "none", "theme": None},
            env={"XDG_CONFIG_HOME": str(tmp_path)},
        )
        assert settings["wrap"] == "none"
        assert settings["theme"] == "terminal"

    def test_env_config_path(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "custom.yml", "table-wrap: wrap\n")
        settings = load_settings(env={"MDV_CONFIG_PATH": str(path), "XDG_CONFIG_HOME": str(tmp_path)})
        assert settings["table_wrap"] == "wrap"

    def test_no_config_skips_files(self, tmp_path: Path) -> None:
        _write(tmp_path / "mdv" / "config.yaml", "wrap: word\n")
        settings = load_settings(no_config=True, env={"XDG_CONFIG_HOME": str(tmp_path)})
        assert settings["wrap"] == "char"

    def test_no_color_env_beats_file(self, tmp_path: Path) -> None:
        _write(tmp_path / "mdv" / "config.yaml", "no_colors: false\n")
        env = {"XDG_CONFIG_HOME": str(tmp_path), "MDV_NO_COLOR": "true"}
        assert load_settings(env=env)["no_colors"] is True
        assert load_settings({"no_colors": False}, env=env)["no_colors"] is False

    def test_no_color_from_process_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        monkeypatch.setenv("MDV_NO_COLOR", "TRUE")
        monkeypatch.delenv("MDV_CONFIG_PATH", raising=False)
        assert load_settings()["no_colors"] is True

    def test_bad_no_color_value_ignored(self, tmp_path: Path) -> None:
        env = {"XDG_CONFIG_HOME": str(tmp_path), "MDV_NO_COLOR": "yes"}
        assert load_settings(env=env)["no_colors"] is False


class TestConfigFileErrors:
    """Broken or missing config files."""

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_settings(config_file=str(tmp_path / "nope.yaml"), env={"XDG_CONFIG_HOME": str(tmp_path)})

    def test_invalid_yaml_falls_back(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = _write(tmp_path / "bad.yaml", "wrap: [unclosed\n")
        with caplog.at_level(logging.WARNING):
            settings = load_settings(config_file=str(path), env={"XDG_CONFIG_HOME": str(tmp_path)})
        assert settings["wrap"] == "char"
        assert "Failed to load config" in caplog.text

    def test_unknown_key_ignored(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = _write(tmp_path / "c.yaml", "bogus: 1\nwrap: word\n")
        with caplog.at_level(logging.WARNING):
            settings = load_settings(config_file=str(path), env={"XDG_CONFIG_HOME": str(tmp_path)})
        assert "bogus" not in settings
        assert settings["wrap"] == "word"
        assert "unknown config key" in caplog.text

    def test_non_mapping_top_level(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "list.yaml", "- a\n- b\n")
        settings = load_settings(config_file=str(path), env={"XDG_CONFIG_HOME": str(tmp_path)})
        assert settings["theme"] == "terminal"


# ---------------------------------------------------------------------------
# Width and layout config
# ---------------------------------------------------------------------------


class TestResolveWidth:
    """--cols, probed terminal width, config cols, fallback."""

    def test_cli_wins(self) -> None:
        assert resolve_width(100, 60, 120) == 100

    def test_probed_before_config(self) -> None:
        assert resolve_width(None, 60, 120) == 120

    def test_tiny_probe_ignored(self) -> None:
        assert resolve_width(None, 60, 10) == 60

    def test_fallback(self) -> None:
        assert resolve_width(None, None, None) == 80

    def test_config_cols_from_yaml_string(self) -> None:
        assert resolve_width(None, "60", None) == 60

    def test_non_numeric_config_cols_rejected(self) -> None:
        with pytest.raises(ConfigError, match="cols"):
            resolve_width(None, "abc", None)

    def test_bad_config_cols_rejected_even_with_probe(self) -> None:
        with pytest.raises(ConfigError):
            resolve_width(None, "abc", 120)

    @pytest.mark.parametrize("cols", [0, -5])
    def test_non_positive_cli_cols_rejected(self, cols: int) -> None:
        with pytest.raises(ConfigError, match="at least 1"):
            resolve_width(cols, None, 100)


class TestBuildLayoutConfig:
    """Validation of merged settings."""

    def _settings(self, tmp_path: Path, **overrides: object) -> dict:
        return load_settings(overrides, no_config=True, env={"XDG_CONFIG_HOME": str(tmp_path)})

    def test_enums_and_aliases(self, tmp_path: Path) -> None:
        config = build_layout_config(self._settings(tmp_path, link_style="it", wrap="WORD"), 60)
        assert config.link_style is LinkStyle.INLINE_TABLE
        assert config.wrap is WrapMode.WORD
        assert config.width == 60

    def test_invalid_enum(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="wrap"):
            build_layout_config(self._settings(tmp_path, wrap="sometimes"), 80)

    def test_invalid_tab_length(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            build_layout_config(self._settings(tmp_path, tab_length=0), 80)

    def test_from_and_language(self, tmp_path: Path) -> None:
        settings = self._settings(tmp_path, from_text="Intro:5", no_code_language=True)
        config = build_layout_config(settings, 80)
        assert config.from_selector == FromSelector("Intro", 5)
        assert config.show_language is False


class TestFromSelector:
    """``TEXT[:N]`` parsing."""

    def test_plain_text(self) -> None:
        assert FromSelector.parse("abc") == FromSelector("abc", None)

    def test_last_colon_splits(self) -> None:
        assert FromSelector.parse("a:b:3") == FromSelector("a:b", 3)

    def test_non_numeric_limit(self) -> None:
        assert FromSelector.parse("abc:x") == FromSelector("abc", None)
