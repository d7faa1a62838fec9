"""Settings loading and the immutable layout configuration.

Settings are plain dicts merged with the precedence:
    CLI options > MDV_NO_COLOR > config file > defaults

The config file is the first of ``--config-file``, ``$MDV_CONFIG_PATH``,
``$XDG_CONFIG_HOME/mdv/config.yaml`` and ``config.yml`` that loads.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import yaml

from mdv.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MDV_CONFIG_PATH"
NO_COLOR_ENV_VAR = "MDV_NO_COLOR"
MIN_PROBED_WIDTH = 20
FALLBACK_WIDTH = 80


# --- Layout policies ---


class WrapMode(str, Enum):
    CHAR = "char"
    WORD = "word"
    NONE = "none"


class TableWrapMode(str, Enum):
    FIT = "fit"
    WRAP = "wrap"
    NONE = "none"


class HeadingLayout(str, Enum):
    LEVEL = "level"
    CENTER = "center"
    FLAT = "flat"
    NONE = "none"


class LinkStyle(str, Enum):
    CLICKABLE = "clickable"
    FCLICKABLE = "fclickable"
    INLINE = "inline"
    INLINE_TABLE = "inlinetable"
    HIDE = "hide"


_LINK_STYLE_ALIASES = {
    "c": LinkStyle.CLICKABLE,
    "fc": LinkStyle.FCLICKABLE,
    "i": LinkStyle.INLINE,
    "it": LinkStyle.INLINE_TABLE,
    "h": LinkStyle.HIDE,
}


class LinkTruncation(str, Enum):
    WRAP = "wrap"
    CUT = "cut"
    NONE = "none"


class CodeBlockStyle(str, Enum):
    SIMPLE = "simple"
    PRETTY = "pretty"


def _parse_enum(enum_cls: type[Enum], key: str, value: Any) -> Any:
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip().lower()
    if enum_cls is LinkStyle and text in _LINK_STYLE_ALIASES:
        return _LINK_STYLE_ALIASES[text]
    try:
        return enum_cls(text)
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ConfigError(f"Invalid value '{value}' for {key} (expected one of: {choices})") from None


# --- From selector ---


@dataclass(frozen=True)
class FromSelector:
    """Start output at the first line containing ``text``; keep ``limit`` lines."""

    text: str
    limit: int | None = None

    @classmethod
    def parse(cls, value: str) -> FromSelector:
        """Parse ``TEXT[:N]``.  A non-numeric ``N`` means no limit."""
        head, sep, tail = value.rpartition(":")
        if sep and head:
            try:
                return cls(head, max(int(tail), 0))
            except ValueError:
                return cls(head, None)
        return cls(value, None)


# --- LayoutConfig ---


@dataclass(frozen=True)
class LayoutConfig:
    """Every layout decision for one run, resolved up front."""

    width: int = FALLBACK_WIDTH
    tab_length: int = 4
    wrap: WrapMode = WrapMode.CHAR
    table_wrap: TableWrapMode = TableWrapMode.FIT
    heading_layout: HeadingLayout = HeadingLayout.LEVEL
    smart_indent: bool = False
    link_style: LinkStyle = LinkStyle.CLICKABLE
    link_truncation: LinkTruncation = LinkTruncation.WRAP
    show_empty_elements: bool = False
    code_block_style: CodeBlockStyle = CodeBlockStyle.PRETTY
    show_language: bool = True
    reverse: bool = False
    from_selector: FromSelector | None = None
    hide_comments: bool = False
    no_colors: bool = False


# --- Settings schema ---


def _settings_defaults() -> dict[str, Any]:
    """Default settings values."""
    return {
        "theme": "terminal",
        "code_theme": None,
        "custom_theme": None,
        "custom_code_theme": None,
        "no_colors": False,
        "cols": None,
        "tab_length": 4,
        "wrap": "char",
        "table_wrap": "fit",
        "heading_layout": "level",
        "smart_indent": False,
        "hide_comments": False,
        "show_empty_elements": False,
        "no_code_language": False,
        "code_guessing": True,
        "code_block_style": "pretty",
        "link_style": "clickable",
        "link_truncation": "wrap",
        "reverse": False,
        "from_text": None,
    }


def deep_merge_settings(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge overrides into base settings.

    For nested dicts, merge recursively. ``None`` values in *overrides*
    leave the base value untouched.
    """
    result = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge_settings(result[key], value)
        else:
            result[key] = value
    return result


# --- File loading ---


def _load_from_file(path: Path) -> tuple[dict[str, Any], Exception | None]:
    """Load settings from a YAML file. Returns (settings, error)."""
    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except (OSError, yaml.YAMLError) as e:
        return {}, e
    if data is None:
        return {}, None
    if not isinstance(data, dict):
        return {}, ConfigError(f"{path}: top level must be a mapping")

    known = _settings_defaults()
    settings: dict[str, Any] = {}
    for key, value in data.items():
        normalized = str(key).replace("-", "_")
        if normalized not in known:
            logger.warning("Ignoring unknown config key '%s' in %s", key, path)
            continue
        settings[normalized] = value
    return settings, None


def _user_config_dir(env: Mapping[str, str]) -> Path:
    base = env.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return Path(base) / "mdv"


def config_search_paths(config_file: str | None, env: Mapping[str, str]) -> list[Path]:
    """Candidate config files in priority order."""
    paths: list[Path] = []
    if config_file:
        paths.append(Path(config_file).expanduser())
    if env.get(CONFIG_ENV_VAR):
        paths.append(Path(env[CONFIG_ENV_VAR]).expanduser())
    user_dir = _user_config_dir(env)
    paths.extend([user_dir / "config.yaml", user_dir / "config.yml"])
    return paths


def load_config_file(config_file: str | None, env: Mapping[str, str]) -> dict[str, Any]:
    """Load the first config file that exists and parses.

    An explicit ``--config-file`` that does not exist is an error; every other
    failure is logged and the search continues.
    """
    if config_file and not Path(config_file).expanduser().exists():
        raise ConfigError(f"Config file not found: {config_file}")

    for path in config_search_paths(config_file, env):
        if not path.is_file():
            continue
        settings, error = _load_from_file(path)
        if error is not None:
            logger.warning("Failed to load config %s: %s", path, error)
            continue
        logger.info("Loaded config from %s", path)
        return settings
    return {}


def _env_no_color(env: Mapping[str, str]) -> bool | None:
    raw = env.get(NO_COLOR_ENV_VAR)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    logger.warning("Ignoring %s=%r (expected 'true' or 'false')", NO_COLOR_ENV_VAR, raw)
    return None


def load_settings(
    cli_overrides: Mapping[str, Any] | None = None,
    *,
    config_file: str | None = None,
    no_config: bool = False,
    env: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Merge defaults, config file, environment and CLI overrides."""
    env = os.environ if env is None else env
    settings = _settings_defaults()
    if not no_config:
        settings = deep_merge_settings(settings, load_config_file(config_file, env))
    settings = deep_merge_settings(settings, {"no_colors": _env_no_color(env)})
    return deep_merge_settings(settings, cli_overrides or {})


# --- Width ---


def probe_terminal_width() -> int | None:
    try:
        return os.get_terminal_size(sys.stdout.fileno()).columns
    except (ValueError, OSError):
        return None


def resolve_width(
    cli_cols: int | None,
    config_cols: int | None,
    probed: int | None,
) -> int:
    """Explicit ``--cols``, then a usable probed width, then config, then 80.

    Both explicit values are validated up front, so a bad config entry is
    reported even when the probed width would have won.
    """
    if cli_cols is not None:
        cli_cols = _positive_int("cols", cli_cols)
    if config_cols is not None:
        config_cols = _positive_int("cols", config_cols)

    if cli_cols is not None:
        return cli_cols
    if probed is not None and probed >= MIN_PROBED_WIDTH:
        return probed
    if config_cols is not None:
        return config_cols
    return FALLBACK_WIDTH


def _positive_int(key: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid value '{value}' for {key} (expected an integer)") from None
    if number < 1:
        raise ConfigError(f"Invalid value '{value}' for {key} (must be at least 1)")
    return number


def build_layout_config(settings: Mapping[str, Any], width: int) -> LayoutConfig:
    """Validate merged settings and freeze them into a :class:`LayoutConfig`."""
    from_text = settings.get("from_text")
    return LayoutConfig(
        width=width,
        tab_length=_positive_int("tab_length", settings["tab_length"]),
        wrap=_parse_enum(WrapMode, "wrap", settings["wrap"]),
        table_wrap=_parse_enum(TableWrapMode, "table_wrap", settings["table_wrap"]),
        heading_layout=_parse_enum(HeadingLayout, "heading_layout", settings["heading_layout"]),
        smart_indent=bool(settings["smart_indent"]),
        link_style=_parse_enum(LinkStyle, "link_style", settings["link_style"]),
        link_truncation=_parse_enum(LinkTruncation, "link_truncation", settings["link_truncation"]),
        show_empty_elements=bool(settings["show_empty_elements"]),
        code_block_style=_parse_enum(CodeBlockStyle, "code_block_style", settings["code_block_style"]),
        show_language=not settings["no_code_language"],
        reverse=bool(settings["reverse"]),
        from_selector=FromSelector.parse(str(from_text)) if from_text else None,
        hide_comments=bool(settings["hide_comments"]),
        no_colors=bool(settings["no_colors"]),
    )
