"""Exception hierarchy for mdv."""

from __future__ import annotations


class MdvError(Exception):
    """Base class for every error raised by mdv."""


class ConfigError(MdvError):
    """A setting value is invalid or a config file cannot be used."""


class UnresolvedThemeError(ConfigError):
    """Unknown theme name or unknown role key in a theme override."""


class UnsupportedColorError(ConfigError):
    """A color override value does not parse as any recognized color form."""


class MalformedBlockError(MdvError):
    """A block is structurally inconsistent (e.g. ragged table rows)."""


class MonitorError(MdvError):
    """The monitored file cannot be watched."""
