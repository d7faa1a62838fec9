"""mdv: render Markdown as styled text in the terminal."""

from mdv.config import (
    CodeBlockStyle,
    FromSelector,
    HeadingLayout,
    LayoutConfig,
    LinkStyle,
    LinkTruncation,
    TableWrapMode,
    WrapMode,
    build_layout_config,
    load_settings,
)
from mdv.controller import RenderController
from mdv.errors import (
    ConfigError,
    MalformedBlockError,
    MdvError,
    MonitorError,
    UnresolvedThemeError,
    UnsupportedColorError,
)
from mdv.highlight import Highlighter
from mdv.palette import Palette, ResolvedColor
from mdv.parser import parse

__version__ = "0.1.0"

__all__ = [
    "CodeBlockStyle",
    "ConfigError",
    "FromSelector",
    "HeadingLayout",
    "Highlighter",
    "LayoutConfig",
    "LinkStyle",
    "LinkTruncation",
    "MalformedBlockError",
    "MdvError",
    "MonitorError",
    "Palette",
    "RenderController",
    "ResolvedColor",
    "TableWrapMode",
    "UnresolvedThemeError",
    "UnsupportedColorError",
    "WrapMode",
    "build_layout_config",
    "load_settings",
    "parse",
]
