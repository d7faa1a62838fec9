"""Palette: built-in themes, color parsing and ``key=value`` overrides.

A :class:`Palette` maps semantic role names (``text``, ``h1``, ``link``,
``keyword``, ...) to a :class:`ResolvedColor`.  It is built once per run from
a built-in theme, an optional code theme and zero or more override strings.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from pygments.styles import get_style_by_name
from pygments.token import Comment, Keyword, Name, Number, Operator, String
from pygments.util import ClassNotFound

from mdv.errors import UnresolvedThemeError, UnsupportedColorError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ResolvedColor
# ---------------------------------------------------------------------------

_NAMED_SGR: dict[str, int] = {
    "black": 30,
    "darkred": 31,
    "darkgreen": 32,
    "darkyellow": 33,
    "darkblue": 34,
    "darkmagenta": 35,
    "darkcyan": 36,
    "grey": 37,
    "darkgrey": 90,
    "red": 91,
    "green": 92,
    "yellow": 93,
    "blue": 94,
    "magenta": 95,
    "cyan": 96,
    "white": 97,
}

_NAMED_RGB: dict[str, tuple[int, int, int]] = {
    "black": (0, 0, 0),
    "darkred": (128, 0, 0),
    "darkgreen": (0, 128, 0),
    "darkyellow": (128, 128, 0),
    "darkblue": (0, 0, 128),
    "darkmagenta": (128, 0, 128),
    "darkcyan": (0, 128, 128),
    "grey": (192, 192, 192),
    "darkgrey": (128, 128, 128),
    "red": (255, 0, 0),
    "green": (0, 255, 0),
    "yellow": (255, 255, 0),
    "blue": (0, 0, 255),
    "magenta": (255, 0, 255),
    "cyan": (0, 255, 255),
    "white": (255, 255, 255),
}

_NAMED_ALIASES: dict[str, str] = {
    "gray": "grey",
    "darkgray": "darkgrey",
}

_CUBE_LEVELS = (0, 95, 135, 175, 215, 255)


def ansi256_to_rgb(index: int) -> tuple[int, int, int]:
    """Approximate RGB value of a 256-color palette index."""
    if index < 16:
        # _NAMED_SGR is ordered like the 16 system colors
        return _NAMED_RGB[list(_NAMED_SGR)[index]]
    if index < 232:
        index -= 16
        return (
            _CUBE_LEVELS[index // 36],
            _CUBE_LEVELS[(index // 6) % 6],
            _CUBE_LEVELS[index % 6],
        )
    level = 8 + (index - 232) * 10
    return (level, level, level)


@dataclass(frozen=True)
class ResolvedColor:
    """A concrete renderable color.

    ``kind`` is one of ``"named"``, ``"rgb"``, ``"ansi256"`` or ``"default"``.
    """

    kind: str
    name: str = ""
    rgb_value: tuple[int, int, int] = (0, 0, 0)
    index: int = 0

    @classmethod
    def named(cls, name: str) -> ResolvedColor:
        return cls("named", name=name)

    @classmethod
    def rgb(cls, r: int, g: int, b: int) -> ResolvedColor:
        return cls("rgb", rgb_value=(r, g, b))

    @classmethod
    def ansi(cls, index: int) -> ResolvedColor:
        return cls("ansi256", index=index)

    @classmethod
    def default(cls) -> ResolvedColor:
        return cls("default")

    @property
    def is_default(self) -> bool:
        return self.kind == "default"

    def sgr(self, background: bool = False) -> str:
        """SGR parameter string selecting this color, ``""`` for default."""
        if self.kind == "named":
            return str(_NAMED_SGR[self.name] + (10 if background else 0))
        base = "48" if background else "38"
        if self.kind == "rgb":
            r, g, b = self.rgb_value
            return f"{base};2;{r};{g};{b}"
        if self.kind == "ansi256":
            return f"{base};5;{self.index}"
        return ""

    def to_rgb(self) -> tuple[int, int, int] | None:
        if self.kind == "named":
            return _NAMED_RGB[self.name]
        if self.kind == "rgb":
            return self.rgb_value
        if self.kind == "ansi256":
            return ansi256_to_rgb(self.index)
        return None

    def to_hex(self) -> str | None:
        rgb = self.to_rgb()
        if rgb is None:
            return None
        return "#{:02x}{:02x}{:02x}".format(*rgb)


def _luminance(color: ResolvedColor) -> float | None:
    rgb = color.to_rgb()
    if rgb is None:
        return None
    r, g, b = (c / 255.0 for c in rgb)
    return 0.299 * r + 0.587 * g + 0.114 * b


# ---------------------------------------------------------------------------
# Roles and built-in themes
# ---------------------------------------------------------------------------

UI_ROLES: tuple[str, ...] = (
    "text", "text_light",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "code", "code_block", "quote", "link",
    "emphasis", "strong", "strikethrough",
    "background", "border", "list_marker",
    "table_header", "table_border",
    "error", "warning",
)

SYNTAX_ROLES: tuple[str, ...] = (
    "keyword", "string", "comment", "number",
    "operator", "function", "variable", "type_name",
)

_UI_ALIASES: dict[str, str] = {
    "textlight": "text_light",
    "codeblock": "code_block",
    "strike": "strikethrough",
    "del": "strikethrough",
    "bg": "background",
    "listmarker": "list_marker",
    "tableheader": "table_header",
    "tableborder": "table_border",
}

_SYNTAX_ALIASES: dict[str, str] = {
    "typename": "type_name",
    "type": "type_name",
}

_N = ResolvedColor.named
_A = ResolvedColor.ansi
_R = ResolvedColor.rgb


def _ui(*colors: ResolvedColor | None) -> dict[str, ResolvedColor | None]:
    return dict(zip(UI_ROLES, colors))


def _syntax(*colors: ResolvedColor) -> dict[str, ResolvedColor]:
    return dict(zip(SYNTAX_ROLES, colors))


_BUILTIN_THEMES: dict[str, tuple[str, dict, dict]] = {
    "terminal": (
        "Default terminal colors",
        _ui(
            _N("white"), _N("grey"),
            _N("red"), _N("green"), _N("yellow"), _N("blue"), _N("magenta"), _N("cyan"),
            _A(102), _A(102), _A(109), _N("blue"),
            _N("yellow"), _N("red"), _N("darkgrey"),
            None, _N("grey"), _N("green"),
            _N("yellow"), _N("grey"),
            _N("red"), _N("yellow"),
        ),
        _syntax(_A(117), _A(109), _A(59), _A(109), _A(65), _A(153), _A(231), _A(117)),
    ),
    "monokai": (
        "Monokai color scheme",
        _ui(
            _R(248, 248, 242), _R(117, 113, 94),
            _R(249, 38, 114), _R(166, 226, 46), _R(230, 219, 116),
            _R(102, 217, 239), _R(253, 151, 31), _R(174, 129, 255),
            _R(230, 219, 116), _R(248, 248, 242), _R(117, 113, 94), _R(102, 217, 239),
            _R(253, 151, 31), _R(249, 38, 114), _R(117, 113, 94),
            _R(39, 40, 34), _R(73, 72, 62), _R(166, 226, 46),
            _R(253, 151, 31), _R(73, 72, 62),
            _R(249, 38, 114), _R(253, 151, 31),
        ),
        _syntax(
            _R(249, 38, 114), _R(230, 219, 116), _R(117, 113, 94), _R(174, 129, 255),
            _R(249, 38, 114), _R(166, 226, 46), _R(248, 248, 242), _R(102, 217, 239),
        ),
    ),
    "solarized-dark": (
        "Solarized Dark color scheme",
        _ui(
            _R(131, 148, 150), _R(88, 110, 117),
            _R(220, 50, 47), _R(203, 75, 22), _R(181, 137, 0),
            _R(38, 139, 210), _R(108, 113, 196), _R(42, 161, 152),
            _R(42, 161, 152), _R(131, 148, 150), _R(88, 110, 117), _R(38, 139, 210),
            _R(203, 75, 22), _R(220, 50, 47), _R(88, 110, 117),
            _R(0, 43, 54), _R(88, 110, 117), _R(133, 153, 0),
            _R(181, 137, 0), _R(88, 110, 117),
            _R(220, 50, 47), _R(181, 137, 0),
        ),
        _syntax(
            _R(133, 153, 0), _R(42, 161, 152), _R(88, 110, 117), _R(181, 137, 0),
            _R(220, 50, 47), _R(38, 139, 210), _R(131, 148, 150), _R(108, 113, 196),
        ),
    ),
    "nord": (
        "Nord color scheme",
        _ui(
            _R(236, 239, 244), _R(216, 222, 233),
            _R(136, 192, 208), _R(143, 188, 187), _R(129, 161, 193),
            _R(94, 129, 172), _R(191, 97, 106), _R(208, 135, 112),
            _R(235, 203, 139), _R(236, 239, 244), _R(76, 86, 106), _R(136, 192, 208),
            _R(163, 190, 140), _R(180, 142, 173), _R(67, 76, 94),
            _R(46, 52, 64), _R(76, 86, 106), _R(163, 190, 140),
            _R(136, 192, 208), _R(76, 86, 106),
            _R(191, 97, 106), _R(235, 203, 139),
        ),
        _syntax(
            _R(129, 161, 193), _R(163, 190, 140), _R(76, 86, 106), _R(180, 142, 173),
            _R(129, 161, 193), _R(136, 192, 208), _R(236, 239, 244), _R(143, 188, 187),
        ),
    ),
    "tokyonight": (
        "Tokyonight color scheme",
        _ui(
            _R(192, 202, 245), _R(169, 177, 214),
            _R(122, 162, 247), _R(158, 206, 106), _R(187, 154, 247),
            _R(125, 207, 255), _R(247, 118, 142), _R(224, 175, 104),
            _R(255, 158, 100), _R(192, 202, 245), _R(59, 66, 97), _R(125, 207, 255),
            _R(169, 177, 214), _R(122, 162, 247), _R(84, 92, 126),
            _R(26, 27, 38), _R(59, 66, 97), _R(158, 206, 106),
            _R(125, 207, 255), _R(59, 66, 97),
            _R(247, 118, 142), _R(224, 175, 104),
        ),
        _syntax(
            _R(122, 162, 247), _R(158, 206, 106), _R(86, 95, 137), _R(255, 158, 100),
            _R(125, 207, 255), _R(187, 154, 247), _R(192, 202, 245), _R(224, 175, 104),
        ),
    ),
    "kanagawa": (
        "Kanagawa color scheme",
        _ui(
            _R(220, 215, 186), _R(200, 192, 147),
            _R(126, 156, 216), _R(122, 168, 159), _R(147, 138, 169),
            _R(149, 127, 184), _R(255, 160, 102), _R(228, 104, 118),
            _R(192, 163, 110), _R(220, 215, 186), _R(84, 84, 109), _R(126, 156, 216),
            _R(200, 192, 147), _R(147, 138, 169), _R(114, 113, 105),
            _R(31, 31, 40), _R(42, 42, 55), _R(122, 168, 159),
            _R(200, 192, 147), _R(42, 42, 55),
            _R(228, 104, 118), _R(255, 158, 59),
        ),
        _syntax(
            _R(126, 156, 216), _R(152, 187, 108), _R(114, 113, 105), _R(255, 160, 102),
            _R(147, 138, 169), _R(122, 168, 159), _R(220, 215, 186), _R(192, 163, 110),
        ),
    ),
    "gruvbox": (
        "Gruvbox Dark color scheme",
        _ui(
            _R(235, 219, 178), _R(168, 153, 132),
            _R(250, 189, 47), _R(184, 187, 38), _R(142, 192, 124),
            _R(131, 165, 152), _R(211, 134, 155), _R(254, 128, 25),
            _R(142, 192, 124), _R(60, 56, 54), _R(146, 131, 116), _R(131, 165, 152),
            _R(211, 134, 155), _R(251, 73, 52), _R(102, 92, 84),
            _R(40, 40, 40), _R(102, 92, 84), _R(184, 187, 38),
            _R(184, 187, 38), _R(102, 92, 84),
            _R(251, 73, 52), _R(254, 128, 25),
        ),
        _syntax(
            _R(251, 73, 52), _R(184, 187, 38), _R(146, 131, 116), _R(211, 134, 155),
            _R(254, 128, 25), _R(142, 192, 124), _R(235, 219, 178), _R(131, 165, 152),
        ),
    ),
    "material-ocean": (
        "Material Theme Ocean color scheme",
        _ui(
            _R(238, 255, 255), _R(176, 190, 197),
            _R(130, 170, 255), _R(128, 203, 196), _R(195, 232, 141),
            _R(255, 203, 107), _R(247, 140, 108), _R(199, 146, 234),
            _R(255, 203, 107), _R(238, 255, 255), _R(84, 110, 122), _R(130, 170, 255),
            _R(247, 140, 108), _R(199, 146, 234), _R(84, 110, 122),
            _R(15, 17, 26), _R(28, 34, 48), _R(195, 232, 141),
            _R(130, 170, 255), _R(28, 34, 48),
            _R(240, 113, 120), _R(255, 203, 107),
        ),
        _syntax(
            _R(199, 146, 234), _R(195, 232, 141), _R(84, 110, 122), _R(247, 140, 108),
            _R(137, 221, 255), _R(130, 170, 255), _R(238, 255, 255), _R(128, 203, 196),
        ),
    ),
    "catppucin": (
        "Catppucin color scheme",
        _ui(
            _R(205, 214, 244), _R(186, 194, 222),
            _R(180, 190, 254), _R(137, 180, 250), _R(148, 226, 213),
            _R(166, 227, 161), _R(249, 226, 175), _R(242, 205, 205),
            _R(245, 194, 231), _R(205, 214, 244), _R(108, 112, 134), _R(137, 220, 235),
            _R(245, 194, 231), _R(203, 166, 247), _R(108, 112, 134),
            _R(30, 30, 46), _R(49, 50, 68), _R(166, 227, 161),
            _R(137, 180, 250), _R(49, 50, 68),
            _R(243, 139, 168), _R(250, 179, 135),
        ),
        _syntax(
            _R(203, 166, 247), _R(166, 227, 161), _R(108, 112, 134), _R(250, 179, 135),
            _R(137, 220, 235), _R(137, 180, 250), _R(205, 214, 244), _R(148, 226, 213),
        ),
    ),
}

DEFAULT_THEME = "terminal"

# Pygments token types consulted (in order) for each syntax role
_PYGMENTS_ROLE_TOKENS = {
    "keyword": (Keyword,),
    "string": (String,),
    "comment": (Comment,),
    "number": (Number,),
    "operator": (Operator,),
    "function": (Name.Function, Name),
    "variable": (Name.Variable, Name),
    "type_name": (Keyword.Type, Name.Class, Name.Builtin),
}


def theme_names() -> list[str]:
    return list(_BUILTIN_THEMES)


# ---------------------------------------------------------------------------
# Override parsing
# ---------------------------------------------------------------------------

def normalize_key(key: str) -> str:
    """Normalize an override key: ``Text-Light`` -> ``text_light``."""
    normalized = re.sub(r"[-\s]", "_", key.strip())
    normalized = re.sub(r"_+", "_", normalized)
    return normalized.lower()


def parse_override_pairs(text: str) -> list[tuple[str, str]]:
    """Split ``key=value`` pairs separated by ``;`` or newlines."""
    pairs: list[tuple[str, str]] = []
    for raw in re.split(r"[;\n]", text):
        item = raw.strip()
        if not item:
            continue
        if "=" not in item:
            raise UnsupportedColorError(f"Override pair '{item}' must contain '='")
        key, value = (part.strip() for part in item.split("=", 1))
        if not key:
            raise UnsupportedColorError(f"Found empty key in override '{item}'")
        if not value:
            raise UnsupportedColorError(f"Key '{key}' has an empty value in override")
        pairs.append((key, value))

    if not pairs:
        raise UnsupportedColorError("Override string is empty")
    return pairs


def _parse_component(part: str, spec: str) -> int:
    try:
        value = int(part.strip())
    except ValueError:
        raise UnsupportedColorError(
            f"Component '{part.strip()}' of '{spec}' must be an integer in 0..255"
        ) from None
    if not 0 <= value <= 255:
        raise UnsupportedColorError(f"Component '{value}' of '{spec}' is out of range 0..255")
    return value


def _parse_rgb_components(text: str, spec: str) -> ResolvedColor:
    parts = text.split(",")
    if len(parts) != 3:
        raise UnsupportedColorError(f"Color '{spec}' must contain three RGB components")
    r, g, b = (_parse_component(p, spec) for p in parts)
    return ResolvedColor.rgb(r, g, b)


def _parse_hex(spec: str) -> ResolvedColor:
    digits = spec[1:]
    if len(digits) not in (3, 6) or not re.fullmatch(r"[0-9a-fA-F]+", digits):
        raise UnsupportedColorError(f"Color '{spec}' must contain 3 or 6 hexadecimal digits")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return ResolvedColor.rgb(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def parse_color(value: str) -> ResolvedColor:
    """Parse a color spec: ``#hex``, ``0..255``, ``ansi(n)``, ``rgb(r,g,b)``,
    ``r,g,b``, ``reset``/``default`` or a named color."""
    spec = value.strip()
    if not spec:
        raise UnsupportedColorError("Color cannot be an empty string")

    if spec.startswith("#"):
        return _parse_hex(spec)

    lower = spec.lower()

    if re.fullmatch(r"-?\d+", spec):
        index = int(spec)
        if not 0 <= index <= 255:
            raise UnsupportedColorError(f"ANSI value '{index}' must be in the range 0..255")
        return ResolvedColor.ansi(index)

    if lower.startswith("rgb(") and lower.endswith(")"):
        return _parse_rgb_components(lower[4:-1], spec)

    if "," in spec:
        return _parse_rgb_components(spec, spec)

    if lower.startswith("ansi(") and lower.endswith(")"):
        inner = lower[5:-1].strip()
        if not inner.isdigit() or int(inner) > 255:
            raise UnsupportedColorError(
                f"Value '{inner}': expected a number in the range 0..255 for ansi()"
            )
        return ResolvedColor.ansi(int(inner))

    if lower in ("reset", "default"):
        return ResolvedColor.default()

    name = lower.replace("_", "")
    name = _NAMED_ALIASES.get(name, name)
    if name in _NAMED_SGR:
        return ResolvedColor.named(name)

    raise UnsupportedColorError(f"Unknown color value '{value}'")


def _is_none_value(value: str) -> bool:
    return value.strip().lower() in ("", "none", "null")


# ---------------------------------------------------------------------------
# Palette
# ---------------------------------------------------------------------------

@dataclass
class Palette:
    """Resolved mapping from semantic role to color for one run."""

    name: str
    ui: dict[str, ResolvedColor | None] = field(default_factory=dict)
    syntax: dict[str, ResolvedColor] = field(default_factory=dict)
    description: str = ""

    def color(self, role: str) -> ResolvedColor:
        """Color for a UI or syntax role; missing roles resolve to default."""
        if role in self.ui:
            return self.ui[role] or ResolvedColor.default()
        if role in self.syntax:
            return self.syntax[role]
        raise UnresolvedThemeError(f"Unknown palette role '{role}'")

    @property
    def background(self) -> ResolvedColor | None:
        return self.ui.get("background")

    def luminosity(self) -> float:
        values = [
            lum
            for lum in (_luminance(self.color(f"h{n}")) for n in range(1, 6))
            if lum is not None
        ]
        return sum(values) / len(values) if values else 0.5

    # -- construction -------------------------------------------------------

    @classmethod
    def builtin(cls, name: str) -> Palette:
        try:
            description, ui, syntax = _BUILTIN_THEMES[name]
        except KeyError:
            known = ", ".join(_BUILTIN_THEMES)
            raise UnresolvedThemeError(f"Unknown theme '{name}' (available: {known})") from None
        return cls(name=name, ui=dict(ui), syntax=dict(syntax), description=description)

    @classmethod
    def build(
        cls,
        theme: str = DEFAULT_THEME,
        custom_theme: str | None = None,
        code_theme: str | None = None,
        custom_code_theme: str | None = None,
    ) -> Palette:
        """Resolve a theme, a code theme and override strings into a palette.

        Override errors raise before any rendering happens.
        """
        palette = cls.builtin(theme)

        if code_theme:
            palette.syntax = _resolve_code_theme(code_theme, palette.syntax)

        if custom_theme:
            palette.apply_overrides(custom_theme)
        if custom_code_theme:
            palette.apply_code_overrides(custom_code_theme)
        return palette

    def apply_overrides(self, text: str) -> None:
        for key, value in parse_override_pairs(text):
            role = normalize_key(key)
            role = _UI_ALIASES.get(role, role)
            if role not in UI_ROLES:
                raise UnresolvedThemeError(f"Unknown key for custom theme: '{key}'")
            if role == "background" and _is_none_value(value):
                self.ui[role] = None
            else:
                self.ui[role] = parse_color(value)
        self._mark_custom()

    def apply_code_overrides(self, text: str) -> None:
        for key, value in parse_override_pairs(text):
            role = normalize_key(key)
            role = _SYNTAX_ALIASES.get(role, role)
            if role not in SYNTAX_ROLES:
                raise UnresolvedThemeError(f"Unknown key for custom syntax theme: '{key}'")
            self.syntax[role] = parse_color(value)
        self._mark_custom()

    def _mark_custom(self) -> None:
        if not self.name.endswith("+custom"):
            self.name = f"{self.name}+custom"


def _resolve_code_theme(name: str, fallback: dict[str, ResolvedColor]) -> dict[str, ResolvedColor]:
    if name in _BUILTIN_THEMES:
        return dict(_BUILTIN_THEMES[name][2])

    try:
        style = get_style_by_name(name)
    except ClassNotFound:
        logger.warning("Unknown code theme '%s', using the theme's syntax colors", name)
        return dict(fallback)

    syntax = dict(fallback)
    for role, token_types in _PYGMENTS_ROLE_TOKENS.items():
        for ttype in token_types:
            color = style.style_for_token(ttype).get("color")
            if color:
                syntax[role] = _parse_hex(f"#{color}")
                break
    return syntax


def themes_by_luminosity() -> list[Palette]:
    """Built-in themes ordered from darkest to brightest heading colors."""
    palettes = [Palette.builtin(name) for name in _BUILTIN_THEMES]
    return sorted(palettes, key=lambda p: p.luminosity())
