"""CLI entry point for mdv.

Reads Markdown from a file or stdin and writes styled terminal text (or HTML)
to stdout.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from mdv.config import (
    LinkStyle,
    build_layout_config,
    load_settings,
    probe_terminal_width,
    resolve_width,
)
from mdv.controller import RenderController
from mdv.errors import MdvError
from mdv.fragments import Fragment, Style
from mdv.highlight import Highlighter
from mdv.monitor import Monitor
from mdv.palette import Palette, themes_by_luminosity
from mdv.sink import AnsiSink, serialize

logger = logging.getLogger(__name__)

_LINK_STYLE_CHOICES = [style.value for style in LinkStyle] + ["c", "fc", "i", "it", "h"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdv",
        description="Render Markdown as styled text in the terminal",
    )
    parser.add_argument("file", nargs="?", help="Markdown file to render (default: stdin)")

    parser.add_argument("-F", "--config-file", help="Read settings from this YAML file")
    parser.add_argument("-n", "--no-config", action="store_true", help="Ignore config files")
    parser.add_argument("-A", "--no-colors", action="store_true", default=None, help="Disable colors")
    parser.add_argument("-C", "--hide-comments", action="store_true", default=None, help="Hide HTML comments")
    parser.add_argument("-H", "--html", action="store_true", help="Output HTML instead of ANSI text")

    themes = parser.add_argument_group("themes")
    themes.add_argument("-t", "--theme", help="Theme name")
    themes.add_argument("-T", "--code-theme", help="Code theme (built-in or Pygments style)")
    themes.add_argument("-y", "--custom-theme", help="Theme overrides, e.g. 'h1=#ff0000;text=gray'")
    themes.add_argument("-Y", "--custom-code-theme", help="Code theme overrides, e.g. 'keyword=red'")
    themes.add_argument("-i", "--theme-info", action="store_true", help="List themes and exit")

    code = parser.add_argument_group("code blocks")
    code.add_argument(
        "-L", "--show-code-language", dest="no_code_language", action="store_false", default=None,
        help="Show the language label on code blocks",
    )
    code.add_argument(
        "--no-code-language", dest="no_code_language", action="store_true", default=None,
        help="Hide the language label on code blocks",
    )
    code.add_argument(
        "-g", "--no-code-guessing", dest="code_guessing", action="store_false", default=None,
        help="Do not guess the language of unlabeled code blocks",
    )
    code.add_argument("-s", "--style-code-block", dest="code_block_style", choices=["simple", "pretty"])

    layout = parser.add_argument_group("layout")
    layout.add_argument(
        "-e", "--show-empty-elements", action="store_true", default=None,
        help="Render empty headings, list items and tables",
    )
    layout.add_argument("-b", "--tab-length", type=int, help="Spaces per tab (default: 4)")
    layout.add_argument("-c", "--cols", type=int, help="Output width in columns")
    layout.add_argument("-W", "--wrap", choices=["char", "word", "none"])
    layout.add_argument("-w", "--table-wrap", choices=["fit", "wrap", "none"])
    layout.add_argument("-d", "--heading-layout", choices=["level", "center", "flat", "none"])
    layout.add_argument("-I", "--smart-indent", action="store_true", default=None)
    layout.add_argument("-u", "--link-style", choices=_LINK_STYLE_CHOICES)
    layout.add_argument("-l", "--link-truncation", choices=["wrap", "cut", "none"])
    layout.add_argument("-f", "--from", dest="from_text", metavar="TEXT[:N]",
                        help="Start at the first line containing TEXT, keep N lines")
    layout.add_argument("-r", "--reverse", action="store_true", default=None,
                        help="Render top-level blocks in reverse order")

    parser.add_argument("-m", "--monitor", action="store_true", help="Re-render FILE when it changes")
    parser.add_argument("--log-level", default="warning", choices=["debug", "info", "warning", "error"])
    return parser


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    keys = (
        "theme", "code_theme", "custom_theme", "custom_code_theme", "no_colors",
        "hide_comments", "no_code_language", "code_guessing", "code_block_style",
        "show_empty_elements", "tab_length", "cols", "wrap", "table_wrap",
        "heading_layout", "smart_indent", "link_style", "link_truncation",
        "from_text", "reverse",
    )
    return {key: getattr(args, key) for key in keys}


def _read_source(path: str | None) -> str:
    if path is None or path == "-":
        return sys.stdin.read()
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except OSError as exc:
        raise MdvError(f"Cannot read '{path}': {exc.strerror or exc}") from exc


def theme_info(no_colors: bool = False) -> str:
    """One line per built-in theme, darkest first, with heading swatches."""
    lines = []
    for palette in themes_by_luminosity():
        line = [Fragment(f"{palette.name:<12}")]
        for level in range(1, 6):
            line.append(Fragment(f"h{level} ", Style(fg=palette.color(f"h{level}"), bold=True)))
        line.append(Fragment(f" {palette.luminosity():.2f}  {palette.description}"))
        lines.append(line)
    return serialize(lines, AnsiSink(no_colors=no_colors))


def run(args: argparse.Namespace) -> int:
    settings = load_settings(
        _cli_overrides(args),
        config_file=args.config_file,
        no_config=args.no_config,
    )

    if args.theme_info:
        sys.stdout.write(theme_info(no_colors=bool(settings["no_colors"])))
        return 0

    if args.monitor and (args.file is None or args.file == "-"):
        raise MdvError("--monitor requires a FILE")

    palette = Palette.build(
        settings["theme"],
        custom_theme=settings["custom_theme"],
        code_theme=settings["code_theme"],
        custom_code_theme=settings["custom_code_theme"],
    )
    width = resolve_width(args.cols, settings["cols"], probe_terminal_width())
    config = build_layout_config(settings, width)
    highlighter = Highlighter(code_guessing=bool(settings["code_guessing"]))
    controller = RenderController(config, palette, highlighter)
    logger.debug("Rendering with theme=%s width=%d", palette.name, width)

    if args.monitor:
        def render() -> str:
            return controller.render_text(_read_source(args.file), html=args.html)

        def write(text: str) -> None:
            sys.stdout.write(text)
            sys.stdout.flush()

        Monitor(args.file, render, write).run_forever()
        return 0

    sys.stdout.write(controller.render_text(_read_source(args.file), html=args.html))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return run(args)
    except MdvError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except BrokenPipeError:
        return 0


if __name__ == "__main__":
    sys.exit(main())
