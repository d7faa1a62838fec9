"""Tests for mdv.parser -- markdown-it tokens to the document arena."""

from __future__ import annotations

from mdv.document import (
    BlockQuote,
    CodeBlock,
    DefinitionList,
    Emphasis,
    FootnoteDefinition,
    FootnoteRef,
    Heading,
    HtmlBlock,
    LineBreak,
    Link,
    ListBlock,
    Paragraph,
    Table,
    TaskMarker,
    Text,
    ThematicBreak,
    plain_text,
)
from mdv.parser import parse


def _roots(md_text: str) -> list:
    doc = parse(md_text)
    return [block for _idx, block in doc.top_level()]


# ---------------------------------------------------------------------------
# Leaf blocks
# ---------------------------------------------------------------------------


class TestLeafBlocks:
    """Headings, paragraphs, code and rules."""

    def test_heading_and_paragraph(self) -> None:
        heading, para = _roots("# Title\n\nbody text")
        assert isinstance(heading, Heading) and heading.level == 1
        assert plain_text(heading.inlines) == "Title"
        assert isinstance(para, Paragraph)
        assert plain_text(para.inlines) == "body text"

    def test_bom_stripped(self) -> None:
        (heading,) = _roots("\ufeff# T")
        assert isinstance(heading, Heading)

    def test_fenced_code(self) -> None:
        (code,) = _roots("```rust\nfn main() {}\n\nlet x;\n```")
        assert isinstance(code, CodeBlock)
        assert code.language == "rust"
        assert code.lines == ["fn main() {}", "", "let x;"]

    def test_indented_code(self) -> None:
        (code,) = _roots("    x = 1\n")
        assert isinstance(code, CodeBlock)
        assert code.language is None
        assert code.fence == ""

    def test_thematic_break(self) -> None:
        assert isinstance(_roots("***")[0], ThematicBreak)

    def test_html_block(self) -> None:
        (block,) = _roots("<!-- note -->")
        assert isinstance(block, HtmlBlock)
        assert block.raw == "<!-- note -->"


# ---------------------------------------------------------------------------
# Inlines
# ---------------------------------------------------------------------------


class TestInlines:
    """Inline tree conversion."""

    def test_nested_emphasis_merges(self) -> None:
        (para,) = _roots("***both***")
        node = para.inlines[0]
        assert isinstance(node, Emphasis) and node.kind == "both"
        assert node.children == [Text("both")]

    def test_link(self) -> None:
        (para,) = _roots('[label](http://x.io "T")')
        link = para.inlines[0]
        assert isinstance(link, Link)
        assert link.target == "http://x.io"
        assert link.title == "T"
        assert plain_text(link.children) == "label"

    def test_image(self) -> None:
        (para,) = _roots("![alt text](a.png)")
        image = para.inlines[0]
        assert isinstance(image, Link) and image.is_image
        assert plain_text(image.children) == "alt text"

    def test_hard_break(self) -> None:
        (para,) = _roots("a  \nb")
        assert LineBreak(hard=True) in para.inlines

    def test_footnote(self) -> None:
        para, footnote = _roots("x[^n]\n\n[^n]: note")
        assert FootnoteRef("n") in para.inlines
        assert isinstance(footnote, FootnoteDefinition)
        assert footnote.label == "n"


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------


class TestContainers:
    """Lists, quotes, tables and definition lists."""

    def test_tight_and_loose(self) -> None:
        (tight,) = _roots("- a\n- b")
        (loose,) = _roots("- a\n\n- b")
        assert isinstance(tight, ListBlock) and tight.tight
        assert isinstance(loose, ListBlock) and not loose.tight

    def test_ordered_start(self) -> None:
        (lst,) = _roots("7. a\n8. b")
        assert lst.ordered and lst.start == 7
        assert len(lst.items) == 2

    def test_nested_list_depth(self) -> None:
        doc = parse("- a\n  - b")
        outer = doc[doc.roots[0]]
        inner = doc[outer.items[0][1]]
        assert isinstance(inner, ListBlock)
        assert inner.depth == 1

    def test_task_items(self) -> None:
        doc = parse("- [x] done")
        para = doc[doc[doc.roots[0]].items[0][0]]
        assert para.inlines[0] == TaskMarker(checked=True)
        assert para.inlines[1] == Text("done")

    def test_blockquote_children(self) -> None:
        doc = parse("> a\n>\n> > b")
        quote = doc[doc.roots[0]]
        assert isinstance(quote, BlockQuote) and quote.depth == 1
        nested = doc[quote.children[1]]
        assert isinstance(nested, BlockQuote) and nested.depth == 2

    def test_table(self) -> None:
        (table,) = _roots("| a | b |\n|:-:|--:|\n| 1 | 2 |\n| 3 | 4 |")
        assert isinstance(table, Table)
        assert [plain_text(c) for c in table.header] == ["a", "b"]
        assert table.alignments == ["center", "right"]
        assert len(table.rows) == 2

    def test_definition_list(self) -> None:
        (dl,) = _roots("Term\n: first\n: second")
        assert isinstance(dl, DefinitionList)
        term, definitions = dl.items[0]
        assert plain_text(term) == "Term"
        assert len(definitions) == 2
