"""Code tokenization: Pygments lexers mapped onto palette syntax roles."""

from __future__ import annotations

import logging

from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name, guess_lexer
from pygments.token import (
    Comment,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    _TokenType,
)
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)

CodeToken = tuple[str, str]

PLAIN_ROLE = "code_block"

# Checked in order; the first ancestor match wins
_ROLE_TABLE: list[tuple[_TokenType, str]] = [
    (Comment, "comment"),
    (Keyword.Type, "type_name"),
    (Keyword, "keyword"),
    (String, "string"),
    (Number, "number"),
    (Operator, "operator"),
    (Punctuation, "operator"),
    (Name.Function, "function"),
    (Name.Class, "type_name"),
    (Name.Builtin, "type_name"),
    (Name.Variable, "variable"),
    (Name.Attribute, "variable"),
    (Name, "variable"),
]


def role_for(ttype: _TokenType) -> str:
    for parent, role in _ROLE_TABLE:
        if ttype in parent:
            return role
    return PLAIN_ROLE


class Highlighter:
    """Turns code text into ``(text, role)`` pairs.

    With *code_guessing* disabled, blocks without a known language are left
    untokenized and render as plain text.
    """

    def __init__(self, code_guessing: bool = True) -> None:
        self.code_guessing = code_guessing

    def _lexer(self, code: str, language: str | None) -> Lexer | None:
        if language:
            try:
                return get_lexer_by_name(language, stripnl=False, ensurenl=False)
            except ClassNotFound:
                logger.debug("No lexer for language '%s'", language)
        if not self.code_guessing or not code.strip():
            return None
        try:
            lexer = guess_lexer(code, stripnl=False, ensurenl=False)
        except ClassNotFound:
            return None
        # guess_lexer falls back to plain text when nothing matches
        if lexer.name == "Text only":
            return None
        return lexer

    def tokenize(self, code: str, language: str | None) -> list[CodeToken] | None:
        lexer = self._lexer(code, language)
        if lexer is None:
            return None
        tokens: list[CodeToken] = []
        for ttype, value in lexer.get_tokens(code):
            if not value:
                continue
            role = role_for(ttype)
            if tokens and tokens[-1][1] == role:
                tokens[-1] = (tokens[-1][0] + value, role)
            else:
                tokens.append((value, role))
        return tokens

    @staticmethod
    def language_label(language: str | None) -> str:
        """Human readable name for a fence info string, ``Text`` if unknown."""
        if not language:
            return "Text"
        try:
            return get_lexer_by_name(language).name
        except ClassNotFound:
            return language
