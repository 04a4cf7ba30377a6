"""Tokenize R source text for static analysis."""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

KEYWORDS = frozenset(
    {"function", "if", "else", "for", "while", "repeat", "in", "next", "break"}
)

OPENERS = {"(": ")", "[": "]", "{": "}"}

# Order matters: longer alternatives must come before their prefixes
TOKEN_PATTERN = re.compile(
    r"""
    (?P<comment>\#[^\n]*)
    | (?P<newline>\n)
    | (?P<space>[ \t\r\f]+)
    | (?P<raw_string>[rR](?P<rq>["'])(?P<dashes>-*)(?P<ropen>[(\[{])
        .*?
        (?:[)\]}])(?P=dashes)(?P=rq))
    | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    | (?P<bad_string>["'])
    | (?P<backtick>`(?:[^`\\]|\\.)*`)
    | (?P<dots>\.\.\.(?![\w.]))
    | (?P<dotdot>\.\.[1-9][0-9]*(?![\w.]))
    | (?P<number>(?:0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)[Li]?)
    | (?P<name>(?:[A-Za-z]|\.(?![0-9]))[\w.]*)
    | (?P<lambda>\\(?=\s*\())
    | (?P<open>[(\[{])
    | (?P<close>[)\]}])
    | (?P<comma>,)
    | (?P<op><<-|->>|<-|->|\|>|:::|::|%[^%\n]*%|==|!=|<=|>=|&&|\|\||[-+*/^<>=!&|~?:$@;])
    """,
    re.VERBOSE | re.DOTALL,
)


@dataclass(frozen=True)
class Token:
    """A single lexical token of R source."""

    # name, dots, dotdot, string, number, op, open, close, comma, newline,
    # keyword or error
    kind: str
    text: str
    line: int

    def is_op(self, *texts: str) -> bool:
        return self.kind == "op" and self.text in texts


def tokenize(source: str) -> list[Token]:
    """Split R source into tokens, dropping comments and whitespace.

    Args:
        source: R source code

    Returns:
        List of Token objects with 1-based line numbers
    """
    tokens: list[Token] = []
    line = 1
    pos = 0
    length = len(source)

    while pos < length:
        match = TOKEN_PATTERN.match(source, pos)
        if match is None:
            # Unrecognised character; keep it so parsers can reject it
            tokens.append(Token("error", source[pos], line))
            pos += 1
            continue

        kind = match.lastgroup
        text = match.group(0)

        if kind == "newline":
            tokens.append(Token("newline", text, line))
        elif kind in ("comment", "space"):
            pass
        elif kind in ("string", "raw_string"):
            tokens.append(Token("string", text, line))
        elif kind == "bad_string":
            # Unterminated string swallows the rest of the input
            tokens.append(Token("error", source[pos:], line))
            logger.debug(f"Unterminated string starting on line {line}")
            break
        elif kind == "backtick":
            tokens.append(Token("name", text[1:-1], line))
        elif kind == "name":
            tokens.append(Token("keyword" if text in KEYWORDS else "name", text, line))
        elif kind == "lambda":
            tokens.append(Token("keyword", "function", line))
        else:
            tokens.append(Token(kind, text, line))

        line += text.count("\n")
        pos = match.end()

    return tokens


def matching_close(tokens: list[Token], index: int) -> int | None:
    """Find the index of the bracket closing the opener at ``index``.

    Returns None when the opener is never closed.
    """
    stack: list[str] = []
    for i in range(index, len(tokens)):
        token = tokens[i]
        if token.kind == "open":
            stack.append(OPENERS[token.text])
        elif token.kind == "close":
            if not stack:
                return None
            if token.text != stack.pop():
                return None
            if not stack:
                return i
    return None


def split_arguments(
    tokens: list[Token], open_index: int, close_index: int
) -> list[list[Token]]:
    """Split the tokens between two brackets on top-level commas.

    Newlines are dropped. A call with no arguments returns an empty list;
    an empty argument slot (``x[, 1]``) is returned as an empty group.
    """
    groups: list[list[Token]] = []
    current: list[Token] = []
    depth = 0

    for token in tokens[open_index + 1 : close_index]:
        if token.kind == "newline":
            continue
        if token.kind == "open":
            depth += 1
        elif token.kind == "close":
            depth -= 1
        if token.kind == "comma" and depth == 0:
            groups.append(current)
            current = []
            continue
        current.append(token)

    if current or groups:
        groups.append(current)

    return groups


def tokens_text(tokens: list[Token]) -> str:
    """Render tokens back into compact source-like text."""
    parts = []
    for token in tokens:
        if token.kind == "newline":
            continue
        if token.kind == "op" and token.text not in ("::", ":::", "$", "@", ":"):
            parts.append(f" {token.text} ")
        elif token.kind == "comma":
            parts.append(", ")
        else:
            parts.append(token.text)
    return re.sub(r"\s+", " ", "".join(parts)).strip()
