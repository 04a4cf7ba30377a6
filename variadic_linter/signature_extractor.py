"""Extract function signatures from R source code."""

import logging

from variadic_linter.models import FunctionDefinition, FunctionSignature
from variadic_linter.tokenizer import (
    Token,
    matching_close,
    split_arguments,
    tokenize,
    tokens_text,
)

logger = logging.getLogger(__name__)

ANONYMOUS = "<anonymous>"

ASSIGNMENT_OPS = ("<-", "<<-", "=")

# Keywords whose parenthesised header is followed by more of the same expression
HEADER_KEYWORDS = ("function", "if", "for", "while")


class ParseError(Exception):
    """Source text is not a valid function definition."""

    def __init__(self, message: str, line_number: int | None = None):
        super().__init__(message)
        self.line_number = line_number


def extract_signature(text: str, file_path: str = "<string>") -> FunctionSignature:
    """Parse the source text of a single function definition.

    Accepts ``name <- function(...) body`` (also ``=`` and ``<<-``) or an
    anonymous ``function(...) body``.

    Args:
        text: Source text of exactly one function definition
        file_path: Path recorded on the signature

    Returns:
        The FunctionSignature of the definition

    Raises:
        ParseError: If the text is not a syntactically valid function definition
    """
    tokens = tokenize(text)
    positions = [i for i, t in enumerate(tokens) if t.kind != "newline"]
    if not positions:
        raise ParseError("empty source", line_number=1)

    head = [tokens[i] for i in positions[:3]]
    if head[0].kind == "keyword" and head[0].text == "function":
        name, function_index = ANONYMOUS, positions[0]
    elif (
        len(head) == 3
        and head[0].kind in ("name", "string")
        and head[1].is_op(*ASSIGNMENT_OPS)
        and head[2].kind == "keyword"
        and head[2].text == "function"
    ):
        name, function_index = _strip_quotes(head[0].text), positions[2]
    else:
        raise ParseError("not a function definition", line_number=head[0].line)

    definition, end = parse_definition_at(tokens, function_index, name, file_path)

    trailing = [t for t in tokens[end:] if t.kind != "newline" and not t.is_op(";")]
    if trailing:
        raise ParseError(
            f"unexpected '{trailing[0].text}' after function definition",
            line_number=trailing[0].line,
        )

    return definition.signature


def extract_definitions(
    source: str, file_path: str = "<string>"
) -> tuple[list[FunctionDefinition], list[ParseError]]:
    """Find every function definition in a source file.

    A definition that fails to parse is reported in the returned errors and
    scanning resumes right after its ``function`` keyword, so definitions
    that follow are still extracted.

    Args:
        source: R source code
        file_path: Path to the source file (for location tracking)

    Returns:
        Tuple of (definitions, parse errors), both in source order
    """
    tokens = tokenize(source)
    contexts = _opener_contexts(tokens)
    definitions: list[FunctionDefinition] = []
    errors: list[ParseError] = []

    for index, token in enumerate(tokens):
        if token.kind != "keyword" or token.text != "function":
            continue

        name = _assigned_name(tokens, contexts, index)
        try:
            definition, _ = parse_definition_at(tokens, index, name, file_path)
        except ParseError as e:
            logger.warning(f"Skipping definition at {file_path}:{e.line_number}: {e}")
            errors.append(e)
            continue

        definitions.append(definition)
        logger.debug(
            f"Parsed function: {definition.signature.describe()} "
            f"at {file_path}:{definition.signature.line_number}"
        )

    logger.info(
        f"Found {len(definitions)} function definitions in {file_path} "
        f"({len(errors)} parse errors)"
    )
    return definitions, errors


def parse_definition_at(
    tokens: list[Token], function_index: int, name: str, file_path: str
) -> tuple[FunctionDefinition, int]:
    """Parse the definition whose ``function`` keyword is at ``function_index``.

    Returns the definition and the index just past its body.
    """
    keyword = tokens[function_index]
    line_number = keyword.line

    open_index = _next_significant(tokens, function_index + 1)
    if open_index is None or not _is_opener(tokens[open_index], "("):
        raise ParseError("expected '(' after 'function'", line_number=line_number)

    close_index = matching_close(tokens, open_index)
    if close_index is None:
        raise ParseError("unterminated parameter list", line_number=line_number)

    parameters, defaults = _parse_parameters(
        split_arguments(tokens, open_index, close_index), line_number
    )

    body_start = _next_significant(tokens, close_index + 1)
    if body_start is None:
        raise ParseError("missing function body", line_number=line_number)

    if _is_opener(tokens[body_start], "{"):
        body_end = matching_close(tokens, body_start)
        if body_end is None:
            raise ParseError("unterminated function body", line_number=line_number)
        body_end += 1
    else:
        body_end = _expression_end(tokens, body_start, line_number)

    if body_end == body_start:
        raise ParseError("missing function body", line_number=line_number)

    signature = FunctionSignature(
        name=name,
        parameters=tuple(parameters),
        defaults=frozenset(defaults),
        file_path=file_path,
        line_number=line_number,
    )
    return FunctionDefinition(signature, tuple(tokens[body_start:body_end])), body_end


def _parse_parameters(
    groups: list[list[Token]], line_number: int
) -> tuple[list[str], set[str]]:
    parameters: list[str] = []
    defaults: set[str] = set()

    for group in groups:
        if not group:
            raise ParseError("empty parameter", line_number=line_number)

        head = group[0]
        if head.kind not in ("name", "dots"):
            raise ParseError(
                f"invalid parameter '{tokens_text(group)}'", line_number=head.line
            )
        if len(group) > 1:
            if head.kind == "dots" or not group[1].is_op("=") or len(group) < 3:
                raise ParseError(
                    f"invalid parameter '{tokens_text(group)}'", line_number=head.line
                )
            defaults.add(head.text)
        if head.text in parameters:
            raise ParseError(
                f"duplicate parameter '{head.text}'", line_number=head.line
            )
        parameters.append(head.text)

    return parameters, defaults


def _expression_end(tokens: list[Token], start: int, line_number: int) -> int:
    """Index just past a single-expression body starting at ``start``."""
    index = start
    continues = True

    while index < len(tokens):
        token = tokens[index]
        if token.kind == "newline":
            if not continues:
                return index
        elif token.kind in ("comma", "close") or token.is_op(";"):
            return index
        elif token.kind == "open":
            close = matching_close(tokens, index)
            if close is None:
                raise ParseError(
                    "unterminated expression in function body",
                    line_number=line_number,
                )
            previous = tokens[index - 1] if index > start else None
            continues = (
                previous is not None
                and previous.kind == "keyword"
                and previous.text in HEADER_KEYWORDS
            )
            index = close
        else:
            # A trailing operator or keyword continues onto the next line
            continues = token.kind in ("op", "keyword")
        index += 1

    return len(tokens)


def _assigned_name(tokens: list[Token], contexts: list[str | None], index: int) -> str:
    """Name a ``function`` keyword is assigned to, or ANONYMOUS."""
    op_index = index - 1
    while op_index >= 0 and tokens[op_index].kind == "newline":
        op_index -= 1
    if op_index < 1 or not tokens[op_index].is_op(*ASSIGNMENT_OPS):
        return ANONYMOUS

    # name = function(...) inside call parentheses is a named argument
    if tokens[op_index].text == "=" and contexts[op_index] in ("(", "["):
        return ANONYMOUS

    target = tokens[op_index - 1]
    if target.kind not in ("name", "string"):
        return ANONYMOUS
    return _strip_quotes(target.text)


def _opener_contexts(tokens: list[Token]) -> list[str | None]:
    """Innermost open bracket enclosing each token."""
    contexts: list[str | None] = []
    stack: list[str] = []
    for token in tokens:
        contexts.append(stack[-1] if stack else None)
        if token.kind == "open":
            stack.append(token.text)
        elif token.kind == "close" and stack:
            stack.pop()
    return contexts


def _is_opener(token: Token, text: str) -> bool:
    return token.kind == "open" and token.text == text


def _next_significant(tokens: list[Token], start: int) -> int | None:
    for index in range(start, len(tokens)):
        if tokens[index].kind != "newline":
            return index
    return None


def _strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    return text
