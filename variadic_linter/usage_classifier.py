"""Classify how a function body consumes its ``...`` parameter."""

import logging

from variadic_linter.models import (
    COERCED,
    DESTRUCTURED,
    FORWARDED,
    UNKNOWN,
    VARIADIC,
    FunctionSignature,
    UsageSite,
)
from variadic_linter.signature_extractor import (
    ANONYMOUS,
    ParseError,
    parse_definition_at,
)
from variadic_linter.tokenizer import Token, matching_close, split_arguments

logger = logging.getLogger(__name__)

# Calls that flatten their arguments into a single vector
CONTAINER_FUNCTIONS = frozenset({"c", "vec_c", "as.vector"})

# Calls that collect their arguments as heterogeneous data
COLLECTING_FUNCTIONS = frozenset({"list", "list2", "dots_list", "pairlist", "alist"})

# Base accessors that measure or index the dots without naming them
DOTS_ACCESSORS = frozenset({"...length", "...elt", "...names"})

# S3 dispatch passes the caller's arguments, dots included, to the method
DISPATCH_FUNCTIONS = frozenset({"UseMethod", "NextMethod"})


class UnresolvedUsage(Exception):
    """The heuristic cannot tell how an occurrence of ``...`` is consumed."""


def classify_usage(
    signature: FunctionSignature,
    body: tuple[Token, ...] | list[Token],
    container_functions: frozenset[str] = CONTAINER_FUNCTIONS,
) -> list[UsageSite]:
    """Classify every use of the variadic parameter in a function body.

    Args:
        signature: Signature of the function owning the body
        body: Tokens of the function body
        container_functions: Calls that count as single-container construction

    Returns:
        One UsageSite per occurrence, in source order; empty when the
        signature has no variadic parameter
    """
    if not signature.has_variadic:
        return []

    body = list(body)
    enclosing = _enclosing_openers(body)
    skipped = _shadowed_ranges(body, signature.file_path)

    sites: list[UsageSite] = []
    for index, token in enumerate(body):
        if any(start <= index < end for start, end in skipped):
            continue
        if _is_dispatch_call(body, index):
            if not _passes_dots_explicitly(body, index + 1):
                sites.append(
                    UsageSite(
                        function_name=signature.name,
                        file_path=signature.file_path,
                        line_number=token.line,
                        kind=FORWARDED,
                        target=token.text,
                    )
                )
            continue
        if token.kind not in ("dots", "dotdot") and token.text not in DOTS_ACCESSORS:
            continue

        try:
            kind, target = _classify_occurrence(
                body, enclosing, index, container_functions
            )
            site = UsageSite(
                function_name=signature.name,
                file_path=signature.file_path,
                line_number=token.line,
                kind=kind,
                target=target,
            )
        except UnresolvedUsage as e:
            site = UsageSite(
                function_name=signature.name,
                file_path=signature.file_path,
                line_number=token.line,
                kind=UNKNOWN,
                reason=str(e),
            )
        sites.append(site)
        logger.debug(f"{signature.name}: {site.kind} at line {site.line_number}")

    sites = _require_single_forward_target(sites)
    logger.info(f"Classified {len(sites)} uses of ... in {signature.name}")
    return sites


def _classify_occurrence(
    body: list[Token],
    enclosing: list[int | None],
    index: int,
    container_functions: frozenset[str],
) -> tuple[str, str | None]:
    token = body[index]

    if token.kind == "dotdot":
        return DESTRUCTURED, token.text
    if token.text in DOTS_ACCESSORS:
        return DESTRUCTURED, token.text

    open_index = enclosing[index]
    if open_index is None or body[open_index].text == "{":
        raise UnresolvedUsage("... is used outside of a call")

    close_index = matching_close(body, open_index)
    if close_index is None:
        raise UnresolvedUsage("... appears in an unterminated call")

    callee, _ = _callee(body, open_index)
    if callee is None:
        raise UnresolvedUsage("... is not passed directly to a named call")

    groups = split_arguments(body, open_index, close_index)
    position = _group_position(groups, token)
    if groups[position] != [token]:
        raise UnresolvedUsage(
            f"... is used inside an expression passed to {callee}()"
        )

    if callee in COLLECTING_FUNCTIONS:
        outer = _sole_argument_of(body, enclosing, open_index)
        if len(groups) == 1 and outer == "unlist":
            return COERCED, outer
        return DESTRUCTURED, callee

    if callee in container_functions:
        if len(groups) == 1:
            return COERCED, callee
        raise UnresolvedUsage(f"... is combined with other arguments in {callee}()")

    if any(not _is_named(group) for group in groups[position + 1 :]):
        raise UnresolvedUsage(
            f"... is followed by positional arguments in call to {callee}()"
        )
    return FORWARDED, callee


def _require_single_forward_target(sites: list[UsageSite]) -> list[UsageSite]:
    """Demote forwarding sites to unknown when dots reach more than one call."""
    targets = sorted(
        {
            s.target
            for s in sites
            if s.kind == FORWARDED and s.target not in DISPATCH_FUNCTIONS
        }
    )
    if len(targets) <= 1:
        return sites

    names = ", ".join(f"{t}()" for t in targets)
    reason = (
        f"... is forwarded into {len(targets)} calls ({names}); "
        "arguments may be matched inconsistently"
    )
    return [
        UsageSite(
            function_name=s.function_name,
            file_path=s.file_path,
            line_number=s.line_number,
            kind=UNKNOWN,
            target=s.target,
            reason=reason,
        )
        if s.kind == FORWARDED and s.target not in DISPATCH_FUNCTIONS
        else s
        for s in sites
    ]


def _callee(body: list[Token], open_index: int) -> tuple[str | None, int]:
    """Name of the call whose opening bracket is at ``open_index``.

    Returns the bare function name (namespace prefix stripped) and the index
    where the call expression starts.
    """
    opener = body[open_index]
    if opener.text == "[":
        previous = body[open_index - 1] if open_index > 0 else None
        if previous is not None and previous.kind == "open" and previous.text == "[":
            return "[[", open_index - 1
        return "[", open_index

    if open_index == 0:
        return None, open_index
    name = body[open_index - 1]
    if name.kind != "name":
        return None, open_index

    start = open_index - 1
    if (
        start >= 2
        and body[start - 1].is_op("::", ":::")
        and body[start - 2].kind == "name"
    ):
        start -= 2
    return name.text, start


def _is_dispatch_call(body: list[Token], index: int) -> bool:
    token = body[index]
    if token.kind != "name" or token.text not in DISPATCH_FUNCTIONS:
        return False
    if index + 1 >= len(body):
        return False
    opener = body[index + 1]
    if opener.kind != "open" or opener.text != "(":
        return False
    return index == 0 or not body[index - 1].is_op("$", "@")


def _passes_dots_explicitly(body: list[Token], open_index: int) -> bool:
    """Whether a dispatch call already lists ``...`` among its arguments."""
    close_index = matching_close(body, open_index)
    end = len(body) if close_index is None else close_index
    return any(t.kind == "dots" for t in body[open_index:end])


def _sole_argument_of(
    body: list[Token], enclosing: list[int | None], open_index: int
) -> str | None:
    """Name of the call that takes the call at ``open_index`` as its only argument."""
    _, start = _callee(body, open_index)
    close_index = matching_close(body, open_index)
    outer_open = enclosing[start]
    if close_index is None or outer_open is None or body[outer_open].text != "(":
        return None

    outer_close = matching_close(body, outer_open)
    if outer_close is None:
        return None
    inner = [t for t in body[outer_open + 1 : outer_close] if t.kind != "newline"]
    call = [t for t in body[start : close_index + 1] if t.kind != "newline"]
    if inner != call:
        return None

    outer, _ = _callee(body, outer_open)
    return outer


def _group_position(groups: list[list[Token]], token: Token) -> int:
    for position, group in enumerate(groups):
        if any(t is token for t in group):
            return position
    raise UnresolvedUsage("... could not be located in its call")


def _is_named(group: list[Token]) -> bool:
    return (
        len(group) >= 2
        and group[0].kind in ("name", "string")
        and group[1].is_op("=")
    )


def _enclosing_openers(body: list[Token]) -> list[int | None]:
    """Index of the innermost open bracket enclosing each token."""
    enclosing: list[int | None] = []
    stack: list[int] = []
    for index, token in enumerate(body):
        enclosing.append(stack[-1] if stack else None)
        if token.kind == "open":
            stack.append(index)
        elif token.kind == "close" and stack:
            stack.pop()
    return enclosing


def _shadowed_ranges(body: list[Token], file_path: str) -> list[tuple[int, int]]:
    """Token ranges of nested functions that declare their own ``...``."""
    ranges = []
    for index, token in enumerate(body):
        if token.kind != "keyword" or token.text != "function":
            continue
        try:
            definition, end = parse_definition_at(body, index, ANONYMOUS, file_path)
        except ParseError:
            continue
        if VARIADIC in definition.signature.parameters:
            ranges.append((index, end))
    return ranges
