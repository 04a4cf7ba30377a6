"""Find calls to known functions and match their arguments to signatures."""

import difflib
import logging
from collections.abc import Mapping

from variadic_linter.models import (
    VARIADIC,
    Argument,
    CallSite,
    Finding,
    FunctionSignature,
)
from variadic_linter.tokenizer import (
    Token,
    matching_close,
    split_arguments,
    tokenize,
    tokens_text,
)

logger = logging.getLogger(__name__)


def find_call_sites(
    content: str,
    signatures: Mapping[str, FunctionSignature],
    file_path: str,
) -> list[CallSite]:
    """Find call sites for functions with a known signature.

    Args:
        content: R source code
        signatures: Known signatures keyed by function name
        file_path: Path to the source file (for location tracking)

    Returns:
        List of CallSite objects in source order
    """
    tokens = tokenize(content)
    call_sites = []

    for index, token in enumerate(tokens):
        if token.kind != "name" or token.text not in signatures:
            continue
        if index + 1 >= len(tokens):
            continue
        opener = tokens[index + 1]
        if opener.kind != "open" or opener.text != "(":
            continue
        if index > 0 and tokens[index - 1].is_op("$", "@"):
            continue

        close_index = matching_close(tokens, index + 1)
        if close_index is None:
            logger.debug(
                f"Skipping unterminated call to {token.text} at line {token.line}"
            )
            continue

        signature = signatures[token.text]
        arguments = [
            _to_argument(group)
            for group in split_arguments(tokens, index + 1, close_index)
        ]
        call_site = CallSite(
            function_name=token.text,
            file_path=file_path,
            line_number=token.line,
            arguments=arguments,
            variadic_arguments=match_arguments(arguments, signature),
        )
        call_sites.append(call_site)
        logger.debug(f"Found call: {token.text} at {file_path}:{token.line}")

    logger.info(f"Found {len(call_sites)} call sites in {file_path}")
    return call_sites


def match_arguments(
    arguments: list[Argument], signature: FunctionSignature
) -> list[Argument]:
    """Work out which supplied arguments land in the variadic slot.

    Follows R's matching order: exact names, then unique partial names
    (only for parameters declared before ``...``), then positions.

    Args:
        arguments: Arguments in call order
        signature: Signature of the called function

    Returns:
        Arguments matched to ``...``, in call order; empty when the
        signature has no variadic parameter
    """
    if not signature.has_variadic:
        return []

    bound: set[str] = set()
    landed: set[int] = set()

    named = [(i, a) for i, a in enumerate(arguments) if a.kind == "named"]
    unmatched = []
    for i, arg in named:
        if arg.name != VARIADIC and arg.name in signature.parameters:
            # A repeated exact name is a matching error, never part of ...
            bound.add(arg.name)
        else:
            unmatched.append((i, arg))

    for i, arg in unmatched:
        candidates = [
            p
            for p in signature.before_variadic
            if p not in bound and p.startswith(arg.name)
        ]
        if len(candidates) == 1:
            bound.add(candidates[0])
        else:
            landed.add(i)

    open_positions = [p for p in signature.before_variadic if p not in bound]
    expanded = False
    for i, arg in enumerate(arguments):
        if arg.kind == "named":
            continue
        if arg.kind == "dots":
            # Forwarded dots may fill any remaining positions
            expanded = True
        if expanded or not open_positions:
            landed.add(i)
        else:
            open_positions.pop(0)

    return [arguments[i] for i in sorted(landed)]


def find_ambiguous_named_arguments(
    call_site: CallSite, signature: FunctionSignature
) -> list[Finding]:
    """Report named arguments that are silently swallowed by ``...``.

    A parameter named more than once is reported separately: R refuses such
    a call instead of passing the extra argument through the dots.

    Args:
        call_site: A call whose variadic arguments have been matched
        signature: Signature of the called function

    Returns:
        One Finding per named argument landing in the variadic slot and per
        repeated parameter name
    """
    findings = []
    parameters = [p for p in signature.parameters if p != VARIADIC]

    seen: set[str] = set()
    for arg in call_site.arguments:
        if arg.kind != "named" or arg.name not in parameters:
            continue
        if arg.name in seen:
            findings.append(
                Finding(
                    file_path=call_site.file_path,
                    line_number=call_site.line_number,
                    severity="error",
                    rule="ambiguous-named-argument",
                    message=(
                        f"argument `{arg.name}` is supplied more than once in "
                        f"call to {call_site.function_name}(); R stops with "
                        "\"formal argument matched by multiple actual arguments\""
                    ),
                    function_name=call_site.function_name,
                )
            )
        seen.add(arg.name)

    for arg in call_site.variadic_arguments:
        if arg.kind != "named":
            continue

        message = (
            f"named argument `{arg.name}` in call to {call_site.function_name}() "
            f"does not match a parameter of {signature.describe()} and is "
            "swallowed by `...`"
        )
        suggestion = difflib.get_close_matches(arg.name, parameters, n=1)
        if suggestion:
            message += f"; did you mean `{suggestion[0]}`?"

        findings.append(
            Finding(
                file_path=call_site.file_path,
                line_number=call_site.line_number,
                severity="error",
                rule="ambiguous-named-argument",
                message=message,
                function_name=call_site.function_name,
            )
        )
        logger.info(
            f"Ambiguous named argument {arg.name} at "
            f"{call_site.file_path}:{call_site.line_number}"
        )

    return findings


def _to_argument(group: list[Token]) -> Argument:
    """Tag an argument by its static shape."""
    if len(group) == 1 and group[0].kind == "dots":
        return Argument(kind="dots", text=VARIADIC)
    if (
        len(group) >= 2
        and group[0].kind in ("name", "string")
        and group[1].is_op("=")
    ):
        name = group[0].text
        if group[0].kind == "string":
            name = name[1:-1]
        return Argument(kind="named", text=tokens_text(group[2:]), name=name)
    return Argument(kind="positional", text=tokens_text(group))
