"""Main analyzer that orchestrates the lint pipeline."""

import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from variadic_linter.call_scanner import (
    find_ambiguous_named_arguments,
    find_call_sites,
)
from variadic_linter.models import (
    COERCED,
    UNKNOWN,
    Finding,
    FunctionDefinition,
    FunctionSignature,
    LintResult,
    UsageSite,
)
from variadic_linter.signature_extractor import ANONYMOUS, extract_definitions
from variadic_linter.usage_classifier import CONTAINER_FUNCTIONS, classify_usage

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".R", ".r")

SKIPPED_DIRECTORIES = frozenset({"renv", "packrat", ".Rproj.user", ".git"})


def lint_source(
    source: str,
    file_path: str = "<string>",
    container_functions: frozenset[str] = CONTAINER_FUNCTIONS,
) -> LintResult:
    """Lint a single piece of R source text."""
    return analyze_sources([(file_path, source)], [file_path], container_functions)


async def lint_paths(
    paths: Iterable[str | Path],
    container_functions: frozenset[str] = CONTAINER_FUNCTIONS,
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
) -> LintResult:
    """Lint R files and directories.

    Directories are searched recursively. Files are read concurrently;
    a path that cannot be read becomes a finding instead of stopping the run.

    Args:
        paths: Files and directories to lint
        container_functions: Calls that count as single-container construction
        extensions: File extensions searched for inside directories

    Returns:
        LintResult with every signature, usage site, call site and finding
    """
    paths = [str(p) for p in paths]
    logger.info(f"Starting lint of {', '.join(paths)}")

    files, findings = collect_files(paths, extensions)
    contents = await asyncio.gather(*(_read_source(f) for f in files))

    sources = []
    for path, content in zip(files, contents):
        if isinstance(content, OSError):
            logger.warning(f"Could not read {path}: {content}")
            findings.append(_read_error(str(path), content.strerror or str(content)))
        else:
            sources.append((str(path), content))

    return analyze_sources(sources, paths, container_functions, findings)


def collect_files(
    paths: Iterable[str], extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
) -> tuple[list[Path], list[Finding]]:
    """Expand paths into the sorted list of files to lint.

    Explicitly named files are linted regardless of extension. Missing paths
    are returned as read-error findings.
    """
    files: list[Path] = []
    findings: list[Finding] = []

    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            for candidate in sorted(path.rglob("*")):
                relative = candidate.relative_to(path)
                if any(part in SKIPPED_DIRECTORIES for part in relative.parts):
                    continue
                if candidate.is_file() and candidate.suffix in extensions:
                    files.append(candidate)
        elif path.is_file():
            files.append(path)
        else:
            logger.warning(f"No such file or directory: {raw}")
            findings.append(_read_error(raw, "no such file or directory"))

    unique = list(dict.fromkeys(files))
    logger.info(f"Collected {len(unique)} files to lint")
    return unique, findings


def analyze_sources(
    sources: list[tuple[str, str]],
    paths: list[str] | None = None,
    container_functions: frozenset[str] = CONTAINER_FUNCTIONS,
    findings: list[Finding] | None = None,
) -> LintResult:
    """Run the lint pipeline over already-read sources.

    Args:
        sources: (file_path, source) pairs
        paths: Paths the run was requested for
        container_functions: Calls that count as single-container construction
        findings: Findings produced before analysis (e.g. read errors)

    Returns:
        LintResult with findings sorted by severity and location
    """
    findings = list(findings or [])
    analyzed_at = datetime.now(UTC).isoformat()

    definitions: list[FunctionDefinition] = []
    for file_path, source in sources:
        file_definitions, errors = extract_definitions(source, file_path)
        definitions.extend(file_definitions)
        for error in errors:
            findings.append(
                Finding(
                    file_path=file_path,
                    line_number=error.line_number or 1,
                    severity="warning",
                    rule="parse-error",
                    message=f"could not parse function definition: {error}",
                )
            )

    signatures: dict[str, FunctionSignature] = {}
    for definition in definitions:
        signature = definition.signature
        if signature.name == ANONYMOUS:
            continue
        if signature.name in signatures:
            logger.debug(
                f"{signature.name} redefined at "
                f"{signature.file_path}:{signature.line_number}"
            )
        signatures[signature.name] = signature

    usage_sites: list[UsageSite] = []
    for definition in definitions:
        sites = classify_usage(
            definition.signature, definition.body, container_functions
        )
        usage_sites.extend(sites)
        findings.extend(_usage_findings(definition.signature, sites))

    call_sites = []
    for file_path, source in sources:
        for call_site in find_call_sites(source, signatures, file_path):
            call_sites.append(call_site)
            findings.extend(
                find_ambiguous_named_arguments(
                    call_site, signatures[call_site.function_name]
                )
            )

    result = LintResult(
        paths=paths or [file_path for file_path, _ in sources],
        analyzed_at=analyzed_at,
        files_scanned=len(sources),
        signatures=[d.signature for d in definitions],
        usage_sites=usage_sites,
        call_sites=call_sites,
        findings=sorted(findings),
    )
    logger.info(
        f"Lint complete: {len(result.signatures)} functions, "
        f"{len(call_sites)} call sites, {len(result.findings)} findings"
    )
    return result


def _usage_findings(
    signature: FunctionSignature, sites: list[UsageSite]
) -> list[Finding]:
    """Turn classified usage into findings."""
    if not signature.has_variadic:
        return []

    if not sites:
        if signature.name == ANONYMOUS:
            return []
        return [
            Finding(
                file_path=signature.file_path,
                line_number=signature.line_number,
                severity="warning",
                rule="unused-dots",
                message=(
                    f"{signature.name}() declares `...` but never uses it; "
                    "extra arguments are silently ignored"
                ),
                function_name=signature.name,
            )
        ]

    findings = []
    for site in sites:
        if site.kind == COERCED:
            findings.append(
                Finding(
                    file_path=site.file_path,
                    line_number=site.line_number,
                    severity="error",
                    rule="coerced-to-container",
                    message=(
                        f"{site.function_name}() only uses `...` to build a single "
                        f"vector with {site.target}(); promote it to a named "
                        f"parameter and let callers write {site.target}() themselves"
                    ),
                    function_name=site.function_name,
                )
            )
        elif site.kind == UNKNOWN:
            findings.append(
                Finding(
                    file_path=site.file_path,
                    line_number=site.line_number,
                    severity="unknown",
                    rule="unresolved-usage",
                    message=(
                        f"{site.function_name}(): could not classify use of "
                        f"`...`: {site.reason}"
                    ),
                    function_name=site.function_name,
                )
            )
    return findings


async def _read_source(path: Path) -> str | OSError:
    try:
        return await asyncio.to_thread(
            path.read_text, encoding="utf-8", errors="replace"
        )
    except OSError as e:
        return e


def _read_error(file_path: str, reason: str) -> Finding:
    return Finding(
        file_path=file_path,
        line_number=1,
        severity="warning",
        rule="read-error",
        message=f"could not read file: {reason}",
    )
