"""Static analysis of ``...`` usage in R function interfaces."""

from variadic_linter.analyzer import analyze_sources, lint_paths, lint_source
from variadic_linter.call_scanner import (
    find_ambiguous_named_arguments,
    find_call_sites,
    match_arguments,
)
from variadic_linter.models import (
    Argument,
    CallSite,
    Finding,
    FunctionSignature,
    LintResult,
    UsageSite,
)
from variadic_linter.reporter import format_finding, format_report
from variadic_linter.signature_extractor import (
    ParseError,
    extract_definitions,
    extract_signature,
)
from variadic_linter.usage_classifier import UnresolvedUsage, classify_usage

__all__ = [
    # Models
    "FunctionSignature",
    "UsageSite",
    "Argument",
    "CallSite",
    "Finding",
    "LintResult",
    # Signature extraction
    "ParseError",
    "extract_signature",
    "extract_definitions",
    # Usage classification
    "UnresolvedUsage",
    "classify_usage",
    # Call-site scanning
    "find_call_sites",
    "match_arguments",
    "find_ambiguous_named_arguments",
    # Reporting
    "format_finding",
    "format_report",
    # Pipeline
    "analyze_sources",
    "lint_source",
    "lint_paths",
]
