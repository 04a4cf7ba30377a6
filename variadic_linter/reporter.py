"""Format findings as plain text."""

from variadic_linter.models import SEVERITIES, Finding, LintResult


def format_finding(finding: Finding) -> str:
    """Render one finding as ``<file>:<line>: <severity>: <message>``."""
    return (
        f"{finding.file_path}:{finding.line_number}: "
        f"{finding.severity}: {finding.message}"
    )


def format_report(findings: list[Finding]) -> str:
    """Render findings grouped by severity, one line per finding.

    Groups appear most severe first; within a group findings are ordered by
    file, line and rule.
    """
    lines = []
    for severity in SEVERITIES:
        group = sorted(f for f in findings if f.severity == severity)
        lines.extend(format_finding(f) for f in group)
    others = sorted(f for f in findings if f.severity not in SEVERITIES)
    lines.extend(format_finding(f) for f in others)
    return "\n".join(lines)


def format_summary(result: LintResult) -> str:
    """One-line summary of a lint run."""
    counts = {severity: 0 for severity in SEVERITIES}
    for finding in result.findings:
        counts[finding.severity] = counts.get(finding.severity, 0) + 1

    parts = [f"{count} {severity}" for severity, count in counts.items()]
    return (
        f"Scanned {result.files_scanned} files, "
        f"{len(result.signatures)} functions: {', '.join(parts)}"
    )
