"""Data models for variadic usage analysis."""

import json
from dataclasses import asdict, dataclass, field

from variadic_linter.tokenizer import Token

VARIADIC = "..."

# Usage classifications
COERCED = "coerced-to-container"
FORWARDED = "forwarded"
DESTRUCTURED = "destructured"
UNKNOWN = "unknown"

# Severities, most severe first
SEVERITIES = ("error", "warning", "unknown")

# Rules that make the linter exit non-zero
BLOCKING_RULES = frozenset({"coerced-to-container", "ambiguous-named-argument"})


@dataclass(frozen=True)
class FunctionSignature:
    """The formal parameter list of one function definition."""

    name: str
    parameters: tuple[str, ...]  # declaration order, "..." included
    defaults: frozenset[str] = frozenset()
    file_path: str = "<string>"
    line_number: int = 1

    @property
    def variadic_index(self) -> int | None:
        if VARIADIC in self.parameters:
            return self.parameters.index(VARIADIC)
        return None

    @property
    def has_variadic(self) -> bool:
        return self.variadic_index is not None

    @property
    def before_variadic(self) -> tuple[str, ...]:
        """Parameters that can be matched by position or partial name."""
        index = self.variadic_index
        return self.parameters if index is None else self.parameters[:index]

    @property
    def after_variadic(self) -> tuple[str, ...]:
        """Parameters that can only be matched by their exact name."""
        index = self.variadic_index
        return () if index is None else self.parameters[index + 1 :]

    def describe(self) -> str:
        return f"{self.name}({', '.join(self.parameters)})"


@dataclass(frozen=True)
class FunctionDefinition:
    """A parsed definition: its signature plus the tokens of its body."""

    signature: FunctionSignature
    body: tuple[Token, ...]


@dataclass(frozen=True)
class UsageSite:
    """An occurrence of the variadic parameter inside a function body."""

    function_name: str
    file_path: str
    line_number: int
    kind: str  # coerced-to-container, forwarded, destructured, unknown
    target: str | None = None  # call or construct the dots appeared in
    reason: str | None = None  # why an unknown site could not be resolved


@dataclass(frozen=True)
class Argument:
    """One argument supplied at a call site."""

    kind: str  # "positional", "named", or "dots" for a forwarded ...
    text: str
    name: str | None = None


@dataclass
class CallSite:
    """A call to a function with a known signature."""

    function_name: str
    file_path: str
    line_number: int
    arguments: list[Argument]
    variadic_arguments: list[Argument] = field(default_factory=list)


@dataclass(frozen=True, order=True)
class Finding:
    """A reportable problem at a source location."""

    severity_rank: int = field(init=False, repr=False)
    file_path: str
    line_number: int
    severity: str
    rule: str
    message: str
    function_name: str | None = field(default=None, compare=False)

    def __post_init__(self):
        rank = SEVERITIES.index(self.severity) if self.severity in SEVERITIES else 99
        object.__setattr__(self, "severity_rank", rank)

    @property
    def is_blocking(self) -> bool:
        return self.rule in BLOCKING_RULES

    def to_dict(self) -> dict:
        result = asdict(self)
        del result["severity_rank"]
        return {k: v for k, v in result.items() if v is not None}


@dataclass
class LintResult:
    """Complete result of linting a set of paths."""

    paths: list[str]
    analyzed_at: str
    files_scanned: int = 0
    signatures: list[FunctionSignature] = field(default_factory=list)
    usage_sites: list[UsageSite] = field(default_factory=list)
    call_sites: list[CallSite] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if any(f.is_blocking for f in self.findings) else 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "paths": self.paths,
            "analyzed_at": self.analyzed_at,
            "files_scanned": self.files_scanned,
            "signatures": [self._signature_to_dict(s) for s in self.signatures],
            "usage_sites": [
                {k: v for k, v in asdict(u).items() if v is not None}
                for u in self.usage_sites
            ],
            "call_sites": [self._call_site_to_dict(c) for c in self.call_sites],
            "findings": [f.to_dict() for f in self.findings],
        }

    def _signature_to_dict(self, signature: FunctionSignature) -> dict:
        return {
            "name": signature.name,
            "parameters": list(signature.parameters),
            "variadic_index": signature.variadic_index,
            "defaults": sorted(signature.defaults),
            "file_path": signature.file_path,
            "line_number": signature.line_number,
        }

    def _call_site_to_dict(self, call_site: CallSite) -> dict:
        """Convert a call site to a dictionary, excluding None values."""

        def argument(arg: Argument) -> dict:
            return {k: v for k, v in asdict(arg).items() if v is not None}

        return {
            "function_name": call_site.function_name,
            "file_path": call_site.file_path,
            "line_number": call_site.line_number,
            "arguments": [argument(a) for a in call_site.arguments],
            "variadic_arguments": [argument(a) for a in call_site.variadic_arguments],
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)
