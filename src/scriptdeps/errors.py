"""Error taxonomy for dependency resolution.

Directive errors are collected while scanning and raised once, aggregated.
Restore errors wrap the external tool's diagnostic output verbatim.
Resolution-result errors mean a restore claimed success but left behind
something unusable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence


class ScriptDepsError(Exception):
    """Base class for every error raised by scriptdeps."""


@dataclass(frozen=True)
class DirectiveDiagnostic:
    """A single problem found in a script directive."""

    file: str
    line: int
    directive: str
    message: str

    def __str__(self) -> str:
        return f"{self.file}({self.line}): {self.message} [{self.directive}]"


class DirectiveError(ScriptDepsError):
    """One or more directives could not be processed."""

    def __init__(self, diagnostics: Sequence[DirectiveDiagnostic]):
        self.diagnostics: List[DirectiveDiagnostic] = list(diagnostics)
        lines = "\n".join(f"  {d}" for d in self.diagnostics)
        super().__init__(f"{len(self.diagnostics)} directive error(s):\n{lines}")


class RestoreError(ScriptDepsError):
    """The external restore step failed."""

    def __init__(self, message: str, output: str = "", exit_code: Optional[int] = None):
        self.output = output
        self.exit_code = exit_code
        detail = f"\n{output.strip()}" if output and output.strip() else ""
        super().__init__(f"{message}{detail}")


class ResolutionResultError(ScriptDepsError):
    """The resolution result is missing, unreadable or malformed."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message if path is None else f"{message}: {path}")


class ScriptDownloadError(ScriptDepsError):
    """A remote script referenced by a load directive could not be fetched."""
