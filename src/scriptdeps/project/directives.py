"""Directive scanner: extract package, reference and load directives from scripts.

Recognized lines (case-insensitive, whitespace allowed after ``#``)::

    #r "nuget: Newtonsoft.Json, 13.0.3"
    #r "sdk: Microsoft.NET.Sdk.Web"
    #r "path/to/Some.dll"
    #load "nuget: Some.ScriptPackage, 1.0.0"
    #load "other.csx"
    #load "https://example.org/helpers.csx"

Load directives pointing at files are followed depth-first. Each file is
visited once, so cyclic loads terminate. Problems are collected as
diagnostics rather than raised, so callers get everything that could be
read plus a complete list of what could not.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set, Union

from scriptdeps.constants import Constants
from scriptdeps.errors import DirectiveDiagnostic, DirectiveError, ScriptDownloadError
from scriptdeps.common.fileio import canonical_path
from scriptdeps.common.http_client import download_script, is_remote
from scriptdeps.versioning.models import AssemblyReference, PackageReference
from scriptdeps.versioning.parser import has_prefix, parse_package_token, strip_prefix

logger = logging.getLogger(__name__)

DIRECTIVE_RE = re.compile(r'^\s*#\s*(?P<kind>r|load)\s*"(?P<target>[^"]*)"', re.IGNORECASE)

ExclusionFilter = Union[Callable[[str], bool], Iterable[str], None]


def exclusion_predicate(exclude: ExclusionFilter) -> Callable[[str], bool]:
    """Normalize an exclusion filter into a predicate over file paths.

    An iterable of names matches either the file's base name
    (case-insensitively) or its canonical full path.
    """
    if exclude is None:
        return lambda _path: False
    if callable(exclude):
        return exclude
    names = {str(n).lower() for n in exclude}
    paths = {canonical_path(str(n)) for n in exclude if os.path.isabs(str(n))}

    def _excluded(path: str) -> bool:
        return os.path.basename(path).lower() in names or canonical_path(path) in paths

    return _excluded


@dataclass
class ScanResult:
    """Everything collected from a script and the files it loads."""

    script_files: List[str] = field(default_factory=list)
    load_targets: List[str] = field(default_factory=list)
    assembly_references: List[AssemblyReference] = field(default_factory=list)
    excluded_files: List[str] = field(default_factory=list)
    diagnostics: List[DirectiveDiagnostic] = field(default_factory=list)
    sdk: str = ""
    _packages: Dict[str, PackageReference] = field(default_factory=dict, repr=False)

    @property
    def package_references(self) -> List[PackageReference]:
        return list(self._packages.values())

    def add_package(self, reference: PackageReference) -> None:
        self._packages.pop(reference.key, None)
        self._packages[reference.key] = reference

    @property
    def has_errors(self) -> bool:
        return bool(self.diagnostics)

    def raise_for_errors(self) -> None:
        """Raise one aggregated DirectiveError if anything went wrong."""
        if self.diagnostics:
            raise DirectiveError(self.diagnostics)


class ScriptDirectiveScanner:
    """Scans script files (and everything they load) for directives."""

    def __init__(
        self,
        cache_root: Optional[str] = None,
        downloader: Callable[[str, str], str] = download_script,
    ):
        self._cache_root = cache_root or Constants.CACHE_ROOT
        self._downloader = downloader

    def scan_files(self, files: Iterable[str], exclude: ExclusionFilter = None) -> ScanResult:
        """Scan ``files`` and, transitively, every file they load.

        Args:
            files: Entry script paths.
            exclude: Predicate over file paths, or an iterable of file names,
                naming files to drop before any directive is read.

        Returns:
            ScanResult with diagnostics for every directive that failed.
        """
        if files is None:
            raise TypeError("files must not be None")
        result = ScanResult()
        is_excluded = exclusion_predicate(exclude)
        visited: Set[str] = set()
        # Reversed so the first entry file is scanned first
        stack = [(os.path.abspath(f), None) for f in reversed(list(files))]
        while stack:
            path, origin = stack.pop()
            key = canonical_path(path)
            if key in visited:
                continue
            visited.add(key)
            if is_excluded(path):
                logger.debug("Excluding %s from directive scan", path)
                result.excluded_files.append(path)
                continue
            try:
                with open(path, "r", encoding="utf-8-sig") as f:
                    content = f.read()
            except OSError as e:
                file_name, line, directive = origin if origin else (path, 0, "")
                result.diagnostics.append(
                    DirectiveDiagnostic(file_name, line, directive, f"Unable to read script file: {e}")
                )
                continue
            result.script_files.append(path)
            loads = self._scan_content(content, path, os.path.dirname(path), result)
            for target in reversed(loads):
                stack.append(target)
        return result

    def scan_code(self, code: str, base_directory: str, exclude: ExclusionFilter = None) -> ScanResult:
        """Scan in-memory code (e.g. REPL input); loads resolve from ``base_directory``."""
        if code is None:
            raise TypeError("code must not be None")
        result = ScanResult()
        loads = self._scan_content(code, "<code>", os.path.abspath(base_directory), result)
        if loads:
            nested = self.scan_files([p for p, _ in loads], exclude=exclude)
            _merge(result, nested)
        return result

    def _scan_content(self, content: str, file_name: str, directory: str, result: ScanResult) -> List[tuple]:
        """Process the directives of one file; return load targets to follow."""
        loads: List[tuple] = []
        for line_no, line in enumerate(content.splitlines(), start=1):
            m = DIRECTIVE_RE.match(line)
            if not m:
                continue
            kind = m.group("kind").lower()
            target = m.group("target").strip()
            directive = line.strip()

            def _fail(message: str) -> None:
                logger.debug("%s(%d): %s", file_name, line_no, message)
                result.diagnostics.append(DirectiveDiagnostic(file_name, line_no, directive, message))

            if has_prefix(target, Constants.NUGET_PREFIX):
                try:
                    result.add_package(parse_package_token(strip_prefix(target, Constants.NUGET_PREFIX)))
                except ValueError as e:
                    _fail(str(e))
            elif kind == "r" and has_prefix(target, Constants.SDK_PREFIX):
                sdk = self._supported_sdk(strip_prefix(target, Constants.SDK_PREFIX))
                if sdk is None:
                    name = strip_prefix(target, Constants.SDK_PREFIX)
                    supported = ", ".join(Constants.SUPPORTED_SDKS)
                    _fail(f"The sdk '{name}' is not supported. Supported SDKs: {supported}")
                else:
                    result.sdk = sdk
            elif kind == "r":
                result.assembly_references.append(AssemblyReference(_resolve_assembly(target, directory)))
            else:
                local = self._resolve_load(target, directory, _fail)
                if local is not None:
                    result.load_targets.append(local)
                    loads.append((local, (file_name, line_no, directive)))
        return loads

    def _resolve_load(self, target: str, directory: str, fail: Callable[[str], None]) -> Optional[str]:
        if not target:
            fail("Empty load directive")
            return None
        if is_remote(target):
            try:
                return self._downloader(target, self._cache_root)
            except ScriptDownloadError as e:
                fail(str(e))
                return None
        path = target if os.path.isabs(target) else os.path.join(directory, target)
        path = os.path.normpath(path)
        if not os.path.isfile(path):
            fail(f"Could not find load target '{target}'")
            return None
        return path

    @staticmethod
    def _supported_sdk(name: str) -> Optional[str]:
        for sdk in Constants.SUPPORTED_SDKS:
            if sdk.lower() == name.strip().lower():
                return sdk
        return None


def _resolve_assembly(target: str, directory: str) -> str:
    """Anchor file-like references at the script directory; keep bare names."""
    looks_like_file = target.lower().endswith((".dll", ".exe")) or os.sep in target or "/" in target
    if looks_like_file and not os.path.isabs(target):
        return os.path.normpath(os.path.join(directory, target))
    return target


def _merge(into: ScanResult, other: ScanResult) -> None:
    into.script_files.extend(other.script_files)
    into.load_targets.extend(t for t in other.load_targets if t not in into.load_targets)
    into.assembly_references.extend(
        a for a in other.assembly_references if a not in into.assembly_references
    )
    into.excluded_files.extend(other.excluded_files)
    into.diagnostics.extend(other.diagnostics)
    for ref in other.package_references:
        into.add_package(ref)
    if other.sdk:
        into.sdk = other.sdk
