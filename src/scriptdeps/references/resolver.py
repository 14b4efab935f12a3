"""Resolution of individual ``#r`` / ``#load`` references during compilation.

A compiler calls back once per directive. Package references are answered
from a single restore per base script, memoized so repeated directives (and
repeated compilations in the same process) do not restore again.
"""
from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Dict, List, Optional

from scriptdeps.constants import Constants
from scriptdeps.common.fileio import canonical_path
from scriptdeps.compilation.resolver import CompilationDependency, CompilationDependencyResolver
from scriptdeps.versioning.models import AssemblyReference
from scriptdeps.versioning.parser import has_prefix, parse_package_token, strip_prefix

logger = logging.getLogger(__name__)

FallbackResolver = Callable[[str, Optional[str]], List[AssemblyReference]]

ENTRY_POINT_SCRIPT = "main.csx"


def resolve_file_reference(reference: str, base_file_path: Optional[str]) -> List[AssemblyReference]:
    """Default fallback: paths relative to the referencing script, bare names as-is."""
    if not os.path.isabs(reference) and base_file_path:
        candidate = os.path.normpath(os.path.join(os.path.dirname(base_file_path), reference))
        if os.path.isfile(candidate):
            return [AssemblyReference(candidate)]
    return [AssemblyReference(reference)]


def select_entry_scripts(script_paths: List[str]) -> List[str]:
    """Pick what a ``#load "nuget:..."`` pulls in: the single script, ``main.csx``, or all."""
    if len(script_paths) <= 1:
        return list(script_paths)
    for path in script_paths:
        if os.path.basename(path).lower() == ENTRY_POINT_SCRIPT:
            return [path]
    return list(script_paths)


class ReferenceDirectiveResolver:
    """Dispatches references by prefix: ``nuget:``, ``sdk:`` or the fallback resolver."""

    def __init__(
        self,
        compilation_resolver: Optional[CompilationDependencyResolver] = None,
        fallback: Optional[FallbackResolver] = None,
        target_framework: Optional[str] = None,
    ):
        self._compilation = compilation_resolver or CompilationDependencyResolver()
        self._fallback = fallback or resolve_file_reference
        self._target_framework = target_framework or Constants.DEFAULT_TARGET_FRAMEWORK
        self._lock = threading.RLock()
        self._dependencies: Dict[str, List[CompilationDependency]] = {}
        self._frameworks: Dict[str, List[str]] = {}

    def resolve(self, reference: str, base_file_path: Optional[str]) -> List[AssemblyReference]:
        """Assembly references for one ``#r`` directive.

        Raises:
            ValueError: If a ``nuget:`` reference has no valid package name.
        """
        if has_prefix(reference, Constants.NUGET_PREFIX):
            dependency = self._find_package(reference, base_file_path)
            if dependency is None:
                return []
            return [AssemblyReference(p) for p in dependency.assembly_paths]
        if has_prefix(reference, Constants.SDK_PREFIX):
            name = strip_prefix(reference, Constants.SDK_PREFIX)
            return [AssemblyReference(p) for p in self._framework_assemblies(name)]
        return self._fallback(reference, base_file_path)

    def resolve_source(self, reference: str, base_file_path: Optional[str]) -> List[str]:
        """Script files for one ``#load`` directive."""
        if has_prefix(reference, Constants.NUGET_PREFIX):
            dependency = self._find_package(reference, base_file_path)
            if dependency is None:
                return []
            return select_entry_scripts(dependency.script_paths)
        if os.path.isabs(reference) or not base_file_path:
            path = reference
        else:
            path = os.path.normpath(os.path.join(os.path.dirname(base_file_path), reference))
        return [path] if os.path.isfile(path) else []

    def _find_package(self, reference: str, base_file_path: Optional[str]) -> Optional[CompilationDependency]:
        if not base_file_path:
            logger.warning("Cannot resolve '%s' without a base script file", reference)
            return None
        name = parse_package_token(strip_prefix(reference, Constants.NUGET_PREFIX)).key
        for dependency in self._dependencies_for(base_file_path):
            if dependency.name.lower() == name:
                return dependency
        logger.warning("Package referenced by '%s' was not restored for %s", reference, base_file_path)
        return None

    def _dependencies_for(self, base_file_path: str) -> List[CompilationDependency]:
        key = canonical_path(base_file_path)
        with self._lock:
            if key not in self._dependencies:
                logger.debug("Restoring dependencies for %s", base_file_path)
                self._dependencies[key] = self._compilation.get_dependencies(
                    os.path.dirname(os.path.abspath(base_file_path)),
                    [base_file_path],
                    True,
                    self._target_framework,
                )
            return self._dependencies[key]

    def _framework_assemblies(self, name: str) -> List[str]:
        key = name.lower()
        with self._lock:
            if key not in self._frameworks:
                self._frameworks[key] = self._compilation.get_framework_references(name, self._target_framework)
            return self._frameworks[key]
