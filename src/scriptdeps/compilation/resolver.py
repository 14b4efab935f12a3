"""Compile-time dependency resolution.

Creates the manifest, restores it, reads the resolution result and picks the
assemblies a compiler needs: reference assemblies where a package ships them,
implementation assemblies otherwise, plus framework reference packs.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set

from scriptdeps.constants import Constants
from scriptdeps.common.fileio import canonical_path
from scriptdeps.context.reader import ResolutionResult, ResolutionResultReader, ResolvedPackage
from scriptdeps.environment import ScriptEnvironment, select_platform_assets
from scriptdeps.project.directives import ExclusionFilter
from scriptdeps.project.manifest import ProjectManifest
from scriptdeps.project.provider import ScriptProjectProvider
from scriptdeps.restore.cached import default_restorer
from scriptdeps.restore.restorer import Restorer, ensure_can_restore

logger = logging.getLogger(__name__)


@dataclass
class CompilationDependency:
    """Everything one package (or framework) contributes to compilation."""

    name: str
    version: str
    assembly_paths: List[str] = field(default_factory=list)
    script_paths: List[str] = field(default_factory=list)
    analyzer_paths: List[str] = field(default_factory=list)
    native_asset_paths: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "assemblyPaths": list(self.assembly_paths),
            "scriptPaths": list(self.script_paths),
            "analyzerPaths": list(self.analyzer_paths),
            "nativeAssetPaths": list(self.native_asset_paths),
        }


def select_compile_assemblies(package: ResolvedPackage) -> List[str]:
    """Compile assemblies for one package.

    ``ref/`` assemblies shadow ``lib/`` assemblies with the same file name.
    Without a compile section the rid-neutral ``lib/`` runtime assemblies
    are used instead.
    """
    if package.has_compile_section:
        ref_names = {a.file_name.lower() for a in package.compile_assets if a.is_reference_assembly}
        return [
            a.path for a in package.compile_assets
            if a.is_reference_assembly or a.file_name.lower() not in ref_names
        ]
    return [
        a.path for a in package.runtime_assets
        if a.rid is None and a.relative_path.lower().startswith("lib/")
    ]


class CompilationDependencyResolver:
    """Resolves the compile-time dependencies of a set of scripts."""

    def __init__(
        self,
        provider: Optional[ScriptProjectProvider] = None,
        restorer: Optional[Restorer] = None,
        reader: Optional[ResolutionResultReader] = None,
        environment: Optional[ScriptEnvironment] = None,
    ):
        self._provider = provider or ScriptProjectProvider()
        self._restorer = restorer or default_restorer()
        self._reader = reader or ResolutionResultReader()
        self._environment = environment or ScriptEnvironment()

    def get_dependencies(
        self,
        script_directory: str,
        script_files: Optional[Iterable[str]],
        include_transitive: bool,
        target_framework: str,
        exclude: ExclusionFilter = None,
        registry_sources: Sequence[str] = (),
    ) -> List[CompilationDependency]:
        """Create, restore and read the manifest for the scripts, then select compile assets.

        Raises:
            DirectiveError: If a script directive is invalid.
            RestoreError: If the restore step fails.
            ResolutionResultError: If the restore left no usable result.
        """
        info = self._provider.create_project(script_directory, script_files, target_framework, exclude)
        if info is None:
            return []
        ensure_can_restore(self._restorer)
        self._restorer.restore(info, registry_sources)
        result = self._reader.read(info.resolution_result_path, self._environment.runtime_identifier)
        manifest = ProjectManifest.load(info.path)
        return self.select(result, manifest, include_transitive)

    def select(
        self,
        result: ResolutionResult,
        manifest: Optional[ProjectManifest] = None,
        include_transitive: bool = True,
    ) -> List[CompilationDependency]:
        """Turn a resolution result into compilation dependencies, de-duplicated across packages."""
        packages = result.packages
        if not include_transitive and manifest is not None:
            direct = {ref.key for ref in manifest.package_references}
            packages = [p for p in packages if p.key in direct]

        seen: Set[str] = set()

        def _unique(paths: Iterable[str]) -> List[str]:
            out = []
            for path in paths:
                key = canonical_path(path)
                if key in seen:
                    continue
                seen.add(key)
                out.append(path)
            return out

        dependencies: List[CompilationDependency] = []
        frameworks: List[str] = []
        for package in packages:
            native = select_platform_assets(package.native_assets, self._environment.runtime_identifier)
            dependencies.append(
                CompilationDependency(
                    name=package.name,
                    version=package.version,
                    assembly_paths=_unique(select_compile_assemblies(package)),
                    script_paths=[a.path for a in package.script_assets],
                    analyzer_paths=[a.path for a in package.analyzer_assets],
                    native_asset_paths=[a.path for a in native],
                )
            )
            frameworks.extend(package.framework_references)

        frameworks.extend(result.framework_references)
        if manifest is not None:
            sdk_framework = _framework_for(manifest.sdk)
            if sdk_framework:
                frameworks.append(sdk_framework)

        expanded: Set[str] = set()
        for framework in frameworks:
            key = framework.lower()
            # The host runtime supplies the implicit framework itself
            if key in expanded or key == Constants.IMPLICIT_FRAMEWORK.lower():
                continue
            expanded.add(key)
            dependency = self._framework_dependency(framework, result.target_framework)
            if dependency is not None:
                dependency.assembly_paths = _unique(dependency.assembly_paths)
                dependencies.append(dependency)
        return dependencies

    def get_framework_references(self, sdk_or_framework: str, target_framework: Optional[str] = None) -> List[str]:
        """Reference assemblies for an SDK name or a shared framework name."""
        framework = _framework_for(sdk_or_framework) or sdk_or_framework
        return self._environment.reference_pack_assemblies(framework, target_framework)

    def _framework_dependency(self, framework: str, target_framework: str) -> Optional[CompilationDependency]:
        ref_dir = self._environment.find_reference_pack(framework, target_framework)
        if not ref_dir:
            logger.warning("Reference pack for %s (%s) not found", framework, target_framework)
            return None
        # <packs>/<framework>.Ref/<version>/ref/<tfm>
        version = os.path.basename(os.path.dirname(os.path.dirname(ref_dir)))
        return CompilationDependency(
            name=framework,
            version=version,
            assembly_paths=self._environment.reference_pack_assemblies(framework, target_framework),
        )


def _framework_for(sdk: Optional[str]) -> Optional[str]:
    if not sdk:
        return None
    for name, framework in Constants.SUPPORTED_SDKS.items():
        if name.lower() == sdk.lower():
            return framework
    return None
