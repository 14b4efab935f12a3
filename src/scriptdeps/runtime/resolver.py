"""Run-time dependency projection.

Given a resolution result and the platform the script executes on, lists the
managed assemblies to load (with their satellite resource assemblies) and
the native libraries to make available.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from scriptdeps.context.reader import ResolutionResult, ResolutionResultReader
from scriptdeps.environment import ScriptEnvironment, select_platform_assets
from scriptdeps.project.manifest import ManifestFileInfo
from scriptdeps.project.provider import ScriptProjectProvider
from scriptdeps.restore.cached import default_restorer
from scriptdeps.restore.restorer import Restorer, ensure_can_restore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuntimeAssembly:
    """A managed assembly and the package it came from."""

    path: str
    package: str

    @property
    def name(self) -> str:
        return os.path.splitext(os.path.basename(self.path))[0]


@dataclass(frozen=True)
class RuntimeResourceAssembly:
    """A satellite assembly holding localized resources for one culture."""

    path: str
    culture: Optional[str]


@dataclass
class RuntimeDependency:
    name: str
    version: str
    assemblies: List[RuntimeAssembly] = field(default_factory=list)
    native_asset_paths: List[str] = field(default_factory=list)
    resource_assemblies: List[RuntimeResourceAssembly] = field(default_factory=list)
    script_paths: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "assemblies": [a.path for a in self.assemblies],
            "nativeAssetPaths": list(self.native_asset_paths),
            "resourceAssemblies": [{"path": r.path, "culture": r.culture} for r in self.resource_assemblies],
            "scriptPaths": list(self.script_paths),
        }


class RuntimeDependencyProjector:
    """Filters a resolution result down to what one platform loads."""

    def project(self, result: ResolutionResult, current_platform: str) -> List[RuntimeDependency]:
        """Runtime dependencies for ``current_platform`` (a runtime identifier).

        Rid-neutral managed assemblies are always included. Rid-specific
        assets of any kind are included only when their rid is in the
        platform's compatibility chain, most specific first.
        """
        dependencies: List[RuntimeDependency] = []
        for package in result.packages:
            runtime = select_platform_assets(package.runtime_assets, current_platform)
            native = select_platform_assets(package.native_assets, current_platform)
            resources = select_platform_assets(package.resource_assets, current_platform)
            dependencies.append(
                RuntimeDependency(
                    name=package.name,
                    version=package.version,
                    assemblies=[RuntimeAssembly(a.path, package.name) for a in runtime],
                    native_asset_paths=[a.path for a in native],
                    resource_assemblies=[RuntimeResourceAssembly(a.path, a.locale) for a in resources],
                    script_paths=[a.path for a in package.script_assets],
                )
            )
        return dependencies


class RuntimeDependencyResolver:
    """Provider, restorer, reader and projector wired together for script execution."""

    def __init__(
        self,
        provider: Optional[ScriptProjectProvider] = None,
        restorer: Optional[Restorer] = None,
        reader: Optional[ResolutionResultReader] = None,
        environment: Optional[ScriptEnvironment] = None,
        projector: Optional[RuntimeDependencyProjector] = None,
    ):
        self._provider = provider or ScriptProjectProvider()
        self._restorer = restorer or default_restorer()
        self._reader = reader or ResolutionResultReader()
        self._environment = environment or ScriptEnvironment()
        self._projector = projector or RuntimeDependencyProjector()

    def get_dependencies(
        self,
        script_file: str,
        registry_sources: Sequence[str] = (),
        target_framework: Optional[str] = None,
    ) -> List[RuntimeDependency]:
        info = self._provider.create_project_for_script_file(
            script_file, target_framework or self._environment.target_framework
        )
        return self._resolve(info, registry_sources)

    def get_dependencies_for_code(
        self,
        code: str,
        directory: str,
        registry_sources: Sequence[str] = (),
        target_framework: Optional[str] = None,
    ) -> List[RuntimeDependency]:
        info = self._provider.create_project_for_code(
            code, directory, target_framework or self._environment.target_framework
        )
        return self._resolve(info, registry_sources)

    def _resolve(self, info: ManifestFileInfo, registry_sources: Sequence[str]) -> List[RuntimeDependency]:
        ensure_can_restore(self._restorer)
        self._restorer.restore(info, registry_sources)
        result = self._reader.read(info.resolution_result_path, self._environment.runtime_identifier)
        dependencies = self._projector.project(result, self._environment.runtime_identifier)
        logger.debug("Resolved %d runtime dependencies for %s", len(dependencies), info.path)
        return dependencies
