"""Reader for the resolution result (``obj/project.assets.json``) written by restore.

Only the parts needed to locate assemblies, native libraries and script
files are modelled. Asset paths are made absolute against the package folder
the library was restored into.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from scriptdeps.constants import AssetKind, Constants
from scriptdeps.environment import compatible_runtime_identifiers
from scriptdeps.errors import ResolutionResultError

logger = logging.getLogger(__name__)

KNOWN_LIBRARY_TYPES = {"package"}
# Target entry keys that carry metadata or asset kinds that are intentionally not consumed
_IGNORED_KEYS = {
    "type",
    "dependencies",
    "frameworkReferences",
    "framework",
    "frameworkAssemblies",
    "build",
    "buildMultiTargeting",
    "buildTransitive",
}
_HANDLED_KINDS = {kind.value for kind in AssetKind}
_ANALYZER_PREFIXES = ("analyzers/dotnet/cs/", "analyzers/dotnet/")
_SCRIPT_CONTENT_PREFIX = "contentfiles/csx/"


@dataclass
class PackageAsset:
    """One file contributed by a package."""

    relative_path: str
    path: str
    rid: Optional[str] = None
    locale: Optional[str] = None

    @property
    def file_name(self) -> str:
        return os.path.basename(self.relative_path)

    @property
    def is_reference_assembly(self) -> bool:
        return self.relative_path.lower().startswith("ref/")


@dataclass
class ResolvedPackage:
    """A restored library and the assets selected for the target framework."""

    name: str
    version: str
    type: str = "package"
    path: str = ""
    has_compile_section: bool = False
    compile_assets: List[PackageAsset] = field(default_factory=list)
    runtime_assets: List[PackageAsset] = field(default_factory=list)
    native_assets: List[PackageAsset] = field(default_factory=list)
    resource_assets: List[PackageAsset] = field(default_factory=list)
    analyzer_assets: List[PackageAsset] = field(default_factory=list)
    script_assets: List[PackageAsset] = field(default_factory=list)
    framework_references: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.name.lower()


@dataclass
class ResolutionResult:
    """Parsed resolution result for one target framework."""

    target_framework: str
    runtime_identifier: Optional[str] = None
    package_folders: List[str] = field(default_factory=list)
    framework_references: List[str] = field(default_factory=list)
    packages: List[ResolvedPackage] = field(default_factory=list)
    path: Optional[str] = None

    def find(self, name: str) -> Optional[ResolvedPackage]:
        """Package by case-insensitive name."""
        key = name.lower()
        for package in self.packages:
            if package.key == key:
                return package
        return None


def _split_library_key(key: str) -> Tuple[str, str]:
    name, _, version = key.rpartition("/")
    if not name:
        return key, ""
    return name, version


def _is_placeholder(relative_path: str) -> bool:
    return os.path.basename(relative_path) == Constants.PLACEHOLDER_ASSET


def _is_csharp_analyzer(relative_path: str) -> bool:
    """``analyzers/dotnet/cs/X.dll`` or language-neutral ``analyzers/dotnet/X.dll``."""
    lowered = relative_path.lower()
    if not lowered.endswith(".dll"):
        return False
    for prefix in _ANALYZER_PREFIXES:
        if lowered.startswith(prefix) and "/" not in lowered[len(prefix):]:
            return True
    return False


class ResolutionResultReader:
    """Parses a resolution result file into a ResolutionResult."""

    def read(self, path: str, runtime_identifier: Optional[str] = None) -> ResolutionResult:
        """Read and parse the resolution result at ``path``.

        Args:
            path: Location of ``project.assets.json``.
            runtime_identifier: Platform to read for. The most specific
                ``<tfm>/<rid>`` target compatible with it supplies runtime and
                native assets; without one, the base target and its
                ``runtimeTargets`` are used. When omitted, the first
                rid-specific target found is used.

        Raises:
            ResolutionResultError: If the file is missing, unreadable,
                not JSON, or lacks a ``targets`` section.
        """
        try:
            with open(path, "r", encoding="utf-8-sig") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ResolutionResultError("Resolution result not found", path) from e
        except (IOError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ResolutionResultError(f"Unable to read resolution result ({e})", path) from e
        if not isinstance(data, dict):
            raise ResolutionResultError("Resolution result is not a JSON object", path)
        result = self.parse(data, runtime_identifier)
        result.path = path
        return result

    def parse(self, data: Dict[str, Any], runtime_identifier: Optional[str] = None) -> ResolutionResult:
        targets = data.get("targets")
        if not isinstance(targets, dict) or not targets:
            raise ResolutionResultError("Resolution result has no targets")

        tfm, base_target, rid, rid_target = self._select_targets(targets, runtime_identifier)
        libraries = data.get("libraries") or {}
        folders = list((data.get("packageFolders") or {}).keys())
        result = ResolutionResult(
            target_framework=tfm,
            runtime_identifier=rid,
            package_folders=folders,
            framework_references=self._project_framework_references(data, tfm),
        )

        for library_key, entry in base_target.items():
            if not isinstance(entry, dict):
                continue
            lib_type = entry.get("type", "package")
            if lib_type not in KNOWN_LIBRARY_TYPES:
                logger.debug("Skipping library %s of unsupported type '%s'", library_key, lib_type)
                continue
            library = libraries.get(library_key) or {}
            rid_entry = rid_target.get(library_key) if rid_target else None
            result.packages.append(self._read_package(library_key, entry, library, folders, rid, rid_entry))
        logger.debug("Read %d package(s) for %s", len(result.packages), tfm)
        return result

    @staticmethod
    def _select_targets(
        targets: Dict[str, Any], runtime_identifier: Optional[str]
    ) -> Tuple[str, Dict[str, Any], Optional[str], Optional[Dict[str, Any]]]:
        base_name = next((name for name in targets if "/" not in name), None)
        if base_name is None:
            # Only rid-specific targets; the framework part still names the tfm
            base_name = next(iter(targets))
        tfm = base_name.split("/", 1)[0]
        if runtime_identifier:
            # A target for an incompatible rid would hide every asset from the projection
            rid_name = next(
                (f"{tfm}/{r}" for r in compatible_runtime_identifiers(runtime_identifier) if f"{tfm}/{r}" in targets),
                None,
            )
        else:
            rid_name = next((name for name in targets if name.startswith(f"{tfm}/")), None)
        rid = rid_name.split("/", 1)[1] if rid_name else None
        base = targets.get(base_name) or {}
        rid_target = targets.get(rid_name) if rid_name else None
        return tfm, base, rid, rid_target

    @staticmethod
    def _project_framework_references(data: Dict[str, Any], tfm: str) -> List[str]:
        frameworks = (data.get("project") or {}).get("frameworks") or {}
        section = frameworks.get(tfm)
        if section is None and frameworks:
            section = next(iter(frameworks.values()))
        refs = (section or {}).get("frameworkReferences") or {}
        return list(refs.keys()) if isinstance(refs, dict) else list(refs)

    @staticmethod
    def _package_directory(library: Dict[str, Any], folders: List[str], library_key: str) -> str:
        relative = library.get("path") or library_key.lower()
        for folder in folders:
            candidate = os.path.join(folder, relative)
            if os.path.isdir(candidate):
                return os.path.normpath(candidate)
        if folders:
            return os.path.normpath(os.path.join(folders[0], relative))
        return os.path.normpath(relative)

    def _read_package(
        self,
        library_key: str,
        entry: Dict[str, Any],
        library: Dict[str, Any],
        folders: List[str],
        rid: Optional[str],
        rid_entry: Optional[Dict[str, Any]],
    ) -> ResolvedPackage:
        name, version = _split_library_key(library_key)
        package_dir = self._package_directory(library, folders, library_key)

        def assets(section: Any, asset_rid: Optional[str] = None) -> List[PackageAsset]:
            out: List[PackageAsset] = []
            for rel, meta in (section or {}).items():
                if _is_placeholder(rel):
                    continue
                meta = meta if isinstance(meta, dict) else {}
                out.append(
                    PackageAsset(
                        relative_path=rel,
                        path=os.path.normpath(os.path.join(package_dir, rel)),
                        rid=asset_rid,
                        locale=meta.get("locale"),
                    )
                )
            return out

        package = ResolvedPackage(
            name=name,
            version=version,
            type=entry.get("type", "package"),
            path=package_dir,
            has_compile_section=AssetKind.COMPILE.value in entry,
            dependencies=list((entry.get("dependencies") or {}).keys()),
            framework_references=list(entry.get("frameworkReferences") or []),
        )
        for key in entry:
            if key not in _HANDLED_KINDS and key not in _IGNORED_KEYS:
                logger.debug("Skipping unknown asset kind '%s' in %s", key, library_key)

        package.compile_assets = assets(entry.get(AssetKind.COMPILE.value))
        package.resource_assets = assets(entry.get(AssetKind.RESOURCE.value))
        package.script_assets = self._script_assets(assets(entry.get(AssetKind.CONTENT_FILES.value)))
        package.analyzer_assets = [
            PackageAsset(rel, os.path.normpath(os.path.join(package_dir, rel)))
            for rel in library.get("files") or []
            if _is_csharp_analyzer(rel)
        ]

        if rid_entry is not None:
            # A rid-specific target has already picked the assets for that rid
            package.runtime_assets = assets(rid_entry.get(AssetKind.RUNTIME.value), rid)
            package.native_assets = assets(rid_entry.get(AssetKind.NATIVE.value), rid)
            return package

        package.runtime_assets = assets(entry.get(AssetKind.RUNTIME.value))
        package.native_assets = assets(entry.get(AssetKind.NATIVE.value))
        for rel, meta in (entry.get(AssetKind.RUNTIME_TARGETS.value) or {}).items():
            if _is_placeholder(rel) or not isinstance(meta, dict):
                continue
            asset = PackageAsset(
                relative_path=rel,
                path=os.path.normpath(os.path.join(package_dir, rel)),
                rid=meta.get("rid"),
                locale=meta.get("locale"),
            )
            asset_type = meta.get("assetType")
            if asset_type == AssetKind.RUNTIME.value:
                package.runtime_assets.append(asset)
            elif asset_type == AssetKind.NATIVE.value:
                package.native_assets.append(asset)
            elif asset_type == AssetKind.RESOURCE.value:
                package.resource_assets.append(asset)
            else:
                logger.debug("Skipping runtime target %s with asset type '%s'", rel, asset_type)
        return package

    @staticmethod
    def _script_assets(content_files: List[PackageAsset]) -> List[PackageAsset]:
        """Script files shipped as content, preferring the ``any`` framework folder."""
        scripts = [
            a for a in content_files
            if a.relative_path.lower().startswith(_SCRIPT_CONTENT_PREFIX)
            and a.relative_path.lower().endswith(Constants.SCRIPT_EXTENSION)
        ]
        if not scripts:
            return []
        any_folder = f"{_SCRIPT_CONTENT_PREFIX}any/"
        preferred = [a for a in scripts if a.relative_path.lower().startswith(any_folder)]
        return preferred or scripts
