"""Manifest builder: turn scripts (plus sibling project files) into a persisted manifest.

Packages declared by ``Directory.Build.props``, ``*.csproj`` and
``packages.config`` files next to the first script are collected first, then
script directives are applied on top, so a directive overrides a file-based
declaration of the same package.
"""
from __future__ import annotations

import logging
import os
import re
import xml.etree.ElementTree as ET
from glob import glob
from typing import Iterable, List, Optional

from scriptdeps.constants import Constants
from scriptdeps.common.logging_utils import extra_context, is_debug_enabled
from scriptdeps.project.directives import ExclusionFilter, ScanResult, ScriptDirectiveScanner
from scriptdeps.project.manifest import ManifestFileInfo, ProjectManifest, strip_namespaces
from scriptdeps.versioning.models import PackageReference, PackageVersion

logger = logging.getLogger(__name__)

INTERACTIVE_DIR_NAME = "interactive"


def _parse_xml(path: str, kind: str) -> Optional[ET.Element]:
    try:
        root = ET.parse(path).getroot()
    except (ET.ParseError, IOError) as e:
        logger.warning("Couldn't parse %s file %s: %s", kind, path, e)
        return None
    strip_namespaces(root)
    return root


def _package_references_from_msbuild(path: str, kind: str) -> List[PackageReference]:
    """PackageReference items of a .csproj or Directory.Build.props file."""
    root = _parse_xml(path, kind)
    if root is None:
        return []
    packages: List[PackageReference] = []
    for package_ref in root.findall(".//PackageReference"):
        include_attr = package_ref.get("Include")
        if not include_attr:
            continue
        version = package_ref.get("Version")
        if version is None:
            version = package_ref.findtext("Version") or ""
        packages.append(PackageReference(include_attr, PackageVersion(version.strip())))
    return packages


def _package_references_from_packages_config(path: str) -> List[PackageReference]:
    root = _parse_xml(path, "packages.config")
    if root is None:
        return []
    packages: List[PackageReference] = []
    for package in root.findall(".//package"):
        id_attr = package.get("id")
        if id_attr:
            packages.append(PackageReference(id_attr, PackageVersion(package.get("version", ""))))
    return packages


def scan_file_declarations(directory: str) -> List[PackageReference]:
    """Collect package declarations from project files in ``directory``.

    Order: Directory.Build.props, then ``*.csproj`` (sorted), then
    packages.config. The generated script manifest itself is never read.
    """
    packages: List[PackageReference] = []
    props_path = os.path.join(directory, Constants.DIRECTORY_BUILD_PROPS_FILE)
    if os.path.isfile(props_path):
        packages.extend(_package_references_from_msbuild(props_path, Constants.DIRECTORY_BUILD_PROPS_FILE))
    for csproj_path in sorted(glob(os.path.join(directory, "*.csproj"))):
        packages.extend(_package_references_from_msbuild(csproj_path, ".csproj"))
    config_path = os.path.join(directory, Constants.PACKAGES_CONFIG_FILE)
    if os.path.isfile(config_path):
        packages.extend(_package_references_from_packages_config(config_path))
    if packages:
        logger.debug("Found %d file-based package declaration(s) in %s", len(packages), directory)
    return packages


def find_registry_config(directory: str) -> Optional[str]:
    """Nearest NuGet.Config walking up from ``directory``, or None."""
    current = os.path.abspath(directory)
    while True:
        for name in Constants.NUGET_CONFIG_FILES:
            candidate = os.path.join(current, name)
            if os.path.isfile(candidate):
                return candidate
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def sanitize_directory(directory: str) -> str:
    """Make an absolute directory usable as a relative path below the cache root.

    ``C:\\scripts\\demo`` becomes ``C/scripts/demo`` and ``/home/me/demo``
    becomes ``home/me/demo``.
    """
    full = os.path.abspath(directory)
    drive, rest = os.path.splitdrive(full)
    drive = re.sub(r"[^A-Za-z0-9]", "", drive)
    rest = rest.lstrip("\\/")
    return os.path.join(drive, rest) if drive else rest


class ScriptProjectProvider:
    """Builds and persists the manifest describing a script's dependencies."""

    def __init__(
        self,
        scanner: Optional[ScriptDirectiveScanner] = None,
        cache_root: Optional[str] = None,
    ):
        self._cache_root = cache_root or os.environ.get(Constants.ENV_CACHE_DIR) or Constants.CACHE_ROOT
        self._scanner = scanner or ScriptDirectiveScanner(cache_root=self._cache_root)

    @property
    def cache_root(self) -> str:
        return self._cache_root

    def get_path_to_project_file(self, directory: str, target_framework: str) -> str:
        """``<cache root>/<sanitized directory>/<tfm>/script.csproj``."""
        return os.path.join(
            self._cache_root,
            sanitize_directory(directory),
            target_framework,
            Constants.PROJECT_FILE_NAME,
        )

    def create_manifest(
        self,
        script_files: Iterable[str],
        target_framework: Optional[str] = None,
        exclude: ExclusionFilter = None,
    ) -> ProjectManifest:
        """Build the manifest for ``script_files`` without persisting it.

        Raises:
            DirectiveError: If any directive could not be processed.
        """
        files = [os.path.abspath(f) for f in script_files]
        directory = os.path.dirname(files[0]) if files else None
        manifest = ProjectManifest(target_framework=target_framework, directory=directory)
        if directory:
            manifest.add_packages(scan_file_declarations(directory))

        result = self._scanner.scan_files(files, exclude=exclude)
        result.raise_for_errors()
        self._apply_scan(manifest, result)
        return manifest

    def create_project(
        self,
        script_directory: str,
        script_files: Optional[Iterable[str]] = None,
        target_framework: Optional[str] = None,
        exclude: ExclusionFilter = None,
    ) -> Optional[ManifestFileInfo]:
        """Build and persist the manifest for scripts in ``script_directory``.

        When ``script_files`` is None every ``.csx`` file below the directory
        is used. Returns None when there is nothing to build a manifest from.
        """
        if script_files is None:
            script_files = sorted(
                glob(os.path.join(script_directory, "**", f"*{Constants.SCRIPT_EXTENSION}"), recursive=True)
            )
        files = list(script_files)
        if not files:
            logger.debug("No script files found in %s; no manifest created", script_directory)
            return None
        tfm = target_framework or Constants.DEFAULT_TARGET_FRAMEWORK
        manifest = self.create_manifest(files, tfm, exclude=exclude)
        path = self.get_path_to_project_file(script_directory, tfm)
        return self._persist(manifest, path, script_directory)

    def create_project_for_script_file(
        self,
        script_file: str,
        target_framework: Optional[str] = None,
        exclude: ExclusionFilter = None,
    ) -> ManifestFileInfo:
        """Manifest for one script and the files it loads."""
        script_file = os.path.abspath(script_file)
        directory = os.path.dirname(script_file)
        tfm = target_framework or Constants.DEFAULT_TARGET_FRAMEWORK
        manifest = self.create_manifest([script_file], tfm, exclude=exclude)
        path = self.get_path_to_project_file(directory, tfm)
        return self._persist(manifest, path, directory)

    def create_project_for_code(
        self,
        code: str,
        directory: str,
        target_framework: Optional[str] = None,
    ) -> ManifestFileInfo:
        """Manifest for in-memory code; stored under an ``interactive`` folder."""
        tfm = target_framework or Constants.DEFAULT_TARGET_FRAMEWORK
        manifest = ProjectManifest(target_framework=tfm, directory=os.path.abspath(directory))
        result = self._scanner.scan_code(code, directory)
        result.raise_for_errors()
        self._apply_scan(manifest, result)
        path = os.path.join(
            self._cache_root,
            sanitize_directory(directory),
            INTERACTIVE_DIR_NAME,
            tfm,
            Constants.PROJECT_FILE_NAME,
        )
        return self._persist(manifest, path, directory)

    @staticmethod
    def _apply_scan(manifest: ProjectManifest, result: ScanResult) -> None:
        manifest.add_packages(result.package_references)
        for assembly in result.assembly_references:
            manifest.add_assembly(assembly)
        if result.sdk:
            manifest.sdk = result.sdk

    def _persist(self, manifest: ProjectManifest, path: str, script_directory: str) -> ManifestFileInfo:
        manifest.save(path)
        if is_debug_enabled(logger):
            logger.debug("Project file content:\n%s", manifest.to_xml())
        logger.debug(
            "Project file saved to %s",
            path,
            extra=extra_context(
                event="manifest_saved",
                component="project_provider",
                packages=len(manifest.package_references),
                cacheable=manifest.is_cacheable,
            ),
        )
        return ManifestFileInfo(path, find_registry_config(script_directory))
