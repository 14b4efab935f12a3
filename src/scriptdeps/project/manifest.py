"""In-memory project manifest and its deterministic MSBuild serialization.

The serialized manifest doubles as the restore cache fingerprint, so the
output must be byte-identical for identical input: packages are written
sorted by lower-cased name and nothing time-dependent is emitted.
"""
from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from scriptdeps.constants import Constants
from scriptdeps.common.fileio import atomic_write_text
from scriptdeps.versioning.models import AssemblyReference, PackageReference, PackageVersion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManifestFileInfo:
    """Location of a persisted manifest and its optional registry config."""

    path: str
    registry_config_path: Optional[str] = None

    @property
    def directory(self) -> str:
        return os.path.dirname(self.path)

    @property
    def cache_path(self) -> str:
        return f"{self.path}{Constants.CACHE_FILE_SUFFIX}"

    @property
    def resolution_result_path(self) -> str:
        return os.path.join(self.directory, Constants.ASSETS_DIR_NAME, Constants.ASSETS_FILE_NAME)


def strip_namespaces(root: ET.Element) -> None:
    for elem in root.iter():
        if '}' in elem.tag:
            elem.tag = elem.tag.split('}')[1]


class ProjectManifest:
    """Package and assembly references plus the target framework for a script."""

    def __init__(
        self,
        target_framework: Optional[str] = None,
        sdk: Optional[str] = None,
        directory: Optional[str] = None,
    ):
        self.target_framework = target_framework or Constants.DEFAULT_TARGET_FRAMEWORK
        self.sdk = sdk or Constants.DEFAULT_SDK
        self.directory = directory
        self._packages: Dict[str, PackageReference] = {}
        self._assemblies: List[AssemblyReference] = []

    @property
    def package_references(self) -> List[PackageReference]:
        return list(self._packages.values())

    @property
    def assembly_references(self) -> List[AssemblyReference]:
        return list(self._assemblies)

    def add_package(self, reference: PackageReference) -> None:
        """Add a package; a reference with the same name replaces the old one."""
        previous = self._packages.get(reference.key)
        if previous is not None and previous.version != reference.version:
            logger.debug(
                "Package %s version %s overrides %s",
                reference.name, reference.version, previous.version,
            )
        # Delete first so the replacement moves to the end of insertion order
        self._packages.pop(reference.key, None)
        self._packages[reference.key] = reference

    def add_packages(self, references: Iterable[PackageReference]) -> None:
        for reference in references:
            self.add_package(reference)

    def add_assembly(self, reference: AssemblyReference) -> None:
        if reference not in self._assemblies:
            self._assemblies.append(reference)

    @property
    def is_cacheable(self) -> bool:
        """True when every package version is pinned."""
        return all(ref.is_pinned for ref in self._packages.values())

    @property
    def floating_packages(self) -> List[PackageReference]:
        return [ref for ref in self._packages.values() if not ref.is_pinned]

    def to_xml(self) -> str:
        """Serialize to MSBuild project XML, deterministically."""
        root = ET.Element("Project", {"Sdk": self.sdk})
        props = ET.SubElement(root, "PropertyGroup")
        ET.SubElement(props, "OutputType").text = "Exe"
        ET.SubElement(props, "TargetFramework").text = self.target_framework
        ET.SubElement(props, "LangVersion").text = "latest"
        ET.SubElement(props, "Nullable").text = "disable"

        packages = sorted(self._packages.values(), key=lambda r: (r.key, r.name))
        if packages:
            group = ET.SubElement(root, "ItemGroup")
            for ref in packages:
                ET.SubElement(group, "PackageReference", {"Include": ref.name, "Version": str(ref.version)})
        if self._assemblies:
            group = ET.SubElement(root, "ItemGroup")
            for asm in self._assemblies:
                ET.SubElement(group, "Reference", {"Include": asm.path})

        ET.indent(root, space="  ")
        return ET.tostring(root, encoding="unicode") + "\n"

    def save(self, path: str) -> None:
        """Persist the manifest atomically."""
        atomic_write_text(path, self.to_xml())

    @classmethod
    def from_xml(cls, content: str, directory: Optional[str] = None) -> "ProjectManifest":
        """Parse MSBuild project XML (also accepts Directory.Build.props style files).

        Raises:
            ET.ParseError: If the content is not well-formed XML.
        """
        root = ET.fromstring(content)
        strip_namespaces(root)
        manifest = cls(
            target_framework=root.findtext(".//TargetFramework") or None,
            sdk=root.get("Sdk") or None,
            directory=directory,
        )
        for package_ref in root.findall(".//PackageReference"):
            include = package_ref.get("Include")
            if not include:
                continue
            version = package_ref.get("Version")
            if version is None:
                version = package_ref.findtext("Version") or ""
            manifest.add_package(PackageReference(include, PackageVersion(version)))
        for reference in root.findall(".//Reference"):
            include = reference.get("Include")
            if include:
                manifest.add_assembly(AssemblyReference(include))
        return manifest

    @classmethod
    def load(cls, path: str) -> "ProjectManifest":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_xml(f.read(), directory=os.path.dirname(path))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProjectManifest):
            return NotImplemented
        return self.to_xml() == other.to_xml()

    def __hash__(self) -> int:
        return hash(self.to_xml())

    def __repr__(self) -> str:
        return (
            f"ProjectManifest(target_framework={self.target_framework!r}, sdk={self.sdk!r}, "
            f"packages={[str(p) for p in self.package_references]!r})"
        )
