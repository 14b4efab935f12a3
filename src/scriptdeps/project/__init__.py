"""Script scanning and manifest construction."""

from .directives import ScanResult, ScriptDirectiveScanner
from .manifest import ManifestFileInfo, ProjectManifest
from .provider import ScriptProjectProvider

__all__ = [
    "ManifestFileInfo",
    "ProjectManifest",
    "ScanResult",
    "ScriptDirectiveScanner",
    "ScriptProjectProvider",
]
