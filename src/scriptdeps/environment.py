"""Execution environment detection.

Answers three questions for the resolvers: which runtime identifier (RID)
the current process runs on, which RIDs are compatible with it, and where
the dotnet installation keeps its framework reference packs.
"""
from __future__ import annotations

import logging
import os
import platform
import re
import shutil
from typing import Iterable, List, Optional, TypeVar

import semantic_version

from scriptdeps.constants import Constants

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ARCH_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
}

_TFM_RE = re.compile(r"^net(?:coreapp)?(\d+)\.(\d+)", re.IGNORECASE)


def _is_musl() -> bool:
    libc, _ = platform.libc_ver()
    return bool(libc) and libc != "glibc"


def detect_runtime_identifier() -> str:
    """Return the RID of the current process, e.g. ``linux-x64``."""
    system = platform.system().lower()
    arch = _ARCH_ALIASES.get(platform.machine().lower(), platform.machine().lower())
    if system == "windows":
        os_part = "win"
    elif system == "darwin":
        os_part = "osx"
    elif system == "linux":
        os_part = "linux-musl" if _is_musl() else "linux"
    else:
        os_part = system
    return f"{os_part}-{arch}"


def compatible_runtime_identifiers(rid: str) -> List[str]:
    """Expand a RID into its compatibility chain, most specific first.

    ``linux-musl-x64`` -> linux-musl-x64, linux-musl, linux-x64, linux,
    unix-x64, unix, any. Windows RIDs never fall back to ``unix``.
    """
    if not rid or rid == "any":
        return ["any"]
    os_part, _, arch = rid.rpartition("-")
    if not os_part:
        os_part, arch = rid, ""
    chain: List[str] = []

    def _add(os_name: str) -> None:
        if arch:
            chain.append(f"{os_name}-{arch}")
        chain.append(os_name)

    _add(os_part)
    if os_part == "linux-musl":
        _add("linux")
    if not os_part.startswith("win"):
        _add("unix")
    chain.append("any")
    seen = set()
    return [r for r in chain if not (r in seen or seen.add(r))]


def framework_major_minor(target_framework: str) -> Optional[semantic_version.Version]:
    """Parse ``net8.0`` / ``netcoreapp3.1`` into a comparable version."""
    m = _TFM_RE.match(target_framework or "")
    if not m:
        return None
    return semantic_version.Version(major=int(m.group(1)), minor=int(m.group(2)), patch=0)


class ScriptEnvironment:
    """Snapshot of the environment a script is resolved for."""

    def __init__(
        self,
        target_framework: Optional[str] = None,
        runtime_identifier: Optional[str] = None,
        dotnet_root: Optional[str] = None,
    ):
        self.target_framework = target_framework or Constants.DEFAULT_TARGET_FRAMEWORK
        self.runtime_identifier = runtime_identifier or detect_runtime_identifier()
        self._dotnet_root = dotnet_root

    @property
    def dotnet_root(self) -> Optional[str]:
        """Installation root: ``DOTNET_ROOT`` or the folder of ``dotnet`` on PATH."""
        if self._dotnet_root is None:
            env_root = os.environ.get(Constants.ENV_DOTNET_ROOT)
            if env_root and os.path.isdir(env_root):
                self._dotnet_root = env_root
            else:
                exe = shutil.which(Constants.DOTNET_EXECUTABLE)
                if exe:
                    self._dotnet_root = os.path.dirname(os.path.realpath(exe))
        return self._dotnet_root

    def find_reference_pack(self, framework: str, target_framework: Optional[str] = None) -> Optional[str]:
        """Locate ``packs/<framework>.Ref/<version>/ref/<tfm>`` for a framework.

        Picks the highest installed pack whose major.minor matches the target
        framework; falls back to the highest pack overall when none matches.
        """
        tfm = target_framework or self.target_framework
        root = self.dotnet_root
        if not root:
            logger.debug("No dotnet installation found; cannot locate %s reference pack", framework)
            return None
        pack_dir = os.path.join(root, "packs", f"{framework}.Ref")
        if not os.path.isdir(pack_dir):
            logger.debug("Reference pack directory missing: %s", pack_dir)
            return None

        versions = []
        for entry in os.listdir(pack_dir):
            try:
                versions.append((semantic_version.Version.coerce(entry), entry))
            except ValueError:
                continue
        if not versions:
            return None
        versions.sort(reverse=True)

        wanted = framework_major_minor(tfm)
        chosen = versions[0][1]
        if wanted is not None:
            for ver, entry in versions:
                if ver.major == wanted.major and ver.minor == wanted.minor and not ver.prerelease:
                    chosen = entry
                    break
        ref_dir = os.path.join(pack_dir, chosen, "ref", tfm)
        if os.path.isdir(ref_dir):
            return ref_dir
        # Packs sometimes ship only the latest tfm folder
        ref_root = os.path.join(pack_dir, chosen, "ref")
        if os.path.isdir(ref_root):
            folders = sorted(os.listdir(ref_root))
            if folders:
                return os.path.join(ref_root, folders[-1])
        return None

    def reference_pack_assemblies(self, framework: str, target_framework: Optional[str] = None) -> List[str]:
        """All ``.dll`` files of a framework's reference pack, sorted by name."""
        ref_dir = self.find_reference_pack(framework, target_framework)
        if not ref_dir:
            return []
        return [
            os.path.join(ref_dir, name)
            for name in sorted(os.listdir(ref_dir), key=str.lower)
            if name.lower().endswith(".dll")
        ]


def select_platform_assets(assets: Iterable[T], runtime_identifier: str) -> List[T]:
    """Keep assets usable on ``runtime_identifier``, most specific rid per file name.

    Assets without a rid apply everywhere but lose to a compatible
    rid-specific asset with the same file name and culture. Incompatible
    rids are dropped. Declared order is preserved.
    """
    chain = compatible_runtime_identifiers(runtime_identifier)
    rank = {rid.lower(): i for i, rid in enumerate(chain)}
    unranked = len(chain)
    candidates = list(assets)
    best = {}
    for asset in candidates:
        asset_rid = getattr(asset, "rid", None)
        if asset_rid is None:
            score = unranked
        elif asset_rid.lower() in rank:
            score = rank[asset_rid.lower()]
        else:
            continue
        name = ((getattr(asset, "locale", None) or "").lower(), os.path.basename(asset.path).lower())
        if name not in best or score < best[name][0]:
            best[name] = (score, id(asset))
    chosen = {ident for _, ident in best.values()}
    return [asset for asset in candidates if id(asset) in chosen]
