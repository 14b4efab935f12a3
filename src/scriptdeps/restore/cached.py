"""Restore cache keyed on the exact bytes of the manifest.

A pinned manifest whose bytes match the stored ``<manifest>.cache`` record
(and whose resolution result still exists) is not restored again. Floating
versions can resolve differently over time, so manifests containing any are
never cached.
"""
from __future__ import annotations

import logging
import os
from typing import Sequence

from scriptdeps.common.fileio import atomic_write_bytes, read_bytes
from scriptdeps.common.logging_utils import extra_context
from scriptdeps.project.manifest import ManifestFileInfo, ProjectManifest
from scriptdeps.restore.restorer import DotnetRestorer, ProfiledRestorer, Restorer

logger = logging.getLogger(__name__)


class CachedRestorer(Restorer):
    """Skips the inner restorer when the manifest is unchanged and pinned."""

    def __init__(self, inner: Restorer):
        self._inner = inner

    @property
    def can_restore(self) -> bool:  # type: ignore[override]
        return self._inner.can_restore

    def restore(self, info: ManifestFileInfo, registry_sources: Sequence[str] = ()) -> None:
        manifest = ProjectManifest.load(info.path)
        if not manifest.is_cacheable:
            floating = ", ".join(str(p) for p in manifest.floating_packages)
            logger.warning(
                "Unable to cache %s. For caching and optimal performance, ensure that the "
                "script(s) references Nuget packages with a pinned version. Floating: %s",
                info.path,
                floating,
            )
            self._remove_stale_record(info)
            self._inner.restore(info, registry_sources)
            return

        current = read_bytes(info.path)
        try:
            cached = read_bytes(info.cache_path)
        except OSError as e:
            logger.warning("Unable to read cache record %s: %s", info.cache_path, e)
            cached = None
        if cached is not None and cached == current and os.path.isfile(info.resolution_result_path):
            logger.debug(
                "Skipping restore. %s and %s are identical",
                info.path,
                info.cache_path,
                extra=extra_context(event="restore_cache_hit", component="cached_restorer"),
            )
            return

        logger.debug(
            "Cache miss. Restoring %s",
            info.path,
            extra=extra_context(event="restore_cache_miss", component="cached_restorer"),
        )
        # A record may only exist for a manifest whose last restore succeeded
        self._remove_stale_record(info)
        self._inner.restore(info, registry_sources)
        self._write_record(info, current)

    @staticmethod
    def _write_record(info: ManifestFileInfo, content: bytes) -> None:
        logger.debug("Caching project file %s to %s", info.path, info.cache_path)
        try:
            atomic_write_bytes(info.cache_path, content)
        except OSError as e:
            logger.warning("Unable to write cache record %s: %s", info.cache_path, e)

    @staticmethod
    def _remove_stale_record(info: ManifestFileInfo) -> None:
        try:
            os.remove(info.cache_path)
            logger.debug("Removed stale cache record %s", info.cache_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Unable to remove cache record %s: %s", info.cache_path, e)


def default_restorer(use_cache: bool = True) -> Restorer:
    """``dotnet restore`` with timing, behind the manifest cache unless disabled."""
    restorer: Restorer = ProfiledRestorer(DotnetRestorer())
    return CachedRestorer(restorer) if use_cache else restorer
