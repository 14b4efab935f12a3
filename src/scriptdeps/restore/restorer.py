"""Restorers: turn a persisted manifest into a resolution result on disk."""
from __future__ import annotations

import logging
import shutil
from typing import List, Optional, Sequence

from scriptdeps.constants import Constants
from scriptdeps.errors import RestoreError
from scriptdeps.common.logging_utils import extra_context, Timer
from scriptdeps.common.process import CommandRunner
from scriptdeps.project.manifest import ManifestFileInfo

logger = logging.getLogger(__name__)


class Restorer:
    """Interface for anything that can restore a manifest.

    After ``restore`` returns, ``info.resolution_result_path`` holds the
    resolution result for the manifest at ``info.path``.
    """

    can_restore = True

    def restore(self, info: ManifestFileInfo, registry_sources: Sequence[str] = ()) -> None:
        raise NotImplementedError


def ensure_can_restore(restorer: Restorer) -> None:
    """Fail early when no restore tool is available.

    Raises:
        RestoreError: If ``restorer.can_restore`` is false.
    """
    if not restorer.can_restore:
        raise RestoreError(
            "No restore tool is available. Install the .NET SDK or set 'dotnet' in the configuration file"
        )


class DotnetRestorer(Restorer):
    """Runs ``dotnet restore`` against the manifest."""

    def __init__(self, command_runner: Optional[CommandRunner] = None, executable: Optional[str] = None):
        self._runner = command_runner or CommandRunner()
        self._executable = executable or Constants.DOTNET_EXECUTABLE

    @property
    def can_restore(self) -> bool:  # type: ignore[override]
        return shutil.which(self._executable) is not None

    def build_arguments(self, info: ManifestFileInfo, registry_sources: Sequence[str] = ()) -> List[str]:
        """Command-line arguments for restoring ``info``; sources are passed unchanged."""
        args = ["restore", info.path, Constants.RESTORE_NOWARN]
        if info.registry_config_path:
            args.extend(["--configfile", info.registry_config_path])
        for source in registry_sources:
            args.extend(["--source", source])
        return args

    def restore(self, info: ManifestFileInfo, registry_sources: Sequence[str] = ()) -> None:
        """Restore the manifest.

        Raises:
            RestoreError: If the tool cannot be started or exits non-zero.
        """
        args = self.build_arguments(info, registry_sources)
        logger.debug("Restoring %s", info.path)
        try:
            result = self._runner.run(self._executable, args, working_directory=info.directory)
        except OSError as e:
            raise RestoreError(f"Unable to run '{self._executable}' to restore {info.path}: {e}") from e
        if result.exit_code != 0:
            logger.error(
                "Restore failed with exit code %s",
                result.exit_code,
                extra=extra_context(event="restore_failed", component="dotnet_restorer", path=info.path),
            )
            raise RestoreError(
                f"Unable to restore packages from '{info.path}'. "
                "Make sure that all script files contain valid NuGet references",
                output=result.output,
                exit_code=result.exit_code,
            )


class ProfiledRestorer(Restorer):
    """Logs how long the wrapped restorer took."""

    def __init__(self, inner: Restorer):
        self._inner = inner

    @property
    def can_restore(self) -> bool:  # type: ignore[override]
        return self._inner.can_restore

    def restore(self, info: ManifestFileInfo, registry_sources: Sequence[str] = ()) -> None:
        with Timer() as t:
            self._inner.restore(info, registry_sources)
        logger.debug(
            "Restore took %sms",
            t.duration_ms(),
            extra=extra_context(event="restore_timing", component="profiled_restorer", path=info.path),
        )
