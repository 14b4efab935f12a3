"""Blocking process execution with captured output."""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from scriptdeps.common.logging_utils import extra_context, is_debug_enabled, Timer

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Exit code and captured streams of a finished process."""

    exit_code: int
    standard_output: str
    standard_error: str

    @property
    def output(self) -> str:
        """Combined stdout and stderr, in that order."""
        parts = [p for p in (self.standard_output, self.standard_error) if p and p.strip()]
        return "\n".join(parts)


class CommandRunner:
    """Runs external commands to completion.

    There is no timeout: restore is expected to finish or fail, and callers
    wanting one enforce it around the call.
    """

    def run(
        self,
        command: str,
        arguments: Optional[Sequence[str]] = None,
        working_directory: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> ProcessResult:
        """Run ``command`` with ``arguments`` and capture its output.

        Raises:
            ValueError: If ``command`` is empty.
            FileNotFoundError: If the executable cannot be found.
        """
        if not command or not command.strip():
            raise ValueError("command must not be empty")
        argv = [command] + list(arguments or [])
        logger.debug("Executing %s", " ".join(argv))
        with Timer() as t:
            completed = subprocess.run(  # noqa: S603
                argv,
                cwd=working_directory,
                env=env,
                capture_output=True,
                text=True,
                check=False,
            )
        if is_debug_enabled(logger):
            logger.debug(
                "Process exited",
                extra=extra_context(
                    event="process_exit",
                    component="command_runner",
                    command=command,
                    exit_code=completed.returncode,
                    duration_ms=t.duration_ms(),
                ),
            )
        return ProcessResult(
            exit_code=completed.returncode,
            standard_output=completed.stdout or "",
            standard_error=completed.stderr or "",
        )
