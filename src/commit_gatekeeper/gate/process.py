"""
Process invocation for gate, fix and hook commands.

Gate commands are opaque command lines taken from configuration (for
example ``npm run lint``), so they are handed to the platform shell as
is. This module is the only place that knows about shells, working
directories and output decoding; the executor only sees
:class:`CommandResult` values.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# Exit status reported by POSIX shells for a command that cannot be run.
EXIT_NOT_RUNNABLE = 127


@dataclass(frozen=True)
class CommandResult:
    """Exit status and combined stdout/stderr of one command invocation."""

    exit_code: int
    output: str

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class CommandRunner:
    """Run shell command lines synchronously in a fixed directory."""

    def __init__(self, cwd: Optional[Path] = None) -> None:
        self.cwd = cwd

    def run(self, command: str, input_text: Optional[str] = None) -> CommandResult:
        """Run ``command`` to completion and capture its combined output.

        Parameters
        ----------
        command : str
            Command line passed to the shell.
        input_text : Optional[str]
            Text written to the command's standard input. When None the
            command gets an empty stdin.

        Returns
        -------
        CommandResult
            Launch failures are reported as exit status 127 with the OS
            error as output, never raised.
        """
        logger.debug("Executing command: %s (cwd=%s)", command, self.cwd)
        try:
            completed = subprocess.run(
                command,
                shell=True,
                cwd=self.cwd,
                input=input_text if input_text is not None else "",
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            logger.error("Unable to launch command %r: %s", command, e)
            return CommandResult(exit_code=EXIT_NOT_RUNNABLE, output=str(e))

        logger.debug("Command %r exited with %d", command, completed.returncode)
        return CommandResult(exit_code=completed.returncode, output=completed.stdout or "")
