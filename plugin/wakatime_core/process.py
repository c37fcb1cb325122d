"""
Process invocation: the one seam through which uname, wakatime-cli and
its --version probe are run.

Anything that needs a subprocess takes a ProcessInvoker, so tests can
swap in a double that records calls instead of launching processes.
"""

import subprocess
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from .config import log

# Raised by ProcessInvoker.run when the process can't be started or times out.
SPAWN_ERRORS = (OSError, subprocess.SubprocessError)


@dataclass(frozen=True)
class ProcessResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ProcessInvoker(Protocol):
    def run(self, command: str, args: Sequence[str] = (), timeout: Optional[float] = None) -> ProcessResult:
        """Run ``command`` with ``args`` and wait for it to exit."""


class SubprocessInvoker:
    """ProcessInvoker backed by subprocess.run (stdout/stderr captured as text)."""

    def run(self, command, args=(), timeout=None):
        cmd = [command, *args]
        log.debug("Running %s", command)
        completed = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            stdin=subprocess.DEVNULL,
        )
        return ProcessResult(completed.returncode, completed.stdout or "", completed.stderr or "")
