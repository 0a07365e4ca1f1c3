from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

from .errors import ExternalCommandError

if TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger(__name__)


@dataclass
class ShellResult:
    success: bool
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int
    command: str
    cwd: str


class ShellRunner:
    """Execute shell commands and capture their outputs.

    Commands run in the session's current directory (or a fixed ``cwd``) using
    the system shell. One attempt, no timeout unless one is passed.
    """

    def __init__(self, cwd: Optional[str] = None, session: Optional["Session"] = None):
        self.session = session
        self.default_cwd = cwd or os.getcwd()

    @property
    def cwd(self) -> str:
        if self.session is not None:
            return self.session.cwd
        return self.default_cwd

    def run(
        self,
        command: str,
        *,
        cwd: Optional[str] = None,
        env_overrides: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
    ) -> ShellResult:
        start_time = time.time()
        effective_cwd = cwd or self.cwd
        env = os.environ.copy()
        if env_overrides:
            env.update(env_overrides)

        logger.debug("Executing: %s (cwd=%s)", command, effective_cwd)
        completed = subprocess.run(
            command,
            cwd=effective_cwd,
            env=env,
            shell=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
            encoding="utf-8",
            errors="replace",
        )

        duration_ms = int((time.time() - start_time) * 1000)
        return ShellResult(
            success=completed.returncode == 0,
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
            duration_ms=duration_ms,
            command=command,
            cwd=effective_cwd,
        )

    def check(self, command: str, *, cwd: Optional[str] = None) -> str:
        """Run ``command`` and return its trimmed stdout.

        Raises ExternalCommandError on a non-zero exit or when the shell
        cannot be spawned.
        """
        try:
            result = self.run(command, cwd=cwd)
        except OSError as exc:
            raise ExternalCommandError(command, f"Command failed: {command}: {exc}") from exc
        if not result.success:
            raise ExternalCommandError(
                command,
                f"Command failed with exit code {result.exit_code}: {command}",
                exit_code=result.exit_code,
                stderr=result.stderr,
            )
        return result.stdout.strip()
