"""Thin wrapper around subprocess that never raises for a failed command."""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)

NOT_FOUND_EXIT_CODE = 127


@dataclass(frozen=True)
class CommandResult:
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def lines(self) -> list[str]:
        return [line for line in self.stdout.splitlines() if line.strip()]


class ProcessRunner:
    """Execute external commands, capturing output into memory.

    Standard input is inherited from the caller. A command that cannot be
    started at all (missing binary, bad cwd) is reported as exit code 127 with
    a synthesized stderr rather than an exception.
    """

    def __init__(self, *, echo_output: bool = False) -> None:
        self.echo_output = echo_output

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        cwd: Path | str | None = None,
    ) -> CommandResult:
        cmd = [command, *args]
        logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd or ".")
        try:
            proc = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                check=False,
            )
        except (FileNotFoundError, NotADirectoryError, PermissionError) as exc:
            logger.debug("Could not start %s: %s", command, exc)
            return CommandResult(stdout="", stderr=f"{command}: {exc}", exit_code=NOT_FOUND_EXIT_CODE)

        result = CommandResult(stdout=proc.stdout or "", stderr=proc.stderr or "", exit_code=proc.returncode)
        if self.echo_output:
            logger.debug("%s exited %d", command, result.exit_code)
            if result.stdout.strip():
                logger.debug("stdout: %s", result.stdout.rstrip())
            if result.stderr.strip():
                logger.debug("stderr: %s", result.stderr.rstrip())
        return result


__all__ = ["CommandResult", "ProcessRunner", "NOT_FOUND_EXIT_CODE"]
