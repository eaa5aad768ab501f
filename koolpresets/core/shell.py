# koolpresets/core/shell.py
from __future__ import annotations

"""Shell execution
------------------
Runs script lines for the executor. `run_command` captures output (used for
non-interactive runs, e.g. CI); `interactive` keeps the child attached to the
current terminal.
"""

import os
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Protocol

from koolpresets.core.errors import ScriptFailureError
from koolpresets.utils.logger import get_logger


class CommandRunner(Protocol):
    def run_command(self, cmd: str, env: Mapping[str, str], cwd: Optional[Path] = None) -> int: ...

    def interactive(self, cmd: str, *args: str, env: Optional[Mapping[str, str]] = None,
                    cwd: Optional[Path] = None) -> None: ...


def _child_env(extra: Optional[Mapping[str, str]]) -> dict[str, str]:
    env = dict(os.environ)
    if extra:
        env.update({str(k): str(v) for k, v in extra.items()})
    return env


class ShellRunner:
    """Runs commands through the system shell (or `shell` when given)."""

    def __init__(self, shell: Optional[str] = None):
        self.shell = shell
        self.log = get_logger(__name__)

    def run_command(self, cmd: str, env: Mapping[str, str], cwd: Optional[Path] = None) -> int:
        """Run `cmd` with `env` exported, log its output and return the exit code."""
        proc = subprocess.run(
            cmd,
            shell=True,
            executable=self.shell,
            cwd=str(cwd) if cwd else None,
            env=_child_env(env),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
        for line in (proc.stdout or "").splitlines():
            self.log.info(f"  | {line}")
        return proc.returncode

    def interactive(self, cmd: str, *args: str, env: Optional[Mapping[str, str]] = None,
                    cwd: Optional[Path] = None) -> None:
        """Run attached to the terminal; a bare `cmd` is handed to the shell."""
        if args:
            proc = subprocess.run([cmd, *args], cwd=str(cwd) if cwd else None, env=_child_env(env))
            shown = " ".join([cmd, *args])
        else:
            proc = subprocess.run(cmd, shell=True, executable=self.shell,
                                  cwd=str(cwd) if cwd else None, env=_child_env(env))
            shown = cmd
        if proc.returncode != 0:
            raise ScriptFailureError(shown, proc.returncode)


__all__ = ["CommandRunner", "ShellRunner"]
