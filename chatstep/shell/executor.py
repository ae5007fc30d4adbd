from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import Optional, Union

from .sysinfo import detect_shell, host_shell_argv


@dataclass(frozen=True)
class Success:
    stdout: str


@dataclass(frozen=True)
class Failure:
    stderr: str
    exit_code: int

    @property
    def error(self) -> str:
        """Text handed to the repair prompt."""
        if self.stderr:
            return self.stderr
        return f"exit status {self.exit_code}"


ExecutionOutcome = Union[Success, Failure]


def execute_script(
    script: str,
    *,
    shell: Optional[str] = None,
    stderr_is_failure: bool = True,
) -> ExecutionOutcome:
    """
    Run `script` through the host shell and classify the result.

    - The script is passed as a single command string (`<shell> -c <script>`),
      so the shell interprets its metacharacters.
    - Blocks until the child exits; there is no timeout.
    - Failure when the exit status is non-zero, or, while `stderr_is_failure`
      is set, when anything at all was written to stderr. A script that only
      logs a warning therefore counts as failed.
    - Output bytes are decoded as UTF-8 with invalid sequences replaced.
    """
    argv = host_shell_argv(shell or detect_shell(), script)
    try:
        proc = subprocess.run(argv, capture_output=True, stdin=subprocess.DEVNULL)
    except OSError as e:
        return Failure(stderr=f"{argv[0]}: {e}", exit_code=127)

    stderr = proc.stderr.decode("utf-8", errors="replace")
    if proc.returncode != 0 or (stderr_is_failure and proc.stderr):
        return Failure(stderr=stderr, exit_code=proc.returncode)
    return Success(stdout=proc.stdout.decode("utf-8", errors="replace"))
