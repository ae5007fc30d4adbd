from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, Optional, Protocol, Sequence

from .config import Profile
from .errors import NetworkError, ProtocolError, RepairLimitReached
from .llm.client import Message
from .prompt import Answer, confirm
from .script import extract_script
from .shell.executor import ExecutionOutcome, Failure, Success, execute_script


class LoopState(Enum):
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    EXECUTING = "executing"
    REPAIRING = "repairing"
    AWAITING_FIX_CONFIRMATION = "awaiting_fix_confirmation"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_STATES = frozenset({LoopState.DONE, LoopState.CANCELLED, LoopState.FAILED})


@dataclass(frozen=True)
class ScriptAttempt:
    script: str
    error: str


class FixHistory:
    """Failed attempts of one repair loop, oldest first. Append-only."""

    def __init__(self) -> None:
        self._attempts: list[ScriptAttempt] = []

    def append(self, attempt: ScriptAttempt) -> None:
        self._attempts.append(attempt)

    def __iter__(self) -> Iterator[ScriptAttempt]:
        return iter(tuple(self._attempts))

    def __len__(self) -> int:
        return len(self._attempts)

    def __getitem__(self, index: int) -> ScriptAttempt:
        return self._attempts[index]

    @property
    def latest(self) -> Optional[ScriptAttempt]:
        return self._attempts[-1] if self._attempts else None


def build_repair_prompt(original_script: str, error: str, history: Sequence[ScriptAttempt] | FixHistory) -> str:
    parts = [
        "You are a shell script repair expert. The following shell script failed; fix it.\n\n"
        f"## Original script\n```bash\n{original_script}\n```\n\n"
        f"## Execution error\n```\n{error}\n```\n\n"
    ]
    attempts = list(history)
    if attempts:
        parts.append("\n## Previous fix attempts\n")
        for i, attempt in enumerate(attempts, start=1):
            parts.append(
                f"### Attempt {i}\n```bash\n{attempt.script}\n```\n\n"
                f"### Execution error\n```\n{attempt.error}\n```\n\n"
            )
    parts.append(
        "## Request\n"
        "Fix the script above so that it runs correctly. Return only the complete fixed "
        "script, with no explanation or extra text.\n"
        "The first line of the script must be a correct shebang."
    )
    return "".join(parts)


class Completer(Protocol):
    def complete(self, conversation: Sequence[Message], profile: Profile) -> str: ...


Executor = Callable[[str], ExecutionOutcome]
Confirm = Callable[..., Answer]


@dataclass
class LoopResult:
    state: LoopState
    history: FixHistory
    executions: int = 0
    repairs: int = 0
    output: Optional[str] = None
    error: Optional[Exception] = None
    prompts: list[str] = field(default_factory=list)


class RepairLoop:
    """Confirm, execute and repair one script until it succeeds or the user stops.

    The loop has no retry cap of its own; `max_repairs` bounds the number of
    repair requests for unattended use. The first failed script stays the
    anchor of every repair prompt while the history carries each attempt.
    """

    def __init__(
        self,
        client: Completer,
        profile: Profile,
        *,
        executor: Executor = execute_script,
        confirm: Confirm = confirm,
        max_repairs: Optional[int] = None,
    ) -> None:
        self._client = client
        self._profile = profile
        self._execute = executor
        self._confirm = confirm
        self._max_repairs = max_repairs

        self.state = LoopState.AWAITING_CONFIRMATION
        self.history = FixHistory()
        self.executions = 0
        self.repairs = 0
        self.prompts: list[str] = []

        self._current: Optional[str] = None
        self._pending_fix: Optional[str] = None
        self._original: Optional[str] = None
        self._last_error = ""
        self._output: Optional[str] = None
        self._error: Optional[Exception] = None

    def run(self, script: str) -> LoopResult:
        self._current = script
        self.state = LoopState.AWAITING_CONFIRMATION
        handlers = {
            LoopState.AWAITING_CONFIRMATION: self._await_confirmation,
            LoopState.EXECUTING: self._execute_current,
            LoopState.REPAIRING: self._request_fix,
            LoopState.AWAITING_FIX_CONFIRMATION: self._await_fix_confirmation,
        }
        while self.state not in TERMINAL_STATES:
            self.state = handlers[self.state]()
        return LoopResult(
            state=self.state,
            history=self.history,
            executions=self.executions,
            repairs=self.repairs,
            output=self._output,
            error=self._error,
            prompts=list(self.prompts),
        )

    def _await_confirmation(self) -> LoopState:
        print(f"[chatstep] script to execute:\n{self._current}")
        if self._confirm("Execute it? (Y/n) ") is Answer.PROCEED:
            return LoopState.EXECUTING
        print("[chatstep] execution cancelled")
        return LoopState.CANCELLED

    def _execute_current(self) -> LoopState:
        assert self._current is not None
        self.executions += 1
        outcome = self._execute(self._current)
        if isinstance(outcome, Success):
            self._output = outcome.stdout
            print(outcome.stdout, end="")
            return LoopState.DONE
        assert isinstance(outcome, Failure)
        print(f"[chatstep] script failed: {outcome.error}", file=sys.stderr)
        if self._original is None:
            self._original = self._current
        self._last_error = outcome.error
        self.history.append(ScriptAttempt(script=self._current, error=outcome.error))
        return LoopState.REPAIRING

    def _request_fix(self) -> LoopState:
        assert self._original is not None
        if self._max_repairs is not None and self.repairs >= self._max_repairs:
            self._error = RepairLimitReached(self._max_repairs)
            print(f"[chatstep] {self._error}", file=sys.stderr)
            return LoopState.FAILED
        print("[chatstep] generating a fixed script...")
        prompt = build_repair_prompt(self._original, self._last_error, self.history)
        self.prompts.append(prompt)
        self.repairs += 1
        try:
            reply = self._client.complete([Message.user(prompt)], self._profile)
        except (NetworkError, ProtocolError) as e:
            self._error = e
            print(f"[chatstep] could not generate a fixed script: {e}", file=sys.stderr)
            return LoopState.FAILED
        self._pending_fix = extract_script(reply)
        return LoopState.AWAITING_FIX_CONFIRMATION

    def _await_fix_confirmation(self) -> LoopState:
        print(f"[chatstep] fixed script:\n{self._pending_fix}")
        answer = self._confirm("Execute the fixed script? (Y/n/q to quit) ", allow_quit=True)
        if answer is Answer.PROCEED:
            self._current = self._pending_fix
            self._pending_fix = None
            return LoopState.EXECUTING
        if answer is Answer.QUIT:
            print("[chatstep] repair cancelled")
        else:
            print("[chatstep] fixed script not executed")
        return LoopState.CANCELLED
