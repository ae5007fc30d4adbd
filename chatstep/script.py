from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .llm.prompts import NO_SHELL_SENTINEL


@dataclass(frozen=True)
class NeedsExecution:
    script: str


@dataclass(frozen=True)
class NoExecutionNeeded:
    pass


@dataclass(frozen=True)
class PlainReply:
    text: str


Interpretation = Union[NeedsExecution, NoExecutionNeeded, PlainReply]


def extract_script(raw: str) -> str:
    """Drop the first and last line of a reply longer than two lines.

    Models usually wrap the script in a fence or a lead-in sentence. Replies
    of one or two lines are returned unchanged apart from trimming, even when
    they are a bare fence.
    """
    lines = raw.splitlines()
    if len(lines) > 2:
        lines = lines[1:-1]
    return "\n".join(lines).strip()


def interpret(reply: str) -> Interpretation:
    if reply.strip() == NO_SHELL_SENTINEL:
        return NoExecutionNeeded()
    return NeedsExecution(extract_script(reply))
