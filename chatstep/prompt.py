from __future__ import annotations

from enum import Enum


class Answer(Enum):
    PROCEED = "proceed"
    DECLINE = "decline"
    QUIT = "quit"


def classify_answer(raw: str, *, allow_quit: bool = False) -> Answer:
    resp = raw.strip()
    if resp in {"", "y", "Y"}:
        return Answer.PROCEED
    if allow_quit and resp in {"q", "Q"}:
        return Answer.QUIT
    return Answer.DECLINE


def confirm(question: str, *, allow_quit: bool = False) -> Answer:
    """Block on the terminal until the user answers `question`.

    An empty answer means yes. End of input declines.
    """
    try:
        resp = input(question)
    except EOFError:
        print()
        return Answer.DECLINE
    return classify_answer(resp, allow_quit=allow_quit)
