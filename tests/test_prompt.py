import pytest

from chatstep.prompt import Answer, classify_answer, confirm


@pytest.mark.parametrize("raw", ["", "   ", "y", "Y", " y \n"])
def test_empty_and_y_proceed(raw):
    assert classify_answer(raw) is Answer.PROCEED
    assert classify_answer(raw, allow_quit=True) is Answer.PROCEED


@pytest.mark.parametrize("raw", ["n", "N", "no", "yes", "x", "yy"])
def test_anything_else_declines(raw):
    assert classify_answer(raw) is Answer.DECLINE
    assert classify_answer(raw, allow_quit=True) is Answer.DECLINE


def test_q_quits_only_when_allowed():
    assert classify_answer("q", allow_quit=True) is Answer.QUIT
    assert classify_answer("Q", allow_quit=True) is Answer.QUIT
    assert classify_answer("q") is Answer.DECLINE


def test_confirm_reads_terminal(monkeypatch):
    asked = []

    def fake_input(question):
        asked.append(question)
        return "Y"

    monkeypatch.setattr("builtins.input", fake_input)
    assert confirm("Go? ") is Answer.PROCEED
    assert asked == ["Go? "]


def test_confirm_declines_on_eof(monkeypatch):
    def eof(_):
        raise EOFError

    monkeypatch.setattr("builtins.input", eof)
    assert confirm("Go? ") is Answer.DECLINE
