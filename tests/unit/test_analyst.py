"""Unit tests for mlearning/analyst.py: completion call wiring, no network."""
import dataclasses
from types import SimpleNamespace

import pytest

from mlearning import analyst


class FakeCompletions:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


def _response(text):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(prompt_tokens=11, completion_tokens=7),
    )


def _install(monkeypatch, responses):
    completions = FakeCompletions(responses)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    monkeypatch.setattr(analyst, "_client", lambda api_key: client)
    return completions


def test_missing_key_raises(settings):
    with pytest.raises(analyst.AnalystError):
        analyst.analyze_event("x", {}, settings)


def test_analyze_event_returns_text(settings, monkeypatch):
    s = dataclasses.replace(settings, openai_api_key="sk-test")
    completions = _install(monkeypatch, [_response("  check the index  ")])
    assert analyst.analyze_event("slow query", {"ms": 900}, s) == "check the index"
    call = completions.calls[0]
    assert call["model"] == s.model
    assert call["temperature"] == analyst.TEMPERATURE
    assert call["messages"][0] == {"role": "system", "content": analyst.ANALYST_SYSTEM_PROMPT}
    assert '"ms": 900' in call["messages"][1]["content"]


def test_ask_reports_usage(settings, monkeypatch):
    s = dataclasses.replace(settings, openai_api_key="sk-test")
    _install(monkeypatch, [_response("ok")])
    result = analyst.ask("", "hi", s, model="other-model")
    assert (result.text, result.input_tokens, result.output_tokens) == ("ok", 11, 7)


def test_empty_choices_raise(settings, monkeypatch):
    s = dataclasses.replace(settings, openai_api_key="sk-test")
    _install(monkeypatch, [SimpleNamespace(choices=[], usage=None)])
    with pytest.raises(analyst.AnalystError):
        analyst.ask("sys", "user", s)


def test_retryable_classification():
    assert analyst._is_retryable(TimeoutError())
    assert analyst._is_retryable(ConnectionError())
    assert not analyst._is_retryable(ValueError("bad"))


def test_non_retryable_error_propagates_once(settings, monkeypatch):
    s = dataclasses.replace(settings, openai_api_key="sk-test")
    completions = _install(monkeypatch, [ValueError("bad request"), _response("never")])
    with pytest.raises(ValueError):
        analyst.ask("sys", "user", s)
    assert len(completions.calls) == 1
