"""
Shared fixtures for name match tests.

Provides a scripted classifier and a fake sleep so the retry-forever
driver can be exercised without a network or real waiting.
"""

import pytest

from nebula.name_match.classifier import EntityClassifier
from nebula.name_match.exceptions import ClassificationError
from nebula.name_match.models import Citation, Classification, Verdict


class ScriptedClassifier(EntityClassifier):
    """
    Returns queued outcomes in order.

    Each outcome is a Classification or an exception instance to raise.
    When the queue runs dry, every call answers SAME with no name.
    """

    def __init__(self, outcomes=None, on_call=None):
        self.outcomes = list(outcomes or [])
        self.calls = []
        self.on_call = on_call

    def classify(self, original, duplicate):
        self.calls.append((original, duplicate))
        if self.on_call:
            self.on_call(len(self.calls))
        if not self.outcomes:
            return Classification(status=Verdict.SAME)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeSleep:
    """
    Records requested sleeps instead of blocking.

    max_calls is a safety valve: a runaway retry loop fails the test
    instead of hanging it.
    """

    def __init__(self, max_calls=1000, on_sleep=None):
        self.calls = []
        self.max_calls = max_calls
        self.on_sleep = on_sleep

    def __call__(self, seconds):
        self.calls.append(seconds)
        if len(self.calls) > self.max_calls:
            raise RuntimeError(f"Sleep called more than {self.max_calls} times")
        if self.on_sleep:
            self.on_sleep(seconds, len(self.calls))

    @property
    def total_ms(self) -> int:
        return round(sum(self.calls) * 1000)


def same(name="", citations=()):
    return Classification(status=Verdict.SAME, correct_name=name, citations=tuple(citations))


def different(name="", citations=()):
    return Classification(status=Verdict.DIFFERENT, correct_name=name, citations=tuple(citations))


def failure(message="503 UNAVAILABLE: model overloaded"):
    return ClassificationError(message)


def web(uri, title=""):
    return Citation(uri=uri, title=title)


@pytest.fixture
def fake_sleep():
    return FakeSleep()
