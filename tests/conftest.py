from collections.abc import Iterable

import pytest
from rich.console import Console

import argscaffold
from argscaffold import ambient


@pytest.fixture
def console():
    return Console(width=70, force_terminal=True, highlight=False, color_system=None, legacy_windows=False)


class ScriptedPrompter:
    """Answers prompts from a fixed script and records what was asked."""

    def __init__(self, answers: Iterable[str] = (), secrets: Iterable[str] = ()):
        self.answers = list(answers)
        self.secrets = list(secrets)
        self.asked: list[str] = []
        self.asked_secret: list[str] = []

    def prompt(self, argument, /) -> str:
        self.asked.append(argument.name)
        return self.answers.pop(0)

    def prompt_secret(self, argument, /) -> str:
        self.asked_secret.append(argument.name)
        return self.secrets.pop(0)


@pytest.fixture
def prompter():
    def inner(answers: Iterable[str] = (), secrets: Iterable[str] = ()) -> ScriptedPrompter:
        return ScriptedPrompter(answers, secrets)

    return inner


@pytest.fixture
def assert_parse():
    """Parse ``cmd`` against ``scaffold`` and compare the resulting attributes."""

    def inner(scaffold, cmd, **expected):
        obj = argscaffold.parse(scaffold, cmd)
        for name, value in expected.items():
            assert getattr(obj, name) == value, name
        return obj

    return inner


@pytest.fixture(autouse=True)
def clear_ambient():
    yield
    ambient.clear()
