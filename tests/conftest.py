"""Pytest configuration and fixtures for Stencil tests."""

from dataclasses import dataclass, field

import pytest

from stencil import DictLoader, Environment

TEMPLATES = {
    "base": "Hello {% block name %}Josh{% endblock %}!",
    "middle": '{% extends "base" %}{% block name %}Middle{% endblock %}',
    "greetings": "Hello {{ name|capitalize }}!",
    "greetings_with_errors": "Hello {{ name|notexistent }}!",
    "header": "<h1>{{ title }}</h1>",
    "loop_a": '{% include "loop_b" %}',
    "loop_b": '{% include "loop_a" %}',
    "nested_include": 'outer {% include "greetings_with_errors" %}',
    "page": (
        "<html><head><title>{% block title %}{% endblock %}</title></head>"
        "<body>{% block body %}{% endblock %}</body></html>"
    ),
}


@dataclass
class Person:
    """Record-kind value with fields and methods."""

    name: str
    age: int = 0
    friends: list["Person"] = field(default_factory=list)
    accounts: dict[str, float] = field(default_factory=dict)
    _secret: int = 42

    def say_hello(self):
        return "Hello Flo!"

    def say_hello_to(self, first, second):
        return f"Hello to {first} and {second} from Flo!"

    def pair(self):
        return ("a", "b")

    def single(self):
        return ("only",)

    def nothing(self):
        return None

    def shout(self, *words):
        return " ".join(words).upper()


@pytest.fixture(autouse=True)
def _plain_terminal(monkeypatch):
    """Keep diagnostics free of ANSI codes regardless of the runner's terminal."""
    monkeypatch.delenv("FORCE_COLOR", raising=False)
    monkeypatch.setenv("NO_COLOR", "1")


@pytest.fixture
def env():
    """Create a basic Stencil Environment (autoescape on)."""
    return Environment()


@pytest.fixture
def env_raw():
    """Create a Stencil Environment with autoescape disabled."""
    return Environment(autoescape=False)


@pytest.fixture
def env_with_loader():
    """Create a Stencil Environment with a DictLoader and test templates."""
    return Environment(loader=DictLoader(TEMPLATES))


@pytest.fixture
def person():
    return Person(
        name="Florian",
        age=40,
        friends=[Person("Georg", 51), Person("Mike", 25), Person("Philipp", 19)],
        accounts={"default": 1234.56},
    )


def render(env, source, **ctx):
    """Compile and render in one step."""
    return env.from_string(source).render(**ctx)
