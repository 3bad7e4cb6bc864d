from __future__ import annotations

import importlib.metadata as importlib_metadata
import os

import pytest

from stencil import DictLoader, Environment

TEMPLATES = {
    "minimal.html": "{{ name }}",
    "small.html": (
        "<h1>{{ title }}</h1>\n<ul>\n"
        "{% for item in items %}  <li>{{ item|upper }}</li>\n{% endfor %}</ul>\n"
    ),
    "medium.html": (
        "{% if user.active %}\n"
        '<div class="profile">\n'
        "  <h1>{{ user.name|capitalize }}</h1>\n"
        '  <p>{{ user.bio|default:"No bio" }}</p>\n'
        "  {% for post in user.posts %}\n"
        "  <article>\n"
        "    <h2>{{ forloop.Counter1 }}. {{ post.title }}</h2>\n"
        '    <p>{{ post.tags|join:", " }}</p>\n'
        "    {{ post.body|striptags }}\n"
        "  </article>\n"
        "  {% else %}<p>No posts.</p>{% endfor %}\n"
        "</div>\n"
        "{% else %}<p>Please log in.</p>{% endif %}\n"
    ),
    "large.html": (
        "<table>\n{% for row in rows %}<tr>"
        "{% for cell in row %}<td>{{ cell }}</td>{% endfor %}"
        "</tr>\n{% endfor %}</table>\n"
    ),
    "complex/base.html": (
        "<html><head><title>{% block title %}Site{% endblock %}</title></head>\n"
        '<body>{% include static "complex/nav.html" %}\n'
        "{% block content %}{% endblock %}</body></html>\n"
    ),
    "complex/layout.html": (
        '{% extends static "complex/base.html" %}'
        "{% block content %}<main>{% block main %}{% endblock %}</main>{% endblock %}"
    ),
    "complex/page.html": (
        '{% extends static "complex/layout.html" %}'
        "{% block title %}{{ page.title }}{% endblock %}"
        "{% block main %}{% for section in page.sections %}"
        "<section><h2>{{ section.Key }}</h2>{{ section.Value }}</section>"
        "{% endfor %}{% endblock %}"
    ),
    "complex/nav.html": (
        '<nav>{% for link in nav %}<a href="{{ link.url }}">{{ link.label }}</a>{% endfor %}</nav>'
    ),
}


def pytest_benchmark_update_machine_info(config, machine_info):
    """Record which stencil build produced a saved benchmark run."""
    try:
        machine_info["stencil_version"] = importlib_metadata.version("stencil")
    except importlib_metadata.PackageNotFoundError:
        machine_info["stencil_version"] = "source checkout"
    machine_info["cpu_count"] = os.cpu_count()


@pytest.fixture(scope="session")
def stencil_env() -> Environment:
    return Environment(loader=DictLoader(TEMPLATES))


@pytest.fixture(scope="session")
def small_context() -> dict[str, object]:
    return {"title": "Benchmark", "items": [f"item {i}" for i in range(5)]}


@pytest.fixture(scope="session")
def medium_context() -> dict[str, object]:
    posts = [
        {
            "title": f"Post {i}",
            "tags": ["python", "templates", f"tag{i}"],
            "body": f"<p>Body of <em>post</em> {i} & more</p>",
        }
        for i in range(20)
    ]
    return {"user": {"active": True, "name": "florian", "bio": "", "posts": posts}}


@pytest.fixture(scope="session")
def large_context() -> dict[str, object]:
    return {"rows": [[f"{r}:{c}" for c in range(10)] for r in range(100)]}


@pytest.fixture(scope="session")
def complex_context() -> dict[str, object]:
    return {
        "page": {
            "title": "Docs <beta>",
            "sections": {f"Section {i}": f"Text {i}" for i in range(10)},
        },
        "nav": [{"url": f"/p/{i}", "label": f"Page {i}"} for i in range(8)],
    }
