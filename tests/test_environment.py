"""Tests for Environment, Template and the loaders."""

from __future__ import annotations

import io
import logging
import threading

import pytest

from stencil import (
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    FunctionLoader,
    Loader,
    Template,
    TemplateNotFoundError,
    TemplateSyntaxError,
    from_file,
    from_string,
)
from stencil.nodes import Content, Output

from .conftest import TEMPLATES


class TestTemplateCache:
    """get_template caching."""

    def test_cached(self, env_with_loader):
        assert env_with_loader.get_template("greetings") is env_with_loader.get_template("greetings")

    def test_cache_disabled(self):
        env = Environment(loader=DictLoader(TEMPLATES), cache=False)
        assert env.get_template("greetings") is not env.get_template("greetings")

    def test_clear_cache(self, env_with_loader):
        first = env_with_loader.get_template("greetings")
        env_with_loader.clear_cache()
        assert env_with_loader.get_template("greetings") is not first

    def test_cache_hit_logged(self, env_with_loader, caplog):
        env_with_loader.get_template("header")
        with caplog.at_level(logging.DEBUG, logger="stencil.environment.core"):
            env_with_loader.get_template("header")
        assert "Template cache hit" in caplog.text

    def test_concurrent_loads_share_one_template(self, env_with_loader):
        results: list[Template] = []
        lock = threading.Lock()

        def load():
            template = env_with_loader.get_template("greetings")
            with lock:
                results.append(template)

        threads = [threading.Thread(target=load) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len({id(t) for t in results}) == 1

    def test_concurrent_renders(self, env_with_loader):
        template = env_with_loader.get_template("greetings")
        results: dict[int, str] = {}

        def work(i):
            results[i] = template.render(name=f"user{i}")

        threads = [threading.Thread(target=work, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert results == {i: f"Hello User{i}!" for i in range(8)}


class TestListTemplates:
    """Environment.list_templates."""

    def test_dict_loader(self, env_with_loader):
        assert env_with_loader.list_templates() == sorted(TEMPLATES)

    def test_without_loader(self, env):
        assert env.list_templates() == []

    def test_loader_without_listing(self):
        class SourceOnly:
            def get_source(self, name):
                return "x", None

        with pytest.raises(TypeError, match="cannot list templates"):
            Environment(loader=SourceOnly()).list_templates()


class TestFileSystemLoader:
    """Loading from directories."""

    def test_load(self, tmp_path):
        (tmp_path / "hello.txt").write_text("Hello {{ name }}!")
        env = Environment(loader=FileSystemLoader(tmp_path))
        template = env.get_template("hello.txt")
        assert template.render(name="Flo") == "Hello Flo!"
        assert template.filename == str(tmp_path / "hello.txt")

    def test_first_path_wins(self, tmp_path):
        custom, default = tmp_path / "custom", tmp_path / "default"
        custom.mkdir()
        default.mkdir()
        (custom / "page.txt").write_text("custom")
        (default / "page.txt").write_text("default")
        (default / "other.txt").write_text("other")
        env = Environment(loader=FileSystemLoader([custom, default]))
        assert env.get_template("page.txt").render() == "custom"
        assert env.get_template("other.txt").render() == "other"

    def test_list_templates(self, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "a.txt").write_text("a")
        (tmp_path / "sub" / "b.txt").write_text("b")
        (tmp_path / ".hidden").write_text("h")
        assert FileSystemLoader(tmp_path).list_templates() == ["a.txt", "sub/b.txt"]

    def test_missing(self, tmp_path):
        with pytest.raises(TemplateNotFoundError, match="not found in"):
            FileSystemLoader(tmp_path).get_source("nope.txt")

    def test_encoding(self, tmp_path):
        (tmp_path / "latin.txt").write_bytes("caf\xe9".encode("latin-1"))
        loader = FileSystemLoader(str(tmp_path), encoding="latin-1")
        assert loader.get_source("latin.txt")[0] == "caf\xe9"
        assert loader.paths == [tmp_path]

    @pytest.mark.parametrize("name", ["../secret.txt", "sub/../../secret.txt", "/etc/passwd"])
    def test_rejects_names_outside_search_path(self, tmp_path, name):
        with pytest.raises(TemplateNotFoundError, match="outside the search path"):
            FileSystemLoader(tmp_path).get_source(name)


class TestOtherLoaders:
    """DictLoader, FunctionLoader, ChoiceLoader."""

    def test_dict_suggestion(self):
        with pytest.raises(TemplateNotFoundError, match="Did you mean 'greetings'"):
            DictLoader(TEMPLATES).get_source("greeting")

    def test_dict_available(self):
        with pytest.raises(TemplateNotFoundError, match="Available: a, b"):
            DictLoader({"a": "", "b": ""}).get_source("zzzzzz")

    def test_function_loader_results(self):
        def locate(name):
            if name == "plain":
                return "plain source"
            if name == "pair":
                return "pair source", "/virtual/pair"
            return None

        loader = FunctionLoader(locate)
        assert loader.get_source("plain") == ("plain source", None)
        assert loader.get_source("pair") == ("pair source", "/virtual/pair")
        with pytest.raises(TemplateNotFoundError):
            loader.get_source("other")
        assert loader.list_templates() == []

    def test_choice_first_hit(self):
        loader = ChoiceLoader([DictLoader({"a": "first"}), DictLoader({"a": "second", "b": "b"})])
        assert loader.get_source("a") == ("first", None)
        assert loader.get_source("b") == ("b", None)
        assert loader.list_templates() == ["a", "b"]

    def test_choice_miss(self):
        loader = ChoiceLoader([DictLoader({}), DictLoader({})])
        with pytest.raises(TemplateNotFoundError, match="not found in any of 2 loaders"):
            loader.get_source("x")

    def test_protocol(self):
        assert isinstance(DictLoader({}), Loader)
        assert isinstance(FunctionLoader(lambda name: None), Loader)


class TestRegistries:
    """Filter and tag registries."""

    def test_compiled_templates_keep_their_filters(self, env):
        template = env.from_string("{{ x|upper }}")
        env.add_filter("upper", lambda value, args, chain: "changed")
        assert template.render(x="a") == "A"
        assert env.from_string("{{ x|upper }}").render(x="a") == "changed"

    def test_removed_filter(self, env):
        del env.filters["upper"]
        with pytest.raises(TemplateSyntaxError, match="Filter 'upper' not found"):
            env.from_string("{{ x|upper }}")

    def test_registry_mapping_api(self, env):
        env.filters.update({"one": lambda value, args, chain: 1})
        assert env.filters.get("one") is not None
        assert env.filters.get("missing") is None
        assert "one" in set(env.filters.keys())
        assert len(env.filters) == len(env.filters.copy())

    def test_delete_missing(self, env):
        with pytest.raises(KeyError):
            del env.filters["missing"]
        assert repr(env.tags).startswith("<Registry tags:")

    def test_isolated_environments(self):
        first, second = Environment(), Environment()
        first.add_filter("x", None)
        first.add_tag("x", None)
        assert "x" not in second.filters
        assert "x" not in second.tags

    def test_constructor_extras(self):
        env = Environment(filters={"shout": lambda value, args, chain: value + "!"})
        assert env.from_string('{{ "hi"|shout }}').render() == "hi!"
        assert "upper" in env.filters


class TestRender:
    """Template.render and render_to."""

    def test_globals(self):
        env = Environment(globals={"site": "Stencil"})
        assert env.from_string("{{ site }}").render() == "Stencil"
        assert env.from_string("{{ site }}").render(site="Other") == "Other"

    def test_positional_mapping(self, env):
        template = env.from_string("{{ a }}{{ b }}")
        assert template.render({"a": 1, "b": 2}) == "12"
        assert template.render({"a": 1, "b": 2}, b=3) == "13"

    def test_positional_errors(self, env):
        template = env.from_string("x")
        with pytest.raises(TypeError, match="at most 1 positional argument"):
            template.render({}, {})
        with pytest.raises(TypeError, match="expects a mapping"):
            template.render(["a"])

    def test_render_to_bytes(self, env):
        sink = io.BytesIO()
        env.from_string("caf\xe9 {{ x }}").render_to(sink, x=1)
        assert sink.getvalue() == "caf\xe9 1".encode()

    def test_render_to_text(self, env):
        sink = io.StringIO()
        env.from_string("{{ x }}").render_to(sink, {"x": "y"})
        assert sink.getvalue() == "y"

    def test_render_to_encoding(self):
        sink = io.BytesIO()
        Environment(encoding="latin-1").from_string("caf\xe9").render_to(sink)
        assert sink.getvalue() == b"caf\xe9"

    def test_render_to_duck_typed_text_sink(self, env):
        class Collector:
            def __init__(self):
                self.parts = []

            def write(self, text):
                self.parts.append(text)

        sink = Collector()
        env.from_string("caf\xe9 {{ x }}").render_to(sink, x=1)
        assert sink.parts == ["caf\xe9 1"]

    def test_render_to_bytes_only_sink(self, env):
        class ByteSink:
            def __init__(self):
                self.data = b""

            def write(self, data):
                if not isinstance(data, bytes):
                    raise TypeError("bytes required")
                self.data += data

        sink = ByteSink()
        env.from_string("caf\xe9").render_to(sink)
        assert sink.data == "caf\xe9".encode()

    def test_render_to_binary_file(self, env, tmp_path):
        target = tmp_path / "out.txt"
        with target.open("wb") as sink:
            env.from_string("{{ x }}").render_to(sink, x="ok")
        assert target.read_bytes() == b"ok"

    def test_failed_render_writes_nothing(self, env):
        sink = io.StringIO()
        with pytest.raises(TemplateNotFoundError):
            env.from_string('a{% include "x" %}').render_to(sink)
        assert sink.getvalue() == ""


class TestEnvironment:
    """Construction, parsing and module helpers."""

    def test_max_include_depth_validated(self):
        with pytest.raises(ValueError, match="max_include_depth"):
            Environment(max_include_depth=0)

    def test_parse(self, env):
        nodes = env.parse("Hi {{ name }}")
        assert isinstance(nodes, tuple)
        assert isinstance(nodes[0], Content)
        assert isinstance(nodes[1], Output)

    def test_empty_source(self, env):
        with pytest.raises(TemplateSyntaxError, match="Template has no content"):
            env.from_string("")

    def test_repr(self, env_with_loader):
        assert repr(env_with_loader.get_template("greetings")) == "<Template 'greetings'>"
        assert repr(env_with_loader.from_string("x")) == "<Template '<string>'>"

    def test_template_properties(self, env):
        template = env.from_string("x", name="inline")
        assert template.name == "inline"
        assert template.source == "x"
        assert template.env is env
        assert template.autoescape is True
        assert template.filename is None

    def test_module_from_string(self):
        assert from_string("{{ x }}", autoescape=False).render(x="<b>") == "<b>"

    def test_from_file(self, tmp_path):
        (tmp_path / "header.txt").write_text("<{{ title }}>")
        (tmp_path / "page.txt").write_text('{% include "header.txt" %}body')
        template = from_file(tmp_path / "page.txt", autoescape=False)
        assert template.render(title="T") == "<T>body"
        assert template.name == "page.txt"

    def test_from_file_with_loader(self, tmp_path):
        path = tmp_path / "page.txt"
        path.write_text('{% include "greetings" %}')
        template = from_file(str(path), loader=DictLoader(TEMPLATES))
        assert template.filename == str(path)
        assert template.render(name="flo") == "Hello Flo!"
