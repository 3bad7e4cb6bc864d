"""Stencil: a small text template engine with a Django-like syntax.

Quickstart:
    >>> from stencil import Environment
    >>> env = Environment()
    >>> env.from_string("Hello {{ name|capitalize }}!").render(name="florian")
    'Hello Florian!'

File-based templates:
    >>> from stencil import Environment, FileSystemLoader
    >>> env = Environment(loader=FileSystemLoader("templates/"))
    >>> env.get_template("index.html").render(page=page)

Syntax:
- ``{{ expr|filter:arg }}`` outputs a value. ``expr`` is a literal or a
  dotted identifier (``user.Friends.0.Name``) and may call a method with
  ``obj.Method:arg1, arg2``. A leading ``!`` negates the result.
- ``{% tag args %}`` runs a structural tag: ``if``, ``for``, ``block``,
  ``extends``, ``include``, ``trim`` and ``remove``.
- ``{# ... #}`` is a comment.

Pipeline:
Template Source → Lexer → flat node tuple → Executor (cursor + scans)

There is no compile step beyond the lexer: structure such as ``if``/``endif``
pairing is recovered at render time by scanning forward through the nodes.

Missing data never fails a render. Unknown variables, absent keys and
out-of-range indices render as an empty string (logged at DEBUG level);
only syntax and structure errors raise.
"""

from stencil.environment import (
    DEFAULT_FILTERS,
    ChoiceLoader,
    DictLoader,
    Environment,
    ErrorCode,
    FileSystemLoader,
    FilterChainContext,
    FunctionLoader,
    Loader,
    SourceSnippet,
    TemplateError,
    TemplateEvaluationError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateScanError,
    TemplateSyntaxError,
    build_source_snippet,
    from_file,
    from_string,
)
from stencil.render_context import RenderContext, get_render_context, render_context
from stencil.tags import DEFAULT_TAGS, TagHandler, skip_to
from stencil.template import Executor, ForLoopContext, Template
from stencil.values import BoundMethod, MapItem, ValueKind

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_FILTERS",
    "DEFAULT_TAGS",
    "BoundMethod",
    "ChoiceLoader",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "Executor",
    "FileSystemLoader",
    "FilterChainContext",
    "ForLoopContext",
    "FunctionLoader",
    "Loader",
    "MapItem",
    "RenderContext",
    "SourceSnippet",
    "Template",
    "TagHandler",
    "TemplateError",
    "TemplateEvaluationError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateScanError",
    "TemplateSyntaxError",
    "ValueKind",
    "__version__",
    "build_source_snippet",
    "from_file",
    "from_string",
    "get_render_context",
    "render_context",
    "skip_to",
]
