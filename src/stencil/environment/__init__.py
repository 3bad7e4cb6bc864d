"""Stencil Environment package: configuration, loaders, filters and errors.

Submodules are imported in dependency order: the core module needs the
exception, loader and filter modules fully initialized.
"""

from stencil.environment.exceptions import (
    ErrorCode,
    SourceSnippet,
    TemplateError,
    TemplateEvaluationError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateScanError,
    TemplateSyntaxError,
    build_source_snippet,
)
from stencil.environment.loaders import (
    ChoiceLoader,
    DictLoader,
    FileSystemLoader,
    FunctionLoader,
    Loader,
)
from stencil.environment.filters import DEFAULT_FILTERS, FilterChainContext, FilterFunc
from stencil.environment.registry import Registry
from stencil.environment.core import Environment, from_file, from_string

__all__ = [
    "DEFAULT_FILTERS",
    "ChoiceLoader",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "FileSystemLoader",
    "FilterChainContext",
    "FilterFunc",
    "FunctionLoader",
    "Loader",
    "Registry",
    "SourceSnippet",
    "TemplateError",
    "TemplateEvaluationError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateScanError",
    "TemplateSyntaxError",
    "build_source_snippet",
    "from_file",
    "from_string",
]
