"""Stencil Template package: parsed templates and their execution engine."""

from stencil.template.core import Template
from stencil.template.executor import Executor
from stencil.template.loop_context import ForLoopContext

__all__ = [
    "Executor",
    "ForLoopContext",
    "Template",
]
