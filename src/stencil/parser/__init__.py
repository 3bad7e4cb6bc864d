"""Expression parsing for Stencil templates."""

from stencil.parser.expressions import convert_literal, parse_expression, split_args

__all__ = ["convert_literal", "parse_expression", "split_args"]
