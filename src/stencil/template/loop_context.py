"""Loop iteration metadata for ``{% for %}`` blocks."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ForLoopContext:
    """Per-loop state exposed as ``forloop`` inside a ``{% for %}`` body.

    Attribute names are the template-facing spelling:

    Attributes:
        Counter: 0-based iteration index
        Counter1: 1-based iteration index
        Max: index of the last iteration
        Max1: number of iterations
        First: True during the first iteration
        Last: True during the final iteration

    Inside nested loops every active loop is also reachable by depth
    through ``forloops`` (outermost first):

        ```
        {% for word in words %}{% for char in word %}
            {{ forloops.0.Counter }}.{{ forloops.1.Counter }}
        {% endfor %}{% endfor %}
        ```
    """

    Counter: int = 0
    Counter1: int = 1
    Max: int = 0
    Max1: int = 0
    First: bool = True
    Last: bool = False

    @classmethod
    def for_length(cls, length: int) -> ForLoopContext:
        return cls(Max=length - 1, Max1=length, Last=length == 1)

    def advance(self) -> None:
        """Move to the next iteration."""
        self.Counter += 1
        self.Counter1 += 1
        self.First = False
        self.Last = self.Counter == self.Max
