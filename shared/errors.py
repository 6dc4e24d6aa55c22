"""
Structured errors surfaced by the push workflow.

Each error is a `(code, name, context)` triple. The code follows HTTP
conventions (400 client fault, 404 not found, 503 upstream failure), the name
is a stable identifier callers can match on.
"""

from __future__ import annotations

from typing import Any


class PushError(Exception):
    """Named workflow error carrying an HTTP-like code and optional context."""

    def __init__(self, code: int, name: str, context: Any = None):
        super().__init__(name)
        self.code = code
        self.name = name
        self.context = context

    def as_tuple(self) -> list[Any]:
        if self.context is None:
            return [self.code, self.name]
        return [self.code, self.name, self.context]

    def __repr__(self) -> str:
        if self.context is None:
            return f"PushError({self.code}, {self.name!r})"
        return f"PushError({self.code}, {self.name!r}, {self.context!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PushError):
            return NotImplemented
        return (self.code, self.name, self.context) == (other.code, other.name, other.context)

    __hash__ = Exception.__hash__
