from __future__ import annotations

from typing import Any

from shared.errors import PushError

_TOKENS_PER_BIG_UNIT = 100_000_000


def tokens_as_big_unit(tokens: int | None) -> str | None:
    """Whole-coin string with 8 decimals; None for missing or zero amounts."""
    if not tokens:
        return None
    return f"{tokens / _TOKENS_PER_BIG_UNIT:.8f}"


def format_tokens(tokens: int) -> str:
    """Display form of a token amount, e.g. 2500 → '0.00002500'."""
    return f"{tokens / _TOKENS_PER_BIG_UNIT:.8f}"


def _context_text(context: Any) -> str:
    if context is None:
        return ""
    if isinstance(context, dict):
        parts = []
        for key, value in context.items():
            if isinstance(value, BaseException):
                value = str(value) or type(value).__name__
            parts.append(f"{key}={value}")
        return ", ".join(parts)
    return str(context)


def format_push_error(error: BaseException) -> str:
    """One-line description of a push failure."""
    if isinstance(error, PushError):
        details = _context_text(error.context)
        if details:
            return f"[{error.code}] {error.name} ({details})"
        return f"[{error.code}] {error.name}"
    return f"{type(error).__name__}: {error}"


def error_payload(error: BaseException) -> list[Any]:
    """JSON-safe `[code, name, context?]` for a failure."""
    if not isinstance(error, PushError):
        return [500, "UnexpectedPushPaymentError", {"err": str(error)}]

    if error.context is None:
        return [error.code, error.name]
    if isinstance(error.context, dict):
        context = {
            key: (str(value) if isinstance(value, BaseException) else value)
            for key, value in error.context.items()
        }
        return [error.code, error.name, context]
    return [error.code, error.name, str(error.context)]
