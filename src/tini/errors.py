"""Tini exception hierarchy.

Shared across the pattern compiler, Router, dispatch and the ASGI
adapter so every module raises and catches the same types.
"""

from dataclasses import dataclass


class TiniError(Exception):
    """Root of every exception tini raises on purpose."""


class ConfigurationError(TiniError):
    """Raised when routes or app configuration are invalid.

    Surfaces during registration or ``App._freeze()``, before any
    request is served.
    """


class PatternError(ConfigurationError):
    """A path pattern could not be compiled into a matcher."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid route pattern {pattern!r}: {reason}")


@dataclass(frozen=True, slots=True)
class HTTPError(TiniError):
    """Raise from a handler to answer with this status instead of a 500.

    The ASGI adapter sends ``detail`` as the body (the standard reason
    phrase when empty) and appends ``headers``.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404. Raised by a handler that wants the canonical not-found reply."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)
