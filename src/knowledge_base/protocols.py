"""Protocols for dependency injection in the knowledge base core."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class Notifier(Protocol):
    """Receives degraded-operation warnings and errors from core components."""

    def warn(self, message: str, *, error: BaseException | None = None) -> None:
        """Report a recoverable problem."""
        ...

    def error(self, message: str, *, error: BaseException | None = None) -> None:
        """Report a failure the caller will see."""
        ...
