"""Error taxonomy for the knowledge base core."""

from collections.abc import Iterable


class KnowledgeBaseError(Exception):
    """Base class for all knowledge base errors.

    Carries the ids of the offending nodes, when there are any.
    """

    def __init__(self, message: str, *, ids: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.ids: tuple[str, ...] = tuple(ids)


class ValidationError(KnowledgeBaseError):
    """Malformed or missing input, or a structural rule the input would break."""


class NotFoundError(KnowledgeBaseError):
    """A referenced node does not exist."""


class ParentNotFoundError(NotFoundError, ValidationError):
    """The requested parent id does not resolve to a node."""


class ConflictError(KnowledgeBaseError):
    """The operation would violate a tree invariant."""


class SearchEngineUnavailable(KnowledgeBaseError):
    """The ranked full-text engine failed; callers fall back to substring search."""


class PersistenceFailure(KnowledgeBaseError):
    """A transaction or storage operation failed."""
