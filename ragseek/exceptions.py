"""Exceptions raised by ragseek retrievers, stores and indexers."""

from __future__ import annotations

from typing import Optional


class RagseekError(Exception):
    """Base exception for ragseek."""

    def __init__(self, message: str, *, details: Optional[str] = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigurationError(RagseekError, ValueError):
    """Raised when a component is built with a missing collaborator or a bad option."""


class RetrievalStageError(RagseekError):
    """
    Raised when a collaborator fails during retrieval.

    ``stage`` names the step that failed (``embed_query``, ``search``,
    ``generate``, ``split``, ...). The original exception is chained as
    ``__cause__``.
    """

    def __init__(
        self, stage: str, message: str, *, details: Optional[str] = None
    ) -> None:
        self.stage = stage
        super().__init__(f"{stage}: {message}", details=details)


class IndexingError(RetrievalStageError):
    """Raised when writing documents or nodes into an index fails."""


class RetrievalCancelledError(RagseekError):
    """Raised when a caller cancels an in-progress operation."""
