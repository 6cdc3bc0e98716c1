"""Error types raised across the repository boundary."""

from __future__ import annotations

from enum import Enum


class RepositoryErrorKind(str, Enum):
    """Discriminants for failures surfaced by the image repository."""

    INITIALIZATION_FAILURE = "initialization_failure"
    PERSISTENCE_WRITE_FAILURE = "persistence_write_failure"
    PERSISTENCE_DELETE_FAILURE = "persistence_delete_failure"
    SOURCE_UNAVAILABLE = "source_unavailable"


class RepositoryError(Exception):
    """A failure of a repository operation, tagged with its kind."""

    def __init__(self, kind: RepositoryErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"
