"""
Ranking error hierarchy.

Every failure surfaced by the ranking core derives from RankingError so
callers can catch the whole family in one place. Best-effort code paths
recover from DependencyUnavailable and ConfigLookupFailure with neutral
defaults; NotFound is only raised at top-level entry points.
"""

from typing import Optional


class RankingError(Exception):
    """Base class for ranking core errors."""


class DependencyUnavailable(RankingError):
    """An external dependency (embedding provider, lookup) failed."""

    def __init__(self, dependency: str, message: str = "", cause: Optional[BaseException] = None):
        self.dependency = dependency
        self.cause = cause
        super().__init__(f"{dependency} unavailable: {message}" if message else f"{dependency} unavailable")


class NotFound(RankingError):
    """A required subject, job or content item does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class DimensionMismatch(RankingError, ValueError):
    """Two vectors that must share a dimension do not."""

    def __init__(self, left: int, right: int):
        self.left = left
        self.right = right
        super().__init__(f"Vector dimension mismatch: {left} != {right}")


class ConfigLookupFailure(RankingError):
    """A weight configuration could not be read or parsed."""


class PersistenceFailure(RankingError):
    """A write to the backing store failed."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Persistence failure during {operation}: {cause}")
