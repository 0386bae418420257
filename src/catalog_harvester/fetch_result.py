"""
FetchResult module distinguishing confirmed-empty harvests from failed ones
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, List, Optional


class HarvestError(Exception):
    """Base class for every failure raised while harvesting catalog data"""
    pass


class ShapeMismatchError(HarvestError):
    """Raised when a response is missing the expected nested connection fields"""

    def __init__(self, resource: str, path: tuple):
        self.resource = resource
        self.path = path
        super().__init__(
            f"Response for '{resource}' is missing expected path "
            f"{'.'.join(str(part) for part in path)}"
        )


class FetchOutcome(Enum):
    """Terminal state of a single fetch operation"""
    SUCCESS = "success"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class FetchResult:
    """
    Outcome of a resource fetch

    EMPTY means the API confirmed there is nothing to return. FAILED means the
    answer could not be determined; `items` then holds whatever was gathered
    before the failure.
    """
    outcome: FetchOutcome
    items: List[Any] = field(default_factory=list)
    error: Optional[HarvestError] = None

    @classmethod
    def from_items(cls, items: List[Any]) -> 'FetchResult':
        """Build SUCCESS or EMPTY depending on whether any items were found"""
        if items:
            return cls(FetchOutcome.SUCCESS, list(items))
        return cls(FetchOutcome.EMPTY, [])

    @classmethod
    def failed(cls, error: HarvestError, items: Optional[List[Any]] = None) -> 'FetchResult':
        return cls(FetchOutcome.FAILED, list(items or []), error)

    @property
    def ok(self) -> bool:
        return self.outcome is not FetchOutcome.FAILED

    def raise_for_failure(self) -> None:
        """Re-raise the underlying error when the fetch failed"""
        if self.outcome is FetchOutcome.FAILED and self.error is not None:
            raise self.error
