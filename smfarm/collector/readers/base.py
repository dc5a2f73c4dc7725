"""Base class for raw row sources."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional


class RowSourceError(Exception):
    """Raised when a row source cannot deliver rows."""


@dataclass(frozen=True)
class RowQuery:
    """What to fetch: newest first, optionally bounded."""
    limit: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    device: Optional[str] = None


class RowSource(ABC):
    """Base class for all upstream row sources.

    Rows are lists of raw cell values in the fixed sheet column order,
    newest first.
    """

    @abstractmethod
    async def fetch_rows(self, query: RowQuery) -> List[List[Any]]:
        """Fetch raw rows matching the query."""
        pass

    @abstractmethod
    async def check_health(self) -> bool:
        """Basic health check - can we reach the source?"""
        pass
