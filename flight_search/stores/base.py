"""
Abstract base class for candidate stores.

The ranking engine only talks to this interface. Every implementation must
apply the matching rules in flight_search.filters and compute price
aggregates explicitly (latest price = greatest captured_at).
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..errors import InvalidFilterError
from ..filters import SearchFilters
from ..models import Candidate, FlightRecord, PriceObservation, Suggestion

MIN_SUGGESTION_LENGTH = 2
SUGGESTIONS_PER_KIND = 10
SUGGESTION_KINDS = ("all", "routes", "airlines")


def route_suggestion(origin: str, destination: str) -> Suggestion:
    return Suggestion(type="route", value=f"{origin}-{destination}", label=f"{origin} → {destination}")


def airline_suggestion(airline: str) -> Suggestion:
    return Suggestion(type="airline", value=airline, label=airline)


class CandidateStore(ABC):
    """Read side for ranking plus the append operations used by price samplers"""

    @abstractmethod
    async def fetch_candidates(
        self,
        filters: SearchFilters,
        limit: Optional[int] = None,
    ) -> List[Candidate]:
        """
        Active flights matching filters, joined with price aggregates.

        Price bounds are applied to the latest price after aggregation.
        Results are ordered by flight date, then id. At most limit candidates
        are returned when limit is given.
        """
        pass

    @abstractmethod
    async def suggest(self, text: str, kind: str = "all", limit: int = 20) -> List[Suggestion]:
        """
        Autocomplete routes and/or airlines containing text (case-insensitive).

        Text shorter than 2 characters yields no suggestions. At most 10 per
        kind, limit in total.
        """
        pass

    @abstractmethod
    async def add_record(self, record: FlightRecord) -> FlightRecord:
        """Insert a flight; returns it with its assigned id"""
        pass

    @abstractmethod
    async def add_observation(self, observation: PriceObservation) -> PriceObservation:
        """Append a price observation; returns it with its assigned id"""
        pass

    async def close(self):
        """Optional cleanup (close pools, etc.)"""
        pass


def validate_suggestion_kind(kind: str) -> str:
    if kind not in SUGGESTION_KINDS:
        raise InvalidFilterError("type", f"unknown suggestion type {kind!r}. Valid options: {', '.join(SUGGESTION_KINDS)}")
    return kind
