"""
Domain model for tracked flights and their price observations.

FlightRecord and PriceObservation are owned by the store. Candidate and
ScoredCandidate are request-scoped: they are built for one ranking request
and never persisted.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional


def as_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime (naive values are taken as UTC)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class FlightRecord:
    """A tracked flight (route, airline, date, descriptive fields)"""
    id: Optional[int]
    origin: str
    destination: str
    airline: str
    flight_date: datetime
    aircraft: Optional[str] = None
    cabin_class: str = "Economy"
    departure_time: str = "00:00"
    arrival_time: str = "00:00"
    duration: str = "0h 0m"
    tracking_interval: str = "1day"
    is_active: bool = True

    def __post_init__(self):
        self.origin = self.origin.strip().upper()
        self.destination = self.destination.strip().upper()
        self.flight_date = as_utc(self.flight_date)

    @property
    def route_key(self) -> str:
        return f"{self.origin}-{self.destination}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "origin": self.origin,
            "destination": self.destination,
            "airline": self.airline,
            "flight_date": self.flight_date.isoformat(),
            "aircraft": self.aircraft,
            "cabin_class": self.cabin_class,
            "departure_time": self.departure_time,
            "arrival_time": self.arrival_time,
            "duration": self.duration,
            "tracking_interval": self.tracking_interval,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class PriceObservation:
    """One sampled price for a flight. Append-only."""
    id: Optional[int]
    flight_id: int
    price: float
    captured_at: datetime
    source: str = "system"  # system, automated, manual
    currency: str = "USD"


@dataclass
class Candidate:
    """
    A flight joined with price aggregates computed at query time.

    latest_price is the price of the observation with the greatest
    captured_at, never the last element in storage order.
    variance_ratio is population stddev / mean (None without a usable mean).
    """
    record: FlightRecord
    latest_price: Optional[float] = None
    price_count: int = 0
    avg_price: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    variance_ratio: Optional[float] = None

    @classmethod
    def from_observations(
        cls,
        record: FlightRecord,
        observations: Iterable[PriceObservation],
    ) -> "Candidate":
        """Aggregate a flight's observations into a Candidate"""
        own = [o for o in observations if o.flight_id == record.id]
        if not own:
            return cls(record=record)

        prices = [o.price for o in own]
        # Ties on captured_at go to the later-stored observation
        latest = max(enumerate(own), key=lambda pair: (as_utc(pair[1].captured_at), pair[0]))[1]

        count = len(prices)
        mean = sum(prices) / count
        ratio = None
        if mean != 0:
            variance = sum((p - mean) ** 2 for p in prices) / count
            ratio = math.sqrt(variance) / mean

        return cls(
            record=record,
            latest_price=latest.price,
            price_count=count,
            avg_price=mean,
            min_price=min(prices),
            max_price=max(prices),
            variance_ratio=ratio,
        )

    def to_dict(self) -> dict:
        data = self.record.to_dict()
        data.update({
            "latest_price": self.latest_price,
            "price_count": self.price_count,
            "avg_price": self.avg_price,
            "min_price": self.min_price,
            "max_price": self.max_price,
            "variance_ratio": self.variance_ratio,
        })
        return data


@dataclass
class ScoredCandidate:
    """Candidate plus whichever scores the selected ranking mode produced"""
    candidate: Candidate
    lexical_raw: Optional[float] = None
    lexical_score: Optional[float] = None  # min-max normalized BM25
    vector_raw: Optional[float] = None
    vector_score: Optional[float] = None   # min-max normalized cosine
    fused_score: Optional[float] = None
    composite_score: Optional[float] = None
    alpha: Optional[float] = None

    @property
    def relevance(self) -> float:
        if self.fused_score is not None:
            return self.fused_score
        if self.composite_score is not None:
            return self.composite_score
        return 0.0

    def to_dict(self) -> dict:
        data = self.candidate.to_dict()
        scores = {
            "bm25": self.lexical_score,
            "bm25_raw": self.lexical_raw,
            "cosine": self.vector_score,
            "cosine_raw": self.vector_raw,
            "hybrid": self.fused_score,
            "composite": self.composite_score,
            "alpha": self.alpha,
        }
        data["scores"] = {k: v for k, v in scores.items() if v is not None}
        return data


@dataclass
class Pagination:
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next: bool
    has_prev: bool

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "page_size": self.page_size,
            "total_items": self.total_items,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


@dataclass
class RankingResult:
    """One page of ranked candidates"""
    items: List[ScoredCandidate]
    pagination: Pagination
    applied_filters: dict = field(default_factory=dict)
    mode: str = "hybrid"
    truncated: bool = False


@dataclass(frozen=True)
class Suggestion:
    """Autocomplete entry for the search box"""
    type: str   # "route" or "airline"
    value: str
    label: str
