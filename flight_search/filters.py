"""
Search filter parsing and matching.

parse_filters() turns loosely-typed input (query strings, JSON bodies) into a
validated SearchFilters, raising InvalidFilterError with the offending field
name. record_matches() and price_in_range() implement the matching semantics
every candidate store must share:

- only active flights are eligible
- origin / destination / airline / cabin class match exactly, ignoring case
- date bounds are widened to the whole UTC day (00:00:00.000 - 23:59:59.999)
- the free-text query is a case-insensitive substring pre-filter over
  airline, origin, destination, aircraft and cabin class
- price bounds apply to the latest price; flights without any price
  observation fail every explicit bound
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, Optional, Tuple

from .errors import InvalidFilterError
from .models import Candidate, FlightRecord, as_utc

_AIRPORT_CODE = re.compile(r"^[A-Z]{3}$")

DAY_START = time(0, 0, 0, 0)
DAY_END = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class SearchFilters:
    origin: Optional[str] = None
    destination: Optional[str] = None
    category: Optional[str] = None
    query: Optional[str] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    # Advanced search: OR over route pairs / airlines
    routes: Tuple[Tuple[str, str], ...] = ()
    categories: Tuple[str, ...] = ()
    cabin_class: Optional[str] = None

    def __post_init__(self):
        # Airport codes compare exactly, so store them in canonical form
        for name in ("origin", "destination"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, value.strip().upper())
        object.__setattr__(
            self,
            "routes",
            tuple((o.strip().upper(), d.strip().upper()) for o, d in self.routes),
        )

    @property
    def has_price_bounds(self) -> bool:
        return self.price_min is not None or self.price_max is not None

    def query_text(self) -> str:
        """Text used as the ranking query: free text, else the structured filters"""
        if self.query:
            return self.query
        return " ".join(p for p in (self.origin, self.destination, self.category) if p)

    def to_dict(self) -> dict:
        """Non-empty filters in JSON-friendly form (echoed back to callers)"""
        data = {
            "origin": self.origin,
            "destination": self.destination,
            "category": self.category,
            "query": self.query,
            "price_min": self.price_min,
            "price_max": self.price_max,
            "date_start": self.date_start.isoformat() if self.date_start else None,
            "date_end": self.date_end.isoformat() if self.date_end else None,
            "cabin_class": self.cabin_class,
        }
        if self.routes:
            data["routes"] = [f"{o}-{d}" for o, d in self.routes]
        if self.categories:
            data["categories"] = list(self.categories)
        return {k: v for k, v in data.items() if v is not None}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _text(value: Any) -> Optional[str]:
    if _blank(value):
        return None
    return str(value).strip()


def parse_airport_code(value: Any, field: str) -> Optional[str]:
    if _blank(value):
        return None
    code = str(value).strip().upper()
    if not _AIRPORT_CODE.match(code):
        raise InvalidFilterError(field, f"expected a 3-letter airport code, got {value!r}")
    return code


def parse_price(value: Any, field: str) -> Optional[float]:
    if _blank(value):
        return None
    if isinstance(value, bool):
        raise InvalidFilterError(field, f"expected a number, got {value!r}")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise InvalidFilterError(field, f"expected a number, got {value!r}")
    if not math.isfinite(price):
        raise InvalidFilterError(field, f"expected a finite number, got {value!r}")
    return price


def _calendar_day(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return as_utc(value).date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        # Accept a trailing "Z" on full timestamps
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00"))).date()
    except ValueError:
        raise InvalidFilterError(field, f"expected an ISO date (YYYY-MM-DD), got {value!r}")


def parse_date_bound(value: Any, field: str, end_of_day: bool = False) -> Optional[datetime]:
    """Parse a date bound and widen it to the start or end of its UTC day"""
    if _blank(value):
        return None
    day = _calendar_day(value, field)
    return datetime.combine(day, DAY_END if end_of_day else DAY_START, tzinfo=timezone.utc)


def parse_alpha(value: Any, default: float = 0.5) -> float:
    """BM25 weight for hybrid fusion; must be a number in [0, 1]"""
    if _blank(value):
        return default
    if isinstance(value, bool):
        raise InvalidFilterError("alpha", f"expected a number, got {value!r}")
    try:
        alpha = float(value)
    except (TypeError, ValueError):
        raise InvalidFilterError("alpha", f"expected a number, got {value!r}")
    if not 0.0 <= alpha <= 1.0:  # also rejects NaN
        raise InvalidFilterError("alpha", f"must be between 0 and 1, got {value!r}")
    return alpha


def _parse_route(value: Any) -> Tuple[str, str]:
    if isinstance(value, dict):
        origin = value.get("origin", value.get("from"))
        destination = value.get("destination", value.get("to"))
    elif isinstance(value, str) and "-" in value:
        origin, _, destination = value.partition("-")
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        origin, destination = value
    else:
        raise InvalidFilterError("routes", f"expected an origin/destination pair, got {value!r}")
    origin = parse_airport_code(origin, "routes")
    destination = parse_airport_code(destination, "routes")
    if origin is None or destination is None:
        raise InvalidFilterError("routes", f"route needs both origin and destination, got {value!r}")
    return origin, destination


def parse_filters(
    origin: Any = None,
    destination: Any = None,
    category: Any = None,
    query: Any = None,
    price_min: Any = None,
    price_max: Any = None,
    date_start: Any = None,
    date_end: Any = None,
    routes: Optional[Iterable[Any]] = None,
    categories: Optional[Iterable[Any]] = None,
    cabin_class: Any = None,
) -> SearchFilters:
    """
    Validate raw filter values.

    Blank strings are treated as "not provided". Raises InvalidFilterError
    naming the first offending field.

    Example:
        >>> f = parse_filters(origin="dxb", date_start="2026-01-15", date_end="2026-01-15")
        >>> f.origin
        'DXB'
        >>> f.date_end.isoformat()
        '2026-01-15T23:59:59.999000+00:00'
    """
    low = parse_price(price_min, "price_min")
    high = parse_price(price_max, "price_max")
    if low is not None and high is not None and low > high:
        raise InvalidFilterError("price_min", f"price_min ({low}) is greater than price_max ({high})")

    start = parse_date_bound(date_start, "date_start")
    end = parse_date_bound(date_end, "date_end", end_of_day=True)
    if start is not None and end is not None and start > end:
        raise InvalidFilterError("date_start", "date_start is after date_end")

    return SearchFilters(
        origin=parse_airport_code(origin, "origin"),
        destination=parse_airport_code(destination, "destination"),
        category=_text(category),
        query=_text(query),
        price_min=low,
        price_max=high,
        date_start=start,
        date_end=end,
        routes=tuple(_parse_route(r) for r in (routes or ())),
        categories=tuple(c for c in (_text(c) for c in (categories or ())) if c),
        cabin_class=_text(cabin_class),
    )


def searchable_fields(record: FlightRecord) -> Tuple[str, ...]:
    """Fields the free-text pre-filter and the ranking corpus look at, in order"""
    return (
        record.airline or "",
        record.origin or "",
        record.destination or "",
        record.aircraft or "",
        record.cabin_class or "",
    )


def record_matches(record: FlightRecord, filters: SearchFilters) -> bool:
    """Structural + free-text filtering (everything except price bounds)"""
    if not record.is_active:
        return False
    if filters.origin and record.origin != filters.origin:
        return False
    if filters.destination and record.destination != filters.destination:
        return False
    if filters.category and record.airline.casefold() != filters.category.casefold():
        return False
    if filters.categories and record.airline.casefold() not in {c.casefold() for c in filters.categories}:
        return False
    if filters.cabin_class and (record.cabin_class or "").casefold() != filters.cabin_class.casefold():
        return False
    if filters.routes and (record.origin, record.destination) not in set(filters.routes):
        return False
    if filters.date_start and record.flight_date < filters.date_start:
        return False
    if filters.date_end and record.flight_date > filters.date_end:
        return False
    if filters.query:
        needle = filters.query.casefold()
        if not any(needle in value.casefold() for value in searchable_fields(record)):
            return False
    return True


def price_in_range(candidate: Candidate, filters: SearchFilters) -> bool:
    """Price bounds against the latest price; no price fails any bound"""
    if not filters.has_price_bounds:
        return True
    # Missing price: +inf for the lower bound, -inf for the upper bound
    if filters.price_min is not None:
        low_side = candidate.latest_price if candidate.latest_price is not None else math.inf
        if low_side < filters.price_min:
            return False
    if filters.price_max is not None:
        high_side = candidate.latest_price if candidate.latest_price is not None else -math.inf
        if high_side > filters.price_max:
            return False
    return candidate.latest_price is not None
