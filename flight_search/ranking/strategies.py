"""
Sort strategies applied to an already-scored candidate set.

Strategies are registered by name so new orderings can be added without
touching the scorers:

    relevance   relevance score desc, ties by latest price asc (missing last)
    price_asc   latest price asc, missing prices last
    price_desc  latest price desc, missing prices last
    date_asc    flight date asc
    date_desc   flight date desc

All strategies use Python's stable sort, so equal keys keep retrieval order.
"""

import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Sequence

from ..errors import InvalidFilterError
from ..models import ScoredCandidate


class SortBy(str, Enum):
    RELEVANCE = "relevance"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    DATE_ASC = "date_asc"
    DATE_DESC = "date_desc"


def _price_or(item: ScoredCandidate, missing: float) -> float:
    price = item.candidate.latest_price
    return missing if price is None else price


class SortStrategy(ABC):
    name: str

    @abstractmethod
    def sort(self, items: Sequence[ScoredCandidate]) -> List[ScoredCandidate]:
        """Return a new, ordered list"""


class RelevanceSort(SortStrategy):
    name = SortBy.RELEVANCE.value

    def sort(self, items):
        return sorted(items, key=lambda i: (-i.relevance, _price_or(i, math.inf)))


class PriceAscSort(SortStrategy):
    name = SortBy.PRICE_ASC.value

    def sort(self, items):
        return sorted(items, key=lambda i: _price_or(i, math.inf))


class PriceDescSort(SortStrategy):
    name = SortBy.PRICE_DESC.value

    def sort(self, items):
        return sorted(items, key=lambda i: _price_or(i, -math.inf), reverse=True)


class DateAscSort(SortStrategy):
    name = SortBy.DATE_ASC.value

    def sort(self, items):
        return sorted(items, key=lambda i: i.candidate.record.flight_date)


class DateDescSort(SortStrategy):
    name = SortBy.DATE_DESC.value

    def sort(self, items):
        return sorted(items, key=lambda i: i.candidate.record.flight_date, reverse=True)


SORT_STRATEGIES: Dict[str, SortStrategy] = {}


def register_strategy(strategy: SortStrategy) -> SortStrategy:
    SORT_STRATEGIES[strategy.name] = strategy
    return strategy


for _strategy in (RelevanceSort(), PriceAscSort(), PriceDescSort(), DateAscSort(), DateDescSort()):
    register_strategy(_strategy)


def get_strategy(name) -> SortStrategy:
    """Look up a strategy by name (None or blank means relevance)"""
    if isinstance(name, SortBy):
        name = name.value
    if name is None or not str(name).strip():
        name = SortBy.RELEVANCE.value
    key = str(name).strip().lower()
    strategy = SORT_STRATEGIES.get(key)
    if strategy is None:
        raise InvalidFilterError(
            "sort_by",
            f"unknown sort strategy {name!r}. Valid options: {', '.join(sorted(SORT_STRATEGIES))}"
        )
    return strategy
