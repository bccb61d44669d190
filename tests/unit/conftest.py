"""Unit test fixtures: sample flights and an in-memory store"""

import pytest

from flight_search.stores.memory import InMemoryFlightStore
from factories import sample_flights, sample_prices


@pytest.fixture
def sample_store() -> InMemoryFlightStore:
    """
    Sample dataset:
    1 Emirates DXB-LHR 2026-01-15 12:00   prices 850, 870 (latest), 860
    2 Singapore SIN-BKK 2026-01-14 23:59  prices 180, 185 (latest)
    3 Thai LHE-BKK 2026-01-16 00:00:01    price 650, Business
    4 Emirates DXB-CDG 2026-02-10         no prices, First
    5 PIA LHE-JED 2026-03-01              inactive
    """
    return InMemoryFlightStore().load(sample_flights(), sample_prices())
