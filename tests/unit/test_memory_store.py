"""
Unit tests for the in-memory candidate store.
"""

import pytest

from flight_search.errors import InvalidFilterError
from flight_search.filters import SearchFilters, parse_filters
from flight_search.models import PriceObservation
from flight_search.stores import InMemoryFlightStore, PostgresFlightStore, create_store
from factories import make_flight, utc


def ids(candidates):
    return [c.record.id for c in candidates]


@pytest.mark.asyncio
class TestFetchCandidates:
    async def test_active_only_ordered_by_date(self, sample_store):
        candidates = await sample_store.fetch_candidates(SearchFilters())
        assert ids(candidates) == [2, 1, 3, 4]

    async def test_aggregates_use_latest_by_timestamp(self, sample_store):
        candidates = await sample_store.fetch_candidates(parse_filters(origin="DXB", destination="LHR"))
        assert len(candidates) == 1
        assert candidates[0].latest_price == 870.0
        assert candidates[0].price_count == 3

    async def test_price_bounds_on_latest_price(self, sample_store):
        candidates = await sample_store.fetch_candidates(parse_filters(price_min=600, price_max=900))
        assert ids(candidates) == [1, 3]

    async def test_unpriced_excluded_by_price_bound(self, sample_store):
        candidates = await sample_store.fetch_candidates(parse_filters(origin="DXB", price_max=10_000))
        assert ids(candidates) == [1]

    async def test_limit(self, sample_store):
        candidates = await sample_store.fetch_candidates(SearchFilters(), limit=2)
        assert ids(candidates) == [2, 1]

    async def test_limit_counts_after_price_filter(self, sample_store):
        candidates = await sample_store.fetch_candidates(parse_filters(price_min=600), limit=1)
        assert ids(candidates) == [1]

    async def test_empty_store(self):
        assert await InMemoryFlightStore().fetch_candidates(SearchFilters()) == []


@pytest.mark.asyncio
class TestWrites:
    async def test_add_record_assigns_id(self):
        store = InMemoryFlightStore()
        first = await store.add_record(make_flight(None, "DXB", "LHR", "Emirates", utc(2026, 1, 1)))
        second = await store.add_record(make_flight(None, "SIN", "BKK", "Singapore Airlines", utc(2026, 1, 2)))
        assert (first.id, second.id) == (1, 2)

    async def test_add_record_after_load_continues_ids(self, sample_store):
        record = await sample_store.add_record(make_flight(None, "KHI", "DXB", "Emirates", utc(2026, 4, 1)))
        assert record.id == 6

    async def test_add_observation_changes_latest(self, sample_store):
        await sample_store.add_observation(
            PriceObservation(id=None, flight_id=1, price=820.0, captured_at=utc(2025, 12, 10))
        )
        candidates = await sample_store.fetch_candidates(parse_filters(destination="LHR"))
        assert candidates[0].latest_price == 820.0
        assert candidates[0].price_count == 4

    async def test_backdated_observation_does_not_change_latest(self, sample_store):
        observation = await sample_store.add_observation(
            PriceObservation(id=None, flight_id=1, price=999.0, captured_at=utc(2025, 11, 1))
        )
        assert observation.id == 8
        candidates = await sample_store.fetch_candidates(parse_filters(destination="LHR"))
        assert candidates[0].latest_price == 870.0

    async def test_observation_for_unknown_flight(self, sample_store):
        with pytest.raises(KeyError):
            await sample_store.add_observation(
                PriceObservation(id=None, flight_id=42, price=100.0, captured_at=utc(2025, 12, 1))
            )


@pytest.mark.asyncio
class TestSuggestions:
    async def test_routes_and_airlines(self, sample_store):
        suggestions = await sample_store.suggest("bk")
        assert [(s.type, s.value) for s in suggestions] == [
            ("route", "LHE-BKK"),
            ("route", "SIN-BKK"),
        ]

    async def test_airline_match(self, sample_store):
        suggestions = await sample_store.suggest("emir", kind="airlines")
        assert [s.value for s in suggestions] == ["Emirates"]
        assert suggestions[0].label == "Emirates"

    async def test_route_label(self, sample_store):
        suggestions = await sample_store.suggest("lhr", kind="routes")
        assert suggestions[0].value == "DXB-LHR"
        assert suggestions[0].label == "DXB → LHR"

    async def test_inactive_flights_not_suggested(self, sample_store):
        assert await sample_store.suggest("jed") == []

    async def test_short_text(self, sample_store):
        assert await sample_store.suggest("d") == []
        assert await sample_store.suggest("") == []

    async def test_unknown_kind(self, sample_store):
        with pytest.raises(InvalidFilterError) as exc_info:
            await sample_store.suggest("dxb", kind="hotels")
        assert exc_info.value.field == "type"


class TestCreateStore:
    def test_memory_backend(self):
        assert isinstance(create_store("memory"), InMemoryFlightStore)

    def test_postgres_backend_not_connected(self):
        store = create_store("POSTGRES")
        assert isinstance(store, PostgresFlightStore)
        assert store.pool is None

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown store backend"):
            create_store("sqlite")
