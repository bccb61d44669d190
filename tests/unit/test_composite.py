"""
Unit tests for the rule-based composite scorer.
"""

import pytest

from flight_search.models import Candidate
from flight_search.ranking.composite import CompositeScorer
from factories import make_candidate, make_flight, utc

NOW = utc(2026, 1, 1)


def future_flight(id=1):
    return make_flight(id, "DXB", "LHR", "Emirates", utc(2026, 3, 1))


def past_flight(id=1):
    return make_flight(id, "DXB", "LHR", "Emirates", utc(2025, 6, 1))


class TestCompositeScore:
    """Test additive composite rules"""

    def test_worked_example(self):
        """Test has prices + ratio 0.05 + future + price 500 = 10.5"""
        candidate = Candidate(
            record=future_flight(),
            latest_price=500.0,
            price_count=1,
            avg_price=500.0,
            min_price=500.0,
            max_price=500.0,
            variance_ratio=0.05,
        )
        assert CompositeScorer().score(candidate, NOW) == pytest.approx(10.5)

    def test_single_observation_from_real_aggregation(self):
        """One observation has zero variance: +5 +3 +2 +0.5"""
        candidate = make_candidate(future_flight(), [(500.0, utc(2025, 12, 1))])
        assert candidate.variance_ratio == 0.0
        assert CompositeScorer().score(candidate, NOW) == pytest.approx(10.5)

    def test_no_observations(self):
        """Test no prices: no has-prices, no stability, no competitiveness bonus"""
        candidate = make_candidate(future_flight())
        assert CompositeScorer().score(candidate, NOW) == pytest.approx(2.0)

    def test_past_flight_loses_future_bonus(self):
        candidate = make_candidate(past_flight(), [(500.0, utc(2025, 5, 1))])
        assert CompositeScorer().score(candidate, NOW) == pytest.approx(8.5)

    def test_flight_at_processing_time_counts_as_future(self):
        flight = make_flight(1, "DXB", "LHR", "Emirates", NOW)
        assert CompositeScorer().score(make_candidate(flight), NOW) == pytest.approx(2.0)

    def test_expensive_flight_goes_negative_on_price_term(self):
        """Test competitiveness term is not clamped"""
        candidate = make_candidate(past_flight(), [(1500.0, utc(2025, 5, 1))])
        assert CompositeScorer().score(candidate, NOW) == pytest.approx(5 + 3 - 0.5)

    def test_cheaper_scores_higher(self):
        cheap = make_candidate(future_flight(1), [(200.0, utc(2025, 12, 1))])
        dear = make_candidate(future_flight(2), [(800.0, utc(2025, 12, 1))])
        cheap_score, dear_score = CompositeScorer().score_all([cheap, dear], NOW)
        assert cheap_score - dear_score == pytest.approx(0.6)

    def test_naive_now_treated_as_utc(self):
        candidate = make_candidate(future_flight())
        naive = NOW.replace(tzinfo=None)
        assert CompositeScorer().score(candidate, naive) == CompositeScorer().score(candidate, NOW)


class TestStabilityBonus:
    @pytest.mark.parametrize("ratio,bonus", [
        (0.0, 3.0),
        (0.099, 3.0),
        (0.1, 2.0),
        (0.199, 2.0),
        (0.2, 1.0),
        (0.9, 1.0),
        (None, 1.0),
    ])
    def test_bands(self, ratio, bonus):
        candidate = Candidate(record=future_flight(), price_count=2, avg_price=400.0, variance_ratio=ratio)
        assert CompositeScorer.stability_bonus(candidate) == bonus

    def test_no_average_no_bonus(self):
        candidate = Candidate(record=future_flight())
        assert CompositeScorer.stability_bonus(candidate) == 0.0

    def test_volatile_prices(self):
        """Prices 100 and 300: stddev 100, mean 200, ratio 0.5 -> +1"""
        candidate = make_candidate(
            future_flight(),
            [(100.0, utc(2025, 12, 1)), (300.0, utc(2025, 12, 2))],
        )
        assert candidate.variance_ratio == pytest.approx(0.5)
        assert CompositeScorer.stability_bonus(candidate) == 1.0


class TestScoreAll:
    def test_order_and_length(self):
        candidates = [make_candidate(future_flight(i)) for i in range(1, 4)]
        assert len(CompositeScorer().score_all(candidates, NOW)) == 3

    def test_empty(self):
        assert CompositeScorer().score_all([], NOW) == []
