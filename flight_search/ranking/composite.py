"""
Rule-based composite relevance for the advanced search mode.

Independent of any text signal. Additive score per candidate:

    +5   has at least one price observation
    +3   price stability: variance ratio < 0.1
    +2                    variance ratio < 0.2
    +1                    otherwise (only when an average price exists)
    +2   flight date is on or after the processing time
    +(1000 - latest_price) × 0.001   price competitiveness, unclamped

Example: one observation, ratio 0.05, future flight, latest price 500
    5 + 3 + 2 + 0.5 = 10.5
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from ..models import Candidate, as_utc


class CompositeScorer:
    def __init__(
        self,
        has_prices_bonus: float = 5.0,
        future_bonus: float = 2.0,
        price_reference: float = 1000.0,
        price_weight: float = 0.001,
    ):
        self.has_prices_bonus = has_prices_bonus
        self.future_bonus = future_bonus
        self.price_reference = price_reference
        self.price_weight = price_weight

    @staticmethod
    def stability_bonus(candidate: Candidate) -> float:
        if candidate.avg_price is None:
            return 0.0
        ratio = candidate.variance_ratio
        if ratio is None:
            return 1.0
        if ratio < 0.1:
            return 3.0
        if ratio < 0.2:
            return 2.0
        return 1.0

    def score(self, candidate: Candidate, now: Optional[datetime] = None) -> float:
        now = as_utc(now) if now else datetime.now(timezone.utc)

        score = self.has_prices_bonus if candidate.price_count > 0 else 0.0
        score += self.stability_bonus(candidate)
        if candidate.record.flight_date >= now:
            score += self.future_bonus
        if candidate.latest_price is not None:
            score += (self.price_reference - candidate.latest_price) * self.price_weight
        return score

    def score_all(self, candidates: Sequence[Candidate], now: Optional[datetime] = None) -> List[float]:
        now = as_utc(now) if now else datetime.now(timezone.utc)
        return [self.score(c, now) for c in candidates]
