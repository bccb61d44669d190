"""In-process candidate store (tests, demos, small fixed datasets)"""

import dataclasses
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from ..filters import SearchFilters, price_in_range, record_matches
from ..models import Candidate, FlightRecord, PriceObservation, Suggestion
from .base import (
    MIN_SUGGESTION_LENGTH,
    SUGGESTIONS_PER_KIND,
    CandidateStore,
    airline_suggestion,
    route_suggestion,
    validate_suggestion_kind,
)

logger = logging.getLogger(__name__)


class InMemoryFlightStore(CandidateStore):
    def __init__(self):
        self.records: Dict[int, FlightRecord] = {}
        self.observations: Dict[int, List[PriceObservation]] = defaultdict(list)
        self._next_record_id = 1
        self._next_observation_id = 1

    def load(self, records: Iterable[FlightRecord], observations: Iterable[PriceObservation] = ()):
        """Bulk-load records and observations that already carry ids"""
        for record in records:
            self.records[record.id] = record
            self._next_record_id = max(self._next_record_id, record.id + 1)
        for observation in observations:
            self.observations[observation.flight_id].append(observation)
            self._next_observation_id = max(self._next_observation_id, observation.id + 1)
        return self

    async def add_record(self, record: FlightRecord) -> FlightRecord:
        if record.id is None:
            record = dataclasses.replace(record, id=self._next_record_id)
        self._next_record_id = max(self._next_record_id, record.id + 1)
        self.records[record.id] = record
        return record

    async def add_observation(self, observation: PriceObservation) -> PriceObservation:
        if observation.flight_id not in self.records:
            raise KeyError(f"Flight not found: {observation.flight_id}")
        if observation.id is None:
            observation = dataclasses.replace(observation, id=self._next_observation_id)
        self._next_observation_id = max(self._next_observation_id, observation.id + 1)
        self.observations[observation.flight_id].append(observation)
        return observation

    async def fetch_candidates(
        self,
        filters: SearchFilters,
        limit: Optional[int] = None,
    ) -> List[Candidate]:
        matched = [r for r in self.records.values() if record_matches(r, filters)]
        matched.sort(key=lambda r: (r.flight_date, r.id))

        candidates = []
        for record in matched:
            candidate = Candidate.from_observations(record, self.observations.get(record.id, []))
            if not price_in_range(candidate, filters):
                continue
            candidates.append(candidate)
            if limit is not None and len(candidates) >= limit:
                break

        logger.debug(f"In-memory fetch: {len(candidates)} candidates of {len(self.records)} flights")
        return candidates

    async def suggest(self, text: str, kind: str = "all", limit: int = 20) -> List[Suggestion]:
        validate_suggestion_kind(kind)
        if not text or len(text) < MIN_SUGGESTION_LENGTH:
            return []
        needle = text.casefold()
        active = sorted(
            (r for r in self.records.values() if r.is_active),
            key=lambda r: (r.origin, r.destination, r.airline),
        )

        suggestions: List[Suggestion] = []
        if kind in ("all", "routes"):
            routes = dict.fromkeys(
                (r.origin, r.destination) for r in active
                if needle in r.origin.casefold() or needle in r.destination.casefold()
            )
            suggestions.extend(route_suggestion(o, d) for o, d in list(routes)[:SUGGESTIONS_PER_KIND])
        if kind in ("all", "airlines"):
            airlines = dict.fromkeys(sorted(r.airline for r in active if needle in r.airline.casefold()))
            suggestions.extend(airline_suggestion(a) for a in list(airlines)[:SUGGESTIONS_PER_KIND])
        return suggestions[:limit]
