"""
Ranking controller: retrieval -> scoring -> sort strategy -> pagination.

Two independently selectable modes:
- hybrid: BM25 + TF-IDF cosine, min-max normalized and blended with alpha
- composite: rule-based score (price stability, recency, price level)

Per request:
1. Validate mode, sort strategy, alpha and paging (before touching the store)
2. Fetch candidates from the store under a timeout, capped at candidate_cap
3. Build corpus + term statistics once
4. Run BM25 and TF-IDF scoring concurrently in worker threads
5. Fuse, sort, paginate

Nothing is cached between requests; every request works on its own snapshot.
"""

import asyncio
import logging
import math
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from .. import config
from ..errors import InvalidFilterError, UpstreamFetchError
from ..filters import SearchFilters, parse_alpha, parse_filters, price_in_range
from ..models import Candidate, Pagination, RankingResult, ScoredCandidate
from .bm25 import BM25Scorer
from .composite import CompositeScorer
from .corpus import TermStatistics, build_corpus
from .fusion import fuse_scores, min_max_normalize
from .strategies import get_strategy
from .vector import TfidfVectorScorer

logger = logging.getLogger(__name__)


class RankingMode(str, Enum):
    HYBRID = "hybrid"
    COMPOSITE = "composite"


def parse_mode(value) -> RankingMode:
    if isinstance(value, RankingMode):
        return value
    try:
        return RankingMode(str(value).strip().lower())
    except ValueError:
        raise InvalidFilterError("mode", f"unknown ranking mode {value!r}. Valid options: hybrid, composite")


def validate_paging(page, page_size, max_page_size: int) -> Tuple[int, int]:
    try:
        page = int(page)
    except (TypeError, ValueError):
        raise InvalidFilterError("page", f"expected an integer, got {page!r}")
    try:
        page_size = int(page_size)
    except (TypeError, ValueError):
        raise InvalidFilterError("page_size", f"expected an integer, got {page_size!r}")
    if page < 1:
        raise InvalidFilterError("page", "must be >= 1")
    if page_size < 1 or page_size > max_page_size:
        raise InvalidFilterError("page_size", f"must be between 1 and {max_page_size}")
    return page, page_size


def paginate(
    items: Sequence[ScoredCandidate],
    page: int,
    page_size: int,
) -> Tuple[List[ScoredCandidate], Pagination]:
    """
    Slice one 1-indexed page out of a sorted list.

    A page past the end is empty but still reports correct totals.
    """
    total = len(items)
    total_pages = math.ceil(total / page_size)
    start = (page - 1) * page_size
    page_items = list(items[start:start + page_size])
    return page_items, Pagination(
        page=page,
        page_size=page_size,
        total_items=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


class RankingEngine:
    """Stateless ranking over a candidate store (one instance can serve all requests)"""

    def __init__(
        self,
        store,
        candidate_cap: int = config.CANDIDATE_CAP,
        fetch_timeout: float = config.FETCH_TIMEOUT_SECONDS,
        max_page_size: int = config.MAX_PAGE_SIZE,
        bm25: Optional[BM25Scorer] = None,
        vector: Optional[TfidfVectorScorer] = None,
        composite: Optional[CompositeScorer] = None,
    ):
        """
        Args:
            store: CandidateStore implementation
            candidate_cap: Maximum candidates scored per request (extra rows are
                dropped and the result is flagged as truncated)
            fetch_timeout: Seconds to wait for the store
            max_page_size: Upper bound accepted for page_size
        """
        self.store = store
        self.candidate_cap = candidate_cap
        self.fetch_timeout = fetch_timeout
        self.max_page_size = max_page_size
        self.bm25 = bm25 or BM25Scorer()
        self.vector = vector or TfidfVectorScorer()
        self.composite = composite or CompositeScorer()

    async def fetch_candidates(self, filters: SearchFilters) -> Tuple[List[Candidate], bool]:
        """
        Fetch at most candidate_cap candidates.

        Store errors and timeouts become UpstreamFetchError. Cancellation is
        not intercepted, so a cancelled request never reaches scoring.
        """
        try:
            candidates = await asyncio.wait_for(
                self.store.fetch_candidates(filters, limit=self.candidate_cap + 1),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Candidate fetch timed out after {self.fetch_timeout}s")
            raise UpstreamFetchError(f"Candidate store timed out after {self.fetch_timeout}s") from e
        except Exception as e:
            logger.error(f"Candidate fetch failed: {e}")
            raise UpstreamFetchError(f"Candidate store failed: {e}") from e

        # Decided on the raw row count: the store had more matches than the cap
        truncated = len(candidates) > self.candidate_cap
        if truncated:
            logger.warning(f"Candidate set truncated to {self.candidate_cap}")
            candidates = candidates[:self.candidate_cap]

        # Stores filter on price already; this keeps the rule in one place for any store
        candidates = [c for c in candidates if price_in_range(c, filters)]
        return candidates, truncated

    async def score_hybrid(
        self,
        candidates: Sequence[Candidate],
        filters: SearchFilters,
        alpha: float,
    ) -> List[ScoredCandidate]:
        if not candidates:
            return []

        corpus = build_corpus(candidates, filters)
        stats = TermStatistics.from_corpus(corpus)

        # Both scorers only read the shared statistics
        bm25_raw, cosine_raw = await asyncio.gather(
            asyncio.to_thread(self.bm25.score_all, corpus.query_tokens, corpus.doc_tokens, stats),
            asyncio.to_thread(self.vector.score_all, corpus.query_tokens, corpus.doc_tokens, stats),
        )

        bm25_norm = min_max_normalize(bm25_raw)
        cosine_norm = min_max_normalize(cosine_raw)
        fused = fuse_scores(bm25_norm, cosine_norm, alpha)

        return [
            ScoredCandidate(
                candidate=candidate,
                lexical_raw=bm25_raw[i],
                lexical_score=bm25_norm[i],
                vector_raw=cosine_raw[i],
                vector_score=cosine_norm[i],
                fused_score=fused[i],
                alpha=alpha,
            )
            for i, candidate in enumerate(candidates)
        ]

    def score_composite(
        self,
        candidates: Sequence[Candidate],
        now: Optional[datetime] = None,
    ) -> List[ScoredCandidate]:
        scores = self.composite.score_all(candidates, now)
        return [
            ScoredCandidate(candidate=candidate, composite_score=score)
            for candidate, score in zip(candidates, scores)
        ]

    async def rank(
        self,
        filters: Union[SearchFilters, dict, None] = None,
        sort_by: str = "relevance",
        alpha=None,
        page=1,
        page_size=None,
        mode=RankingMode.HYBRID,
        now: Optional[datetime] = None,
    ) -> RankingResult:
        """
        Rank candidates matching filters and return one page.

        Args:
            filters: SearchFilters, or a dict of raw values for parse_filters()
            sort_by: relevance | price_asc | price_desc | date_asc | date_desc
            alpha: BM25 weight in [0, 1] for hybrid mode (default from config)
            page: 1-indexed page number
            page_size: Items per page (default from config)
            mode: hybrid | composite
            now: Processing time for the composite recency rule (default: now, UTC)

        Raises:
            InvalidFilterError: before any retrieval, naming the bad field
            UpstreamFetchError: store failure or timeout
        """
        if filters is None:
            filters = SearchFilters()
        elif isinstance(filters, dict):
            filters = parse_filters(**filters)

        mode = parse_mode(mode)
        strategy = get_strategy(sort_by)
        alpha = parse_alpha(alpha, default=config.DEFAULT_ALPHA)
        page, page_size = validate_paging(
            page,
            config.DEFAULT_PAGE_SIZE if page_size is None else page_size,
            self.max_page_size,
        )

        candidates, truncated = await self.fetch_candidates(filters)

        if mode is RankingMode.HYBRID:
            scored = await self.score_hybrid(candidates, filters, alpha)
        else:
            scored = self.score_composite(candidates, now)

        ordered = strategy.sort(scored)
        items, pagination = paginate(ordered, page, page_size)

        logger.info(
            f"Ranked {len(scored)} candidates (mode={mode.value}, sort={strategy.name}, "
            f"page={page}/{pagination.total_pages}, truncated={truncated})"
        )

        applied = filters.to_dict()
        applied["sort_by"] = strategy.name
        if mode is RankingMode.HYBRID:
            applied["alpha"] = alpha

        return RankingResult(
            items=items,
            pagination=pagination,
            applied_filters=applied,
            mode=mode.value,
            truncated=truncated,
        )
