"""
BM25 (Best Match 25) lexical scorer.

Formula:
    idf(t)   = ln(1 + (N - df(t) + 0.5) / (df(t) + 0.5))
    score(d) = Σ idf(t) × (f(t) × (k1 + 1)) / (f(t) + k1 × (1 - b + b × dl/avgdl))

Where:
    f(t) = frequency of query term t in document d (terms with f = 0 are skipped)
    dl = document length (tokens), avgdl = mean document length
    k1 = term frequency saturation (1.5), b = length normalization (0.75)

The sum runs over query tokens, so a term repeated in the query counts once
per repetition.
"""

import math
from collections import Counter
from typing import List, Sequence

from .corpus import TermStatistics


class BM25Scorer:
    """BM25 with collection IDF computed over the request's candidate set"""

    def __init__(self, k1: float = 1.5, b: float = 0.75):
        """
        Args:
            k1: Term frequency saturation. Higher = repeated terms keep adding more.
            b: Length normalization. 0 = ignore document length, 1 = full normalization.
        """
        self.k1 = k1
        self.b = b

    def idf(self, term: str, stats: TermStatistics) -> float:
        df = stats.df(term)
        return math.log(1 + (stats.n_docs - df + 0.5) / (df + 0.5))

    def score(
        self,
        query_tokens: Sequence[str],
        doc_tokens: Sequence[str],
        stats: TermStatistics,
    ) -> float:
        """
        BM25 score of one document.

        Returns 0.0 when the document shares no token with the query.
        """
        if not query_tokens or not doc_tokens:
            return 0.0

        tf = Counter(doc_tokens)
        dl = len(doc_tokens)
        avgdl = stats.avgdl or 1.0  # only 0 when every document is empty

        score = 0.0
        for term in query_tokens:
            f = tf.get(term, 0)
            if f == 0:
                continue
            numerator = f * (self.k1 + 1)
            denominator = f + self.k1 * (1 - self.b + self.b * (dl / avgdl))
            score += self.idf(term, stats) * numerator / denominator
        return score

    def score_all(
        self,
        query_tokens: Sequence[str],
        doc_tokens: Sequence[Sequence[str]],
        stats: TermStatistics,
    ) -> List[float]:
        return [self.score(query_tokens, tokens, stats) for tokens in doc_tokens]
