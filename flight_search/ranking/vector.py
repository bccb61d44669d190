"""
TF-IDF vector space scorer (cosine similarity).

This is the "semantic" half of hybrid ranking: a sparse bag-of-words vector
space, not a learned embedding.

    idf_tf(t) = ln((N + 1) / (df(t) + 1)) + 1      (always >= 1)
    v(d)[t]   = count(t in d) × idf_tf(t)
    cos(q, d) = q·d / (max(|q|, eps) × max(|d|, eps))

Vectors are laid out over the extended vocabulary (document terms in
first-seen order, then query-only terms). Memory is O(candidates × terms),
which is why the engine caps the candidate set before scoring.
"""

from typing import List, Sequence

import numpy as np

from .corpus import TermStatistics

NORM_EPSILON = 1e-12


class TfidfVectorScorer:
    def __init__(self, epsilon: float = NORM_EPSILON):
        self.epsilon = epsilon

    def idf_weights(self, stats: TermStatistics) -> np.ndarray:
        weights = np.zeros(len(stats.vocabulary), dtype=np.float64)
        for term, index in stats.vocabulary.items():
            weights[index] = np.log((stats.n_docs + 1) / (stats.df(term) + 1)) + 1
        return weights

    def vectorize(self, tokens: Sequence[str], stats: TermStatistics, weights: np.ndarray) -> np.ndarray:
        """Raw term counts scaled by idf_tf, aligned to the vocabulary order"""
        vector = np.zeros(len(stats.vocabulary), dtype=np.float64)
        for term in tokens:
            index = stats.vocabulary.get(term)
            if index is not None:
                vector[index] += 1.0
        return vector * weights

    def score_all(
        self,
        query_tokens: Sequence[str],
        doc_tokens: Sequence[Sequence[str]],
        stats: TermStatistics,
    ) -> List[float]:
        """Cosine similarity between the query and each document, in input order"""
        if not doc_tokens:
            return []

        weights = self.idf_weights(stats)
        query_vec = self.vectorize(query_tokens, stats, weights)
        doc_matrix = np.vstack([self.vectorize(tokens, stats, weights) for tokens in doc_tokens])

        query_norm = max(float(np.linalg.norm(query_vec)), self.epsilon)
        doc_norms = np.maximum(np.linalg.norm(doc_matrix, axis=1), self.epsilon)

        similarities = (doc_matrix @ query_vec) / (doc_norms * query_norm)
        return [float(s) for s in similarities]
