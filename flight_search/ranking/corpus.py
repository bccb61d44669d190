"""
Corpus builder and term statistics.

One document per candidate: airline, origin, destination, aircraft and cabin
class joined with single spaces. The query document is the free-text query,
or the structured filters when no free text was given.

TermStatistics is computed once per request and shared (read-only) by the
BM25 and TF-IDF scorers, which may run concurrently.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..filters import SearchFilters, searchable_fields
from ..models import Candidate
from .tokenizer import tokenize

logger = logging.getLogger(__name__)


@dataclass
class Corpus:
    doc_tokens: List[List[str]]
    query_tokens: List[str]

    def __len__(self) -> int:
        return len(self.doc_tokens)


@dataclass
class TermStatistics:
    """
    Collection statistics over the candidate documents.

    vocabulary: term -> index, first-seen order over documents, then
        query-only terms appended
    document_frequency: term -> number of documents containing it
    n_docs: number of documents, at least 1
    avgdl: mean document length in tokens (total / n_docs)
    """
    vocabulary: Dict[str, int] = field(default_factory=dict)
    document_frequency: Dict[str, int] = field(default_factory=dict)
    n_docs: int = 1
    avgdl: float = 0.0

    def df(self, term: str) -> int:
        return self.document_frequency.get(term, 0)

    @classmethod
    def from_corpus(cls, corpus: Corpus) -> "TermStatistics":
        vocabulary: Dict[str, int] = {}
        document_frequency: Counter = Counter()

        for tokens in corpus.doc_tokens:
            for term in tokens:
                if term not in vocabulary:
                    vocabulary[term] = len(vocabulary)
            document_frequency.update(set(tokens))

        for term in corpus.query_tokens:
            if term not in vocabulary:
                vocabulary[term] = len(vocabulary)

        n_docs = max(len(corpus.doc_tokens), 1)
        total_tokens = sum(len(tokens) for tokens in corpus.doc_tokens)

        stats = cls(
            vocabulary=vocabulary,
            document_frequency=dict(document_frequency),
            n_docs=n_docs,
            avgdl=total_tokens / n_docs,
        )
        logger.debug(
            f"Term statistics: {len(corpus)} docs, {len(vocabulary)} terms, "
            f"avgdl={stats.avgdl:.2f}"
        )
        return stats


def document_text(candidate: Candidate) -> str:
    return " ".join(searchable_fields(candidate.record))


def build_corpus(candidates: Sequence[Candidate], filters: SearchFilters) -> Corpus:
    """Tokenize every candidate document and the query document"""
    return Corpus(
        doc_tokens=[tokenize(document_text(c)) for c in candidates],
        query_tokens=tokenize(filters.query_text()),
    )
