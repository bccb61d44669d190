"""
Hybrid relevance ranking for flight search.

Components:
- tokenizer: lowercase alphanumeric/hyphen tokens
- corpus: candidate documents, query document, term statistics
- bm25: lexical scoring with collection IDF (k1=1.5, b=0.75)
- vector: TF-IDF vectors + cosine similarity
- fusion: min-max normalization and alpha-weighted blend
- composite: rule-based score for the advanced mode
- strategies: pluggable sort orders
- engine: request orchestration and pagination
"""

from .tokenizer import tokenize
from .corpus import Corpus, TermStatistics, build_corpus
from .bm25 import BM25Scorer
from .vector import TfidfVectorScorer
from .fusion import min_max_normalize, fuse_scores
from .composite import CompositeScorer
from .strategies import SortBy, SortStrategy, get_strategy, register_strategy
from .engine import RankingEngine, RankingMode, paginate

__all__ = [
    "tokenize",
    "Corpus",
    "TermStatistics",
    "build_corpus",
    "BM25Scorer",
    "TfidfVectorScorer",
    "min_max_normalize",
    "fuse_scores",
    "CompositeScorer",
    "SortBy",
    "SortStrategy",
    "get_strategy",
    "register_strategy",
    "RankingEngine",
    "RankingMode",
    "paginate",
]
