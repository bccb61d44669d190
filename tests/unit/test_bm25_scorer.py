"""
Unit tests for the BM25 scorer.
"""

import math

import pytest

from flight_search.ranking.bm25 import BM25Scorer
from flight_search.ranking.corpus import Corpus, TermStatistics
from flight_search.ranking.tokenizer import tokenize


def stats_for(docs, query=()):
    return TermStatistics.from_corpus(Corpus(doc_tokens=list(docs), query_tokens=list(query)))


class TestBM25Scorer:
    """Test BM25 scoring logic"""

    def test_overlap_scores_positive_and_no_overlap_scores_zero(self):
        """Test 'emirates lhr' against an Emirates DXB-LHR doc and a Singapore doc"""
        docs = [tokenize("emirates dxb lhr"), tokenize("singapore sin bkk")]
        query = tokenize("emirates lhr")
        stats = stats_for(docs, query)

        scores = BM25Scorer().score_all(query, docs, stats)

        assert scores[0] > 0
        assert scores[1] == 0.0

    def test_default_parameters(self):
        scorer = BM25Scorer()
        assert scorer.k1 == 1.5
        assert scorer.b == 0.75

    def test_idf_formula(self):
        """Test idf(t) = ln(1 + (N - df + 0.5) / (df + 0.5))"""
        stats = stats_for([["dxb"], ["dxb"], ["lhr"]])
        scorer = BM25Scorer()

        assert scorer.idf("dxb", stats) == pytest.approx(math.log(1 + (3 - 2 + 0.5) / (2 + 0.5)))
        assert scorer.idf("lhr", stats) == pytest.approx(math.log(1 + (3 - 1 + 0.5) / (1 + 0.5)))
        # Rarer terms weigh more
        assert scorer.idf("lhr", stats) > scorer.idf("dxb", stats)

    def test_exact_single_term_score(self):
        """Test the full formula on a hand-computed case"""
        docs = [["emirates", "dxb", "lhr"], ["singapore", "sin", "bkk", "economy"]]
        stats = stats_for(docs)  # N=2, avgdl=3.5
        scorer = BM25Scorer()

        idf = math.log(1 + (2 - 1 + 0.5) / (1 + 0.5))
        tf_part = (1 * 2.5) / (1 + 1.5 * (1 - 0.75 + 0.75 * (3 / 3.5)))

        assert scorer.score(["lhr"], docs[0], stats) == pytest.approx(idf * tf_part)

    def test_term_frequency_saturation(self):
        """Test that repeated terms add less and less"""
        docs = [["dxb"] * 1 + ["x"] * 9, ["dxb"] * 2 + ["x"] * 8, ["dxb"] * 4 + ["x"] * 6, ["y"] * 10]
        stats = stats_for(docs)
        scorer = BM25Scorer()
        s1, s2, s4 = (scorer.score(["dxb"], d, stats) for d in docs[:3])

        assert s1 < s2 < s4
        assert (s4 - s2) < 2 * (s2 - s1)

    def test_length_normalization(self):
        """Test that a longer document with the same tf scores lower"""
        short_doc = ["dxb", "lhr"]
        long_doc = ["dxb", "a", "b", "c", "d", "e", "f", "g"]
        stats = stats_for([short_doc, long_doc])
        scorer = BM25Scorer()

        assert scorer.score(["dxb"], short_doc, stats) > scorer.score(["dxb"], long_doc, stats)

    def test_no_length_normalization_when_b_zero(self):
        short_doc = ["dxb", "lhr"]
        long_doc = ["dxb", "a", "b", "c", "d", "e", "f", "g"]
        stats = stats_for([short_doc, long_doc])
        scorer = BM25Scorer(b=0.0)

        assert scorer.score(["dxb"], short_doc, stats) == pytest.approx(scorer.score(["dxb"], long_doc, stats))

    def test_repeated_query_term_counts_per_occurrence(self):
        docs = [["dxb", "lhr"], ["sin"]]
        stats = stats_for(docs)
        scorer = BM25Scorer()

        once = scorer.score(["dxb"], docs[0], stats)
        twice = scorer.score(["dxb", "dxb"], docs[0], stats)
        assert twice == pytest.approx(2 * once)

    def test_empty_inputs(self):
        stats = stats_for([["dxb"]])
        scorer = BM25Scorer()
        assert scorer.score([], ["dxb"], stats) == 0.0
        assert scorer.score(["dxb"], [], stats) == 0.0
        assert scorer.score_all(["dxb"], [], stats) == []

    def test_all_empty_documents(self):
        """Test avgdl == 0 does not raise or produce NaN"""
        stats = stats_for([[], []], ["dxb"])
        scores = BM25Scorer().score_all(["dxb"], [[], []], stats)
        assert scores == [0.0, 0.0]
