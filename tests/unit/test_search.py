"""Tests for fundnav.search.index."""

from __future__ import annotations

import pytest

from fundnav.core.models import InstrumentDescriptor
from fundnav.search.index import SearchIndex, TfidfSearchIndex


@pytest.fixture
def index(sample_descriptors) -> TfidfSearchIndex:
    return TfidfSearchIndex.build(sample_descriptors, threshold=0.3, max_results=50)


def _ids(results: list[InstrumentDescriptor]) -> list[int]:
    return [d.id for d in results]


class TestBuild:
    def test_satisfies_protocol(self, index):
        assert isinstance(index, SearchIndex)
        assert len(index) == 5

    def test_empty_directory_matches_nothing(self):
        empty = TfidfSearchIndex.build([])
        assert len(empty) == 0
        assert empty.query("axis") == []


class TestQuery:
    def test_exact_name_ranks_first(self, index):
        assert _ids(index.query("Axis Bluechip Fund"))[0] == 120465

    def test_case_insensitive(self, index):
        assert _ids(index.query("sbi liquid"))[0] == 119551

    def test_partial_word(self, index):
        results = _ids(index.query("parik"))
        assert results[0] == 122639

    def test_typo_tolerated(self, index):
        assert _ids(index.query("axsi bluechip"))[0] == 120465

    def test_word_order_ignored(self, index):
        assert _ids(index.query("bluechip axis"))[0] == 120465

    def test_matches_scheme_code(self, index):
        assert _ids(index.query("119551"))[0] == 119551

    def test_partial_scheme_code(self, index):
        assert 118989 in _ids(index.query("11898"))

    def test_matches_isin(self, index):
        assert _ids(index.query("INF846K01EW2"))[0] == 120503

    def test_substring_hits_rank_above_fuzzy_hits(self, index):
        results = _ids(index.query("axis"))
        assert set(results[:2]) == {120465, 120503}

    def test_more_specific_query_ranks_its_fund_first(self, index):
        assert _ids(index.query("axis midcap"))[0] == 120503

    def test_unrelated_query_returns_nothing(self, index):
        assert index.query("zzqqxx") == []

    @pytest.mark.parametrize("query", ["", "   ", "\t\n"])
    def test_blank_query_returns_nothing(self, index, query):
        assert index.query(query) == []

    def test_limit(self, index):
        assert len(index.query("fund", limit=2)) == 2

    def test_max_results_default_cap(self, sample_descriptors):
        capped = TfidfSearchIndex.build(sample_descriptors, max_results=3)
        assert len(capped.query("fund")) == 3

    def test_threshold_filters_weak_matches(self, sample_descriptors):
        strict = TfidfSearchIndex.build(sample_descriptors, threshold=1.0)
        # Only verbatim substring hits reach 1.0
        assert set(_ids(strict.query("axis"))) == {120465, 120503}
        assert strict.query("axsi") == []

    def test_returns_descriptors_not_scores(self, index):
        results = index.query("liquid")
        assert all(isinstance(d, InstrumentDescriptor) for d in results)
