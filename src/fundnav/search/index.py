"""Fuzzy instrument search over the directory snapshot.

Each descriptor contributes three fields (scheme code, display name, growth
ISIN). Fields are embedded as TF-IDF vectors of character n-grams taken
within word boundaries, which makes matching tolerant of typos, word order,
and partial words. A field that contains the query verbatim gets a bonus of
1.0 on top of its cosine similarity, so plain substring hits always rank
above purely fuzzy ones.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity as sklearn_cosine

from fundnav.core.models import InstrumentDescriptor

logger = logging.getLogger(__name__)

# Character n-gram parameters tuned for short fund names and identifiers
TFIDF_PARAMS: dict[str, object] = {
    "analyzer": "char_wb",
    "ngram_range": (2, 3),
    "lowercase": True,
    "strip_accents": "unicode",
    "sublinear_tf": True,
    "min_df": 1,
}

SUBSTRING_BONUS = 1.0
_FIELDS_PER_DESCRIPTOR = 3
_WHITESPACE = re.compile(r"\s+")


@runtime_checkable
class SearchIndex(Protocol):
    """Minimal fuzzy lookup capability used by the cache store."""

    def query(self, text: str, limit: int | None = None) -> list[InstrumentDescriptor]:
        """Matching descriptors, best match first."""
        ...

    def __len__(self) -> int: ...


class TfidfSearchIndex:
    """Character n-gram TF-IDF index with a loose similarity threshold.

    Build once per directory snapshot with :meth:`build`; instances are
    never modified afterwards.
    """

    def __init__(
        self,
        descriptors: tuple[InstrumentDescriptor, ...],
        field_texts: list[str],
        vectorizer: TfidfVectorizer | None,
        matrix,
        threshold: float,
        max_results: int,
    ) -> None:
        self._descriptors = descriptors
        self._field_texts = field_texts
        self._vectorizer = vectorizer
        self._matrix = matrix
        self._threshold = threshold
        self._max_results = max_results

    @classmethod
    def build(
        cls,
        descriptors: Iterable[InstrumentDescriptor],
        threshold: float = 0.3,
        max_results: int = 50,
    ) -> TfidfSearchIndex:
        descriptors = tuple(descriptors)
        field_texts = [
            _normalize(text)
            for d in descriptors
            for text in (str(d.id), d.display_name, d.alt_id or "")
        ]

        vectorizer: TfidfVectorizer | None = None
        matrix = None
        if descriptors:
            vectorizer = TfidfVectorizer(**TFIDF_PARAMS)
            matrix = vectorizer.fit_transform(field_texts)

        logger.debug("Built search index over %d instruments", len(descriptors))
        return cls(descriptors, field_texts, vectorizer, matrix, threshold, max_results)

    def __len__(self) -> int:
        return len(self._descriptors)

    def query(self, text: str, limit: int | None = None) -> list[InstrumentDescriptor]:
        needle = _normalize(text)
        if not needle or self._vectorizer is None:
            return []

        query_vec = self._vectorizer.transform([needle])
        similarity = sklearn_cosine(self._matrix, query_vec).ravel()
        bonus = np.fromiter(
            (SUBSTRING_BONUS if needle in field else 0.0 for field in self._field_texts),
            dtype=float,
            count=len(self._field_texts),
        )
        scores = (similarity + bonus).reshape(-1, _FIELDS_PER_DESCRIPTOR).max(axis=1)

        candidates = np.flatnonzero(scores >= self._threshold)
        ranked = candidates[np.argsort(-scores[candidates], kind="stable")]
        cap = limit if limit is not None else self._max_results
        return [self._descriptors[i] for i in ranked[:cap]]


def _normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip().lower()
