"""TF-IDF labels for clusters of signal names."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Set, Tuple

EMPTY_LABEL = "empty_cluster"
DEFAULT_TOP_TERMS = 3

_NOISE_WORDS = frozenset({"on", "changed", "pressed", "released", "signal"})


@dataclass
class TermScore:
    term: str
    tf: float
    idf: float
    tfidf: float


def tokenize(signal_name: str) -> List[str]:
    """Split ``signal_name`` on underscores, dropping empty parts and noise words."""
    return [
        token
        for token in signal_name.split("_")
        if token and token.lower() not in _NOISE_WORDS
    ]


class TfidfLabeler:
    """Names a cluster after the terms that set it apart from the rest of the project.

    Term frequency is measured inside the cluster, document frequency across
    every signal passed to :meth:`build_corpus`.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, Set[str]] = {}
        self._total = 0

    def build_corpus(self, signal_names: Iterable[str]) -> None:
        names = list(signal_names)
        self._documents = {}
        self._total = len(names)
        for name in names:
            for token in tokenize(name):
                self._documents.setdefault(token, set()).add(name)

    def generate_label(self, signal_names: Sequence[str], top_n: int = DEFAULT_TOP_TERMS) -> str:
        label, _ = self.label_with_scores(signal_names, top_n)
        return label

    def label_with_scores(
        self, signal_names: Sequence[str], top_n: int = DEFAULT_TOP_TERMS
    ) -> Tuple[str, List[TermScore]]:
        if not signal_names:
            return EMPTY_LABEL, []
        if len(signal_names) == 1:
            return signal_names[0], []

        tokens = [token for name in signal_names for token in tokenize(name)]
        if not tokens:
            return EMPTY_LABEL, []
        frequencies: Dict[str, int] = {}
        for token in tokens:
            frequencies[token] = frequencies.get(token, 0) + 1

        scores = []
        for term, count in frequencies.items():
            tf = count / len(tokens)
            idf = self._idf(term)
            scores.append(TermScore(term=term, tf=tf, idf=idf, tfidf=tf * idf))
        scores.sort(key=lambda item: item.tfidf, reverse=True)

        top = scores[:top_n]
        return "_".join(item.term for item in top), top

    def corpus_stats(self) -> Dict[str, float]:
        names = set().union(*self._documents.values()) if self._documents else set()
        token_total = sum(len(tokenize(name)) for name in names)
        return {
            "total_signals": self._total,
            "unique_terms": len(self._documents),
            "avg_terms_per_signal": token_total / (len(names) or 1),
        }

    def _idf(self, term: str) -> float:
        containing = self._documents.get(term)
        if not containing:
            return 0.0
        return math.log(self._total / len(containing))


__all__ = ["DEFAULT_TOP_TERMS", "EMPTY_LABEL", "TermScore", "TfidfLabeler", "tokenize"]
