"""
Pairwise duplicate finder.

Compares every unordered pair of vendors, keeps pairs scoring at or above
a threshold and returns the top ``limit`` of them, best first.

Comparison is O(N^2). The engine targets a single organization's
vendor list (thousands of records), not millions. Only the best ``limit``
pairs are held in memory while scanning.
"""
from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence

from .records import VendorRecord
from .similarity import VendorSimilarityScorer


@dataclass(frozen=True)
class ScoredPair:
    """Two vendors with their similarity score and match reasons."""
    vendor_a: VendorRecord
    vendor_b: VendorRecord
    similarity: float
    match_reasons: list[str] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, str]:
        """Order-independent identity of the pair."""
        return pair_key(self.vendor_a.id, self.vendor_b.id)

    def to_dict(self) -> dict:
        return {
            "vendor_a": self.vendor_a.to_dict(),
            "vendor_b": self.vendor_b.to_dict(),
            "similarity": self.similarity,
            "match_reasons": list(self.match_reasons),
        }


@dataclass
class ScanResult:
    """Outcome of a full pairwise scan."""
    pairs: list[ScoredPair]
    total_vendors: int
    comparisons: int
    matches_above_threshold: int


def pair_key(id1: str, id2: str) -> tuple[str, str]:
    """Stable key for an unordered pair of vendor ids."""
    return (id1, id2) if id1 <= id2 else (id2, id1)


def _unique_by_id(vendors: Iterable[VendorRecord]) -> list[VendorRecord]:
    """Drop repeated rows for the same vendor id, keeping the first."""
    seen: set[str] = set()
    unique = []
    for vendor in vendors:
        if vendor.id in seen:
            continue
        seen.add(vendor.id)
        unique.append(vendor)
    return unique


class DuplicateFinder:
    """
    Pairwise duplicate detection over an ordered vendor list.

    The caller passes canonical vendors only; the finder does not
    re-check canonicality.

    Example:
        >>> finder = DuplicateFinder()
        >>> result = finder.scan(vendors, threshold=0.6, limit=50)
        >>> [(p.vendor_a.id, p.vendor_b.id, p.similarity) for p in result.pairs]
    """

    def __init__(self, scorer: VendorSimilarityScorer | None = None):
        self.scorer = scorer or VendorSimilarityScorer()

    def scan(
        self,
        vendors: Sequence[VendorRecord],
        threshold: float,
        limit: int,
    ) -> ScanResult:
        """
        Score all unordered pairs and keep the best ones.

        Args:
            vendors: Vendors in a stable order (ties keep this order)
            threshold: Minimum similarity, 0.0-1.0 inclusive
            limit: Maximum number of pairs returned, at least 1

        Returns:
            ScanResult with pairs sorted by similarity descending
        """
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be between 0 and 1, got {threshold}")
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")

        unique = _unique_by_id(vendors)
        counter = {"comparisons": 0, "matches": 0}

        # (-similarity, sequence) orders best first, input order on ties
        ranked = heapq.nsmallest(
            limit,
            self._candidates(unique, threshold, counter),
            key=lambda item: (-item[1].similarity, item[0]),
        )

        return ScanResult(
            pairs=[pair for _, pair in ranked],
            total_vendors=len(unique),
            comparisons=counter["comparisons"],
            matches_above_threshold=counter["matches"],
        )

    def _candidates(
        self,
        vendors: list[VendorRecord],
        threshold: float,
        counter: dict[str, int],
    ) -> Iterator[tuple[int, ScoredPair]]:
        sequence = 0
        for i, vendor1 in enumerate(vendors):
            for vendor2 in vendors[i + 1:]:
                match = self.scorer.score(vendor1, vendor2)
                counter["comparisons"] += 1
                if match.score < threshold:
                    continue
                counter["matches"] += 1
                yield sequence, ScoredPair(
                    vendor_a=vendor1,
                    vendor_b=vendor2,
                    similarity=match.score,
                    match_reasons=match.reasons,
                )
                sequence += 1

    def find(
        self,
        vendors: Sequence[VendorRecord],
        threshold: float,
        limit: int,
    ) -> list[ScoredPair]:
        """Top ``limit`` pairs scoring at least ``threshold``."""
        return self.scan(vendors, threshold, limit).pairs


def find_duplicates(
    vendors: Sequence[VendorRecord],
    threshold: float,
    limit: int,
) -> list[ScoredPair]:
    """Quick pairwise duplicate search with the default scorer."""
    return DuplicateFinder().find(vendors, threshold, limit)
