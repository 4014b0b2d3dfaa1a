"""
Vendor matching engine

Detects likely duplicate vendor records with deterministic fuzzy matching.

Modules:
- records: comparison view of a vendor row
- normalizer: company name, phone and email normalization
- similarity: weighted multi-field similarity scorer
- finder: pairwise duplicate search with threshold and ranking
"""

__version__ = "1.0.0"

from .records import VendorRecord
from .normalizer import VendorNormalizer
from .similarity import MatchResult, VendorSimilarityScorer
from .finder import DuplicateFinder, ScanResult, ScoredPair, find_duplicates

__all__ = [
    "VendorRecord",
    "VendorNormalizer",
    "MatchResult",
    "VendorSimilarityScorer",
    "DuplicateFinder",
    "ScanResult",
    "ScoredPair",
    "find_duplicates",
]
