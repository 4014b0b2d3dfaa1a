"""
Vendor Similarity: weighted multi-field match scoring

Provides the similarity score used to rank potential duplicate vendors.
String similarity is the Ratcliff/Obershelp ratio from difflib: the
longest common substring is matched, then the same is done recursively
on the pieces left and right of it, and the result is reported as
2 * matching characters / (len(a) + len(b)) on a 0-100 scale.

Field weights:
- Company name: 0.50 (scaled by character similarity)
- Phone: 0.25 (exact match on 10+ digits)
- Email: 0.15 exact address, 0.05 same non-generic domain
- Contact name: 0.10 (scaled, only above 70% similarity)
"""

import math
from difflib import SequenceMatcher
from typing import NamedTuple

from .normalizer import VendorNormalizer
from .records import VendorRecord

COMPANY_NAME_WEIGHT = 0.50
PHONE_WEIGHT = 0.25
EMAIL_EXACT_WEIGHT = 0.15
EMAIL_DOMAIN_WEIGHT = 0.05
CONTACT_NAME_WEIGHT = 0.10

# Percentages (0-100) above which a term counts or is explained
COMPANY_REASON_MIN_PCT = 60
CONTACT_SCORE_MIN_PCT = 70
CONTACT_REASON_MIN_PCT = 80

MIN_PHONE_DIGITS = 10

# Shared mailbox providers say nothing about the company
GENERIC_EMAIL_DOMAINS = frozenset({
    "gmail.com",
    "yahoo.com",
    "hotmail.com",
    "outlook.com",
    "aol.com",
    "icloud.com",
})

SCORE_PRECISION = 3


class MatchResult(NamedTuple):
    """Result of comparing two vendors."""
    score: float
    reasons: list[str]
    components: dict[str, float]


class VendorSimilarityScorer:
    """
    Weighted similarity between two vendor records.

    Each field contributes only when both records have it; a missing
    field is skipped rather than penalized. The comparison is symmetric:
    score(a, b) == score(b, a).

    Example:
        >>> scorer = VendorSimilarityScorer()
        >>> a = VendorRecord(id="1", company_name="ABC Plumbing LLC", phone="(555) 123-4567")
        >>> b = VendorRecord(id="2", company_name="ABC Plumbing", phone="555-123-4567")
        >>> scorer.score(a, b).score
        0.75
    """

    def __init__(self, normalizer: VendorNormalizer | None = None):
        self.normalizer = normalizer or VendorNormalizer()

    def name_similarity(self, name1: str | None, name2: str | None) -> float | None:
        """
        Character similarity percentage (0-100) between two names.

        Names are normalized first. Returns None when either raw name is
        missing, 0.0 when either normalizes to nothing (e.g. "LLC").
        """
        if not name1 or not name2:
            return None

        normalized1 = self.normalizer.normalize_name(name1)
        normalized2 = self.normalizer.normalize_name(name2)
        if not normalized1 or not normalized2:
            return 0.0

        return SequenceMatcher(None, normalized1, normalized2, autojunk=False).ratio() * 100

    def phones_match(self, phone1: str | None, phone2: str | None) -> bool:
        digits1 = self.normalizer.normalize_phone(phone1)
        digits2 = self.normalizer.normalize_phone(phone2)
        if not digits1 or not digits2:
            return False
        return digits1 == digits2 and len(digits1) >= MIN_PHONE_DIGITS

    def email_score(self, email1: str | None, email2: str | None) -> float:
        """0.15 for the same address, 0.05 for the same company domain, else 0."""
        normalized1 = self.normalizer.normalize_email(email1)
        normalized2 = self.normalizer.normalize_email(email2)
        if not normalized1 or not normalized2:
            return 0.0

        if normalized1 == normalized2:
            return EMAIL_EXACT_WEIGHT

        domain1 = self.normalizer.email_domain(normalized1)
        domain2 = self.normalizer.email_domain(normalized2)
        if domain1 and domain1 == domain2 and domain1 not in GENERIC_EMAIL_DOMAINS:
            return EMAIL_DOMAIN_WEIGHT

        return 0.0

    def score(self, vendor1: VendorRecord, vendor2: VendorRecord) -> MatchResult:
        """
        Calculate the weighted match score between two vendors.

        Args:
            vendor1: First vendor
            vendor2: Second vendor (never the same vendor as vendor1)

        Returns:
            MatchResult with the score rounded to 3 decimals, the
            human-readable reasons, and the per-field contributions
        """
        components: dict[str, float] = {}
        reasons: list[str] = []

        # Company name (required for a meaningful match, but never a penalty)
        company_pct = self.name_similarity(vendor1.company_name, vendor2.company_name)
        if company_pct is not None:
            components["company_name"] = (company_pct / 100) * COMPANY_NAME_WEIGHT
            if company_pct > COMPANY_REASON_MIN_PCT:
                reasons.append(f"Similar company names ({_round_half_up(company_pct)}% match)")

        if self.phones_match(vendor1.phone, vendor2.phone):
            components["phone"] = PHONE_WEIGHT
            reasons.append("Same phone number")

        email = self.email_score(vendor1.email, vendor2.email)
        if email:
            components["email"] = email
            if email == EMAIL_EXACT_WEIGHT:
                reasons.append("Same email address")
            else:
                domain = self.normalizer.email_domain(vendor1.email)
                reasons.append(f"Same email domain ({domain})")

        contact_pct = self.name_similarity(vendor1.contact_name, vendor2.contact_name)
        if contact_pct is not None and contact_pct > CONTACT_SCORE_MIN_PCT:
            components["contact_name"] = (contact_pct / 100) * CONTACT_NAME_WEIGHT
            if contact_pct > CONTACT_REASON_MIN_PCT:
                reasons.append("Similar contact names")

        total = sum(components.values(), 0.0)
        score = min(round(total, SCORE_PRECISION), 1.0)

        return MatchResult(score=score, reasons=reasons, components=components)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# Module-level convenience function
def score_vendors(vendor1: VendorRecord, vendor2: VendorRecord) -> MatchResult:
    """Quick weighted vendor similarity."""
    return VendorSimilarityScorer().score(vendor1, vendor2)
