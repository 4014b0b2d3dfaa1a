"""
Vendor field normalization.

Handles normalization of vendor company names, contact names, phone
numbers and email addresses before comparison:
- Accent transliteration and lowercasing
- Corporate suffix removal (LLC, Inc, Corp, ...)
- Punctuation and whitespace normalization
- Digit-only phone numbers, lowercase emails and their domains
"""

import re
from unidecode import unidecode


class VendorNormalizer:
    """
    Normalizer for US-style vendor records.

    Example:
        >>> normalizer = VendorNormalizer()
        >>> normalizer.normalize_name("ABC Plumbing, LLC")
        'abc plumbing'
        >>> normalizer.normalize_phone("(555) 123-4567")
        '5551234567'
        >>> normalizer.email_domain("Billing@ABCPlumbing.com")
        'abcplumbing.com'
    """

    # Removed as whole words only ("cobalt" keeps its "co")
    COMPANY_SUFFIXES = (
        "llc",
        "inc",
        "corp",
        "co",
        "ltd",
        "company",
        "corporation",
        "incorporated",
        "limited",
    )

    _SUFFIX_PATTERN = re.compile(r"\b(" + "|".join(COMPANY_SUFFIXES) + r")\b")
    _NON_ALNUM_PATTERN = re.compile(r"[^a-z0-9\s]")
    _WHITESPACE_PATTERN = re.compile(r"\s+")
    _NON_DIGIT_PATTERN = re.compile(r"\D")

    def normalize_name(self, name: str | None) -> str:
        """
        Normalize a company or contact name for comparison.

        Args:
            name: Raw name as entered

        Returns:
            Lowercase name without corporate suffixes, punctuation or
            repeated whitespace. Empty string for missing input.
        """
        if not name:
            return ""

        text = unidecode(name).lower().strip()
        text = self._SUFFIX_PATTERN.sub("", text)
        text = self._NON_ALNUM_PATTERN.sub("", text)
        text = self._WHITESPACE_PATTERN.sub(" ", text)
        return text.strip()

    def normalize_phone(self, phone: str | None) -> str:
        """Strip everything but digits."""
        if not phone:
            return ""
        return self._NON_DIGIT_PATTERN.sub("", phone)

    def normalize_email(self, email: str | None) -> str:
        if not email:
            return ""
        return email.strip().lower()

    def email_domain(self, email: str | None) -> str | None:
        """
        Domain part of an email address (after the last '@').

        Returns None when there is no '@' or nothing follows it.
        """
        normalized = self.normalize_email(email)
        at = normalized.rfind("@")
        if at == -1:
            return None
        domain = normalized[at + 1:]
        return domain or None


# Module-level convenience functions
_default = VendorNormalizer()


def normalize_name(name: str | None) -> str:
    """Quick company/contact name normalization."""
    return _default.normalize_name(name)


def normalize_phone(phone: str | None) -> str:
    """Quick phone normalization."""
    return _default.normalize_phone(phone)
