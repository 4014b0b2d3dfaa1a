"""
Tests for vendor field normalization.
"""
import pytest

from matching.normalizer import VendorNormalizer, normalize_name, normalize_phone


@pytest.fixture
def normalizer():
    return VendorNormalizer()


class TestNormalizeName:
    """Company and contact name normalization."""

    def test_suffix_and_punctuation_removed(self, normalizer):
        """Corporate suffixes and punctuation are dropped."""
        assert normalizer.normalize_name("ABC Plumbing, LLC") == "abc plumbing"
        assert normalizer.normalize_name("ABC Plumbing LLC") == "abc plumbing"

    @pytest.mark.parametrize("suffix", VendorNormalizer.COMPANY_SUFFIXES)
    def test_every_suffix_removed(self, normalizer, suffix):
        assert normalizer.normalize_name(f"Northside {suffix.upper()}") == "northside"

    def test_suffix_only_as_whole_word(self, normalizer):
        """'co' inside a word is kept."""
        assert normalizer.normalize_name("Cobalt Construction Co.") == "cobalt construction"

    def test_accents_transliterated(self, normalizer):
        assert normalizer.normalize_name("Café Électrique Inc") == "cafe electrique"

    def test_whitespace_collapsed(self, normalizer):
        assert normalizer.normalize_name("  Blue   Sky\tRoofing  ") == "blue sky roofing"

    def test_missing_name_is_empty(self, normalizer):
        assert normalizer.normalize_name(None) == ""
        assert normalizer.normalize_name("") == ""

    def test_suffix_only_name_is_empty(self, normalizer):
        assert normalizer.normalize_name("LLC") == ""

    def test_module_function(self):
        assert normalize_name("Smith & Sons, Inc.") == "smith sons"


class TestNormalizeContactDetails:
    """Phone and email normalization."""

    def test_phone_digits_only(self, normalizer):
        assert normalizer.normalize_phone("(555) 123-4567") == "5551234567"
        assert normalize_phone("+1 555.123.4567") == "15551234567"

    def test_phone_missing(self, normalizer):
        assert normalizer.normalize_phone(None) == ""

    def test_email_lowercased(self, normalizer):
        assert normalizer.normalize_email("  Billing@ABCPlumbing.com ") == "billing@abcplumbing.com"

    def test_email_domain(self, normalizer):
        assert normalizer.email_domain("Billing@ABCPlumbing.com") == "abcplumbing.com"

    def test_email_domain_uses_last_at(self, normalizer):
        assert normalizer.email_domain("odd@name@example.com") == "example.com"

    @pytest.mark.parametrize("email", [None, "", "no-at-sign", "trailing@"])
    def test_email_domain_missing(self, normalizer, email):
        assert normalizer.email_domain(email) is None
