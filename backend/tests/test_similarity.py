"""
Tests for weighted vendor similarity scoring.
"""
import itertools

import pytest

from matching import VendorRecord, VendorSimilarityScorer
from matching.similarity import _round_half_up, score_vendors


@pytest.fixture
def scorer():
    return VendorSimilarityScorer()


def vendor(vendor_id="1", **fields):
    return VendorRecord(id=vendor_id, **fields)


SAMPLE_VENDORS = [
    vendor("1", company_name="ABC Plumbing LLC", phone="(555) 123-4567", email="office@abcplumbing.com",
           contact_name="John Smith"),
    vendor("2", company_name="ABC Plumbing", phone="555-123-4567", email="billing@abcplumbing.com",
           contact_name="Jon Smith"),
    vendor("3", company_name="A.B.C. Plumbing & Heating Inc", email="abcplumb@gmail.com"),
    vendor("4", company_name="Zeta Roofing Co", phone="555-999-0000", contact_name="Maria Lopez"),
    vendor("5", company_name=None, phone="5559990000"),
    vendor("6", company_name="LLC", email="info@zeta.com"),
    vendor("7"),
]


class TestExampleScenario:
    """Same company written two ways, same phone."""

    def test_score_and_reasons(self, scorer):
        a = vendor("a", company_name="ABC Plumbing LLC", phone="(555) 123-4567")
        b = vendor("b", company_name="ABC Plumbing", phone="555-123-4567")
        result = scorer.score(a, b)

        assert result.score == 0.75
        assert "Same phone number" in result.reasons
        assert "Similar company names (100% match)" in result.reasons
        assert result.components == {"company_name": 0.5, "phone": 0.25}

    def test_module_function(self):
        a = vendor("a", company_name="ABC Plumbing LLC", phone="(555) 123-4567")
        b = vendor("b", company_name="ABC Plumbing", phone="555-123-4567")
        assert score_vendors(a, b).score == 0.75


class TestScoreProperties:
    """Symmetry, bounds and rounding over a mixed sample."""

    def test_symmetric(self, scorer):
        for a, b in itertools.combinations(SAMPLE_VENDORS, 2):
            assert scorer.score(a, b).score == scorer.score(b, a).score

    def test_bounded(self, scorer):
        for a, b in itertools.combinations(SAMPLE_VENDORS, 2):
            assert 0.0 <= scorer.score(a, b).score <= 1.0

    def test_rounded_to_three_decimals(self, scorer):
        for a, b in itertools.combinations(SAMPLE_VENDORS, 2):
            score = scorer.score(a, b).score
            assert score == round(score, 3)

    def test_all_fields_identical_is_one(self, scorer):
        fields = dict(company_name="Blue Sky Roofing", phone="555-222-3333",
                      email="jo@blueskyroofing.com", contact_name="Jo Park")
        result = scorer.score(vendor("a", **fields), vendor("b", **fields))
        assert result.score == 1.0
        assert result.reasons == [
            "Similar company names (100% match)",
            "Same phone number",
            "Same email address",
            "Similar contact names",
        ]

    def test_empty_records_score_zero(self, scorer):
        result = scorer.score(vendor("a"), vendor("b"))
        assert result.score == 0.0
        assert result.reasons == []


class TestCompanyName:
    """Company name term."""

    def test_missing_name_contributes_nothing(self, scorer):
        a = vendor("a", company_name=None, phone="5551234567")
        b = vendor("b", company_name="ABC Plumbing", phone="5551234567")
        result = scorer.score(a, b)
        assert "company_name" not in result.components
        assert result.score == 0.25

    def test_name_normalizing_to_nothing_scores_zero(self, scorer):
        assert scorer.name_similarity("LLC", "ABC Plumbing") == 0.0
        assert scorer.name_similarity(None, "ABC Plumbing") is None

    def test_dissimilar_names_have_no_reason(self, scorer):
        result = scorer.score(vendor("a", company_name="Alpha"), vendor("b", company_name="Omega"))
        assert result.reasons == []
        assert result.score < 0.3

    def test_similarity_scale(self, scorer):
        """2 * matching characters / total length, as a percentage."""
        assert scorer.name_similarity("abcd", "abce") == pytest.approx(75.0)

    def test_longest_common_substring_first(self, scorer):
        """Characters outside the longest shared run only count on their own side of it."""
        assert scorer.name_similarity("Smith Best", "Best East") == pytest.approx(42.105, abs=0.001)
        result = scorer.score(vendor("a", company_name="Smith Best"), vendor("b", company_name="Best East"))
        assert result.score == 0.211
        assert result.reasons == []

    def test_round_half_up(self):
        assert _round_half_up(72.5) == 73
        assert _round_half_up(72.49) == 72


class TestPhone:
    """Phone term."""

    def test_formatting_ignored(self, scorer):
        assert scorer.phones_match("(555) 123-4567", "555.123.4567")

    def test_short_numbers_never_match(self, scorer):
        assert not scorer.phones_match("555-1234", "5551234")

    def test_missing_phone(self, scorer):
        assert not scorer.phones_match(None, "5551234567")


class TestEmail:
    """Email term."""

    def test_exact_address_case_insensitive(self, scorer):
        assert scorer.email_score("Office@ABC.com", "office@abc.com") == 0.15

    def test_same_company_domain(self, scorer):
        a = vendor("a", email="office@abcplumbing.com")
        b = vendor("b", email="billing@ABCPlumbing.com")
        result = scorer.score(a, b)
        assert result.components == {"email": 0.05}
        assert result.reasons == ["Same email domain (abcplumbing.com)"]

    @pytest.mark.parametrize("domain", ["gmail.com", "yahoo.com", "hotmail.com", "outlook.com", "aol.com", "icloud.com"])
    def test_generic_domains_ignored(self, scorer, domain):
        assert scorer.email_score(f"one@{domain}", f"two@{domain}") == 0.0

    def test_different_domains(self, scorer):
        assert scorer.email_score("a@one.com", "a@two.com") == 0.0


class TestContactName:
    """Contact name term."""

    def test_similar_contacts_count_and_are_explained(self, scorer):
        result = scorer.score(vendor("a", contact_name="John Smith"), vendor("b", contact_name="Jon Smith"))
        assert "contact_name" in result.components
        assert result.reasons == ["Similar contact names"]

    def test_different_contacts_ignored(self, scorer):
        result = scorer.score(vendor("a", contact_name="John Smith"), vendor("b", contact_name="Maria Lopez"))
        assert "contact_name" not in result.components
        assert result.score == 0.0
