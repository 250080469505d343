"""Tests for merging the contact book into parsed parties."""

from conftest import make_party
from receivables.services.contacts import count_with_phone, merge_phone_numbers, normalize_name


class TestMergePhoneNumbers:

    def test_exact_match_ignores_case_and_padding(self):
        merged = merge_phone_numbers([make_party("ACME STORES")], {"  acme stores ": "9800000001"})
        assert merged[0].phone_number == "9800000001"

    def test_fuzzy_match_ignores_punctuation(self):
        merged = merge_phone_numbers([make_party("M/S. Vardhman Trading")], {"MS VARDHMAN TRADING": "98111"})
        assert merged[0].phone_number == "98111"

    def test_exact_match_preferred(self):
        contacts = {"A.B": "fuzzy", "a b": "exact-ish", "A-B": "other"}
        merged = merge_phone_numbers([make_party("A B")], contacts)
        assert merged[0].phone_number == "exact-ish"

    def test_book_overrides_memory(self):
        merged = merge_phone_numbers([make_party("ACME", phone_number="old")], {"ACME": "new"})
        assert merged[0].phone_number == "new"

    def test_unmatched_and_blank_entries(self):
        party = make_party("ACME", phone_number="kept")
        merged = merge_phone_numbers([party, make_party("...")], {"BETA": "1", "ACME": "", "---": "2"})
        assert merged[0].phone_number == "kept"
        assert merged[1].phone_number == ""

    def test_original_parties_untouched(self):
        party = make_party("ACME")
        merge_phone_numbers([party], {"ACME": "1"})
        assert party.phone_number == ""

    def test_count_with_phone(self):
        parties = merge_phone_numbers([make_party("ACME"), make_party("BETA")], {"ACME": "1"})
        assert count_with_phone(parties) == 1


def test_normalize_name():
    assert normalize_name("M/S. VARDHMAN TRADING") == "msvardhmantrading"
    assert normalize_name("") == ""
