"""
Contact Merge

The ledger export carries no phone numbers; they live in the master
contact book. After every upload the book is merged into the parsed
parties by name.

Party names drift between exports ("M/S. Vardhman Trading" vs
"MS Vardhman Trading"), so matching runs in two passes:
1. exact: trimmed, lower-cased
2. fuzzy: lower-cased, letters and digits only

A number found in the book always overrides the one in memory.
"""

import re
from collections.abc import Iterable, Mapping

from receivables.models.ledger import Party


_NON_ALNUM = re.compile(r"[^a-z0-9]")


def exact_key(name: str) -> str:
    return (name or "").strip().lower()


def normalize_name(name: str) -> str:
    """"M/S. VARDHMAN TRADING" -> "msvardhmantrading"."""
    return _NON_ALNUM.sub("", (name or "").lower())


def merge_phone_numbers(
    parties: Iterable[Party],
    contacts: Mapping[str, str],
) -> list[Party]:
    """New parties with phone numbers from the contact book filled in."""
    exact: dict[str, str] = {}
    fuzzy: dict[str, str] = {}
    for name, phone in contacts.items():
        if name and phone:
            exact[exact_key(name)] = phone
            if normalize_name(name):
                fuzzy[normalize_name(name)] = phone

    merged = []
    for party in parties:
        phone = exact.get(exact_key(party.party_name))
        if not phone and normalize_name(party.party_name):
            phone = fuzzy.get(normalize_name(party.party_name))
        if phone:
            party = party.model_copy(update={"phone_number": phone})
        merged.append(party)
    return merged


def count_with_phone(parties: Iterable[Party]) -> int:
    return sum(1 for party in parties if party.phone_number)
