"""
Services Package

External integrations: contact merge and storage backends.
"""

from receivables.services.contacts import (
    count_with_phone,
    merge_phone_numbers,
    normalize_name,
)

__all__ = [
    "count_with_phone",
    "merge_phone_numbers",
    "normalize_name",
]
