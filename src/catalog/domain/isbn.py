"""ISBN-10 / ISBN-13 checksum validation."""

import re
from typing import Optional

from shared.domain.exceptions import InvalidIsbnChecksum, InvalidIsbnFormat, ValidationError

ISBN_10_PATTERN = re.compile(r"^[0-9]{9}[0-9X]$")
ISBN_13_PATTERN = re.compile(r"^[0-9]{13}$")


def normalize_isbn(raw: str) -> str:
    """Strip the hyphens and whitespace people like to write ISBNs with."""
    return re.sub(r"[\s-]", "", raw)


def _isbn10_checksum_ok(isbn: str) -> bool:
    total = sum(int(digit) * (10 - i) for i, digit in enumerate(isbn[:9]))
    check = 10 if isbn[9] == "X" else int(isbn[9])
    return (total + check) % 11 == 0


def _isbn13_checksum_ok(isbn: str) -> bool:
    total = sum(int(digit) * (1 if i % 2 == 0 else 3) for i, digit in enumerate(isbn[:12]))
    return (10 - total % 10) % 10 == int(isbn[12])


def validate_isbn(raw: str) -> Optional[ValidationError]:
    """
    Validate an ISBN-10 or ISBN-13.

    Returns None when the ISBN is valid, otherwise the error describing why
    not: ``InvalidIsbnFormat`` for a wrong length or character set,
    ``InvalidIsbnChecksum`` when the check digit does not match.
    """
    if raw is None:
        return InvalidIsbnFormat("isbn", "ISBN is missing", raw)

    isbn = normalize_isbn(raw)
    if len(isbn) == 10:
        if not ISBN_10_PATTERN.match(isbn):
            return InvalidIsbnFormat("isbn", "ISBN-10 must be 9 digits followed by a digit or X", raw)
        if not _isbn10_checksum_ok(isbn):
            return InvalidIsbnChecksum("isbn", "ISBN-10 check digit does not match", raw)
        return None

    if len(isbn) == 13:
        if not ISBN_13_PATTERN.match(isbn):
            return InvalidIsbnFormat("isbn", "ISBN-13 must consist of 13 digits", raw)
        if not _isbn13_checksum_ok(isbn):
            return InvalidIsbnChecksum("isbn", "ISBN-13 check digit does not match", raw)
        return None

    return InvalidIsbnFormat("isbn", "ISBN must have 10 or 13 characters", raw)


def is_valid_isbn(raw: str) -> bool:
    return validate_isbn(raw) is None
