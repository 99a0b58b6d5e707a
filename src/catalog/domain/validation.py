"""Field validators for book details. Each returns an error or None."""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from catalog.domain.isbn import validate_isbn
from shared.domain.exceptions import FutureDateError, NegativeValueError, ValidationError

TITLE_MAX_LENGTH = 200
AUTHOR_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 2000
GENRE_MAX_LENGTH = 50
PUBLISHER_MAX_LENGTH = 100
LANGUAGE_MAX_LENGTH = 30
PAGE_COUNT_MIN = 1
PAGE_COUNT_MAX = 10000
PRICE_MIN = Decimal("0.01")
PRICE_MAX = Decimal("999999.99")
CENT = Decimal("0.01")


def required_text(field: str, value: Optional[str], max_length: int) -> Optional[ValidationError]:
    if value is None or not value.strip():
        return ValidationError(field, f"{field} is required", value)
    if len(value.strip()) > max_length:
        return ValidationError(field, f"{field} must be between 1 and {max_length} characters", value)
    return None


def optional_text(field: str, value: Optional[str], max_length: int) -> Optional[ValidationError]:
    if value is not None and len(value) > max_length:
        return ValidationError(field, f"{field} must not exceed {max_length} characters", value)
    return None


def published_date(value: Optional[date], today: date) -> Optional[ValidationError]:
    if value is None:
        return ValidationError("published_date", "published_date is required", value)
    if value > today:
        return FutureDateError("published_date", "Published date cannot be in the future", value)
    return None


def price(value) -> Optional[ValidationError]:
    if value is None:
        return None
    try:
        amount = Decimal(value)
    except (TypeError, ValueError, InvalidOperation):
        return ValidationError("price", "price must be a number", value)
    if amount < 0:
        return NegativeValueError("price", "price must not be negative", value)
    if amount < PRICE_MIN or amount > PRICE_MAX:
        return ValidationError("price", f"price must be between {PRICE_MIN} and {PRICE_MAX}", value)
    if amount != amount.quantize(CENT):
        return ValidationError("price", "price must have at most 2 decimal places", value)
    return None


def page_count(value: Optional[int]) -> Optional[ValidationError]:
    if value is None:
        return None
    if value < PAGE_COUNT_MIN or value > PAGE_COUNT_MAX:
        return ValidationError(
            "page_count", f"page_count must be between {PAGE_COUNT_MIN} and {PAGE_COUNT_MAX}", value
        )
    return None


def isbn(value: Optional[str]) -> Optional[ValidationError]:
    if value is None or not value.strip():
        return None
    return validate_isbn(value)


def validate_book_details(details, today: Optional[date] = None) -> List[ValidationError]:
    """
    Run every field check against ``details`` and collect the failures.

    ``today`` defaults to the current date at call time, so a date that was
    in the future yesterday may be valid today.
    """
    today = today or date.today()
    checks = [
        required_text("title", details.title, TITLE_MAX_LENGTH),
        required_text("author", details.author, AUTHOR_MAX_LENGTH),
        isbn(details.isbn),
        published_date(details.published_date, today),
        price(details.price),
        page_count(details.page_count),
        optional_text("description", details.description, DESCRIPTION_MAX_LENGTH),
        optional_text("genre", details.genre, GENRE_MAX_LENGTH),
        optional_text("publisher", details.publisher, PUBLISHER_MAX_LENGTH),
        optional_text("language", details.language, LANGUAGE_MAX_LENGTH),
    ]
    return [error for error in checks if error is not None]
