from datetime import date, timedelta
from decimal import Decimal

import pytest

from catalog.domain import model
from catalog.domain.validation import validate_book_details
from shared.domain.events import BookCreated, BookDeleted, BookUpdated
from shared.domain.exceptions import (
    BookValidationError,
    FutureDateError,
    InvalidIsbnChecksum,
    NegativeValueError,
    ValidationError,
)


def _codes(errors):
    return {(e.field, e.code) for e in errors}


class TestValidation:
    """Field checks collected over a whole set of book details."""

    def test_valid_details_have_no_errors(self, book_details):
        assert validate_book_details(book_details) == []

    def test_all_errors_are_reported_together(self, make_details):
        """Test that every failing field is listed, not just the first."""
        details = make_details(title="  ", author="", price=Decimal("-1"), page_count=0)
        errors = validate_book_details(details)
        assert _codes(errors) == {
            ("title", "VALIDATION_ERROR"),
            ("author", "VALIDATION_ERROR"),
            ("price", "NEGATIVE_VALUE"),
            ("page_count", "VALIDATION_ERROR"),
        }

    def test_future_published_date(self, make_details):
        today = date(2024, 5, 1)
        details = make_details(published_date=today + timedelta(days=1))
        [error] = validate_book_details(details, today=today)
        assert isinstance(error, FutureDateError)

    def test_today_is_not_in_the_future(self, make_details):
        today = date(2024, 5, 1)
        assert validate_book_details(make_details(published_date=today), today=today) == []

    def test_missing_published_date(self, make_details):
        [error] = validate_book_details(make_details(published_date=None))
        assert error.field == "published_date"

    def test_negative_price(self, make_details):
        [error] = validate_book_details(make_details(price=Decimal("-0.01")))
        assert isinstance(error, NegativeValueError)

    @pytest.mark.parametrize("price", [Decimal("0.00"), Decimal("1000000.00"), Decimal("9.999")])
    def test_price_out_of_range_or_precision(self, make_details, price):
        [error] = validate_book_details(make_details(price=price))
        assert error.field == "price"
        assert not isinstance(error, NegativeValueError)

    @pytest.mark.parametrize("price", [Decimal("0.01"), Decimal("999999.99"), Decimal("10")])
    def test_price_bounds_are_inclusive(self, make_details, price):
        assert validate_book_details(make_details(price=price)) == []

    @pytest.mark.parametrize("pages, ok", [(1, True), (10000, True), (0, False), (10001, False)])
    def test_page_count_bounds(self, make_details, pages, ok):
        assert (validate_book_details(make_details(page_count=pages)) == []) is ok

    def test_title_too_long(self, make_details):
        [error] = validate_book_details(make_details(title="x" * 201))
        assert error.field == "title"

    def test_optional_isbn(self, make_details):
        assert validate_book_details(make_details(isbn=None)) == []
        assert validate_book_details(make_details(isbn="")) == []

    def test_bad_isbn(self, make_details):
        [error] = validate_book_details(make_details(isbn="9780134685990"))
        assert isinstance(error, InvalidIsbnChecksum)
        assert isinstance(error, ValidationError)

    def test_optional_text_lengths(self, make_details):
        errors = validate_book_details(make_details(genre="g" * 51, language="l" * 31))
        assert {e.field for e in errors} == {"genre", "language"}


class TestBookLifecycle:

    def test_new_book_normalizes_details(self, book_details):
        book = model.Book.new(book_details)
        assert book.isbn == "9780134685991"
        assert book.price == Decimal("45.99")
        assert book.is_active
        assert book.events == []

    def test_new_book_rejects_invalid_details(self, make_details):
        with pytest.raises(BookValidationError) as exc_info:
            model.Book.new(make_details(title="", isbn="123"))
        assert {e.field for e in exc_info.value.errors} == {"title", "isbn"}

    def test_register_records_creation(self, book_details):
        book = model.Book.new(book_details)
        book.register("admin", correlation_id="corr-1")

        [event] = book.events
        assert isinstance(event, BookCreated)
        assert event.aggregate_id == book.book_id
        assert event.correlation_id == "corr-1"
        assert event.created_by == "admin"
        assert book.created_by == book.updated_by == "admin"
        assert book.created_at is not None

    def test_replace_carries_previous_values_of_changed_fields(self, book_details, make_details):
        book = model.Book.new(book_details)
        book.replace(make_details(title="Effective Java, 3rd Edition", price=Decimal("49.99")), "editor")

        [event] = book.events
        assert isinstance(event, BookUpdated)
        assert event.previous_values == {"title": "Effective Java", "price": Decimal("45.99")}
        assert event.title == "Effective Java, 3rd Edition"
        assert book.updated_by == "editor"

    def test_replace_is_whole_replacement(self, book_details, make_details):
        """Test that fields missing from the replacement are cleared, not kept."""
        book = model.Book.new(book_details)
        book.replace(make_details(genre=None, description=None), "editor")
        assert book.genre is None
        assert book.events[0].previous_values == {"genre": "Programming"}

    def test_replace_with_invalid_details_changes_nothing(self, book_details, make_details):
        book = model.Book.new(book_details)
        with pytest.raises(BookValidationError):
            book.replace(make_details(price=Decimal("-5")), "editor")
        assert book.price == Decimal("45.99")
        assert book.events == []

    def test_deactivate_emits_soft_delete_once(self, book_details):
        book = model.Book.new(book_details)

        assert book.deactivate("admin") is True
        assert book.deactivate("admin") is False

        [event] = book.events
        assert isinstance(event, BookDeleted)
        assert event.deletion_type == "SOFT"
        assert not book.is_active

    def test_restore_reactivates(self, book_details):
        book = model.Book.new(book_details)
        assert book.restore("admin") is False

        book.deactivate("admin")
        assert book.restore("admin") is True
        assert book.is_active
        assert isinstance(book.events[-1], BookUpdated)
        assert book.events[-1].previous_values == {"is_active": False}

    def test_hard_delete_event(self, book_details):
        book = model.Book.new(book_details)
        book.mark_hard_deleted("admin")
        assert book.events[0].deletion_type == "HARD"

    def test_identity_is_the_book_id(self, book_details):
        first = model.Book.new(book_details)
        second = model.Book.new(book_details)
        assert first != second
        assert first == model.Book(first.book_id, first.details)
        assert len({first, second}) == 2
