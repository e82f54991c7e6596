import datetime
from decimal import Decimal

import pytest

from records import (
    ExplicitRange,
    MonthKey,
    SingleMonth,
    TransactionKind,
    TransactionRecord,
    from_cents,
    magnitude,
    signed_amount,
    to_cents,
)


def _record(amount: str, kind: str, when: datetime.datetime | None = None) -> TransactionRecord:
    return TransactionRecord(
        date=when or datetime.datetime(2024, 3, 15, 12, 0),
        amount=Decimal(amount),
        kind=TransactionKind.parse(kind),
    )


def test_transaction_kind_accepts_german_labels() -> None:
    assert TransactionKind.parse("Einnahme") is TransactionKind.INCOME
    assert TransactionKind.parse("ausgabe") is TransactionKind.EXPENSE
    assert TransactionKind.parse(" umbuchung ") is TransactionKind.TRANSFER
    with pytest.raises(ValueError):
        TransactionKind.parse("reservierung")


def test_record_normalizes_kind_and_amount() -> None:
    record = TransactionRecord(date=datetime.datetime(2024, 1, 1), amount="12.50", kind="ausgabe")

    assert record.kind is TransactionKind.EXPENSE
    assert record.amount == Decimal("12.50")


def test_signed_amount_is_the_single_sign_convention() -> None:
    assert signed_amount(_record("25", "expense")) == Decimal("-25")
    assert signed_amount(_record("-25", "expense")) == Decimal("-25")
    assert signed_amount(_record("25", "income")) == Decimal("25")
    assert signed_amount(_record("-25", "transfer")) == Decimal("-25")
    assert magnitude(_record("-25", "transfer")) == Decimal("25")


def test_cent_conversion_rounds_half_up() -> None:
    assert to_cents(Decimal("10.005")) == 1001
    assert to_cents("-0.50") == -50
    assert from_cents(12345) == Decimal("123.45")


def test_month_key_is_stable_within_a_month() -> None:
    early = MonthKey.of(datetime.datetime(2024, 3, 1, 0, 0))
    late = MonthKey.of(datetime.datetime(2024, 3, 31, 23, 59, 59))

    assert early == late
    assert str(early) == "Mar 2024"
    assert early.display("de") == "Mär 2024"


def test_month_key_orders_chronologically_not_alphabetically() -> None:
    keys = [MonthKey.parse("Jan 2025"), MonthKey.parse("Dec 2024"), MonthKey.parse("Apr 2024")]

    assert [key.label for key in sorted(keys)] == ["Apr 2024", "Dec 2024", "Jan 2025"]


@pytest.mark.parametrize(
    "text",
    ["2024-03", "Mar 2024", "Mär 2024", "März 2024", "mar. 2024"],
)
def test_month_key_parse_variants(text: str) -> None:
    assert MonthKey.parse(text) == MonthKey(2024, 3)


def test_month_key_parse_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        MonthKey.parse("Smarch 2024")
    with pytest.raises(ValueError):
        MonthKey(2024, 13)


def test_month_key_next_rolls_over_year() -> None:
    assert MonthKey(2024, 12).next() == MonthKey(2025, 1)
    assert MonthKey(2024, 1).next() == MonthKey(2024, 2)


def test_explicit_range_is_inclusive_on_both_ends() -> None:
    window = ExplicitRange.covering(datetime.date(2024, 3, 1), datetime.date(2024, 3, 31))

    assert window.contains(_record("1", "income", datetime.datetime(2024, 3, 1, 0, 0)))
    assert window.contains(_record("1", "income", datetime.datetime(2024, 3, 31, 23, 59, 59)))
    assert not window.contains(_record("1", "income", datetime.datetime(2024, 4, 1, 0, 0)))
    assert window.label == "01.03.24 - 31.03.24"


def test_explicit_range_rejects_inverted_bounds() -> None:
    with pytest.raises(ValueError):
        ExplicitRange(datetime.datetime(2024, 4, 1), datetime.datetime(2024, 3, 1))


def test_single_month_filter_matches_key() -> None:
    march = SingleMonth(MonthKey(2024, 3))

    assert march.contains(_record("1", "income", datetime.datetime(2024, 3, 9)))
    assert not march.contains(_record("1", "income", datetime.datetime(2023, 3, 9)))
