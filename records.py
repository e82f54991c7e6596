"""Transaction records, month keys and date-range filter values."""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

CENT = Decimal("0.01")

MONTH_ABBREVIATIONS = {
    "en": ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
    "de": ("Jan", "Feb", "Mär", "Apr", "Mai", "Jun", "Jul", "Aug", "Sep", "Okt", "Nov", "Dez"),
}

# Long German names and ASCII spellings seen in older exports.
_EXTRA_MONTH_NAMES = {
    "januar": 1,
    "februar": 2,
    "märz": 3,
    "maerz": 3,
    "mrz": 3,
    "juni": 6,
    "juli": 7,
    "sept": 9,
    "oktober": 10,
    "dezember": 12,
}


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"

    @classmethod
    def parse(cls, value: object) -> "TransactionKind":
        """Accept English kinds and the app's German labels."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        kind = _KIND_ALIASES.get(text)
        if kind is None:
            raise ValueError(f"Unknown transaction kind: {value!r}")
        return kind


_KIND_ALIASES = {
    "income": TransactionKind.INCOME,
    "einnahme": TransactionKind.INCOME,
    "expense": TransactionKind.EXPENSE,
    "ausgabe": TransactionKind.EXPENSE,
    "transfer": TransactionKind.TRANSFER,
    "umbuchung": TransactionKind.TRANSFER,
}


@dataclass(frozen=True)
class TransactionRecord:
    date: datetime.datetime
    amount: Decimal  # income positive; expenses may be stored signed or as magnitude
    kind: TransactionKind
    category_name: str | None = None
    excluded_from_balance: bool = False
    account: str | None = None
    usage: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", TransactionKind.parse(self.kind))
        object.__setattr__(self, "amount", _as_decimal(self.amount))


def _as_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def signed_amount(record: TransactionRecord) -> Decimal:
    """Return the amount under the canonical sign convention.

    Expenses are always negative, whatever the stored sign. Income and
    transfers keep their stored sign.
    """
    amount = _as_decimal(record.amount)
    if record.kind is TransactionKind.EXPENSE:
        return -abs(amount)
    return amount


def magnitude(record: TransactionRecord) -> Decimal:
    return abs(signed_amount(record))


def to_cents(value: object) -> int:
    return int(_as_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(int(cents)) / 100).quantize(CENT)


@dataclass(frozen=True, order=True)
class MonthKey:
    """Calendar month used for grouping; sorts by (year, month), never by label."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month out of range: {self.month}")

    @classmethod
    def of(cls, value: datetime.date) -> "MonthKey":
        return cls(value.year, value.month)

    @classmethod
    def parse(cls, text: str) -> "MonthKey":
        """Parse ``2024-03``, ``Mar 2024``, ``Mär 2024`` or ``März 2024``."""
        raw = str(text).strip()
        iso = re.fullmatch(r"(\d{4})-(\d{1,2})", raw)
        if iso:
            return cls(int(iso.group(1)), int(iso.group(2)))
        named = re.fullmatch(r"([^\W\d_]+)\.?\s+(\d{4})", raw)
        if named:
            month = _month_number(named.group(1))
            if month is not None:
                return cls(int(named.group(2)), month)
        raise ValueError(f"Unrecognized month: {text!r}")

    @property
    def label(self) -> str:
        return self.display("en")

    def display(self, locale: str = "en") -> str:
        names = MONTH_ABBREVIATIONS.get(locale, MONTH_ABBREVIATIONS["en"])
        return f"{names[self.month - 1]} {self.year:04d}"

    def first_day(self) -> datetime.date:
        return datetime.date(self.year, self.month, 1)

    def next(self) -> "MonthKey":
        if self.month == 12:
            return MonthKey(self.year + 1, 1)
        return MonthKey(self.year, self.month + 1)

    def __str__(self) -> str:
        return self.label


def _month_number(name: str) -> int | None:
    lowered = name.lower()
    for names in MONTH_ABBREVIATIONS.values():
        for idx, abbreviation in enumerate(names, start=1):
            if lowered == abbreviation.lower():
                return idx
    return _EXTRA_MONTH_NAMES.get(lowered)


def month_key_for(record: TransactionRecord) -> MonthKey:
    return MonthKey.of(record.date)


@dataclass(frozen=True)
class AllTime:
    def contains(self, record: TransactionRecord) -> bool:
        return True


@dataclass(frozen=True)
class SingleMonth:
    key: MonthKey

    def contains(self, record: TransactionRecord) -> bool:
        return month_key_for(record) == self.key


@dataclass(frozen=True)
class ExplicitRange:
    """Inclusive ``start <= date <= end`` window."""

    start: datetime.datetime
    end: datetime.datetime
    label: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Range start {self.start} is after end {self.end}")

    @classmethod
    def covering(cls, first_day: datetime.date, last_day: datetime.date) -> "ExplicitRange":
        """Span whole calendar days from ``first_day`` through ``last_day``."""
        start = datetime.datetime.combine(first_day, datetime.time.min)
        end = datetime.datetime.combine(last_day, datetime.time.max)
        label = f"{first_day:%d.%m.%y} - {last_day:%d.%m.%y}"
        return cls(start, end, label)

    def contains(self, record: TransactionRecord) -> bool:
        return self.start <= record.date <= self.end


DateRange = AllTime | SingleMonth | ExplicitRange
