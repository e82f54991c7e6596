"""Aggregation helpers that turn transaction records into chart-ready summaries.

All functions are pure: records are read, never mutated or retained, and
empty input yields empty output. Records flagged ``excluded_from_balance``
are dropped by every public ``build_*`` entry point (see ``balance_records``);
``filter_by_range`` leaves them in place.

Amounts are summed as integer cents on a pandas frame so that totals are
exact and partial aggregates add up to the all-time aggregate.
"""

from __future__ import annotations

import calendar
import datetime
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Sequence

import pandas as pd

from categorization import (
    EXPENSE_PALETTE,
    INCOME_COLOR_PATTERNS,
    INCOME_PALETTE,
    UNKNOWN_CATEGORY,
    category_color,
    normalize_category,
)
from logging_setup import get_logger
from records import (
    CENT,
    AllTime,
    DateRange,
    ExplicitRange,
    MonthKey,
    SingleMonth,
    TransactionKind,
    TransactionRecord,
    from_cents,
    signed_amount,
    to_cents,
)

logger = get_logger("euroblick.analytics")

_FRAME_COLUMNS = ["Position", "Date", "Year", "Month", "Kind", "Category", "SignedCents", "MagnitudeCents"]


@dataclass
class MonthlySummary:
    month: MonthKey
    income: Decimal
    expenses: Decimal
    surplus: Decimal
    income_records: list[TransactionRecord] = field(default_factory=list)
    expense_records: list[TransactionRecord] = field(default_factory=list)


@dataclass
class CategorySummary:
    category_name: str
    total_absolute_amount: Decimal
    color: str
    records: list[TransactionRecord] = field(default_factory=list)
    share_pct: float = 0.0


@dataclass
class ForecastPoint:
    month: MonthKey
    income: Decimal
    expenses: Decimal
    surplus: Decimal
    balance: Decimal
    projected: bool = False


@dataclass
class BalancePoint:
    date: datetime.datetime
    balance: Decimal
    record: TransactionRecord


@dataclass
class DailyAverages:
    income: Decimal
    expenses: Decimal
    surplus: Decimal


@dataclass
class MonthEndProjection:
    as_of: datetime.date
    remaining_days: int
    income: Decimal
    expenses: Decimal
    surplus: Decimal


def balance_records(records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    """Records that count towards totals (``excluded_from_balance`` dropped)."""
    return [record for record in records if not record.excluded_from_balance]


def filter_by_range(records: Iterable[TransactionRecord], date_range: DateRange) -> list[TransactionRecord]:
    """Keep records inside ``date_range``, preserving their relative order."""
    if not isinstance(date_range, (AllTime, SingleMonth, ExplicitRange)):
        raise TypeError(f"Unsupported date range: {date_range!r}")
    if isinstance(date_range, AllTime):
        return list(records)
    return [record for record in records if date_range.contains(record)]


def records_frame(
    records: Sequence[TransactionRecord],
    unknown_label: str = UNKNOWN_CATEGORY,
) -> pd.DataFrame:
    """One row per record; ``Position`` indexes back into ``records``."""
    rows = [
        {
            "Position": idx,
            "Date": record.date,
            "Year": record.date.year,
            "Month": record.date.month,
            "Kind": record.kind.value,
            "Category": normalize_category(record.category_name, unknown_label),
            "SignedCents": to_cents(signed_amount(record)),
        }
        for idx, record in enumerate(records)
    ]
    if not rows:
        return pd.DataFrame(columns=_FRAME_COLUMNS)
    frame = pd.DataFrame(rows)
    frame["MagnitudeCents"] = frame["SignedCents"].abs()
    return frame[_FRAME_COLUMNS]


def build_monthly_summaries(records: Iterable[TransactionRecord]) -> list[MonthlySummary]:
    """Income, expenses and surplus per calendar month, oldest month first.

    Transfers are internal movements and land in neither partition.
    """
    working = balance_records(records)
    if not working:
        return []

    frame = records_frame(working)
    summaries: list[MonthlySummary] = []
    for (year, month), group in frame.groupby(["Year", "Month"], sort=True):
        income_rows = group[group["Kind"] == TransactionKind.INCOME.value]
        expense_rows = group[group["Kind"] == TransactionKind.EXPENSE.value]
        income_cents = int(income_rows["SignedCents"].sum())
        expense_cents = int(expense_rows["MagnitudeCents"].sum())
        summaries.append(
            MonthlySummary(
                month=MonthKey(int(year), int(month)),
                income=from_cents(income_cents),
                expenses=from_cents(expense_cents),
                surplus=from_cents(income_cents - expense_cents),
                income_records=[working[pos] for pos in income_rows["Position"]],
                expense_records=[working[pos] for pos in expense_rows["Position"]],
            )
        )
    logger.debug("Grouped %d records into %d months", len(working), len(summaries))
    return summaries


def build_category_summaries(
    records: Iterable[TransactionRecord],
    kind: TransactionKind | str | None = None,
    *,
    unknown_label: str = UNKNOWN_CATEGORY,
    palette: Sequence[str] | None = None,
    color_patterns: Mapping[str, str] | None = None,
) -> list[CategorySummary]:
    """Totals per category, largest first.

    Transfers never appear. ``kind`` restricts the scope to income or
    expenses; equal totals keep the order in which categories first appear.
    """
    wanted = TransactionKind.parse(kind) if kind is not None else None
    working = [
        record
        for record in balance_records(records)
        if record.kind is not TransactionKind.TRANSFER and (wanted is None or record.kind is wanted)
    ]
    if not working:
        return []

    if palette is None:
        palette = INCOME_PALETTE if wanted is TransactionKind.INCOME else EXPENSE_PALETTE
    if color_patterns is None and wanted is TransactionKind.INCOME:
        color_patterns = INCOME_COLOR_PATTERNS

    frame = records_frame(working, unknown_label)
    grouped = frame.groupby("Category", sort=False).agg(
        TotalCents=("MagnitudeCents", "sum"),
        FirstSeen=("Position", "min"),
        Positions=("Position", list),
    )
    grouped = grouped.sort_values(["TotalCents", "FirstSeen"], ascending=[False, True], kind="stable")
    grand_total = int(grouped["TotalCents"].sum())

    summaries = [
        CategorySummary(
            category_name=str(name),
            total_absolute_amount=from_cents(int(row["TotalCents"])),
            color=category_color(str(name), palette, color_patterns),
            records=[working[pos] for pos in row["Positions"]],
            share_pct=(int(row["TotalCents"]) / grand_total * 100.0) if grand_total else 0.0,
        )
        for name, row in grouped.iterrows()
    ]
    logger.debug("Grouped %d records into %d categories", len(working), len(summaries))
    return summaries


def _mean_cents(total_cents: int, periods: int) -> int:
    return int((Decimal(total_cents) / periods).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def build_forecast_series(
    records: Iterable[TransactionRecord],
    horizon: int = 0,
    starting_balance: Decimal | int | str = 0,
) -> list[ForecastPoint]:
    """Running balance over the known months plus ``horizon`` future months.

    Each period's balance is the previous balance plus the period's surplus.
    Future months repeat the mean monthly income and expenses of the known
    months; there is no other projection.
    """
    if horizon < 0:
        raise ValueError(f"horizon must be >= 0, got {horizon}")
    monthly = build_monthly_summaries(records)
    if not monthly:
        return []

    frame = pd.DataFrame(
        {
            "Month": [summary.month for summary in monthly],
            "IncomeCents": [to_cents(summary.income) for summary in monthly],
            "ExpenseCents": [to_cents(summary.expenses) for summary in monthly],
            "Projected": False,
        }
    )
    if horizon:
        income_mean = _mean_cents(int(frame["IncomeCents"].sum()), len(frame))
        expense_mean = _mean_cents(int(frame["ExpenseCents"].sum()), len(frame))
        future_months: list[MonthKey] = []
        cursor = monthly[-1].month
        for _ in range(horizon):
            cursor = cursor.next()
            future_months.append(cursor)
        future = pd.DataFrame(
            {
                "Month": future_months,
                "IncomeCents": income_mean,
                "ExpenseCents": expense_mean,
                "Projected": True,
            }
        )
        frame = pd.concat([frame, future], ignore_index=True)

    frame["SurplusCents"] = frame["IncomeCents"] - frame["ExpenseCents"]
    frame["BalanceCents"] = frame["SurplusCents"].cumsum() + to_cents(starting_balance)

    return [
        ForecastPoint(
            month=row.Month,
            income=from_cents(row.IncomeCents),
            expenses=from_cents(row.ExpenseCents),
            surplus=from_cents(row.SurplusCents),
            balance=from_cents(row.BalanceCents),
            projected=bool(row.Projected),
        )
        for row in frame.itertuples(index=False)
    ]


def build_balance_history(
    records: Iterable[TransactionRecord],
    starting_balance: Decimal | int | str = 0,
) -> list[BalancePoint]:
    """Running balance after each record, in chronological order.

    One point per record (a step function); records sharing a timestamp keep
    their input order.
    """
    working = balance_records(records)
    if not working:
        return []

    frame = records_frame(working).sort_values(["Date", "Position"], kind="stable")
    frame["BalanceCents"] = frame["SignedCents"].cumsum() + to_cents(starting_balance)
    return [
        BalancePoint(date=working[pos].date, balance=from_cents(balance), record=working[pos])
        for pos, balance in zip(frame["Position"], frame["BalanceCents"])
    ]


def available_months(records: Iterable[TransactionRecord]) -> list[MonthKey]:
    """Distinct months with data, oldest first."""
    return sorted({MonthKey.of(record.date) for record in balance_records(records)})


def opening_balance(records: Iterable[TransactionRecord], before: datetime.datetime) -> Decimal:
    """Sum of signed amounts strictly before ``before``."""
    cents = sum(to_cents(signed_amount(record)) for record in balance_records(records) if record.date < before)
    return from_cents(cents)


def _span_days(records: Sequence[TransactionRecord]) -> int:
    if not records:
        return 1
    first = min(record.date for record in records).date()
    last = max(record.date for record in records).date()
    return max(1, (last - first).days + 1)


def _per_day(total_cents: int, days: int) -> Decimal:
    return Decimal(total_cents) / days / 100


def daily_averages(records: Iterable[TransactionRecord]) -> DailyAverages | None:
    """Average income and expenses per day over each kind's own date span.

    Values are unrounded; round only for display. Returns ``None`` when
    there is no income to average.
    """
    working = balance_records(records)
    incomes = [record for record in working if record.kind is TransactionKind.INCOME]
    expenses = [record for record in working if record.kind is TransactionKind.EXPENSE]
    if not incomes:
        return None

    income_cents = sum(to_cents(signed_amount(record)) for record in incomes)
    expense_cents = sum(-to_cents(signed_amount(record)) for record in expenses)
    income = _per_day(income_cents, _span_days(incomes))
    spent = _per_day(expense_cents, _span_days(expenses))
    return DailyAverages(income=income, expenses=spent, surplus=income - spent)


def project_month_end(
    records: Iterable[TransactionRecord],
    as_of: datetime.date,
) -> MonthEndProjection | None:
    """Daily averages extrapolated over the days left in ``as_of``'s month."""
    averages = daily_averages(records)
    if averages is None:
        return None
    days_in_month = calendar.monthrange(as_of.year, as_of.month)[1]
    remaining = days_in_month - as_of.day
    income = (averages.income * remaining).quantize(CENT, rounding=ROUND_HALF_UP)
    spent = (averages.expenses * remaining).quantize(CENT, rounding=ROUND_HALF_UP)
    return MonthEndProjection(
        as_of=as_of,
        remaining_days=remaining,
        income=income,
        expenses=spent,
        surplus=income - spent,
    )


def monthly_frame(summaries: Sequence[MonthlySummary], locale: str = "en") -> pd.DataFrame:
    """Float table of monthly summaries indexed by month label."""
    out = pd.DataFrame(
        [
            {
                "Month": summary.month.display(locale),
                "Income": float(summary.income),
                "Expenses": float(summary.expenses),
                "Surplus": float(summary.surplus),
                "Transactions": len(summary.income_records) + len(summary.expense_records),
            }
            for summary in summaries
        ],
        columns=["Month", "Income", "Expenses", "Surplus", "Transactions"],
    )
    return out.set_index("Month")


def category_frame(summaries: Sequence[CategorySummary]) -> pd.DataFrame:
    out = pd.DataFrame(
        [
            {
                "Category": summary.category_name,
                "Amount": float(summary.total_absolute_amount),
                "SharePct": round(summary.share_pct, 2),
                "Color": summary.color,
                "Transactions": len(summary.records),
            }
            for summary in summaries
        ],
        columns=["Category", "Amount", "SharePct", "Color", "Transactions"],
    )
    return out.set_index("Category")


def forecast_frame(points: Sequence[ForecastPoint], locale: str = "en") -> pd.DataFrame:
    out = pd.DataFrame(
        [
            {
                "Month": point.month.display(locale),
                "Income": float(point.income),
                "Expenses": float(point.expenses),
                "Surplus": float(point.surplus),
                "Balance": float(point.balance),
                "Projected": point.projected,
            }
            for point in points
        ],
        columns=["Month", "Income", "Expenses", "Surplus", "Balance", "Projected"],
    )
    return out.set_index("Month")


def balance_frame(points: Sequence[BalancePoint]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"Date": point.date, "Balance": float(point.balance)} for point in points],
        columns=["Date", "Balance"],
    )
