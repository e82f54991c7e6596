"""Command-line finance report over exported transactions.

Usage:
  euroblick-report exports/giro.csv --month "Mar 2024" --pdf out/report.pdf
"""

from __future__ import annotations

import argparse
import datetime as dt
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

from analytics import (
    balance_records,
    build_balance_history,
    build_category_summaries,
    build_forecast_series,
    build_monthly_summaries,
    filter_by_range,
    opening_balance,
    project_month_end,
)
from errors import ReportingError
from logging_setup import configure_logging, get_logger
from parsing import load_many
from records import AllTime, DateRange, ExplicitRange, MonthKey, SingleMonth
from report_export import build_pdf_report, build_report_pack, report_lines
from settings import DEFAULT_SETTINGS_PATH, load_report_settings

logger = get_logger("euroblick.cli")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Income/expense report for exported transactions")
    p.add_argument("inputs", nargs="+", help="CSV or Excel export(s) to load")
    p.add_argument("--month", help="Single month, e.g. 'Mar 2024' or 2024-03")
    p.add_argument("--from", dest="date_from", help="Range start (YYYY-MM-DD), inclusive")
    p.add_argument("--to", dest="date_to", help="Range end (YYYY-MM-DD), inclusive")
    p.add_argument("--kind", choices=("expense", "income"), default="expense", help="Category report scope")
    p.add_argument("--horizon", type=int, help="Future months in the forecast")
    p.add_argument("--starting-balance", help="Balance before the first reported transaction")
    p.add_argument("--settings", default=DEFAULT_SETTINGS_PATH, help="Report settings JSON")
    p.add_argument("--pdf", dest="pdf_out", help="Write the PDF report to this path")
    p.add_argument("--pack", dest="pack_out", help="Write a zip report pack to this path")
    p.add_argument("--log-level", default=None, help="Logging level (default INFO)")
    return p.parse_args(argv)


def _date_range(args: argparse.Namespace) -> DateRange:
    if args.month and (args.date_from or args.date_to):
        raise ReportingError("Use either --month or --from/--to, not both")
    if args.month:
        try:
            return SingleMonth(MonthKey.parse(args.month))
        except ValueError as exc:
            raise ReportingError(str(exc)) from exc
    if args.date_from or args.date_to:
        if not (args.date_from and args.date_to):
            raise ReportingError("--from and --to must be given together")
        try:
            return ExplicitRange.covering(
                dt.date.fromisoformat(args.date_from),
                dt.date.fromisoformat(args.date_to),
            )
        except ValueError as exc:
            raise ReportingError(str(exc)) from exc
    return AllTime()


def _period_label(date_range: DateRange, locale: str) -> Optional[str]:
    if isinstance(date_range, SingleMonth):
        return date_range.key.display(locale)
    if isinstance(date_range, ExplicitRange):
        return date_range.label or None
    return None


def _decimal_arg(value: str) -> Decimal:
    try:
        amount = Decimal(value.replace(",", "."))
    except InvalidOperation as exc:
        raise ReportingError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ReportingError(f"Invalid amount: {value!r}")
    return amount


def _write_bytes(path: str, payload: bytes) -> Path:
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(payload)
    return target


def run(args: argparse.Namespace) -> int:
    settings = load_report_settings(args.settings)
    date_range = _date_range(args)
    horizon = settings.forecast_horizon if args.horizon is None else args.horizon
    if horizon < 0:
        raise ReportingError("--horizon must be >= 0")
    starting = settings.starting_balance if args.starting_balance is None else _decimal_arg(args.starting_balance)

    records = load_many(args.inputs)
    selected = filter_by_range(records, date_range)
    if isinstance(date_range, ExplicitRange):
        starting += opening_balance(records, date_range.start)
    elif isinstance(date_range, SingleMonth):
        month_start = dt.datetime.combine(date_range.key.first_day(), dt.time.min)
        starting += opening_balance(records, month_start)

    palette = settings.income_palette if args.kind == "income" else settings.expense_palette
    monthly = build_monthly_summaries(selected)
    categories = build_category_summaries(
        selected,
        args.kind,
        unknown_label=settings.unknown_category,
        palette=palette,
        color_patterns=settings.income_color_patterns if args.kind == "income" else None,
    )
    forecast = build_forecast_series(selected, horizon=horizon, starting_balance=starting)
    balance = build_balance_history(selected, starting_balance=starting)
    projection = None
    counted = balance_records(selected)
    if isinstance(date_range, SingleMonth) and counted:
        projection = project_month_end(counted, max(record.date for record in counted).date())

    if not monthly:
        logger.warning("No transactions in the selected period")

    period = _period_label(date_range, settings.locale)
    lines = report_lines(
        monthly,
        categories,
        forecast,
        locale=settings.locale,
        category_kind=args.kind,
        period_label=period,
        projection=projection,
    )
    print("\n".join(lines))

    if args.pdf_out:
        target = _write_bytes(args.pdf_out, build_pdf_report(lines))
        print(f"\nSaved PDF report to: {target}")
    if args.pack_out:
        _, pack, _ = build_report_pack(
            monthly,
            categories,
            forecast,
            balance,
            locale=settings.locale,
            category_kind=args.kind,
            period_label=period,
            projection=projection,
        )
        target = _write_bytes(args.pack_out, pack)
        print(f"\nSaved report pack to: {target}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        return run(args)
    except ReportingError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
