"""Transaction export loading: the boundary where malformed rows are rejected."""

from __future__ import annotations

import csv
import datetime
import math
import re
import zipfile
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from errors import IngestionError
from logging_setup import get_logger
from records import TransactionKind, TransactionRecord

logger = get_logger("euroblick.parsing")

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xls")

COLUMN_ALIASES = {
    "date": ("date", "datum", "buchungsdatum"),
    "amount": ("amount", "betrag"),
    "kind": ("kind", "type", "typ", "art"),
    "category": ("category", "categoryname", "kategorie"),
    "excluded": ("excluded", "excludefrombalance", "excludedfrombalance", "ausgeschlossen"),
    "account": ("account", "konto"),
    "usage": ("usage", "verwendungszweck", "beschreibung"),
}
REQUIRED_COLUMNS = ("date", "amount", "kind")

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%d.%m.%Y",
    "%d.%m.%Y %H:%M",
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%y",
    "%d.%m.%y %H:%M",
)
_TRUE_FLAGS = {"1", "true", "yes", "ja", "x", "y"}
_FALSE_FLAGS = {"", "0", "false", "no", "nein", "n"}


def _source_name(source: Any) -> str:
    return str(getattr(source, "name", source))


def _read_table(source: Any, name: str) -> pd.DataFrame:
    if name.endswith(".xlsx"):
        return pd.read_excel(source, sheet_name=0, dtype=str, keep_default_na=False)
    if name.endswith(".xls"):
        # Legacy .xls needs xlrd.
        return pd.read_excel(source, sheet_name=0, dtype=str, keep_default_na=False, engine="xlrd")
    return pd.read_csv(source, sep=None, engine="python", dtype=str, keep_default_na=False)


def _load_raw_table(source: Any) -> pd.DataFrame:
    name = _source_name(source)
    if not name.lower().endswith(SUPPORTED_EXTENSIONS):
        supported = ", ".join(ext.lstrip(".") for ext in SUPPORTED_EXTENSIONS)
        raise IngestionError(f"Unsupported file type. Supported: {supported}.", source=name)
    try:
        return _read_table(source, name.lower())
    except UnicodeDecodeError as exc:
        raise IngestionError("File is not UTF-8 encoded; export it as UTF-8 and retry", source=name) from exc
    except (pd.errors.EmptyDataError, csv.Error) as exc:
        raise IngestionError("File is empty or has no recognizable columns", source=name) from exc
    except (pd.errors.ParserError, zipfile.BadZipFile, OSError, ValueError) as exc:
        raise IngestionError(f"Could not read file: {exc}", source=name) from exc


def _normalize_header(value: object) -> str:
    return re.sub(r"[\s_\-]+", "", str(value).strip().lower())


def _resolve_columns(columns: Iterable[object], source: str) -> dict[str, str]:
    by_header = {_normalize_header(col): str(col) for col in columns}
    resolved: dict[str, str] = {}
    for field_name, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in by_header:
                resolved[field_name] = by_header[alias]
                break
    missing = [name for name in REQUIRED_COLUMNS if name not in resolved]
    if missing:
        raise IngestionError(f"Missing required columns: {', '.join(missing)}", source=source)
    return resolved


def parse_amount(value: object) -> Decimal:
    """Parse ``1.234,56``, ``1,234.56``, ``-12,50`` or ``(12.50)`` into a Decimal."""
    text = str(value).strip().replace("€", "").replace("'", "").replace(" ", "").replace(" ", "")
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")
    try:
        amount = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Non-finite amount: {value!r}")
    return -amount if negative else amount


def parse_date(value: object) -> datetime.datetime:
    text = str(value).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized date: {value!r}")


def _parse_flag(value: object) -> bool:
    text = str(value).strip().lower()
    if text in _TRUE_FLAGS:
        return True
    if text in _FALSE_FLAGS:
        return False
    raise ValueError(f"Invalid flag: {value!r}")


def _optional_text(row: pd.Series, column: str | None) -> str | None:
    if column is None:
        return None
    value = row.get(column)
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    text = str(value).strip()
    return text or None


def records_from_frame(df: pd.DataFrame, source: str = "<frame>") -> list[TransactionRecord]:
    """Convert a raw export table into records, rejecting the first bad row."""
    columns = _resolve_columns(df.columns, source)
    records: list[TransactionRecord] = []
    for row_number, (_, row) in enumerate(df.iterrows(), start=1):
        try:
            excluded_col = columns.get("excluded")
            record = TransactionRecord(
                date=parse_date(row[columns["date"]]),
                amount=parse_amount(row[columns["amount"]]),
                kind=TransactionKind.parse(row[columns["kind"]]),
                category_name=_optional_text(row, columns.get("category")),
                excluded_from_balance=_parse_flag(row[excluded_col]) if excluded_col else False,
                account=_optional_text(row, columns.get("account")),
                usage=_optional_text(row, columns.get("usage")),
            )
        except ValueError as exc:
            raise IngestionError(str(exc), source=source, row=row_number) from exc
        records.append(record)
    return records


def load_records(source: Any) -> list[TransactionRecord]:
    """Load records from a CSV or Excel export (path or named file object)."""
    name = _source_name(source)
    if isinstance(source, (str, Path)) and not Path(source).exists():
        raise IngestionError("File does not exist", source=name)
    records = records_from_frame(_load_raw_table(source), source=name)
    logger.info("Loaded %d records from %s", len(records), name)
    return records


def load_many(sources: Iterable[Any]) -> list[TransactionRecord]:
    """Load several exports and order the combined records by date."""
    combined: list[TransactionRecord] = []
    for source in sources:
        combined.extend(load_records(source))
    return sorted(combined, key=lambda record: record.date)
