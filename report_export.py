"""Finance report rendering: text lines, a plain PDF and a zipped report pack."""

from __future__ import annotations

import datetime
import io
import zipfile
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from analytics import (
    BalancePoint,
    CategorySummary,
    ForecastPoint,
    MonthEndProjection,
    MonthlySummary,
    balance_frame,
    category_frame,
    forecast_frame,
    monthly_frame,
)
from records import CENT, TransactionKind

_LABELS = {
    "de": {
        "title": "Finanzbericht",
        "generated": "Erstellt",
        "monthly": "Einnahmen und Ausgaben",
        "month": "Monat",
        "income": "Einnahmen",
        "expenses": "Ausgaben",
        "surplus": "Überschuss",
        "period": "Zeitraum",
        "expense_categories": "Ausgaben nach Kategorie",
        "income_categories": "Einnahmen nach Kategorie",
        "forecast": "Prognostizierter Kontostand",
        "projected": "Prognose",
        "month_end": "Prognose bis Monatsende",
        "days_left": "verbleibende Tage",
        "no_data": "Keine Daten für den gewählten Zeitraum.",
    },
    "en": {
        "title": "Finance Report",
        "generated": "Generated",
        "monthly": "Income and Expenses",
        "month": "Month",
        "income": "Income",
        "expenses": "Expenses",
        "surplus": "Surplus",
        "period": "Period",
        "expense_categories": "Expenses by Category",
        "income_categories": "Income by Category",
        "forecast": "Projected Balance",
        "projected": "projected",
        "month_end": "Projection to Month End",
        "days_left": "days left",
        "no_data": "No data for the selected period.",
    },
}


def format_amount(value: Decimal | float | int, signed: bool = True) -> str:
    """German currency text, e.g. ``+1.234,56 €`` (or ``1.234,56 €`` unsigned)."""
    amount = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    digits = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    if not signed:
        return f"{digits} €"
    return f"{'+' if amount >= 0 else '-'}{digits} €"


def _format_pct(value: float) -> str:
    return f"{value:.1f} %".replace(".", ",")


def report_lines(
    monthly: Sequence[MonthlySummary],
    categories: Sequence[CategorySummary],
    forecast: Sequence[ForecastPoint],
    *,
    locale: str = "de",
    category_kind: TransactionKind | str = TransactionKind.EXPENSE,
    period_label: str | None = None,
    projection: MonthEndProjection | None = None,
    generated_at: datetime.datetime | None = None,
) -> list[str]:
    """Lines of the finance report; empty sections render a no-data line.

    ``category_kind`` names the scope the category summaries were built for
    and picks the section heading.
    """
    labels = _LABELS.get(locale, _LABELS["de"])
    stamp = (generated_at or datetime.datetime.now()).strftime("%d.%m.%Y %H:%M")
    lines = [labels["title"], f"{labels['generated']}: {stamp}"]
    if period_label:
        lines.append(f"{labels['period']}: {period_label}")
    lines.extend(["", labels["monthly"]])

    if not monthly:
        lines.append(labels["no_data"])
    for summary in monthly:
        lines.extend(
            [
                f"{labels['month']}: {summary.month.display(locale)}",
                f"  {labels['income']}: {format_amount(summary.income, signed=False)}",
                f"  {labels['expenses']}: {format_amount(summary.expenses, signed=False)}",
                f"  {labels['surplus']}: {format_amount(summary.surplus)}",
            ]
        )

    if TransactionKind.parse(category_kind) is TransactionKind.INCOME:
        lines.extend(["", labels["income_categories"]])
    else:
        lines.extend(["", labels["expense_categories"]])
    if not categories:
        lines.append(labels["no_data"])
    for category in categories:
        lines.append(
            f"  {category.category_name}: {format_amount(category.total_absolute_amount, signed=False)}"
            f" ({_format_pct(category.share_pct)})"
        )

    lines.extend(["", labels["forecast"]])
    if not forecast:
        lines.append(labels["no_data"])
    for point in forecast:
        suffix = f" ({labels['projected']})" if point.projected else ""
        lines.append(f"  {point.month.display(locale)}: {format_amount(point.balance)}{suffix}")

    if projection is not None:
        lines.extend(
            [
                "",
                f"{labels['month_end']} ({projection.remaining_days} {labels['days_left']})",
                f"  {labels['income']}: {format_amount(projection.income, signed=False)}",
                f"  {labels['expenses']}: {format_amount(projection.expenses, signed=False)}",
                f"  {labels['surplus']}: {format_amount(projection.surplus)}",
            ]
        )
    return lines


def _pdf_escape(text: str) -> str:
    return str(text).replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def _page_stream(lines: Sequence[str]) -> bytes:
    # 15pt leading; T* moves to the next line.
    ops = ["BT", "/F1 10 Tf", "15 TL", "50 800 Td"]
    ops.extend(f"({_pdf_escape(line)}) Tj T*" for line in lines)
    ops.append("ET")
    body = "\n".join(ops).encode("cp1252", errors="replace")
    return f"<< /Length {len(body)} >>\nstream\n".encode("ascii") + body + b"\nendstream"


def _serialize_pdf(objects: Sequence[bytes]) -> bytes:
    """Number ``objects`` from 1 and append the xref table and trailer."""
    out = bytearray(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"

    xref_at = len(out)
    size = len(objects) + 1
    out += f"xref\n0 {size}\n0000000000 65535 f \n".encode("ascii")
    out += "".join(f"{offset:010d} 00000 n \n" for offset in offsets).encode("ascii")
    out += f"trailer\n<< /Size {size} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF".encode("ascii")
    return bytes(out)


def build_pdf_report(lines: Sequence[str], lines_per_page: int = 46) -> bytes:
    """Text-only A4 PDF; WinAnsi encoding keeps umlauts and the euro sign.

    Objects 1-3 are the catalog, the page tree and the font; each page then
    adds its content stream followed by the page object.
    """
    text = [str(line).rstrip() for line in lines]
    while text and not text[-1]:
        text.pop()
    if not text:
        text = [_LABELS["de"]["title"], _LABELS["de"]["no_data"]]

    per_page = max(1, int(lines_per_page))
    pages = [text[idx : idx + per_page] for idx in range(0, len(text), per_page)]
    page_numbers = [5 + 2 * idx for idx in range(len(pages))]
    kids = " ".join(f"{number} 0 R" for number in page_numbers)

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode("ascii"),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>",
    ]
    for number, chunk in zip(page_numbers, pages):
        objects.append(_page_stream(chunk))
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 595 842] "
                f"/Resources << /Font << /F1 3 0 R >> >> /Contents {number - 1} 0 R >>"
            ).encode("ascii")
        )
    return _serialize_pdf(objects)


def build_report_pack(
    monthly: Sequence[MonthlySummary],
    categories: Sequence[CategorySummary],
    forecast: Sequence[ForecastPoint],
    balance: Sequence[BalancePoint] = (),
    *,
    locale: str = "de",
    category_kind: TransactionKind | str = TransactionKind.EXPENSE,
    period_label: str | None = None,
    projection: MonthEndProjection | None = None,
) -> tuple[str, bytes, bytes]:
    """Build markdown summary, zip pack and PDF report."""
    lines = report_lines(
        monthly,
        categories,
        forecast,
        locale=locale,
        category_kind=category_kind,
        period_label=period_label,
        projection=projection,
    )
    markdown = f"# {lines[0]}\n\n" + "\n".join(lines[1:]) + "\n"
    pdf = build_pdf_report(lines)

    output = io.BytesIO()
    with zipfile.ZipFile(output, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("summary.md", markdown)
        zf.writestr("monthly.csv", monthly_frame(monthly, locale).to_csv())
        zf.writestr("categories.csv", category_frame(categories).to_csv())
        zf.writestr("forecast.csv", forecast_frame(forecast, locale).to_csv())
        zf.writestr("balance.csv", balance_frame(balance).to_csv(index=False))
        zf.writestr("report.pdf", pdf)
    return markdown, output.getvalue(), pdf
