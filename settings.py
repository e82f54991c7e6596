"""Persistence helpers for report settings (palettes, labels, forecast defaults)."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from categorization import EXPENSE_PALETTE, INCOME_COLOR_PATTERNS, INCOME_PALETTE, UNKNOWN_CATEGORY
from errors import ConfigError
from records import MONTH_ABBREVIATIONS

DEFAULT_SETTINGS_PATH = "data/report_settings.json"

_HEX_COLOR = re.compile(r"#[0-9A-Fa-f]{6}")


@dataclass
class ReportSettings:
    locale: str = "de"
    unknown_category: str = UNKNOWN_CATEGORY
    expense_palette: list[str] = field(default_factory=lambda: list(EXPENSE_PALETTE))
    income_palette: list[str] = field(default_factory=lambda: list(INCOME_PALETTE))
    income_color_patterns: dict[str, str] = field(default_factory=lambda: dict(INCOME_COLOR_PATTERNS))
    forecast_horizon: int = 3
    starting_balance: Decimal = Decimal("0")


def _normalize_palette(raw: Any, key: str, default: list[str]) -> list[str]:
    if raw is None:
        return default
    if not isinstance(raw, list) or not raw:
        raise ConfigError(f"{key} must be a non-empty list of #RRGGBB colours")
    colors = [str(value).strip() for value in raw]
    bad = [value for value in colors if not _HEX_COLOR.fullmatch(value)]
    if bad:
        raise ConfigError(f"{key} has invalid colours: {', '.join(bad)}")
    return colors


def _normalize_patterns(raw: Any, default: dict[str, str]) -> dict[str, str]:
    if raw is None:
        return default
    if not isinstance(raw, dict):
        raise ConfigError("income_color_patterns must be an object")
    out: dict[str, str] = {}
    for key, value in raw.items():
        fragment = str(key).strip().lower()
        color = str(value).strip()
        if not fragment:
            continue
        if not _HEX_COLOR.fullmatch(color):
            raise ConfigError(f"income_color_patterns[{fragment!r}] is not a #RRGGBB colour")
        out[fragment] = color
    return out


def _normalize_horizon(raw: Any) -> int:
    try:
        horizon = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"forecast_horizon must be an integer, got {raw!r}") from exc
    if horizon < 0:
        raise ConfigError(f"forecast_horizon must be >= 0, got {horizon}")
    return horizon


def _normalize_balance(raw: Any) -> Decimal:
    try:
        balance = Decimal(str(raw))
    except InvalidOperation as exc:
        raise ConfigError(f"starting_balance is not a number: {raw!r}") from exc
    if not balance.is_finite():
        raise ConfigError(f"starting_balance must be finite, got {raw!r}")
    return balance


def settings_from_dict(payload: Any) -> ReportSettings:
    if not isinstance(payload, dict):
        raise ConfigError("Settings file must contain a JSON object")
    defaults = ReportSettings()
    locale = str(payload.get("locale", defaults.locale)).strip().lower()
    if locale not in MONTH_ABBREVIATIONS:
        raise ConfigError(f"Unsupported locale {locale!r}; expected one of {sorted(MONTH_ABBREVIATIONS)}")
    unknown = str(payload.get("unknown_category", defaults.unknown_category)).strip()
    return ReportSettings(
        locale=locale,
        unknown_category=unknown or defaults.unknown_category,
        expense_palette=_normalize_palette(payload.get("expense_palette"), "expense_palette", defaults.expense_palette),
        income_palette=_normalize_palette(payload.get("income_palette"), "income_palette", defaults.income_palette),
        income_color_patterns=_normalize_patterns(payload.get("income_color_patterns"), defaults.income_color_patterns),
        forecast_horizon=_normalize_horizon(payload.get("forecast_horizon", defaults.forecast_horizon)),
        starting_balance=_normalize_balance(payload.get("starting_balance", defaults.starting_balance)),
    )


def load_report_settings(path: str | Path) -> ReportSettings:
    """Load settings from disk; a missing file yields the defaults."""
    target = Path(path).expanduser()
    if not target.exists():
        return ReportSettings()
    try:
        payload = json.loads(target.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{target}: invalid JSON ({exc.msg})") from exc
    return settings_from_dict(payload)


def save_report_settings(path: str | Path, settings: ReportSettings) -> Path:
    """Save settings to disk and return the saved path."""
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "locale": settings.locale,
        "unknown_category": settings.unknown_category,
        "expense_palette": list(settings.expense_palette),
        "income_palette": list(settings.income_palette),
        "income_color_patterns": dict(settings.income_color_patterns),
        "forecast_horizon": int(settings.forecast_horizon),
        "starting_balance": str(settings.starting_balance),
    }
    target.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return target
