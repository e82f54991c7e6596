import logging
import zipfile
from pathlib import Path

import pytest

import logging_setup
from cli import main


@pytest.fixture(autouse=True)
def _fresh_logging(monkeypatch):
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    yield
    root = logging.getLogger(logging_setup.ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)


def _write_export(tmp_path: Path) -> Path:
    target = tmp_path / "giro.csv"
    target.write_text(
        "\n".join(
            [
                "Datum;Betrag;Typ;Kategorie",
                "15.02.2024;1.000,00;einnahme;Gehalt",
                "01.03.2024;2.000,00;einnahme;Gehalt",
                "05.03.2024;-400,00;ausgabe;Miete",
                "10.03.2024;-100,00;ausgabe;",
                "12.03.2024;-250,00;umbuchung;",
            ]
        ),
        encoding="utf-8",
    )
    return target


def test_month_report_seeds_balance_from_earlier_records(tmp_path: Path, capsys) -> None:
    export = _write_export(tmp_path)

    code = main(
        [
            str(export),
            "--month",
            "Mar 2024",
            "--horizon",
            "0",
            "--starting-balance",
            "100",
            "--settings",
            str(tmp_path / "settings.json"),
        ]
    )

    out = capsys.readouterr().out
    assert code == 0
    assert "Zeitraum: Mär 2024" in out
    assert "Monat: Mär 2024" in out
    assert "Monat: Feb 2024" not in out
    assert "  Einnahmen: 2.000,00 €" in out
    assert "  Ausgaben: 500,00 €" in out
    assert "  Miete: 400,00 € (80,0 %)" in out
    assert "  Unbekannt: 100,00 € (20,0 %)" in out
    assert "  Mär 2024: +2.600,00 €" in out
    assert "Prognose bis Monatsende (19 verbleibende Tage)" in out


def test_all_time_report_writes_pdf_and_pack(tmp_path: Path, capsys) -> None:
    export = _write_export(tmp_path)
    pdf_out = tmp_path / "out" / "report.pdf"
    pack_out = tmp_path / "out" / "report.zip"

    code = main(
        [
            str(export),
            "--settings",
            str(tmp_path / "settings.json"),
            "--pdf",
            str(pdf_out),
            "--pack",
            str(pack_out),
        ]
    )

    out = capsys.readouterr().out
    assert code == 0
    assert "Saved PDF report to:" in out
    assert "Saved report pack to:" in out
    assert pdf_out.read_bytes().startswith(b"%PDF-1.4")
    with zipfile.ZipFile(pack_out) as zf:
        assert "balance.csv" in zf.namelist()
    assert "(Prognose)" in out


def test_empty_range_prints_no_data(tmp_path: Path, capsys) -> None:
    export = _write_export(tmp_path)

    code = main(
        [
            str(export),
            "--from",
            "2025-01-01",
            "--to",
            "2025-01-31",
            "--settings",
            str(tmp_path / "settings.json"),
        ]
    )

    out = capsys.readouterr().out
    assert code == 0
    assert "Zeitraum: 01.01.25 - 31.01.25" in out
    assert out.count("Keine Daten für den gewählten Zeitraum.") == 3


@pytest.mark.parametrize(
    "extra",
    [
        ["--month", "Smarch 2024"],
        ["--month", "Mar 2024", "--from", "2024-03-01", "--to", "2024-03-31"],
        ["--from", "2024-03-01"],
        ["--from", "2024-04-01", "--to", "2024-03-01"],
        ["--starting-balance", "lots"],
        ["--horizon", "-1"],
    ],
)
def test_invalid_arguments_exit_with_error(tmp_path: Path, capsys, extra: list[str]) -> None:
    export = _write_export(tmp_path)

    code = main([str(export), "--settings", str(tmp_path / "settings.json"), *extra])

    assert code == 2
    assert "error:" in capsys.readouterr().err


@pytest.mark.parametrize(
    ("name", "payload"),
    [
        ("missing.csv", None),
        ("empty.csv", b""),
        ("sparkasse.csv", "Datum;Betrag;Typ;Kategorie\n01.03.2024;-5,00;ausgabe;Gebühren\n".encode("cp1252")),
    ],
)
def test_unreadable_export_exits_with_error(tmp_path: Path, capsys, name: str, payload: bytes | None) -> None:
    export = tmp_path / name
    if payload is not None:
        export.write_bytes(payload)

    code = main([str(export), "--settings", str(tmp_path / "settings.json")])

    assert code == 2
    err = capsys.readouterr().err
    assert "error:" in err
    assert name in err


def test_income_kind_report_uses_income_heading(tmp_path: Path, capsys) -> None:
    export = _write_export(tmp_path)

    code = main([str(export), "--kind", "income", "--settings", str(tmp_path / "settings.json")])

    out = capsys.readouterr().out
    assert code == 0
    assert "Einnahmen nach Kategorie" in out
    assert "Ausgaben nach Kategorie" not in out
    assert "  Gehalt: 3.000,00 € (100,0 %)" in out


def test_excluded_record_does_not_move_month_end_projection(tmp_path: Path, capsys) -> None:
    export = tmp_path / "giro.csv"
    export.write_text(
        "\n".join(
            [
                "Datum;Betrag;Typ;Kategorie;excludeFromBalance",
                "01.03.2024;2.000,00;einnahme;Gehalt;0",
                "12.03.2024;-100,00;ausgabe;Miete;0",
                "25.03.2024;500,00;einnahme;Bonus;1",
            ]
        ),
        encoding="utf-8",
    )

    code = main([str(export), "--month", "2024-03", "--settings", str(tmp_path / "settings.json")])

    out = capsys.readouterr().out
    assert code == 0
    assert "Prognose bis Monatsende (19 verbleibende Tage)" in out
    assert "Bonus" not in out
