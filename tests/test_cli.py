import json
from pathlib import Path

import pytest

from price_matrix.cli import main


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("PRICE_MATRIX_CURRENCY", "PRICE_MATRIX_STRICT_CURRENCY", "PRICE_MATRIX_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def _source(tmp_path: Path, text="0,fixed_amount,5\n100,percentage,0.1,10,50\n") -> Path:
    p = tmp_path / "matrix.csv"
    p.write_text(text)
    return p


def test_validate_ok(tmp_path: Path, capsys):
    assert main(["validate", str(_source(tmp_path))]) == 0
    out = capsys.readouterr().out
    assert "tiers=2" in out
    assert "currency_code=USD" in out


def test_validate_writes_reports(tmp_path: Path, capsys):
    source = _source(tmp_path, "10,fixed_amount,5\n5,percentage,2\n")
    report = tmp_path / "qa" / "report.json"
    errors_csv = tmp_path / "qa" / "errors.csv"
    assert main(["validate", str(source), "--report-json", str(report), "--errors-csv", str(errors_csv)]) == 1
    data = json.loads(report.read_text())
    assert data["status"] == "rejected"
    assert data["errors_total"] == 3
    assert {e["code"] for e in data["errors"]} == {
        "first_threshold_not_zero",
        "percentage_out_of_range",
        "thresholds_not_increasing",
    }
    assert errors_csv.read_text().splitlines()[0] == "row,column,code,message"
    assert "first_threshold_not_zero" in capsys.readouterr().out


def test_import_show_quote_export(tmp_path: Path, capsys):
    config = tmp_path / "config.json"
    assert main(["import", str(_source(tmp_path)), "--config", str(config), "--rate-label", "Standard"]) == 0
    assert json.loads(config.read_text())["price_matrix"]["currency_code"] == "USD"

    assert main(["show", "--config", str(config)]) == 0
    assert "100,percentage,0.1,10,50" in capsys.readouterr().out

    assert main(["quote", "1000", "--config", str(config)]) == 0
    assert "amount=50" in capsys.readouterr().out

    assert main(["quote", "10", "--config", str(config), "--currency", "EUR"]) == 1
    assert "error=" in capsys.readouterr().out

    assert main(["quote", "10", "--config", str(config), "--currency", "EUR", "--no-currency-check"]) == 0
    assert "currency_code=EUR" in capsys.readouterr().out

    exported = tmp_path / "out" / "matrix.csv"
    assert main(["export", str(exported), "--config", str(config)]) == 0
    assert exported.read_text().splitlines() == ["0,fixed_amount,5", "100,percentage,0.1,10,50"]


def test_import_requires_rate_label(tmp_path: Path, capsys):
    assert main(["import", str(_source(tmp_path)), "--config", str(tmp_path / "c.json")]) == 2
    assert "rate label" in capsys.readouterr().out


def test_bad_configuration_reported(tmp_path: Path, capsys):
    config = tmp_path / "config.json"
    config.write_text("{}")
    assert main(["show", "--config", str(config)]) == 2
    assert "error=" in capsys.readouterr().out


def test_lowercase_currency_normalised(tmp_path: Path, capsys):
    config = tmp_path / "config.json"
    source = _source(tmp_path)
    args = ["import", str(source), "--config", str(config), "--rate-label", "S", "--currency", "usd", "--delete-source"]
    assert main(args) == 0
    assert not source.exists()
    assert json.loads(config.read_text())["price_matrix"]["currency_code"] == "USD"

    assert main(["quote", "50", "--config", str(config), "--currency", "usd"]) == 0
    assert "amount=5" in capsys.readouterr().out


def test_invalid_currency_rejected_before_upload_touched(tmp_path: Path):
    config = tmp_path / "config.json"
    source = _source(tmp_path)
    with pytest.raises(SystemExit) as excinfo:
        main(["import", str(source), "--config", str(config), "--rate-label", "S", "--currency", "US Dollars", "--delete-source"])
    assert excinfo.value.code == 2
    assert source.exists()
    assert not config.exists()
