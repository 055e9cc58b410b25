from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .matrix import Matrix
from .parser import ParseResult, RowError


def write_matrix_csv(matrix: Matrix, output_path: str | Path) -> None:
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with output_file.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerows(matrix.to_rows())


def write_errors_csv(errors: list[RowError], output_path: str | Path) -> None:
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with output_file.open("w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["row", "column", "code", "message"])
        writer.writeheader()
        for err in errors:
            writer.writerow(
                {
                    "row": err.row + 1,
                    "column": err.column + 1 if err.column is not None else "",
                    "code": err.code.value,
                    "message": err.message,
                }
            )


def write_report_json(report_path: str | Path, result: ParseResult, source_file: str) -> None:
    report_file = Path(report_path)
    report_file.parent.mkdir(parents=True, exist_ok=True)

    report: dict[str, Any] = {
        "run_id": datetime.now(timezone.utc).strftime("run-%Y%m%d%H%M%S"),
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "source_file": source_file,
        "status": "accepted" if result.ok else "rejected",
        "tiers": len(result.matrix.tiers) if result.matrix is not None else 0,
        "currency_code": result.matrix.currency_code if result.matrix is not None else None,
        "errors_total": len(result.errors),
        "errors": [
            {
                "row": e.row + 1,
                "column": e.column + 1 if e.column is not None else None,
                "code": e.code.value,
                "message": e.message,
            }
            for e in result.errors
        ],
    }

    report_file.write_text(json.dumps(report, indent=2))
