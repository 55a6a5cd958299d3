"""CSV/JSON serialization of result rows, and saving them to disk."""

import csv
import io
import json
from datetime import datetime
from pathlib import Path
from typing import Any


def columns_for(rows: list[dict[str, Any]], columns: list[str] | None = None) -> list[str]:
    """Preferred column order, then anything else the rows carry."""
    ordered = list(columns or [])
    for row in rows:
        for key in row:
            if key not in ordered:
                ordered.append(key)
    return ordered


def to_csv(rows: list[dict[str, Any]], columns: list[str] | None = None) -> str:
    columns = columns_for(rows, columns)
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


def to_json(rows: list[dict[str, Any]]) -> str:
    return json.dumps(rows, indent=2, default=str)


def save_export(content: str, ext: str, out_dir: Path, name: str | None = None) -> Path:
    """Write content under out_dir. Default name is a filesystem-safe timestamp."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    if name is None:
        name = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
    path = out_dir / f"{Path(name).stem}.{ext}"
    path.write_text(content)
    return path
