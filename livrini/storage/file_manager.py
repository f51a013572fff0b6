# livrini/storage/file_manager.py

"""Handles exporting dashboard data (reports, orders) to disk."""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from livrini.config.settings import Settings

logger = logging.getLogger("livrini.exports")


def _rows_of(data: Any) -> list[dict[str, Any]]:
    """Coerce report data into a list of flat rows for CSV."""
    if isinstance(data, list):
        return [r if isinstance(r, dict) else {"value": r} for r in data]
    if isinstance(data, dict):
        for value in data.values():
            if isinstance(value, list) and all(isinstance(v, dict) for v in value):
                return list(value)
        return [data]
    if data is None:
        return []
    return [{"value": data}]


class FileManager:
    """Writes timestamped JSON/CSV exports."""

    def __init__(self, exports_dir: Path | None = None) -> None:
        self.exports_dir: Path = exports_dir or Settings.EXPORTS_DIR
        self.exports_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("FileManager initialised, exports_dir=%s", self.exports_dir)

    def _target(self, name: str, suffix: str) -> Path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.exports_dir / f"{name.replace(' ', '_')}_{timestamp}.{suffix}"

    def export_json(self, name: str, data: Any) -> Path:
        filepath = self._target(name, "json")
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2, default=str)
        logger.info("Exported '%s' to %s", name, filepath)
        return filepath

    def export_csv(self, name: str, data: Any) -> Path:
        """Write rows as CSV; the header is the union of row keys."""
        rows = _rows_of(data)
        columns: list[str] = []
        for row in rows:
            for key in row:
                if key not in columns:
                    columns.append(key)

        filepath = self._target(name, "csv")
        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
            writer.writeheader()
            for row in rows:
                writer.writerow({
                    k: json.dumps(v, ensure_ascii=False)
                    if isinstance(v, (dict, list)) else v
                    for k, v in row.items()
                })
        logger.info("Exported %d rows of '%s' to %s", len(rows), name, filepath)
        return filepath

    def export(self, name: str, data: Any, fmt: str = "json") -> Path:
        if fmt == "csv":
            return self.export_csv(name, data)
        return self.export_json(name, data)
