"""
JSON and CSV export, JSON import.
"""
import asyncio
import csv
import io
import json
import logging
from pathlib import Path
from typing import List

from ..storage.models import ApplicationRecord, coerce_record_list

logger = logging.getLogger(__name__)

JSON_EXPORT_FILENAME = "job-tracker.json"
CSV_EXPORT_FILENAME = "job-tracker.csv"
CSV_COLUMNS = ["id", "company", "role", "source", "status", "date", "notes"]

class ImportFormatError(ValueError):
    """Raised when an import document is not a JSON array of records."""

def records_to_json(records: List[ApplicationRecord]) -> str:
    """Serialize records as a pretty-printed JSON array."""
    return json.dumps([r.model_dump(mode="json") for r in records], indent=2, ensure_ascii=False)

def records_to_csv(records: List[ApplicationRecord]) -> str:
    """Serialize records as CSV with a fixed column order.

    The header row is bare; every data field is quoted with embedded quotes
    doubled.
    """
    buf = io.StringIO()
    buf.write(",".join(CSV_COLUMNS) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for record in records:
        row = record.model_dump(mode="json")
        writer.writerow(["" if row.get(col) is None else row[col] for col in CSV_COLUMNS])
    return buf.getvalue()[:-1]

def parse_records(text: str) -> List[ApplicationRecord]:
    """Parse an exported JSON document back into records.

    Args:
        text: Contents of a JSON export

    Returns:
        Records in document order, missing fields filled with defaults

    Raises:
        ImportFormatError: If the text is not JSON, not an array, or holds an
            entry that is not an object
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ImportFormatError("Could not parse JSON") from e
    if not isinstance(data, list):
        raise ImportFormatError("Invalid JSON format")
    try:
        return coerce_record_list(data)
    except ValueError as e:
        raise ImportFormatError(f"Invalid JSON format: {e}") from e

def write_json_export(records: List[ApplicationRecord], directory: str = ".") -> Path:
    """Write ``job-tracker.json`` into ``directory``."""
    path = Path(directory) / JSON_EXPORT_FILENAME
    path.write_text(records_to_json(records), encoding="utf-8")
    logger.info("Exported %d records to %s", len(records), path)
    return path

def write_csv_export(records: List[ApplicationRecord], directory: str = ".") -> Path:
    """Write ``job-tracker.csv`` into ``directory``."""
    path = Path(directory) / CSV_EXPORT_FILENAME
    path.write_text(records_to_csv(records), encoding="utf-8", newline="")
    logger.info("Exported %d records to %s", len(records), path)
    return path

async def read_import_file(path: str) -> str:
    """Read a user-selected import file without blocking the event loop."""
    return await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
