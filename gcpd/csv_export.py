"""
CSV rendering and export sinks for accumulated match records.

Column order is stable across runs: the fixed GCPD schema first, then any
unexpected fields in alphabetical order. Keys starting with "_" are internal
and never exported.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from gcpd.config import DEFAULT_FILENAME_BASE

logger = logging.getLogger(__name__)

CSV_MIME_TYPE = "text/csv"
INTERNAL_PREFIX = "_"

_UNSAFE_FILENAME_RE = re.compile(r"[^\w\-.]", re.ASCII)


def extra_columns(records: Iterable[Dict[str, Any]], fixed_order: Sequence[str]) -> List[str]:
    known = set(fixed_order)
    extras = set()
    for record in records:
        for key in record:
            if key not in known and not key.startswith(INTERNAL_PREFIX):
                extras.add(key)
    return sorted(extras)


def format_cell(value: Any) -> str:
    """Stringify a record value for CSV; quoting is left to the csv writer."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def build_csv(
    records: Sequence[Dict[str, Any]],
    fixed_order: Sequence[str],
    verbose: bool = False,
) -> Tuple[str, List[str]]:
    """
    Render records to CSV text.

    Args:
        records: Records in admission order.
        fixed_order: Primary column order; always present in the header.
        verbose: Log the extra columns that were appended.

    Returns:
        (csv_text, headers)
    """
    extras = extra_columns(records, fixed_order)
    headers = list(fixed_order) + extras

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    for record in records:
        writer.writerow([format_cell(record.get(header)) for header in headers])

    if verbose and extras:
        logger.info("[GCPD] extra fields attached to CSV: %s", extras)
    return buffer.getvalue(), headers


def export_filename(filename_base: str) -> str:
    base = filename_base or DEFAULT_FILENAME_BASE
    return _UNSAFE_FILENAME_RE.sub("_", base) + ".csv"


class FileSink:
    """Export sink that writes the rendered content into a directory."""

    def __init__(self, directory: str = "."):
        self.directory = Path(directory)

    def save(self, content: str, filename: str, mime_type: str = CSV_MIME_TYPE) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / filename
        path.write_bytes(content.encode("utf-8"))
        logger.debug("Wrote %s (%s, %s bytes)", path, mime_type, path.stat().st_size)
        return path
