# app/core/csv_export.py
"""
CSV export of the tuition report.

Re-fetches the report with the active filters but without pagination
(``export_all=true``, offset 0), discovers the month columns of the exported
rows on its own and writes every field quoted.
"""

from __future__ import annotations
import csv
import io
import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Sequence

import pandas as pd

from core.errors import ExportEmptyError
from core.i18n import Labels
from core.report_query import (
    REPORT_COLUMNS,
    FilterState,
    ReportFetcher,
    build_query_string,
    discover_dynamic_columns,
    format_month_cell,
)

logger = logging.getLogger(__name__)

CSV_MIME = "text/csv"
FILENAME_PREFIX = "reporte-pagos"
ENTITY_COLUMN = "student_full_name"
REFERENCE_FIELD = "payment_reference"


@dataclass(frozen=True)
class CsvFile:
    filename: str
    data: bytes
    row_count: int


def export_filename(day: date) -> str:
    return f"{FILENAME_PREFIX}-{day.isoformat()}.csv"


def export_query_string(state: FilterState, language: str) -> str:
    return build_query_string(replace(state, offset=0), language, export_all=True)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def entity_cell(row: Mapping[str, Any], labels: Labels) -> str:
    """Student name, plus the reference code when the row carries one."""
    name = _text(row.get(ENTITY_COLUMN))
    code = _text(row.get(REFERENCE_FIELD))
    if not code:
        return name
    return f"{name} ({labels.get('reference')}: {code})"


def build_csv(rows: Sequence[Mapping[str, Any]], labels: Labels) -> str:
    month_columns = discover_dynamic_columns(rows)
    headers = [labels.get(c.label_key) for c in REPORT_COLUMNS] + month_columns

    records: List[Dict[str, str]] = []
    for row in rows:
        cells = [entity_cell(row, labels)]
        cells += [_text(row.get(c.key)) for c in REPORT_COLUMNS[1:]]
        # Absent months export as an empty cell, never as zero.
        cells += [format_month_cell(row.get(m), empty="") for m in month_columns]
        records.append(dict(zip(headers, cells)))

    df = pd.DataFrame(records, columns=headers, dtype=str)
    out = io.StringIO()
    df.to_csv(out, index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
    return out.getvalue()


class CsvExporter:
    def __init__(self, fetch: ReportFetcher, labels: Labels, today: Callable[[], date] = date.today):
        self._fetch = fetch
        self.labels = labels
        self._today = today

    async def export(self, state: FilterState, language: str) -> CsvFile:
        """
        Build the CSV for ``state``. Raises ExportEmptyError when there is
        nothing to export; network / shape errors propagate to the caller.
        """
        query = export_query_string(state, language)
        logger.info(f"Exporting payments report: {query}")
        payload = await self._fetch(query)
        rows = list(payload.content)
        if not rows:
            raise ExportEmptyError("No rows to export")
        text = build_csv(rows, self.labels)
        return CsvFile(export_filename(self._today()), text.encode("utf-8"), len(rows))
