# tests/test_csv_export.py
import asyncio
from dataclasses import replace
from datetime import date

import pytest

from core.csv_export import CsvExporter, build_csv, entity_cell, export_filename
from core.errors import ExportEmptyError
from core.payloads import ReportPayload
from core.report_query import FilterState


def test_entity_cell_adds_reference_code_when_present(labels):
    assert entity_cell({"student_full_name": "Ana Díaz", "payment_reference": "A-17"}, labels) == "Ana Díaz (Matrícula: A-17)"
    assert entity_cell({"student_full_name": "Ana Díaz", "payment_reference": "  "}, labels) == "Ana Díaz"
    assert entity_cell({"student_full_name": "Ana Díaz"}, labels) == "Ana Díaz"


def test_every_field_quoted_and_inner_quotes_doubled(labels):
    rows = [
        {
            "student_full_name": 'Ana "La" Díaz',
            "payment_reference": "A1",
            "grade_group": "3A",
            "generation": "2024",
            "scholar_level_name": "Primaria",
            "Jan-24": 1500,
        },
        {"student_full_name": "Luis", "Feb-24": {"total_amount": 800}},
    ]
    lines = build_csv(rows, labels).splitlines()
    assert lines[0] == '"Alumno","Grupo","Generación","Nivel","Jan-24","Feb-24"'
    assert lines[1] == '"Ana ""La"" Díaz (Matrícula: A1)","3A","2024","Primaria","1500.00",""'
    assert lines[2] == '"Luis","","","","","800.00"'


def test_filename_uses_iso_date():
    assert export_filename(date(2024, 5, 6)) == "reporte-pagos-2024-05-06.csv"


def test_export_refetches_unpaginated_with_same_filters(labels):
    seen = []

    async def fetch(query):
        seen.append(query)
        return ReportPayload(content=[{"student_full_name": "Ana", "Mar-24": 10}], totalElements=1)

    state = replace(FilterState.defaults(10), offset=30, show_debt_only=True).with_filter("generation", "2024")
    state = replace(state, offset=30)
    exporter = CsvExporter(fetch, labels, today=lambda: date(2024, 5, 6))

    csv_file = asyncio.run(exporter.export(state, "es"))

    assert "offset=0" in seen[0]
    assert "export_all=true" in seen[0]
    assert "show_debt_only=true" in seen[0]
    assert "generation=2024" in seen[0]
    assert csv_file.filename == "reporte-pagos-2024-05-06.csv"
    assert csv_file.row_count == 1
    text = csv_file.data.decode("utf-8")
    assert '"Mar-24"' in text.splitlines()[0]


def test_empty_export_raises_warning_error(labels):
    async def fetch(query):
        return ReportPayload(content=[], totalElements=0)

    exporter = CsvExporter(fetch, labels)
    with pytest.raises(ExportEmptyError):
        asyncio.run(exporter.export(FilterState.defaults(10), "es"))
