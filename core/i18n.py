# app/core/i18n.py
"""
Label lookup for the console chrome (menu, breadcrumbs, report headers).

Only the strings the core modules need live here; page copy stays in the
screens.
"""

from __future__ import annotations
from typing import Dict

SUPPORTED_LANGUAGES = ("es", "en")
FALLBACK_LANGUAGE = "es"

_LABELS: Dict[str, Dict[str, str]] = {
    "es": {
        "home": "Inicio",
        "dashboard": "Dashboard",
        "payments": "Pagos y finanzas",
        "students": "Alumnos y grupos",
        "teachers": "Profesores",
        "schedules": "Horarios y tareas",
        "grades": "Calificaciones",
        "communications": "Comunicaciones",
        "student-dashboard": "Mi panel",
        "section.tuition": "Colegiaturas",
        "section.payments": "Pagos",
        "section.requests": "Solicitudes de pago",
        "section.topups": "Recargas de saldo",
        "section.students": "Alumnos",
        "section.groups": "Grupos",
        "view.bulk_upload": "Carga masiva",
        "view.request_result": "Resultado de solicitudes",
        "detail.student": "Detalle del alumno",
        "detail.payment": "Detalle de pago",
        "detail.payment_request": "Detalle de solicitud",
        "detail.payment_request_schedule": "Detalle de programación",
        "column.student": "Alumno",
        "column.grade_group": "Grupo",
        "column.generation": "Generación",
        "column.scholar_level": "Nivel",
        "reference": "Matrícula",
    },
    "en": {
        "home": "Home",
        "dashboard": "Dashboard",
        "payments": "Payments & finance",
        "students": "Students & groups",
        "teachers": "Teachers",
        "schedules": "Schedules & tasks",
        "grades": "Grades",
        "communications": "Communications",
        "student-dashboard": "My dashboard",
        "section.tuition": "Tuition",
        "section.payments": "Payments",
        "section.requests": "Payment requests",
        "section.topups": "Balance top-ups",
        "section.students": "Students",
        "section.groups": "Groups",
        "view.bulk_upload": "Bulk upload",
        "view.request_result": "Request results",
        "detail.student": "Student detail",
        "detail.payment": "Payment detail",
        "detail.payment_request": "Request detail",
        "detail.payment_request_schedule": "Schedule detail",
        "column.student": "Student",
        "column.grade_group": "Group",
        "column.generation": "Generation",
        "column.scholar_level": "Level",
        "reference": "Matrícula",
    },
}


class Labels:
    def __init__(self, language: str):
        self.language = language if language in _LABELS else FALLBACK_LANGUAGE
        self._table = _LABELS[self.language]

    def get(self, key: str, default: str | None = None) -> str:
        if key in self._table:
            return self._table[key]
        return default if default is not None else key

    def page(self, page_key: str) -> str:
        """Page label; unknown pages get a readable version of their key."""
        return self._table.get(page_key) or page_key.replace("-", " ").replace("_", " ").capitalize()

    def section(self, section_key: str) -> str:
        return self._table.get(f"section.{section_key}") or section_key.replace("-", " ").capitalize()


def get_labels(language: str) -> Labels:
    return Labels(language)
