"""
Student roster import.

Upserts students by (owner, registration id). Any failing row rolls back the
whole file.
"""

import logging
from typing import Dict, List, Optional

from database import crud
from database.models import Student
from ingestion import CsvRow
from .base import CsvImporter
from .schemas import ImportOutcome, RowError

log = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
SKIPPED = "skipped"


class StudentImporter(CsvImporter):
    REQUIRED_COLUMNS = ("ra", "nome", "email")
    HEADER_ALIASES = {
        "ra": ["matricula", "matrícula", "registro", "registration_id", "student_id", "id"],
        "nome": ["name", "aluno", "nome_aluno", "student_name"],
        "email": ["e-mail", "mail", "email_aluno"],
    }
    COUNT_CATEGORIES = (CREATED, UPDATED, SKIPPED)
    LOG_TAG = "[StudentImport]"

    def import_rows(self, rows: List[CsvRow], outcome: ImportOutcome) -> None:
        for row in rows:
            status, error = self.process_row(row)
            if error is not None:
                outcome.errors.append(error)
            else:
                outcome.bump(status)

    def process_row(self, row: CsvRow) -> tuple[Optional[str], Optional[RowError]]:
        registration_id = row.text("ra").upper()
        name = row.text("nome")
        email = row.text("email").lower()

        if not (registration_id or name or email):
            return SKIPPED, None

        missing = [
            label for label, value in (("ID", registration_id), ("Name", name), ("Email", email))
            if not value
        ]
        if missing:
            return None, RowError(
                row.line_number,
                f"{', '.join(missing)} required (ID: '{registration_id}', Name: '{name}')",
            )

        student = crud.get_student_by_registration(self.db, self.owner.id, registration_id)
        status = UPDATED if student is not None else CREATED
        if student is None:
            student = Student(owner_id=self.owner.id, registration_id=registration_id)
        student.name = name
        student.email = email

        try:
            crud.save_student(self.db, student)
        except crud.RecordInvalid as e:
            return None, RowError(row.line_number, f"({registration_id}) {e}")
        return status, None

    def summary(self, counts: Dict[str, int]) -> str:
        parts = []
        if counts.get(CREATED):
            parts.append(f"{counts[CREATED]} student(s) created")
        if counts.get(UPDATED):
            parts.append(f"{counts[UPDATED]} student(s) updated")
        if counts.get(SKIPPED):
            parts.append(f"{counts[SKIPPED]} blank line(s) skipped")
        if not parts:
            return "No students were imported."
        return f"Import finished: {', '.join(parts)}."
