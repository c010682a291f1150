"""
Exam import: one CSV line per question.

Rows are grouped into exams by (title, student id, raw date). Each group reuses
an existing exam with the same key or creates one in import mode, then appends
its questions and answer keys. The first failing group stops the import and
the whole file is rolled back.
"""

import logging
import re
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from database import crud
from database.models import Exam, QuestionType
from ingestion import CsvRow
from .base import CsvImporter
from .schemas import ImportOutcome, RowError

log = logging.getLogger(__name__)

EXAMS_CREATED = "exams_created"
EXAMS_REUSED = "exams_reused"
QUESTIONS_CREATED = "questions_created"
ANSWER_KEYS_CREATED = "answer_keys_created"

DEFAULT_WEIGHT = 1.0

TYPE_ALIASES = {
    "multiple_choice": QuestionType.MULTIPLE_CHOICE,
    "multipla_escolha": QuestionType.MULTIPLE_CHOICE,
    "múltipla_escolha": QuestionType.MULTIPLE_CHOICE,
    "essay": QuestionType.ESSAY,
    "dissertativa": QuestionType.ESSAY,
}

DAY_FIRST_RE = re.compile(r"\A(\d{1,2})[/-](\d{1,2})[/-](\d{4})\Z")
ISO_DATE_RE = re.compile(r"\A(\d{4})-(\d{1,2})-(\d{1,2})\Z")
GENERIC_DATE_FORMATS = (
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%Y%m%d",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
)

GroupKey = Tuple[str, str, str]


def parse_weight(raw: str) -> float:
    """Weight from text; decimal comma accepted, blank → 1.0, garbage → 0.0."""
    if not raw:
        return DEFAULT_WEIGHT
    try:
        return float(raw.replace(",", "."))
    except ValueError:
        return 0.0


def question_type(raw: str) -> str:
    """Canonical question type; unknown spellings are passed through for validation."""
    if not raw:
        return QuestionType.MULTIPLE_CHOICE.value
    key = raw.strip().lower().replace(" ", "_").replace("-", "_")
    found = TYPE_ALIASES.get(key)
    return found.value if found else raw.strip()


def convert_options(raw: str) -> Optional[str]:
    """
    Option text, one option per line.

    "A) 3 | B) 4" → "A) 3\\nB) 4"; text that already has newlines is kept as is.
    """
    if not raw:
        return None
    if "\n" in raw:
        return raw
    if "|" in raw:
        return "\n".join(part.strip() for part in raw.split("|") if part.strip())
    return raw


def _generic_date(raw: str) -> date:
    try:
        return datetime.fromisoformat(raw).date()
    except ValueError:
        pass
    for fmt in GENERIC_DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unrecognized date: {raw}")


def parse_exam_date(raw: str) -> date:
    """
    Exam date from CSV text.

    DD/MM/YYYY and DD-MM-YYYY are read day first, then YYYY-MM-DD, then other
    ISO and textual forms. Raises ValueError when nothing matches.
    """
    match = DAY_FIRST_RE.match(raw)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return date(year, month, day)
    match = ISO_DATE_RE.match(raw)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return date(year, month, day)
    return _generic_date(raw)


class ExamImporter(CsvImporter):
    REQUIRED_COLUMNS = ("prova_titulo",)
    HEADER_ALIASES = {
        "prova_titulo": ["titulo", "título", "titulo_prova", "prova", "exam_title", "title"],
        "aluno_ra": ["ra", "matricula", "matrícula", "ra_aluno", "student_id", "registration_id"],
        "data_criacao": ["data", "data_prova", "date", "exam_date", "created_on"],
        "questao_enunciado": ["enunciado", "questao", "questão", "pergunta", "question", "prompt"],
        "questao_tipo": ["tipo", "tipo_questao", "question_type", "type"],
        "questao_peso": ["peso", "valor", "weight", "points"],
        "questao_respostas": ["respostas", "alternativas", "opcoes", "opções", "options"],
        "resposta_colocada": ["resposta_aluno", "resposta_do_aluno", "submitted_answer", "answer"],
        "resposta_correta": ["gabarito", "resposta_esperada", "reference_answer", "correct_answer"],
    }
    COUNT_CATEGORIES = (EXAMS_CREATED, EXAMS_REUSED, QUESTIONS_CREATED, ANSWER_KEYS_CREATED)
    LOG_TAG = "[ExamImport]"

    def group_rows(self, rows: List[CsvRow]) -> Dict[GroupKey, List[CsvRow]]:
        groups: Dict[GroupKey, List[CsvRow]] = {}
        for row in rows:
            key = (row.text("prova_titulo"), row.text("aluno_ra").upper(), row.text("data_criacao"))
            groups.setdefault(key, []).append(row)
        return groups

    def import_rows(self, rows: List[CsvRow], outcome: ImportOutcome) -> None:
        for key, group in self.group_rows(rows).items():
            error = self.process_group(key, group, outcome)
            if error is not None:
                outcome.errors.append(error)
                break

    def process_group(self, key: GroupKey, rows: List[CsvRow], outcome: ImportOutcome) -> Optional[RowError]:
        title, registration_id, raw_date = key
        line = rows[0].line_number

        if not title:
            return RowError(line, "exam title is required")

        student = None
        if registration_id:
            student = crud.get_student_by_registration(self.db, self.owner.id, registration_id)
            if student is None:
                return RowError(
                    line,
                    f"student with ID '{registration_id}' not found. "
                    "Register the student before importing the exam.",
                )

        created_on = self.resolve_date(raw_date, line, outcome)
        student_id = student.id if student is not None else None

        exam = crud.find_exam(self.db, self.owner.id, title, created_on, student_id)
        if exam is not None:
            outcome.bump(EXAMS_REUSED)
        else:
            exam = Exam(owner_id=self.owner.id, student_id=student_id, title=title, created_on=created_on)
            exam.import_mode = True
            try:
                crud.save_exam(self.db, exam)
            except crud.RecordInvalid as e:
                return RowError(line, f"could not create exam '{title}': {e}")
            outcome.bump(EXAMS_CREATED)
            log.info("%s created exam '%s' slug=%s", self.LOG_TAG, title, exam.slug)

        for row in rows:
            error = self.process_question(exam, row, outcome)
            if error is not None:
                return error
        return None

    def resolve_date(self, raw: str, line: int, outcome: ImportOutcome) -> date:
        if not raw:
            return date.today()
        try:
            return parse_exam_date(raw)
        except ValueError:
            log.warning("%s line %s: unreadable date %r", self.LOG_TAG, line, raw)
            outcome.warnings.append(f"Line {line}: invalid date '{raw}', using today's date")
            return date.today()

    def process_question(self, exam: Exam, row: CsvRow, outcome: ImportOutcome) -> Optional[RowError]:
        prompt = row.text("questao_enunciado")
        if not prompt:
            return None

        try:
            question = crud.add_question(
                self.db,
                exam,
                type=question_type(row.text("questao_tipo")),
                prompt=prompt,
                weight=parse_weight(row.text("questao_peso")),
                options=convert_options(row.text("questao_respostas")),
                submitted_answer=row.text("resposta_colocada") or None,
            )
        except crud.RecordInvalid as e:
            return RowError(row.line_number, f"could not create question: {e}")
        outcome.bump(QUESTIONS_CREATED)

        reference = row.text("resposta_correta")
        if reference:
            try:
                crud.set_answer_key(self.db, question, reference)
            except crud.RecordInvalid as e:
                return RowError(row.line_number, f"could not create answer key: {e}")
            outcome.bump(ANSWER_KEYS_CREATED)
        return None

    def summary(self, counts: Dict[str, int]) -> str:
        lines = []
        if counts.get(EXAMS_CREATED):
            lines.append(f"- {counts[EXAMS_CREATED]} exam(s) created")
        if counts.get(EXAMS_REUSED):
            lines.append(f"- {counts[EXAMS_REUSED]} existing exam(s) updated")
        if counts.get(QUESTIONS_CREATED):
            lines.append(f"- {counts[QUESTIONS_CREATED]} question(s) created")
        if counts.get(ANSWER_KEYS_CREATED):
            lines.append(f"- {counts[ANSWER_KEYS_CREATED]} answer key(s) created")
        if not lines:
            return "No exams were imported."
        return "Import finished:\n" + "\n".join(lines)
