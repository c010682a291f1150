"""
CSV Importers

Turn an uploaded roster or exam file into stored records, one transaction per
file. Every importer returns an ImportResult and never raises.
"""

from .base import CsvImporter, capped_lines
from .student_importer import StudentImporter
from .exam_importer import ExamImporter, parse_exam_date, parse_weight, question_type, convert_options
from .schemas import ImportResult, ImportOutcome, RowError

__all__ = [
    "CsvImporter",
    "capped_lines",
    "StudentImporter",
    "ExamImporter",
    "parse_exam_date",
    "parse_weight",
    "question_type",
    "convert_options",
    "ImportResult",
    "ImportOutcome",
    "RowError",
]
