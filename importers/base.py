"""
Shared CSV import flow: normalize → parse → process rows → commit or roll back.

One file is one transaction. Subclasses only flush; the decision to commit is
taken here once every row has been processed.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from database.models import User
from ingestion import InputError, UploadedFile, CsvRow, build_alias_table, normalize_upload, parse_table
from .schemas import ImportOutcome, ImportResult

log = logging.getLogger(__name__)

MAX_LISTED = 5


def capped_lines(items: Sequence, noun: str, limit: int = MAX_LISTED) -> List[str]:
    """First `limit` items as text, plus a '... and N more' line."""
    lines = [str(item) for item in items[:limit]]
    if len(items) > limit:
        lines.append(f"... and {len(items) - limit} more {noun}(s)")
    return lines


class CsvImporter:
    """
    Base importer. Subclasses set the column contract and implement
    `import_rows` and `summary`.
    """

    REQUIRED_COLUMNS: Sequence[str] = ()
    HEADER_ALIASES: Mapping[str, Sequence[str]] = {}
    COUNT_CATEGORIES: Sequence[str] = ()
    LOG_TAG = "[Import]"

    def __init__(self, db: Session, owner: User):
        self.db = db
        self.owner = owner
        self.alias_table = build_alias_table(self.HEADER_ALIASES)

    def call(self, upload: Optional[UploadedFile]) -> ImportResult:
        """Import one uploaded file; never raises."""
        try:
            text, delimiter = normalize_upload(upload)
            table = parse_table(text, delimiter, self.alias_table, self.REQUIRED_COLUMNS)
        except InputError as e:
            log.warning("%s rejected upload: %s", self.LOG_TAG, e)
            return ImportResult.failure(str(e))

        if not table.rows:
            return ImportResult.failure("CSV file is empty.")

        log.info("%s start owner=%s rows=%s", self.LOG_TAG, self.owner.id, len(table.rows))
        outcome = ImportOutcome(counts={category: 0 for category in self.COUNT_CATEGORIES})
        try:
            self.import_rows(table.rows, outcome)
            counts = self._close_transaction(outcome)
        except Exception as e:
            self.db.rollback()
            log.exception("%s unexpected error, rolled back", self.LOG_TAG)
            return ImportResult.failure(f"Unexpected error while importing CSV: {e}")

        return self._finish(outcome, counts)

    def _close_transaction(self, outcome: ImportOutcome) -> Dict[str, int]:
        """Commit on success, roll back on any row error; returns the counts to report."""
        if outcome.failed:
            self.db.rollback()
            log.warning("%s rolled back errors=%s", self.LOG_TAG, len(outcome.errors))
            return {category: 0 for category in outcome.counts}
        self.db.commit()
        log.info("%s committed counts=%s", self.LOG_TAG, outcome.counts)
        return dict(outcome.counts)

    def _finish(self, outcome: ImportOutcome, counts: Dict[str, int]) -> ImportResult:
        message = self.summary(counts)
        if outcome.warnings:
            message += "\n\nWarnings:\n" + "\n".join(capped_lines(outcome.warnings, "warning"))
        if outcome.failed:
            message += (
                f"\n\nErrors found ({len(outcome.errors)} total), nothing was saved:\n"
                + "\n".join(capped_lines(outcome.errors, "error"))
            )

        return ImportResult(
            success=not outcome.failed,
            message=message,
            counts=counts,
            errors=[str(error) for error in outcome.errors],
            warnings=list(outcome.warnings),
        )

    def import_rows(self, rows: List[CsvRow], outcome: ImportOutcome) -> None:
        raise NotImplementedError

    def summary(self, counts: Dict[str, int]) -> str:
        raise NotImplementedError
