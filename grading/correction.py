"""
Exam correction
Score an exam against its answer keys and run AI grading over its essays.

Scoring rules:
- multiple_choice: case-insensitive, whitespace-collapsed match → full weight, else 0
- essay: blank → 0; unclassified → pending (no points yet);
  total → weight, parcial → half weight, incorreta → 0
"""

import logging
import time
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from database import crud
from database.models import Classification, Exam, Question
from .ai_grader import AIGrader, normalize_text
from .exceptions import NoEssayQuestions
from .schemas import QuestionResult, ScoreReport

log = logging.getLogger(__name__)

BLANK_DISPLAY = "—"


def essay_points(weight: float, classification: Optional[str]) -> Optional[float]:
    if classification == Classification.TOTAL.value:
        return float(weight)
    if classification == Classification.PARCIAL.value:
        return round(weight / 2, 2)
    if classification == Classification.INCORRETA.value:
        return 0.0
    return None


class CorrectionEngine:
    """Correction of one exam. Pass a session to persist AI grades."""

    def __init__(self, exam: Exam, db: Optional[Session] = None):
        self.exam = exam
        self.db = db

    def keyed_questions(self) -> List[Question]:
        """Questions holding an answer key, in exam order."""
        return [q for q in self.exam.questions if q.answer_key is not None]

    def essay_questions(self) -> List[Question]:
        return [q for q in self.keyed_questions() if q.is_essay]

    def question_result(self, question: Question) -> QuestionResult:
        answer_key = question.answer_key
        weight = float(question.weight)
        submitted = (question.submitted_answer or "").strip()

        classification = None
        justification = None
        if question.is_essay:
            if not submitted:
                points, correct, justification = 0.0, False, "blank answer"
            elif answer_key.ai_classification is None:
                points, correct, justification = None, None, "awaiting AI grading"
            else:
                classification = answer_key.ai_classification
                points = essay_points(weight, classification)
                correct = classification == Classification.TOTAL.value
                justification = answer_key.ai_justification
        else:
            correct = bool(submitted) and normalize_text(submitted) == normalize_text(answer_key.reference_answer)
            points = weight if correct else 0.0

        return QuestionResult(
            question_id=question.id,
            position=question.position,
            type=question.type,
            prompt=question.prompt,
            reference_answer=answer_key.reference_answer,
            submitted_answer=submitted or BLANK_DISPLAY,
            weight=weight,
            points=points,
            correct=correct,
            ai_classification=classification,
            justification=justification,
        )

    def details(self) -> List[QuestionResult]:
        return [self.question_result(q) for q in self.keyed_questions()]

    def calculate_score(self) -> float:
        return round(sum(result.points or 0.0 for result in self.details()), 2)

    def max_score(self) -> float:
        return round(sum(float(q.weight) for q in self.keyed_questions()), 2)

    def percentage(self) -> float:
        maximum = self.max_score()
        if maximum == 0:
            return 0.0
        return round(self.calculate_score() / maximum * 100, 2)

    def pending_count(self) -> int:
        return sum(1 for result in self.details() if result.pending)

    def report(self) -> ScoreReport:
        details = self.details()
        score = round(sum(result.points or 0.0 for result in details), 2)
        maximum = self.max_score()
        return ScoreReport(
            exam_id=self.exam.id,
            score=score,
            max_score=maximum,
            percentage=round(score / maximum * 100, 2) if maximum else 0.0,
            pending=sum(1 for result in details if result.pending),
            details=details,
        )

    def grade_essays(self, grader: AIGrader, sleep: Callable[[float], None] = time.sleep) -> int:
        """
        Classify every answered essay with the AI grader.

        Blank answers are skipped. Between two calls the loop waits
        grader.settings.pause_seconds.

        Returns:
            Number of essays graded

        Raises:
            NoEssayQuestions: the exam has no essay with an answer key
        """
        essays = self.essay_questions()
        if not essays:
            raise NoEssayQuestions(self.exam.id)

        targets = [q for q in essays if (q.submitted_answer or "").strip()]
        pause = grader.settings.pause_seconds
        log.info("[Correction] exam=%s grading %s essay(s)", self.exam.id, len(targets))

        for index, question in enumerate(targets):
            outcome = grader.grade(question.prompt, question.submitted_answer, question.answer_key.reference_answer)
            self._store(question, outcome.classification.value, outcome.justification)
            log.info(
                "[Correction] question=%s classification=%s source=%s",
                question.id, outcome.classification.value, outcome.source.value,
            )
            if index < len(targets) - 1 and pause > 0:
                sleep(pause)

        return len(targets)

    def _store(self, question: Question, classification: str, justification: str) -> None:
        answer_key = question.answer_key
        if self.db is None:
            answer_key.ai_classification = classification
            answer_key.ai_justification = justification
            return
        crud.record_ai_grade(self.db, answer_key, classification, justification)
        self.db.commit()
