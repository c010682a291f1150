"""
Essay grading trigger
Entry point used by whatever surface starts AI grading for an exam.
"""

import logging
import time
from typing import Callable, Optional

from sqlalchemy.orm import Session

from database.models import Exam
from .ai_grader import AIGrader
from .config import GraderSettings
from .correction import CorrectionEngine
from .exceptions import NoEssayQuestions
from .schemas import GradingResult

log = logging.getLogger(__name__)


def grade_exam_essays(
    db: Session,
    exam: Exam,
    grader: Optional[AIGrader] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> GradingResult:
    """
    Run AI grading over the exam's essays and persist the outcomes.

    Never raises: missing essays and unexpected failures become a failure result.
    """
    engine = CorrectionEngine(exam, db)
    essays = engine.essay_questions()
    if not essays:
        return GradingResult(success=False, message="This exam has no essay questions to grade.")

    grader = grader or AIGrader(GraderSettings.from_env())
    log.info("[Grading] exam=%s essays=%s", exam.id, len(essays))

    try:
        graded = engine.grade_essays(grader, sleep=sleep)
    except NoEssayQuestions as e:
        return GradingResult(success=False, message=str(e))
    except Exception as e:
        db.rollback()
        log.exception("[Grading] exam=%s failed", exam.id)
        return GradingResult(success=False, message=f"Error while grading with AI: {e}")

    return GradingResult(
        success=True,
        message=f"AI grading finished: {graded} essay question(s) graded.",
        graded=graded,
    )
