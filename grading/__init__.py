"""
Grading Package

Scores exams against their answer keys and classifies essay answers with an
LLM (Groq, OpenAI-compatible API), falling back to a word-overlap comparison.
"""

from .config import GraderSettings
from .ai_grader import AIGrader
from .correction import CorrectionEngine, essay_points
from .service import grade_exam_essays
from .exceptions import ExternalServiceError, NoEssayQuestions
from .schemas import GradeOutcome, OutcomeSource, QuestionResult, ScoreReport, GradingResult

__all__ = [
    "GraderSettings",
    "AIGrader",
    "CorrectionEngine",
    "essay_points",
    "grade_exam_essays",
    "ExternalServiceError",
    "NoEssayQuestions",
    "GradeOutcome",
    "OutcomeSource",
    "QuestionResult",
    "ScoreReport",
    "GradingResult",
]
