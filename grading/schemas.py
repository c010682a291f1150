"""
Schemas for grading results
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from database.models import Classification


class OutcomeSource(str, Enum):
    AI = "ai"
    FALLBACK = "fallback"
    BLANK = "blank"


class GradeOutcome(BaseModel):
    """Classification of one essay answer"""
    classification: Classification
    justification: str
    source: OutcomeSource


class QuestionResult(BaseModel):
    """Per-question line of a score report"""
    question_id: Optional[int] = None
    position: int = 0
    type: str
    prompt: str
    reference_answer: str
    submitted_answer: str = Field(..., description="'—' when blank")
    weight: float
    points: Optional[float] = Field(None, description="None while an essay awaits AI grading")
    correct: Optional[bool] = None
    ai_classification: Optional[str] = None
    justification: Optional[str] = None

    @property
    def pending(self) -> bool:
        return self.points is None


class ScoreReport(BaseModel):
    exam_id: Optional[int] = None
    score: float
    max_score: float
    percentage: float
    pending: int = 0
    details: List[QuestionResult] = []


class GradingResult(BaseModel):
    """Result of an essay grading request"""
    success: bool
    message: str
    graded: int = 0
