"""
Pydantic schemas for direct (non-import) record creation
Separate from SQLAlchemy models for clean contracts
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date

from database.models import QuestionType


# ==========================================
# STUDENT SCHEMAS
# ==========================================

class StudentCreate(BaseModel):
    """Schema for creating a Student on an owner's roster"""
    registration_id: str = Field(..., description="Registration id, e.g. N874321")
    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Contact e-mail")


# ==========================================
# EXAM SCHEMAS
# ==========================================

class QuestionCreate(BaseModel):
    """Schema for one question of a directly-built exam"""
    type: QuestionType = Field(default=QuestionType.MULTIPLE_CHOICE)
    prompt: str = Field(..., description="Question text")
    weight: float = Field(default=1.0, description="Weight between 1 and 10")
    options: Optional[str] = Field(None, description="Newline-delimited labelled options (multiple choice only)")
    submitted_answer: Optional[str] = Field(None, description="Answer given by the student")
    reference_answer: Optional[str] = Field(None, description="Answer key; creates an AnswerKey when present")


class ExamCreate(BaseModel):
    """
    Schema for building an exam with its questions in one go.
    Direct builds must link a student and carry at least one question.
    """
    title: str = Field(..., description="Exam title")
    created_on: Optional[date] = Field(None, description="Defaults to today")
    student_registration_id: Optional[str] = Field(None, description="Roster registration id")
    questions: List[QuestionCreate] = Field(default_factory=list)
