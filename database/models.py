"""
SQLAlchemy models for the exam correction layer
User → Student / Exam → Question → AnswerKey

Validation lives on the models as `validation_errors()` methods that return an
ordered list of messages. They never raise; the CRUD layer decides what to do
with the messages (see database/crud.py).
"""

from datetime import date
import enum
import re
import secrets

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Text, Float, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database.database import Base


class QuestionType(str, enum.Enum):
    """Enum for question types"""
    MULTIPLE_CHOICE = "multiple_choice"
    ESSAY = "essay"


class Classification(str, enum.Enum):
    """Outcome of AI grading for an essay answer"""
    TOTAL = "total"
    PARCIAL = "parcial"
    INCORRETA = "incorreta"


QUESTION_TYPES = {t.value for t in QuestionType}
CLASSIFICATIONS = {c.value for c in Classification}

MIN_WEIGHT = 1.0
MAX_WEIGHT = 10.0

REGISTRATION_ID_RE = re.compile(r"\A[A-Z]\d+\Z")
EMAIL_RE = re.compile(
    r"\A[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*\Z"
)
# "A) text", "b - text", "C. text", "d] text"
OPTION_LABEL_RE = re.compile(r"\A([A-Za-z])\s*(?:-|\)|\.|\])\s*")


def _blank(value) -> bool:
    return value is None or not str(value).strip()


def _presence(value):
    """Trimmed string, or None when blank."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def generate_slug() -> str:
    return secrets.token_hex(6)


# ==========================================
# OWNER
# ==========================================

class User(Base):
    """Teacher account that owns a student roster and a set of exams."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    students = relationship("Student", back_populates="owner", cascade="all, delete-orphan")
    exams = relationship("Exam", back_populates="owner", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"


# ==========================================
# STUDENTS
# ==========================================

class Student(Base):
    """
    Student on an owner's roster.
    registration_id is unique per owner (letter + digits, stored upper case).
    """
    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("owner_id", "registration_id", name="uq_students_owner_registration"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    registration_id = Column(String(20), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    owner = relationship("User", back_populates="students")
    # No delete cascade: removing a student nulls Exam.student_id
    exams = relationship("Exam", back_populates="student")

    @property
    def display_name(self) -> str:
        base = " - ".join(part for part in (self.registration_id, self.name) if part)
        return f"{base} ({self.email})" if self.email else base

    def normalize(self) -> None:
        self.registration_id = _presence(self.registration_id)
        if self.registration_id:
            self.registration_id = self.registration_id.upper()
        self.name = _presence(self.name)
        self.email = _presence(self.email)
        if self.email:
            self.email = self.email.lower()

    def validation_errors(self) -> list[str]:
        errors = []
        if _blank(self.registration_id):
            errors.append("Registration id can't be blank")
        elif not REGISTRATION_ID_RE.match(self.registration_id):
            errors.append("Registration id must be a letter followed by digits (e.g. N874321)")
        if _blank(self.name):
            errors.append("Name can't be blank")
        if _blank(self.email):
            errors.append("Email can't be blank")
        elif not EMAIL_RE.match(self.email):
            errors.append("Email is invalid")
        return errors

    def __repr__(self):
        return f"<Student(id={self.id}, registration_id='{self.registration_id}', owner_id={self.owner_id})>"


# ==========================================
# EXAMS: EXAM → QUESTION → ANSWER KEY
# ==========================================

class Exam(Base):
    """
    Titled assessment owned by a user, optionally linked to one student.

    import_mode: when True the creation-time checks (at least one question,
    a linked student) are skipped. The CSV importer fills an exam row by row,
    so those checks would fail before the first question is attached.
    """
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    created_on = Column(Date, default=date.today, nullable=False, index=True)
    slug = Column(String(32), unique=True, nullable=False, index=True, default=generate_slug)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    owner = relationship("User", back_populates="exams")
    student = relationship("Student", back_populates="exams")
    questions = relationship(
        "Question",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="Question.position",
    )
    answer_keys = relationship("AnswerKey", back_populates="exam", cascade="all, delete-orphan")

    import_mode = False

    def normalize(self) -> None:
        self.title = _presence(self.title)
        if self.created_on is None:
            self.created_on = date.today()
        if not self.slug:
            self.slug = generate_slug()

    def validation_errors(self, creating: bool = False) -> list[str]:
        errors = []
        if _blank(self.title):
            errors.append("Title can't be blank")
        if creating and not self.import_mode:
            if self.student_id is None and self.student is None:
                errors.append("Student must exist")
            if not self.questions:
                errors.append("Add at least one question")
        return errors

    def __repr__(self):
        return f"<Exam(id={self.id}, title='{self.title}', slug='{self.slug}')>"


class Question(Base):
    """
    One exam item. Multiple choice questions carry newline-delimited options
    ("A) 3\\nB) 4"); essay questions never do.
    """
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, default=0, nullable=False)  # order within exam
    type = Column(String(20), nullable=False, default=QuestionType.MULTIPLE_CHOICE.value)
    prompt = Column(Text, nullable=False)
    weight = Column(Float, nullable=False, default=1.0)
    options = Column(Text, nullable=True)
    submitted_answer = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    exam = relationship("Exam", back_populates="questions")
    answer_key = relationship(
        "AnswerKey",
        back_populates="question",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def is_essay(self) -> bool:
        return self.type == QuestionType.ESSAY.value

    @property
    def is_multiple_choice(self) -> bool:
        return self.type == QuestionType.MULTIPLE_CHOICE.value

    @property
    def option_labels(self) -> list[str]:
        """Upper-cased option letters in first-seen order."""
        if not self.is_multiple_choice:
            return []
        labels = []
        for line in (self.options or "").splitlines():
            match = OPTION_LABEL_RE.match(line.strip())
            if match:
                label = match.group(1).upper()
                if label not in labels:
                    labels.append(label)
        return labels

    def normalize(self) -> None:
        self.prompt = _presence(self.prompt)
        if self.is_essay and self.options:
            self.options = None

    def validation_errors(self) -> list[str]:
        errors = []
        if self.type not in QUESTION_TYPES:
            errors.append(f"Type is not included in the list ({', '.join(sorted(QUESTION_TYPES))})")
        if _blank(self.prompt):
            errors.append("Prompt can't be blank")
        if self.weight is None:
            errors.append("Weight can't be blank")
        elif not MIN_WEIGHT <= float(self.weight) <= MAX_WEIGHT:
            errors.append(f"Weight must be between {MIN_WEIGHT:g} and {MAX_WEIGHT:g}")

        if self.is_essay and not _blank(self.options):
            errors.append("Options can't be set on an essay question")
        if self.is_multiple_choice:
            if _blank(self.options):
                errors.append("Options can't be blank for a multiple choice question")
            elif not _blank(self.submitted_answer):
                labels = self.option_labels
                if labels and self.submitted_answer.strip().upper() not in labels:
                    errors.append(f"Submitted answer must be one of the options: {', '.join(labels)}")
        return errors

    def __repr__(self):
        return f"<Question(id={self.id}, exam_id={self.exam_id}, type='{self.type}', weight={self.weight})>"


class AnswerKey(Base):
    """
    Reference answer for a question (one-to-one, same exam).
    ai_classification / ai_justification are only written by the essay grading step.
    """
    __tablename__ = "answer_keys"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    reference_answer = Column(Text, nullable=False)
    ai_classification = Column(String(20), nullable=True)  # total | parcial | incorreta
    ai_justification = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    exam = relationship("Exam", back_populates="answer_keys")
    question = relationship("Question", back_populates="answer_key")

    def normalize(self) -> None:
        self.reference_answer = _presence(self.reference_answer)

    def _belongs_to_exam(self, question) -> bool:
        if self.exam_id is not None and question.exam_id is not None:
            return question.exam_id == self.exam_id
        return self.exam is None or question.exam is self.exam

    def validation_errors(self, question=None) -> list[str]:
        question = question if question is not None else self.question
        errors = []
        if _blank(self.reference_answer):
            errors.append("Reference answer can't be blank")
        if question is None:
            errors.append("Question must exist")
        elif not self._belongs_to_exam(question):
            errors.append("Question does not belong to this exam")
        if self.ai_classification is not None:
            if self.ai_classification not in CLASSIFICATIONS:
                errors.append("AI classification is not included in the list")
            elif question is not None and not question.is_essay:
                errors.append("AI classification only applies to essay questions")
        return errors

    def __repr__(self):
        return f"<AnswerKey(id={self.id}, question_id={self.question_id}, ai='{self.ai_classification}')>"
