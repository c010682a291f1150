"""
CRUD operations for the exam correction layer
All database operations go through these functions

save_* / add_* / set_* helpers only flush: they run inside the caller's
transaction (an import, a grading batch). create_* / delete_* helpers are the
direct, self-committing entry points.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from database import schemas
from database.models import User, Student, Exam, Question, AnswerKey

log = logging.getLogger(__name__)


class RecordInvalid(Exception):
    """A record failed validation and was not written."""

    def __init__(self, record, errors: List[str]):
        self.record = record
        self.errors = list(errors)
        super().__init__(", ".join(self.errors))


def _flush_valid(db: Session, record, errors: List[str]):
    if errors:
        raise RecordInvalid(record, errors)
    db.add(record)
    db.flush()
    return record


# ==========================================
# STUDENT CRUD
# ==========================================

def get_student_by_registration(db: Session, owner_id: int, registration_id: Optional[str]) -> Optional[Student]:
    """Get a student from the owner's roster by registration id (case-insensitive)"""
    registration_id = (registration_id or "").strip().upper()
    if not registration_id:
        return None
    return db.query(Student).filter(
        Student.owner_id == owner_id,
        Student.registration_id == registration_id,
    ).first()


def get_students(db: Session, owner_id: int) -> List[Student]:
    """Get the owner's roster ordered by name"""
    return db.query(Student).filter(Student.owner_id == owner_id).order_by(Student.name).all()


def save_student(db: Session, student: Student) -> Student:
    """Normalize, validate and flush a new or changed student"""
    student.normalize()
    errors = student.validation_errors()

    if student.registration_id and student.owner_id is not None:
        duplicate = db.query(Student.id).filter(
            Student.owner_id == student.owner_id,
            func.upper(Student.registration_id) == student.registration_id,
        )
        if student.id is not None:
            duplicate = duplicate.filter(Student.id != student.id)
        if duplicate.first() is not None:
            errors.append("Registration id has already been taken")

    return _flush_valid(db, student, errors)


def create_student(db: Session, owner: User, student: schemas.StudentCreate) -> Student:
    """Create a new student on the owner's roster"""
    db_student = Student(
        owner_id=owner.id,
        registration_id=student.registration_id,
        name=student.name,
        email=student.email,
    )
    try:
        save_student(db, db_student)
    except RecordInvalid:
        db.rollback()
        raise
    db.commit()
    db.refresh(db_student)
    return db_student


def delete_student(db: Session, student: Student) -> None:
    """Delete a student; exams that referenced it keep existing with no student"""
    # Student.exams has no delete cascade, so the ORM nulls exams.student_id
    db.delete(student)
    db.commit()


# ==========================================
# EXAM CRUD
# ==========================================

def get_exam_by_slug(db: Session, owner_id: int, slug: str) -> Optional[Exam]:
    """Get exam by slug, scoped to its owner"""
    return db.query(Exam).filter(Exam.owner_id == owner_id, Exam.slug == slug).first()


def find_exam(
    db: Session,
    owner_id: int,
    title: str,
    created_on: date,
    student_id: Optional[int],
) -> Optional[Exam]:
    """Find the owner's exam matching title, date and student (None matches no student)"""
    query = db.query(Exam).filter(
        Exam.owner_id == owner_id,
        Exam.title == title,
        Exam.created_on == created_on,
    )
    if student_id is None:
        query = query.filter(Exam.student_id.is_(None))
    else:
        query = query.filter(Exam.student_id == student_id)
    return query.first()


def save_exam(db: Session, exam: Exam) -> Exam:
    """Normalize, validate and flush an exam (creation checks apply when it is new)"""
    creating = exam.id is None
    exam.normalize()
    errors = exam.validation_errors(creating=creating)

    student_id = exam.student.id if exam.student is not None else exam.student_id
    if student_id is not None:
        student = db.get(Student, student_id)
        if student is None:
            errors.append("Student must exist")
        elif student.owner_id != exam.owner_id:
            errors.append("Student must belong to the same user")

    return _flush_valid(db, exam, errors)


def _next_position(exam: Exam) -> int:
    return max((q.position for q in exam.questions), default=-1) + 1


def add_question(
    db: Session,
    exam: Exam,
    *,
    type: str,
    prompt: str,
    weight: float,
    options: Optional[str] = None,
    submitted_answer: Optional[str] = None,
) -> Question:
    """Append a validated question to a persisted exam"""
    question = Question(
        exam_id=exam.id,
        position=_next_position(exam),
        type=type,
        prompt=prompt,
        weight=weight,
        options=options,
        submitted_answer=submitted_answer,
    )
    question.normalize()
    errors = question.validation_errors()
    if errors:
        raise RecordInvalid(question, errors)

    exam.questions.append(question)
    db.flush()
    return question


def set_answer_key(db: Session, question: Question, reference_answer: str) -> AnswerKey:
    """Attach (or replace) the answer key of a persisted question"""
    answer_key = question.answer_key
    if answer_key is None:
        answer_key = AnswerKey(exam_id=question.exam_id, question_id=question.id)
    answer_key.reference_answer = reference_answer
    answer_key.ai_classification = None
    answer_key.ai_justification = None
    answer_key.normalize()

    errors = answer_key.validation_errors(question)
    if errors:
        raise RecordInvalid(answer_key, errors)

    question.answer_key = answer_key
    db.flush()
    return answer_key


def record_ai_grade(
    db: Session,
    answer_key: AnswerKey,
    classification: str,
    justification: Optional[str],
) -> AnswerKey:
    """Store the AI grading outcome on an essay answer key"""
    answer_key.ai_classification = classification
    answer_key.ai_justification = justification
    errors = answer_key.validation_errors()
    return _flush_valid(db, answer_key, errors)


def create_exam(db: Session, owner: User, exam: schemas.ExamCreate) -> Exam:
    """
    Build an exam together with its questions and answer keys.

    Direct builds enforce the creation checks (student linked, at least one
    question). Nothing is written unless every record is valid.
    """
    student = None
    errors: List[str] = []
    if exam.student_registration_id:
        student = get_student_by_registration(db, owner.id, exam.student_registration_id)
        if student is None:
            errors.append(f"Student '{exam.student_registration_id.strip().upper()}' not found")

    db_exam = Exam(
        owner_id=owner.id,
        student_id=student.id if student else None,
        title=exam.title,
        created_on=exam.created_on or date.today(),
    )

    for position, item in enumerate(exam.questions):
        question = Question(
            position=position,
            type=item.type.value,
            prompt=item.prompt,
            weight=item.weight,
            options=item.options,
            submitted_answer=item.submitted_answer,
        )
        db_exam.questions.append(question)
        question.normalize()
        errors.extend(f"Question {position + 1}: {msg}" for msg in question.validation_errors())

        if item.reference_answer and item.reference_answer.strip():
            answer_key = AnswerKey(reference_answer=item.reference_answer, exam=db_exam)
            question.answer_key = answer_key
            answer_key.normalize()
            errors.extend(f"Question {position + 1}: {msg}" for msg in answer_key.validation_errors())

    db_exam.normalize()
    errors = db_exam.validation_errors(creating=True) + errors
    if errors:
        raise RecordInvalid(db_exam, errors)

    db.add(db_exam)
    db.commit()
    db.refresh(db_exam)
    log.info("[Exams] created exam id=%s slug=%s questions=%s", db_exam.id, db_exam.slug, len(db_exam.questions))
    return db_exam


def delete_exam(db: Session, exam: Exam) -> None:
    """Delete an exam (cascades to questions and answer keys)"""
    db.delete(exam)
    db.commit()
