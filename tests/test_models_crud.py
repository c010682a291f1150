"""
Test: Model validation rules and CRUD helpers.
"""
from datetime import date

import pytest
from sqlalchemy import text

from database import crud
from database.database import engine, get_db
from database.models import Student, Exam, Question, AnswerKey, QuestionType
from database.schemas import StudentCreate, ExamCreate, QuestionCreate


class TestStudent:
    def test_normalize(self):
        student = Student(registration_id=" n123 ", name=" Ana ", email=" ANA@Example.COM ")
        student.normalize()
        assert student.registration_id == "N123"
        assert student.name == "Ana"
        assert student.email == "ana@example.com"

    def test_registration_id_format(self):
        student = Student(registration_id="123", name="Ana", email="ana@example.com")
        assert student.validation_errors() == [
            "Registration id must be a letter followed by digits (e.g. N874321)"
        ]

    def test_invalid_email(self):
        student = Student(registration_id="N1", name="Ana", email="not-an-email")
        assert student.validation_errors() == ["Email is invalid"]

    def test_blank_fields(self):
        errors = Student().validation_errors()
        assert "Registration id can't be blank" in errors
        assert "Name can't be blank" in errors
        assert "Email can't be blank" in errors

    def test_display_name(self):
        student = Student(registration_id="N1", name="Ana", email="ana@example.com")
        assert student.display_name == "N1 - Ana (ana@example.com)"


class TestStudentCrud:
    def test_create_and_lookup_case_insensitive(self, db, owner):
        crud.create_student(db, owner, StudentCreate(registration_id="n55", name="Bia", email="bia@example.com"))
        found = crud.get_student_by_registration(db, owner.id, " N55 ")
        assert found is not None
        assert found.registration_id == "N55"

    def test_duplicate_registration_id(self, db, owner, student):
        with pytest.raises(crud.RecordInvalid) as exc:
            crud.create_student(
                db, owner, StudentCreate(registration_id="n874321", name="Other", email="other@example.com")
            )
        assert "Registration id has already been taken" in exc.value.errors

    def test_same_id_for_another_owner(self, db, other_owner, student):
        other = crud.create_student(
            db, other_owner, StudentCreate(registration_id="N874321", name="Ana", email="ana@example.com")
        )
        assert other.id != student.id

    def test_roster_is_scoped_to_owner(self, db, other_owner, student):
        assert crud.get_student_by_registration(db, other_owner.id, "N874321") is None
        assert crud.get_students(db, other_owner.id) == []

    def test_delete_keeps_exams(self, db, owner, student):
        exam = Exam(owner_id=owner.id, student_id=student.id, title="Math")
        exam.import_mode = True
        crud.save_exam(db, exam)
        db.commit()

        crud.delete_student(db, student)
        db.refresh(exam)
        assert exam.student_id is None


class TestExamCrud:
    def _exam(self, db, owner):
        exam = Exam(owner_id=owner.id, title="Science", created_on=date(2024, 3, 15))
        exam.import_mode = True
        crud.save_exam(db, exam)
        return exam

    def test_slug_generated(self, db, owner):
        exam = self._exam(db, owner)
        assert len(exam.slug) == 12
        assert crud.get_exam_by_slug(db, owner.id, exam.slug) is exam

    def test_creation_checks_outside_import_mode(self, db, owner):
        with pytest.raises(crud.RecordInvalid) as exc:
            crud.save_exam(db, Exam(owner_id=owner.id, title="Science"))
        assert exc.value.errors == ["Student must exist", "Add at least one question"]

    def test_student_from_other_owner(self, db, owner, other_owner):
        stranger = crud.create_student(
            db, other_owner, StudentCreate(registration_id="X1", name="X", email="x@example.com")
        )
        exam = Exam(owner_id=owner.id, student_id=stranger.id, title="Science")
        exam.import_mode = True
        with pytest.raises(crud.RecordInvalid) as exc:
            crud.save_exam(db, exam)
        assert "Student must belong to the same user" in exc.value.errors

    def test_find_exam_matches_missing_student(self, db, owner, student):
        exam = self._exam(db, owner)
        assert crud.find_exam(db, owner.id, "Science", date(2024, 3, 15), None) is exam
        assert crud.find_exam(db, owner.id, "Science", date(2024, 3, 15), student.id) is None

    def test_questions_are_positioned(self, db, owner):
        exam = self._exam(db, owner)
        first = crud.add_question(db, exam, type="essay", prompt="Explain", weight=2)
        second = crud.add_question(db, exam, type="multiple_choice", prompt="Pick", weight=1, options="A) 1\nB) 2")
        assert (first.position, second.position) == (0, 1)
        assert [q.prompt for q in exam.questions] == ["Explain", "Pick"]

    def test_question_weight_range(self, db, owner):
        exam = self._exam(db, owner)
        with pytest.raises(crud.RecordInvalid) as exc:
            crud.add_question(db, exam, type="essay", prompt="Explain", weight=11)
        assert exc.value.errors == ["Weight must be between 1 and 10"]

    def test_multiple_choice_requires_options(self, db, owner):
        exam = self._exam(db, owner)
        with pytest.raises(crud.RecordInvalid) as exc:
            crud.add_question(db, exam, type="multiple_choice", prompt="Pick", weight=1)
        assert exc.value.errors == ["Options can't be blank for a multiple choice question"]

    def test_submitted_answer_must_be_an_option(self, db, owner):
        exam = self._exam(db, owner)
        with pytest.raises(crud.RecordInvalid) as exc:
            crud.add_question(
                db, exam, type="multiple_choice", prompt="Pick", weight=1,
                options="A) 1\nb) 2", submitted_answer="C",
            )
        assert exc.value.errors == ["Submitted answer must be one of the options: A, B"]

    def test_essay_options_cleared(self, db, owner):
        exam = self._exam(db, owner)
        question = crud.add_question(db, exam, type="essay", prompt="Explain", weight=1, options="A) x")
        assert question.options is None

    def test_answer_key_replaced(self, db, owner):
        exam = self._exam(db, owner)
        question = crud.add_question(db, exam, type="essay", prompt="Explain", weight=1)
        key = crud.set_answer_key(db, question, "Photosynthesis")
        crud.record_ai_grade(db, key, "total", "ok")
        again = crud.set_answer_key(db, question, "Light")
        assert again is key
        assert again.reference_answer == "Light"
        assert again.ai_classification is None

    def test_ai_grade_only_on_essays(self, db, owner):
        exam = self._exam(db, owner)
        question = crud.add_question(db, exam, type="multiple_choice", prompt="Pick", weight=1, options="A) 1")
        key = crud.set_answer_key(db, question, "A")
        with pytest.raises(crud.RecordInvalid) as exc:
            crud.record_ai_grade(db, key, "total", "ok")
        assert exc.value.errors == ["AI classification only applies to essay questions"]

    def test_answer_key_from_other_exam(self, owner):
        question = Question(exam_id=1, type="essay", prompt="Explain", weight=1)
        key = AnswerKey(exam_id=2, reference_answer="x")
        assert key.validation_errors(question) == ["Question does not belong to this exam"]


class TestCreateExam:
    def test_builds_exam_with_questions(self, db, owner, student):
        exam = crud.create_exam(db, owner, ExamCreate(
            title="History",
            student_registration_id="n874321",
            questions=[
                QuestionCreate(prompt="Year?", options="A) 1500\nB) 1822", submitted_answer="B", reference_answer="B"),
                QuestionCreate(type=QuestionType.ESSAY, prompt="Explain", weight=4, reference_answer="Because"),
            ],
        ))
        assert exam.id is not None
        assert exam.student_id == student.id
        assert exam.created_on == date.today()
        assert len(exam.questions) == 2
        assert len(exam.answer_keys) == 2
        assert exam.questions[1].answer_key.exam_id == exam.id

    def test_requires_student_and_questions(self, db, owner):
        with pytest.raises(crud.RecordInvalid) as exc:
            crud.create_exam(db, owner, ExamCreate(title="History"))
        assert exc.value.errors == ["Student must exist", "Add at least one question"]
        assert db.query(Exam).count() == 0

    def test_unknown_student(self, db, owner):
        with pytest.raises(crud.RecordInvalid) as exc:
            crud.create_exam(db, owner, ExamCreate(
                title="History", student_registration_id="z9",
                questions=[QuestionCreate(type=QuestionType.ESSAY, prompt="Explain")],
            ))
        assert "Student 'Z9' not found" in exc.value.errors

    def test_question_errors_are_numbered(self, db, owner, student):
        with pytest.raises(crud.RecordInvalid) as exc:
            crud.create_exam(db, owner, ExamCreate(
                title="History", student_registration_id="N874321",
                questions=[QuestionCreate(type=QuestionType.ESSAY, prompt="Explain", weight=0)],
            ))
        assert exc.value.errors == ["Question 1: Weight must be between 1 and 10"]

    def test_delete_cascades(self, db, owner, student):
        exam = crud.create_exam(db, owner, ExamCreate(
            title="History", student_registration_id="N874321",
            questions=[QuestionCreate(type=QuestionType.ESSAY, prompt="Explain", reference_answer="x")],
        ))
        crud.delete_exam(db, exam)
        assert db.query(Question).count() == 0
        assert db.query(AnswerKey).count() == 0


class TestSessionFactory:
    def test_get_db_yields_bound_session(self):
        sessions = get_db()
        session = next(sessions)
        try:
            assert session.bind is engine
            assert session.execute(text("SELECT 1")).scalar() == 1
        finally:
            sessions.close()
