"""
Test: Exam scoring and the essay grading loop.
"""
from datetime import date

import httpx
import pytest

from database import crud
from database.models import Exam, AnswerKey
from grading import AIGrader, CorrectionEngine, GraderSettings, NoEssayQuestions, essay_points


@pytest.fixture
def exam(db, owner):
    record = Exam(owner_id=owner.id, title="Science", created_on=date(2024, 3, 15))
    record.import_mode = True
    crud.save_exam(db, record)
    db.commit()
    return record


def add(db, exam, type, weight, submitted, reference, options=None, classification=None):
    if type == "multiple_choice" and options is None:
        options = "A) one\nB) two\nC) three"
    question = crud.add_question(
        db, exam, type=type, prompt=f"{type} question", weight=weight,
        options=options, submitted_answer=submitted,
    )
    if reference is not None:
        key = crud.set_answer_key(db, question, reference)
        if classification:
            crud.record_ai_grade(db, key, classification, "graded")
    db.commit()
    return question


class FakeGrader(AIGrader):
    """AIGrader that records calls instead of using the network."""

    def __init__(self, pause=2.0):
        super().__init__(GraderSettings(api_key="k", pause_seconds=pause), client=httpx.Client())
        self.calls = []

    def grade(self, prompt, submitted, reference):
        self.calls.append(submitted)
        return self.parse_content("CLASSIFICATION: parcial\nJUSTIFICATION: half right")


class TestEssayPoints:
    @pytest.mark.parametrize("classification, expected", [
        ("total", 5.0), ("parcial", 2.5), ("incorreta", 0.0), (None, None),
    ])
    def test_weight_five(self, classification, expected):
        assert essay_points(5, classification) == expected

    def test_parcial_rounds(self):
        assert essay_points(3.33, "parcial") == 1.67


class TestScoring:
    def test_multiple_choice(self, db, exam):
        add(db, exam, "multiple_choice", 4, "  b  ", "B")
        add(db, exam, "multiple_choice", 2, "C", "B")
        engine = CorrectionEngine(exam)
        first, second = engine.details()
        assert (first.correct, first.points) == (True, 4.0)
        assert (second.correct, second.points) == (False, 0.0)
        assert first.ai_classification is None and first.justification is None
        assert engine.calculate_score() == 4.0
        assert engine.max_score() == 6.0
        assert engine.percentage() == 66.67

    def test_blank_multiple_choice(self, db, exam):
        add(db, exam, "multiple_choice", 2, None, "B")
        result = CorrectionEngine(exam).details()[0]
        assert result.correct is False
        assert result.points == 0.0
        assert result.submitted_answer == "—"

    def test_essays(self, db, exam):
        add(db, exam, "essay", 5, "answer", "ref", classification="parcial")
        add(db, exam, "essay", 5, "answer", "ref", classification="total")
        add(db, exam, "essay", 5, "answer", "ref", classification="incorreta")
        add(db, exam, "essay", 5, "answer", "ref")
        add(db, exam, "essay", 5, "", "ref")
        details = CorrectionEngine(exam).details()
        assert [d.points for d in details] == [2.5, 5.0, 0.0, None, 0.0]
        assert [d.correct for d in details] == [False, True, False, None, False]
        assert details[3].justification == "awaiting AI grading"
        assert details[4].justification == "blank answer"
        assert details[1].ai_classification == "total"

    def test_report(self, db, exam):
        add(db, exam, "multiple_choice", 4, "B", "B")
        add(db, exam, "essay", 4, "answer", "ref")
        add(db, exam, "essay", 2, "answer", None)
        report = CorrectionEngine(exam).report()
        assert report.score == 4.0
        assert report.max_score == 8.0
        assert report.percentage == 50.0
        assert report.pending == 1
        assert len(report.details) == 2

    def test_empty_exam(self, exam):
        engine = CorrectionEngine(exam)
        assert engine.max_score() == 0.0
        assert engine.percentage() == 0.0


class TestGradeEssays:
    def test_grades_answered_essays_and_pauses_between_calls(self, db, exam):
        add(db, exam, "essay", 4, "first", "ref")
        add(db, exam, "essay", 4, "", "ref")
        add(db, exam, "essay", 4, "second", "ref")
        add(db, exam, "multiple_choice", 1, "A", "A")
        grader = FakeGrader(pause=2.0)
        pauses = []

        graded = CorrectionEngine(exam, db).grade_essays(grader, sleep=pauses.append)

        assert graded == 2
        assert grader.calls == ["first", "second"]
        assert pauses == [2.0]
        db.expire_all()
        stored = [k.ai_classification for k in db.query(AnswerKey).order_by(AnswerKey.id)]
        assert stored == ["parcial", None, "parcial", None]
        assert CorrectionEngine(exam).calculate_score() == 5.0

    def test_no_essays(self, db, exam):
        add(db, exam, "multiple_choice", 1, "A", "A")
        with pytest.raises(NoEssayQuestions):
            CorrectionEngine(exam, db).grade_essays(FakeGrader(), sleep=lambda s: None)

    def test_without_session_updates_in_memory(self, db, exam):
        question = add(db, exam, "essay", 2, "text", "ref")
        CorrectionEngine(exam).grade_essays(FakeGrader(), sleep=lambda s: None)
        assert question.answer_key.ai_classification == "parcial"
