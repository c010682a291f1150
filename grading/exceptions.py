"""Grading errors"""


class ExternalServiceError(Exception):
    """The AI service failed (transport, status or payload). Always absorbed by the fallback."""


class NoEssayQuestions(Exception):
    """AI grading was requested for an exam without essay questions."""

    def __init__(self, exam_id=None):
        self.exam_id = exam_id
        super().__init__("This exam has no essay questions with an answer key to grade.")
