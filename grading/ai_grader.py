"""
Essay grading with an LLM
Classify a student's essay answer against the reference answer as
total / parcial / incorreta, through an OpenAI-compatible chat endpoint (Groq).

CONSTRAINTS:
- Never raises: any service problem falls back to a word-overlap comparison
- No retries
- Blank answers never reach the service
"""

import logging
import re
from typing import Optional

import httpx

from database.models import Classification
from .config import GraderSettings
from .exceptions import ExternalServiceError
from .schemas import GradeOutcome, OutcomeSource

log = logging.getLogger(__name__)

JUSTIFICATION_LIMIT = 150
PARTIAL_OVERLAP = 0.5

SYSTEM_PROMPT = (
    "You are a teacher grading essay questions. Always answer in exactly this "
    "format (two lines):\n"
    "CLASSIFICATION: total\n"
    "JUSTIFICATION: short explanation\n\n"
    "Replace 'total' with 'parcial' or 'incorreta' according to your assessment."
)

CLASSIFICATION_RE = re.compile(r"(?:CLASSIFICATION|AVALIA[CÇ][AÃ]O):\s*(total|parcial|incorreta)", re.IGNORECASE)
JUSTIFICATION_RE = re.compile(r"(?:JUSTIFICATION|JUSTIFICATIVA):\s*(.+)", re.IGNORECASE)


def normalize_text(text: Optional[str]) -> str:
    return " ".join((text or "").split()).lower()


def word_overlap(submitted: str, reference: str) -> float:
    """Share of the reference's distinct words that occur in the submission."""
    reference_words = set(reference.split())
    if not reference_words:
        return 0.0
    return len(set(submitted.split()) & reference_words) / len(reference_words)


def truncate(text: str, limit: int = JUSTIFICATION_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class AIGrader:
    """
    Grade essay answers with the configured chat-completion model.

    Settings are injected; the grader never reads the environment. Tests pass
    an httpx.Client built on a MockTransport.
    """

    def __init__(self, settings: GraderSettings, client: Optional[httpx.Client] = None):
        self.settings = settings
        self.client = client
        if not settings.enabled:
            log.warning("[AIGrader] GROQ_API_KEY not set. Using simple comparison.")

    def grade(self, prompt: str, submitted: Optional[str], reference: str) -> GradeOutcome:
        """
        Classify one answer.

        Args:
            prompt: Question statement
            submitted: Student's answer
            reference: Expected answer from the answer key

        Returns:
            GradeOutcome with source ai, fallback or blank
        """
        if not (submitted or "").strip():
            return GradeOutcome(
                classification=Classification.INCORRETA,
                justification="blank answer",
                source=OutcomeSource.BLANK,
            )

        if not self.settings.enabled:
            return self.fallback(submitted, reference)

        try:
            content = self._request(prompt, submitted, reference)
        except ExternalServiceError as e:
            log.warning("[AIGrader] service unavailable, falling back: %s", e)
            return self.fallback(submitted, reference)

        return self.parse_content(content)

    def _request(self, prompt: str, submitted: str, reference: str) -> str:
        settings = self.settings
        body = {
            "model": settings.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self.build_prompt(prompt, submitted, reference)},
            ],
            "temperature": settings.temperature,
            "max_tokens": settings.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {settings.api_key}",
            "Content-Type": "application/json",
        }
        timeout = httpx.Timeout(settings.request_timeout, connect=settings.connect_timeout)

        # Header encoding and URL errors are raised before anything is sent
        try:
            if self.client is not None:
                response = self.client.post(settings.api_url, headers=headers, json=body, timeout=timeout)
            else:
                with httpx.Client(timeout=timeout) as client:
                    response = client.post(settings.api_url, headers=headers, json=body)
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeError, ValueError) as e:
            raise ExternalServiceError(f"{type(e).__name__}: {e}") from e

        if response.status_code != 200:
            raise ExternalServiceError(f"status {response.status_code}: {response.text[:300]}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError(f"unexpected payload: {e}") from e

        if not isinstance(content, str) or not content.strip():
            raise ExternalServiceError("empty message content")
        return content.strip()

    @staticmethod
    def build_prompt(prompt: str, submitted: str, reference: str) -> str:
        return (
            f"QUESTION: {prompt}\n"
            f"REFERENCE ANSWER (expected): {reference}\n"
            f"STUDENT ANSWER: {submitted}\n\n"
            "Criteria:\n"
            "- TOTAL: correct and equivalent to the reference (need not be identical).\n"
            "- PARCIAL: partially correct, incomplete or with a conceptual mistake.\n"
            "- INCORRETA: completely wrong or unrelated to the reference.\n"
        )

    @staticmethod
    def parse_content(text: str) -> GradeOutcome:
        match = CLASSIFICATION_RE.search(text)
        if match:
            classification = match.group(1).lower()
        else:
            lowered = text.lower()
            if "total" in lowered:
                classification = "total"
            elif "parcial" in lowered:
                classification = "parcial"
            else:
                classification = "incorreta"

        match = JUSTIFICATION_RE.search(text)
        justification = match.group(1).strip() if match else truncate(text)

        return GradeOutcome(
            classification=Classification(classification),
            justification=justification,
            source=OutcomeSource.AI,
        )

    @staticmethod
    def fallback(submitted: str, reference: str) -> GradeOutcome:
        """Deterministic comparison used whenever the AI service cannot answer."""
        submitted_norm = normalize_text(submitted)
        reference_norm = normalize_text(reference)

        if submitted_norm == reference_norm:
            classification = Classification.TOTAL
            justification = "Answer identical to the reference answer."
        elif word_overlap(submitted_norm, reference_norm) >= PARTIAL_OVERLAP:
            classification = Classification.PARCIAL
            justification = "Answer partially similar to the reference (AI grading unavailable)."
        else:
            classification = Classification.INCORRETA
            justification = "Answer differs from the reference (AI grading unavailable)."

        return GradeOutcome(classification=classification, justification=justification, source=OutcomeSource.FALLBACK)
