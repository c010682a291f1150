"""
AI grading settings
Read once from the environment (.env supported) and passed explicitly to AIGrader.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"
GROQ_MODEL = "llama-3.3-70b-versatile"


@dataclass(frozen=True)
class GraderSettings:
    api_key: Optional[str] = None
    model: str = GROQ_MODEL
    api_url: str = GROQ_API_URL
    connect_timeout: float = 5.0
    request_timeout: float = 15.0
    temperature: float = 0.1
    max_tokens: int = 150
    # Fixed external rate limit: pause between consecutive calls
    pause_seconds: float = 2.0

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "GraderSettings":
        pause = os.getenv("AI_GRADING_PAUSE_SECONDS")
        return cls(
            api_key=os.getenv("GROQ_API_KEY") or None,
            model=os.getenv("GROQ_MODEL") or GROQ_MODEL,
            api_url=os.getenv("GROQ_API_URL") or GROQ_API_URL,
            pause_seconds=float(pause) if pause else cls.pause_seconds,
        )
