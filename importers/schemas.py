"""
Schemas for import results
RowError records are collected in one pass; ImportResult is what callers receive.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


@dataclass
class RowError:
    """A business-rule failure tied to one CSV line (or a whole group)."""
    line_number: Optional[int]
    message: str

    def __str__(self) -> str:
        if self.line_number is None:
            return self.message
        return f"Line {self.line_number}: {self.message}"


@dataclass
class ImportOutcome:
    """Mutable tally filled while rows are processed, before commit/rollback."""
    counts: Dict[str, int]
    errors: List[RowError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def bump(self, category: str, by: int = 1) -> None:
        self.counts[category] = self.counts.get(category, 0) + by

    @property
    def failed(self) -> bool:
        return bool(self.errors)


class ImportResult(BaseModel):
    """Result contract shared by every importer."""
    success: bool = Field(..., description="True only when every row was stored")
    message: str = Field(..., description="Human-readable summary")
    counts: Dict[str, int] = Field(default_factory=dict, description="Rows per outcome category")
    errors: List[str] = Field(default_factory=list, description="All row errors, in file order")
    warnings: List[str] = Field(default_factory=list, description="Non-fatal notices")

    @classmethod
    def failure(cls, message: str) -> "ImportResult":
        return cls(success=False, message=message)
