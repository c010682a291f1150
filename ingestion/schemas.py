"""
Pydantic schemas for CSV ingestion
Uploaded file, parsed rows and the parsed table handed to the importers
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict


class UploadedFile(BaseModel):
    """Raw upload as received from the caller (file name + bytes)."""
    filename: str = Field(..., description="Original filename, used for the extension check")
    content: bytes = Field(default=b"", description="Raw file bytes, any supported encoding")


class CsvRow(BaseModel):
    """
    One data row keyed by canonical column name.

    line_number is 1-based with the header as line 1, so the first data row is 2.
    A value is None when the row was too short to reach that column.
    """
    line_number: int = Field(..., ge=2)
    values: Dict[str, Optional[str]] = Field(default_factory=dict)

    def get(self, column: str) -> Optional[str]:
        return self.values.get(column)

    def text(self, column: str) -> str:
        """Trimmed cell text ('' when missing)."""
        value = self.values.get(column)
        return value.strip() if value else ""


class ParsedTable(BaseModel):
    """Header-indexed rows after alias resolution."""
    headers: List[str] = Field(..., description="Header cells as found in the file (trimmed)")
    columns: List[str] = Field(..., description="Canonical column names available")
    delimiter: str = Field(..., description="Delimiter used to split the file")
    rows: List[CsvRow] = Field(default_factory=list)
