"""
Input errors raised by the ingestion steps.

All of them are raised before anything is written; importers turn them into
a failure result.
"""

from typing import Iterable


class InputError(ValueError):
    """The uploaded file cannot be ingested at all."""


class MissingFile(InputError):
    def __init__(self):
        super().__init__("No file was uploaded.")


class InvalidFileType(InputError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Invalid file format '{filename}'. Upload a .csv file.")


class EmptyInput(InputError):
    def __init__(self, message: str = "CSV file is empty or has no header row."):
        super().__init__(message)


class MissingColumns(InputError):
    def __init__(self, missing: Iterable[str], found: Iterable[str]):
        self.missing = list(missing)
        self.found = list(found)
        super().__init__(
            f"Required columns not found: {', '.join(self.missing)}. "
            f"Columns found: {', '.join(self.found)}"
        )


class MalformedInput(InputError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Malformed CSV file: {detail}")
