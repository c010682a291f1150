"""
CSV Ingestion Package

Two-step pipeline shared by every importer:
1. Normalize (encoding + delimiter) → UTF-8 text
2. Parse (lenient CSV + header aliases) → canonical rows

Each step raises an InputError subclass before anything is stored.
"""

from .normalizer import validate_upload, strip_bom, to_utf8_text, detect_delimiter, normalize_upload
from .parser import build_alias_table, canonical_name, parse_table
from .exceptions import InputError, MissingFile, InvalidFileType, EmptyInput, MissingColumns, MalformedInput
from .schemas import UploadedFile, CsvRow, ParsedTable

__all__ = [
    # Step 1: Normalize
    "validate_upload",
    "strip_bom",
    "to_utf8_text",
    "detect_delimiter",
    "normalize_upload",

    # Step 2: Parse
    "build_alias_table",
    "canonical_name",
    "parse_table",

    # Errors
    "InputError",
    "MissingFile",
    "InvalidFileType",
    "EmptyInput",
    "MissingColumns",
    "MalformedInput",

    # Schemas
    "UploadedFile",
    "CsvRow",
    "ParsedTable",
]
