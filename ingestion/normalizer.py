"""
Encoding and Delimiter Normalization
Step 1 in the CSV pipeline: turn uploaded bytes into UTF-8 text and pick a delimiter.

Spreadsheet exports arrive as UTF-8 (often with a BOM), Windows-1252 or ISO-8859-1.
Normalization never fails: undecodable bytes become "?".
"""

import logging
from typing import Optional

from .exceptions import MissingFile, InvalidFileType, EmptyInput
from .schemas import UploadedFile

log = logging.getLogger(__name__)

UTF8_BOM = b"\xef\xbb\xbf"
# Used when the bytes are not valid UTF-8
LEGACY_ENCODING = "cp1252"
ALLOWED_EXTENSIONS = (".csv", ".txt")
REPLACEMENT = "?"


def validate_upload(upload: Optional[UploadedFile]) -> UploadedFile:
    """
    Reject uploads that cannot be a CSV file.

    Raises:
        MissingFile: no upload given
        InvalidFileType: extension is not .csv / .txt
        EmptyInput: zero bytes
    """
    if upload is None:
        raise MissingFile()
    if not upload.filename.strip().lower().endswith(ALLOWED_EXTENSIONS):
        raise InvalidFileType(upload.filename)
    if not upload.content:
        raise EmptyInput("CSV file is empty.")
    return upload


def strip_bom(raw: bytes) -> bytes:
    """Remove a leading UTF-8 byte order mark (common in Excel exports)."""
    if raw.startswith(UTF8_BOM):
        return raw[len(UTF8_BOM):]
    return raw


def to_utf8_text(raw: bytes) -> str:
    """
    Decode uploaded bytes into text.

    Valid UTF-8 is returned as-is. Anything else is read as Windows-1252,
    which also covers every printable ISO-8859-1 character; its undefined
    bytes (0x81, 0x8D, 0x8F, 0x90, 0x9D) become "?".
    """
    raw = strip_bom(raw)

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        pass

    text = raw.decode(LEGACY_ENCODING, errors="replace")
    if "\ufffd" in text:
        log.warning("[Normalize] undefined %s bytes replaced with %r", LEGACY_ENCODING, REPLACEMENT)
    else:
        log.info("[Normalize] decoded upload as %s", LEGACY_ENCODING)
    return text.replace("\ufffd", REPLACEMENT)


def detect_delimiter(text: str) -> str:
    """
    Pick ';' or ',' from the header line.

    ';' wins only when it is strictly more frequent than ','.
    """
    lines = text.splitlines()
    first_line = lines[0] if lines else ""
    semicolons = first_line.count(";")
    commas = first_line.count(",")
    return ";" if semicolons > commas else ","


def normalize_upload(upload: Optional[UploadedFile]) -> tuple[str, str]:
    """Validate the upload and return (utf-8 text, delimiter)."""
    upload = validate_upload(upload)
    text = to_utf8_text(upload.content)
    delimiter = detect_delimiter(text)
    log.info(
        "[Normalize] file=%s bytes=%s delimiter=%r",
        upload.filename, len(upload.content), delimiter,
    )
    return text, delimiter
