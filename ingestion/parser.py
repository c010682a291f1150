"""
CSV Table Parser
Step 2 in the CSV pipeline: split normalized text into header-indexed rows.

CONSTRAINTS:
- Lenient: stray quotes inside unquoted fields are kept as text
- Blank lines are skipped
- Headers are resolved to canonical names through an importer-specific alias table
- No DB writes: pure parsing function
"""

import csv
import io
import logging
from typing import Dict, List, Mapping, Optional, Sequence

from .exceptions import EmptyInput, MissingColumns, MalformedInput
from .schemas import CsvRow, ParsedTable

log = logging.getLogger(__name__)

HEADER_LINE = 1


def build_alias_table(aliases: Mapping[str, Sequence[str]]) -> Dict[str, str]:
    """
    Flatten {canonical: [variants]} into {folded variant: canonical}.

    The canonical name is always an alias of itself.
    """
    table: Dict[str, str] = {}
    for canonical, variants in aliases.items():
        for variant in (canonical, *variants):
            table.setdefault(_fold(variant), canonical)
    return table


def _fold(header: str) -> str:
    return header.strip().casefold()


def canonical_name(header: str, alias_table: Mapping[str, str]) -> Optional[str]:
    """Canonical column for a header cell, or None when the header is unknown."""
    return alias_table.get(_fold(header))


def _read_records(text: str, delimiter: str) -> List[List[str]]:
    try:
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, strict=False)
        return [record for record in reader if record]
    except csv.Error as e:
        raise MalformedInput(str(e)) from e


def parse_table(
    text: str,
    delimiter: str,
    alias_table: Mapping[str, str],
    required: Sequence[str],
) -> ParsedTable:
    """
    Parse CSV text into canonical rows.

    Args:
        text: UTF-8 text from the normalizer
        delimiter: ',' or ';'
        alias_table: folded header variant -> canonical column
        required: canonical columns that must be present

    Returns:
        ParsedTable with one CsvRow per non-blank data line

    Raises:
        EmptyInput: no header cell has a name
        MissingColumns: a required canonical column is absent
        MalformedInput: the text cannot be read as CSV
    """
    records = _read_records(text, delimiter)
    if not records:
        raise EmptyInput()

    headers: List[Optional[str]] = [cell.strip() or None for cell in records[0]]
    found = [h for h in headers if h]
    if not found:
        raise EmptyInput()

    # Unknown headers are kept under their own (trimmed) name
    keys = [(canonical_name(h, alias_table) or h) if h else None for h in headers]

    columns: List[str] = []
    for key in keys:
        if key and key not in columns:
            columns.append(key)

    missing = [column for column in required if column not in columns]
    if missing:
        raise MissingColumns(missing, found)

    rows = []
    for index, record in enumerate(records[1:]):
        values: Dict[str, Optional[str]] = {}
        for position, key in enumerate(keys):
            if key is None:
                continue
            value = record[position] if position < len(record) else None
            # First match wins; a later alias only fills a missing cell
            if values.get(key) is None:
                values[key] = value
        rows.append(CsvRow(line_number=index + HEADER_LINE + 1, values=values))

    log.info(
        "[Parse] columns=%s rows=%s delimiter=%r",
        ",".join(columns), len(rows), delimiter,
    )
    return ParsedTable(headers=found, columns=columns, delimiter=delimiter, rows=rows)
