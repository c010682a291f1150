"""
Test: CSV table parsing, header aliases and line numbers.
"""
import pytest

from ingestion import build_alias_table, canonical_name, parse_table, EmptyInput, MissingColumns
from importers import StudentImporter

ALIASES = build_alias_table(StudentImporter.HEADER_ALIASES)
REQUIRED = StudentImporter.REQUIRED_COLUMNS


class TestAliasTable:
    def test_canonical_name_is_its_own_alias(self):
        assert canonical_name("ra", ALIASES) == "ra"

    def test_matricula_is_ra(self):
        assert canonical_name("Matricula", ALIASES) == "ra"

    def test_case_and_spaces_ignored(self):
        assert canonical_name("  E-MAIL ", ALIASES) == "email"

    def test_unknown_header(self):
        assert canonical_name("turma", ALIASES) is None


class TestParseTable:
    def test_basic_rows(self):
        table = parse_table("ra,nome,email\nN1,Ana,ana@example.com\nN2,Bia,bia@example.com\n", ",", ALIASES, REQUIRED)
        assert table.columns == ["ra", "nome", "email"]
        assert [row.line_number for row in table.rows] == [2, 3]
        assert table.rows[0].get("nome") == "Ana"

    def test_alias_headers_resolved(self):
        table = parse_table("Matricula;Name;E-mail\nN1;Ana;ana@example.com\n", ";", ALIASES, REQUIRED)
        assert table.headers == ["Matricula", "Name", "E-mail"]
        assert table.rows[0].get("ra") == "N1"

    def test_unknown_headers_kept(self):
        table = parse_table("ra,nome,email,turma\nN1,Ana,a@b.com,3A\n", ",", ALIASES, REQUIRED)
        assert table.rows[0].get("turma") == "3A"

    def test_missing_required_column(self):
        with pytest.raises(MissingColumns) as exc:
            parse_table("ra,nome\nN1,Ana\n", ",", ALIASES, REQUIRED)
        assert exc.value.missing == ["email"]
        assert "Columns found: ra, nome" in str(exc.value)

    def test_no_header(self):
        with pytest.raises(EmptyInput):
            parse_table("", ",", ALIASES, REQUIRED)

    def test_blank_header_cells(self):
        with pytest.raises(EmptyInput):
            parse_table(" , ,\n", ",", ALIASES, REQUIRED)

    def test_short_row_gives_none(self):
        table = parse_table("ra,nome,email\nN1,Ana\n", ",", ALIASES, REQUIRED)
        row = table.rows[0]
        assert row.get("email") is None
        assert row.text("email") == ""

    def test_stray_quote_kept_as_text(self):
        table = parse_table('ra,nome,email\nN1,Ana "Nina" Souza,a@b.com\n', ",", ALIASES, REQUIRED)
        assert table.rows[0].get("nome") == 'Ana "Nina" Souza'

    def test_quoted_field_with_delimiter(self):
        table = parse_table('ra,nome,email\nN1,"Souza, Ana",a@b.com\n', ",", ALIASES, REQUIRED)
        assert table.rows[0].get("nome") == "Souza, Ana"

    def test_first_matching_column_wins(self):
        table = parse_table("ra,matricula,nome,email\nN1,X9,Ana,a@b.com\n", ",", ALIASES, REQUIRED)
        assert table.rows[0].get("ra") == "N1"

    def test_header_only(self):
        table = parse_table("ra,nome,email\n", ",", ALIASES, REQUIRED)
        assert table.rows == []
