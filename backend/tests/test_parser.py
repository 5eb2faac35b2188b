"""
Unit tests for CSV / JSON parsing of uploaded files.
"""

import pytest

from wellspend.core.errors import ParseError
from wellspend.services.parser import detect_format, parse_csv_text, parse_json_text, parse_rows


class TestFormatDetection:

    def test_declared_json_mime(self):
        assert detect_format("application/json", "export.txt") == "json"

    def test_declared_csv_mime_with_charset(self):
        assert detect_format("text/csv; charset=utf-8", "costs.json") == "csv"

    def test_plain_text_uses_extension(self):
        assert detect_format("text/plain", "export.JSON") == "json"
        assert detect_format("text/plain", "export.csv") == "csv"
        assert detect_format("text/plain", "notes.txt") == "csv"


class TestCsvParsing:

    def test_header_cells_are_trimmed(self):
        rows = parse_csv_text(" date , amount ,vendor\n2024-01-01,100.50,AWS\n")
        assert rows == [{"date": "2024-01-01", "amount": "100.50", "vendor": "AWS"}]

    def test_blank_lines_are_skipped(self):
        text = "\n\ndate,amount\n\n2024-01-01,5\n\n2024-01-02,6\n\n"
        rows = parse_csv_text(text)
        assert [row["amount"] for row in rows] == ["5", "6"]

    def test_empty_cells_stay_empty_strings(self):
        rows = parse_csv_text("date,amount,vendor\n2024-01-02,,Azure\n")
        assert rows == [{"date": "2024-01-02", "amount": "", "vendor": "Azure"}]

    def test_short_rows_are_padded(self):
        rows = parse_csv_text("a,b,c\n1,2\n")
        assert rows == [{"a": "1", "b": "2", "c": ""}]

    def test_long_rows_are_truncated(self):
        rows = parse_csv_text("a,b\n1,2,3\n4,5\n")
        assert rows == [{"a": "1", "b": "2"}, {"a": "4", "b": "5"}]

    def test_values_are_not_type_converted(self):
        rows = parse_csv_text("id,amount,flag\n007,1e3,NA\n")
        assert rows == [{"id": "007", "amount": "1e3", "flag": "NA"}]

    def test_quoted_fields(self):
        rows = parse_csv_text('name,amount\n"Compute, reserved",12\n')
        assert rows[0]["name"] == "Compute, reserved"

    def test_blank_header_cell_keeps_empty_key(self):
        rows = parse_csv_text("a,b,\n1,2,3\n")
        assert rows == [{"a": "1", "b": "2", "": "3"}]

    def test_repeated_header_keeps_first_column(self):
        rows = parse_csv_text("amount,vendor,amount\n10,AWS,99\n")
        assert rows == [{"amount": "10", "vendor": "AWS"}]

    def test_header_only_yields_no_rows(self):
        assert parse_csv_text("date,amount\n") == []

    def test_empty_content_yields_no_rows(self):
        assert parse_csv_text("") == []
        assert parse_csv_text("\n  \n") == []


class TestJsonParsing:

    def test_array_of_objects(self):
        rows = parse_json_text('[{"amount": 1}, {"amount": 2}]')
        assert rows == [{"amount": 1}, {"amount": 2}]

    def test_single_object_is_wrapped(self):
        assert parse_json_text('{"amount": 10, "vendor": "GCP"}') == [{"amount": 10, "vendor": "GCP"}]

    def test_scalar_elements_become_value_rows(self):
        assert parse_json_text("[5, \"x\"]") == [{"value": 5}, {"value": "x"}]

    def test_malformed_json_raises_parse_error(self):
        with pytest.raises(ParseError) as exc_info:
            parse_json_text('[{"amount": 1},')
        assert "Invalid JSON" in str(exc_info.value)


class TestParseRows:

    def test_invalid_utf8_raises_parse_error(self):
        with pytest.raises(ParseError) as exc_info:
            parse_rows(b"amount\n\xff\xfe\xfa\n", "text/csv", "costs.csv")
        assert "UTF-8" in str(exc_info.value)

    def test_byte_order_mark_is_dropped(self):
        rows = parse_rows("﻿amount,vendor\n3,AWS\n".encode("utf-8"), "text/csv", "costs.csv")
        assert rows == [{"amount": "3", "vendor": "AWS"}]

    def test_dispatches_json(self):
        rows = parse_rows(b'[{"cost": "4"}]', "application/json", "costs.json")
        assert rows == [{"cost": "4"}]
