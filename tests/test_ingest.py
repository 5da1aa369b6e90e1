"""
Tests for racechat/ingest.py
CSV and spreadsheet parsing into prompt text and plain records.
"""
import io

import pandas as pd
import pytest

from racechat.errors import ParseError
from racechat.ingest import parse_file, read_records

CSV_BYTES = b"NUMBER,POS,DRIVER\n55,1,Smith\n7,2,\n"


def excel_bytes():
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        pd.DataFrame({"NUMBER": [55, 7], "POS": [1, 2]}).to_excel(writer, sheet_name="Results", index=False)
        pd.DataFrame({"AIR_TEMP": [24.5]}).to_excel(writer, sheet_name="Weather", index=False)
    return buffer.getvalue()


class TestParseFile:
    def test_csv_text(self):
        text = parse_file(CSV_BYTES, "race1.csv")

        assert text.startswith("📊 CSV File: race1.csv")
        assert "Headers: NUMBER | POS | DRIVER" in text
        assert "Row 1: NUMBER: 55, POS: 1, DRIVER: Smith" in text
        assert "Row 2: NUMBER: 7, POS: 2, DRIVER: " in text
        assert "Summary: 2 data rows (excluding header)" in text

    def test_excel_text_covers_every_sheet(self):
        text = parse_file(excel_bytes(), "race1.xlsx")

        assert text.startswith("📊 Excel File: race1.xlsx")
        assert "Sheet 1: Results" in text
        assert "Sheet 2: Weather" in text
        assert "Row 1: AIR_TEMP: 24.5" in text

    def test_extension_is_case_insensitive(self):
        assert "Headers:" in parse_file(CSV_BYTES, "RACE1.CSV")

    def test_unsupported_extension(self):
        with pytest.raises(ParseError, match="Unsupported file type: pdf"):
            parse_file(b"%PDF-1.4", "report.pdf")

    def test_corrupt_spreadsheet(self):
        with pytest.raises(ParseError):
            parse_file(b"definitely not a workbook", "race1.xlsx")

    def test_empty_csv(self):
        assert "(Empty sheet)" in parse_file(b"", "empty.csv")


class TestReadRecords:
    def test_csv_records(self):
        records = read_records(CSV_BYTES, "race1.csv")

        assert records[0] == {"NUMBER": 55, "POS": 1, "DRIVER": "Smith"}
        assert records[1]["DRIVER"] is None

    def test_named_sheet(self):
        records = read_records(excel_bytes(), "race1.xlsx", sheet_name="Weather")
        assert records == [{"AIR_TEMP": 24.5}]

    def test_missing_sheet(self):
        with pytest.raises(ParseError):
            read_records(excel_bytes(), "race1.xlsx", sheet_name="Telemetry")

    def test_integer_column_with_blanks_stays_integral(self):
        records = read_records(b"NUMBER,POS\n55,1\n,2\n", "race1.csv")

        assert records[0]["NUMBER"] == 55
        assert type(records[0]["NUMBER"]) is int
        assert records[1]["NUMBER"] is None
