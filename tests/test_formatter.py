"""
Tests for racechat/formatter.py
Context block rendering for retrieved race records.
"""
import re
from datetime import datetime

from racechat.formatter import format_context
from racechat.planner import PartitionResult, QueryResult


def record_count(context):
    return len(re.findall(r"^Record \d+:$", context, re.MULTILINE))


def sample_result():
    return QueryResult(
        has_data=True,
        results={
            "provisionalResults1": PartitionResult(
                collection_name="Provisional_Results_Race_1",
                count=2,
                data=[
                    {"_id": "a1", "POS": 1, "NUMBER": 55, "uploadedAt": datetime(2025, 5, 4)},
                    {"_id": "a2", "POS": 2, "NUMBER": 7, "uploadedAt": datetime(2025, 5, 4)},
                ],
            )
        },
    )


class TestFormatContext:
    def test_empty_result_gives_empty_string(self):
        context = format_context(QueryResult())
        assert context == ""
        assert record_count(context) == 0

    def test_error_result_gives_empty_string(self):
        assert format_context(QueryResult(has_data=False, error="MongoDB unreachable")) == ""

    def test_lists_fields_per_record(self):
        context = format_context(sample_result())

        assert "=== Provisional_Results_Race_1 (2 records) ===" in context
        assert "Record 1:\n  POS: 1\n  NUMBER: 55\n" in context
        assert "NUMBER: 7" in context
        assert record_count(context) == 2

    def test_internal_fields_are_hidden(self):
        context = format_context(sample_result())
        assert "_id" not in context
        assert "uploadedAt" not in context

    def test_header_footer_and_instruction(self):
        context = format_context(sample_result())
        assert context.startswith("📊 RACING DATA FROM DATABASE:")
        assert "=== END OF DATABASE DATA ===" in context
        assert context.rstrip().endswith("Reference specific values when relevant.")

    def test_deterministic(self):
        assert format_context(sample_result()) == format_context(sample_result())

    def test_values_render_as_literals(self):
        result = QueryResult(
            has_data=True,
            results={
                "race1_results": PartitionResult(
                    collection_name="race1_results",
                    count=1,
                    data=[{"NUMBER": 55.0, "TIME": 98.25, "DRIVER": None, "FL": True, "DNF": False}],
                )
            },
        )
        context = format_context(result)

        assert "  NUMBER: 55\n" in context
        assert "  TIME: 98.25\n" in context
        assert "  DRIVER: null\n" in context
        assert "  FL: true\n" in context
        assert "  DNF: false\n" in context
