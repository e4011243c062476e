"""
Tests for result flags, citation de-duplication and XLSX export.

Run with: pytest nebula/name_match/tests/test_export.py -v
"""

import io

import pytest
from openpyxl import load_workbook

from nebula.name_match.models import AnalysisResult, Citation, Verdict
from nebula.name_match.report import (
    EXPORT_COLUMNS,
    EXPORT_FILENAME,
    EXPORT_SHEET_TITLE,
    dedupe_citations,
    evaluate_result,
    export_workbook,
    normalize_name,
    summarize_results,
)


@pytest.fixture
def sample_results():
    """One of each flag combination."""
    return [
        # Duplicate already correct
        AnalysisResult("Brad Pit", "Brad Pitt", Verdict.SAME, "Brad Pitt"),
        # Original already correct (case/whitespace differ)
        AnalysisResult(" tom hanks ", "Tom Hanx", Verdict.SAME, "Tom Hanks"),
        # Neither correct
        AnalysisResult("Beyonse", "Beyonsé", Verdict.SAME, "Beyoncé"),
        # No canonical name
        AnalysisResult("Foo", "Bar", Verdict.DIFFERENT, ""),
    ]


class TestNormalize:

    def test_trims_and_lowercases(self):
        assert normalize_name("  Brad PITT ") == "brad pitt"

    def test_empty_and_none(self):
        assert normalize_name(None) == ""
        assert normalize_name("") == ""
        assert normalize_name("   ") == ""

    @pytest.mark.parametrize("value", ["  Brad PITT ", "Beyoncé", "", None, "Tom\tHanks "])
    def test_idempotent(self, value):
        once = normalize_name(value)
        assert normalize_name(once) == once


class TestEvaluateResult:

    def test_brad_pitt_scenario(self, sample_results):
        row = evaluate_result(sample_results[0])
        assert row.is_original_correct is False
        assert row.is_duplicate_correct is True
        assert row.correction_needed == ""

    def test_original_correct_after_normalization(self, sample_results):
        row = evaluate_result(sample_results[1])
        assert row.is_original_correct is True
        assert row.is_duplicate_correct is False
        assert row.correction_needed == ""

    def test_neither_correct_needs_raw_name(self, sample_results):
        row = evaluate_result(sample_results[2])
        assert row.is_original_correct is False
        assert row.is_duplicate_correct is False
        assert row.correction_needed == "Beyoncé"

    def test_no_canonical_name(self, sample_results):
        row = evaluate_result(sample_results[3])
        assert row.is_original_correct is False
        assert row.is_duplicate_correct is False
        assert row.correction_needed == ""

    def test_empty_inputs_never_match_empty_name(self):
        row = evaluate_result(AnalysisResult("", "", Verdict.SAME, None))
        assert row.is_original_correct is False
        assert row.is_duplicate_correct is False

    def test_stable_under_renormalized_inputs(self, sample_results):
        for result in sample_results:
            renormalized = AnalysisResult(
                normalize_name(result.original),
                normalize_name(result.duplicate),
                result.status,
                normalize_name(result.correct_name),
            )
            before = evaluate_result(result)
            after = evaluate_result(renormalized)
            assert before.is_original_correct == after.is_original_correct
            assert before.is_duplicate_correct == after.is_duplicate_correct


class TestDedupeCitations:

    def test_first_occurrence_wins_in_order(self):
        citations = [Citation("a", "first"), Citation("a", "second"), Citation("b", "B")]
        unique = dedupe_citations(citations)
        assert [c.uri for c in unique] == ["a", "b"]
        assert unique[0].title == "first"

    def test_empty(self):
        assert dedupe_citations([]) == []


def test_summarize_results(sample_results):
    summary = summarize_results(sample_results)
    assert summary == {
        "total": 4,
        "same": 3,
        "different": 1,
        "error": 0,
        "corrections_needed": 1,
    }


class TestExportWorkbook:

    def test_sheet_and_columns(self, sample_results):
        buffer = export_workbook(sample_results)
        wb = load_workbook(buffer)

        assert wb.sheetnames == [EXPORT_SHEET_TITLE]
        ws = wb[EXPORT_SHEET_TITLE]
        header = [cell.value for cell in ws[1]]
        assert header == EXPORT_COLUMNS

    def test_rows(self, sample_results):
        wb = load_workbook(export_workbook(sample_results))
        rows = list(wb.active.iter_rows(min_row=2, values_only=True))

        assert len(rows) == 4
        assert rows[0][:3] == ("Brad Pit", "Brad Pitt", "Brad Pitt")
        assert rows[0][3] in (None, "")
        assert rows[0][4:] == ("SAME", "NO", "YES")
        assert rows[2] == ("Beyonse", "Beyonsé", "Beyoncé", "Beyoncé", "SAME", "NO", "NO")
        # Empty strings are stored as empty cells
        assert rows[3][2] in (None, "")
        assert rows[3][4] == "DIFFERENT"

    def test_writes_to_output_handle(self, sample_results):
        output = io.BytesIO()
        buffer = export_workbook(sample_results, output=output)
        assert output.getvalue() == buffer.getvalue()

    def test_fixed_filename(self):
        assert EXPORT_FILENAME == "personality_analysis_results.xlsx"
