"""
Report Generator - Derive correctness flags and export results.

A result's canonical name is compared against both inputs after
trimming and lowercasing. "Correction Needed" is only filled in when
neither input already has the right spelling.
"""

from io import BytesIO
from typing import BinaryIO, Iterable, Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .models import AnalysisResult, Citation, ResultRow, Verdict

EXPORT_FILENAME = "personality_analysis_results.xlsx"
EXPORT_SHEET_TITLE = "Analysis Results"

EXPORT_COLUMNS = [
    "Original",
    "Duplicates",
    "Correct Name Found",
    "Correction Needed",
    "Match Status",
    "Is Original Correct",
    "Is Duplicate Correct",
]

COLUMN_WIDTHS = [30, 30, 30, 30, 14, 20, 20]


def normalize_name(value: Optional[str]) -> str:
    """Trim and lowercase. None becomes ""."""
    if not value:
        return ""
    return value.strip().lower()


def evaluate_result(result: AnalysisResult) -> ResultRow:
    """Attach the display/export flags to a single result."""
    correct = normalize_name(result.correct_name)
    original = normalize_name(result.original)
    duplicate = normalize_name(result.duplicate)

    is_original_correct = bool(correct) and original == correct
    is_duplicate_correct = bool(correct) and duplicate == correct

    correction_needed = ""
    if result.correct_name and not is_original_correct and not is_duplicate_correct:
        correction_needed = result.correct_name

    return ResultRow(
        result=result,
        is_original_correct=is_original_correct,
        is_duplicate_correct=is_duplicate_correct,
        correction_needed=correction_needed,
    )


def build_rows(results: Iterable[AnalysisResult]) -> list[ResultRow]:
    return [evaluate_result(r) for r in results]


def dedupe_citations(citations: Iterable[Citation]) -> list[Citation]:
    """
    Drop repeated URIs, keeping the first occurrence and its title.

    Order of first appearance is preserved.
    """
    seen = set()
    unique = []
    for citation in citations:
        if citation.uri in seen:
            continue
        seen.add(citation.uri)
        unique.append(citation)
    return unique


def summarize_results(results: Iterable[AnalysisResult]) -> dict:
    """Counts by verdict plus how many rows need a correction."""
    rows = build_rows(results)
    return {
        "total": len(rows),
        "same": sum(1 for r in rows if r.result.status == Verdict.SAME),
        "different": sum(1 for r in rows if r.result.status == Verdict.DIFFERENT),
        "error": sum(1 for r in rows if r.result.status == Verdict.ERROR),
        "corrections_needed": sum(1 for r in rows if r.correction_needed),
    }


def _yes_no(flag: bool) -> str:
    return "YES" if flag else "NO"


def export_row(row: ResultRow) -> list[str]:
    """Values for one export line, in EXPORT_COLUMNS order."""
    result = row.result
    return [
        result.original,
        result.duplicate,
        result.correct_name or "",
        row.correction_needed,
        result.status.value,
        _yes_no(row.is_original_correct),
        _yes_no(row.is_duplicate_correct),
    ]


def export_workbook(
    results: Iterable[AnalysisResult],
    output: Optional[BinaryIO] = None,
) -> BytesIO:
    """
    Write results to a single-sheet XLSX workbook.

    Args:
        results: Analysis results in input order
        output: Optional binary file handle to also write to

    Returns:
        BytesIO buffer containing the workbook, positioned at 0
    """
    wb = Workbook()
    ws = wb.active
    ws.title = EXPORT_SHEET_TITLE

    ws.append(EXPORT_COLUMNS)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for row in build_rows(results):
        ws.append(export_row(row))

    for col_idx, width in enumerate(COLUMN_WIDTHS, 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)

    if output:
        output.write(buffer.getvalue())

    return buffer
