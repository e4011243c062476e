"""
Name match API router.

One upload/analysis session per process: uploading a file replaces the
current session, and Stop & Reset cancels a running analysis and clears
everything.
"""
import logging
import re
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, UploadFile, File
from fastapi.responses import StreamingResponse

from backend.api.models import AnalysisStatusResponse, UploadResponse
from backend.core import llm
from backend.core.worker import submit_run

from nebula.name_match import (
    AnalysisRun, NameMatchClassifier, RunState,
    FormatError, InputReadError,
    load_pairs, build_rows, dedupe_citations, summarize_results,
    export_workbook, EXPORT_FILENAME,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/name-match", tags=["Name Match"])

PREVIEW_ROWS = 5

# Global state for the current session
_name_match_state = {
    "filename": None,
    "records": [],
    "run": None,
    # Cancelled runs whose last call or backoff sleep has not returned yet
    "stopping": [],
}


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe use in Content-Disposition header."""
    safe = re.sub(r'[^\w\s\-\.]', '_', filename)
    return quote(safe, safe='')


def build_classifier() -> NameMatchClassifier:
    """Classifier wired to the Gemini transport."""
    return NameMatchClassifier(generate=llm.generate_grounded)


def _run_active(run) -> bool:
    """Submitted or running, and not asked to stop."""
    if run is None or run.cancelled:
        return False
    return run.state in (RunState.IDLE, RunState.RUNNING)


def _clear_state():
    run = _name_match_state["run"]
    if run is not None and _run_active(run):
        run.cancel()
    if run is not None and run.is_running:
        _name_match_state["stopping"].append(run)
    _name_match_state["filename"] = None
    _name_match_state["records"] = []
    _name_match_state["run"] = None


def _stopping_runs() -> list:
    """Cancelled runs that have not left RUNNING yet."""
    stopping = [run for run in _name_match_state["stopping"] if run.is_running]
    _name_match_state["stopping"] = stopping
    return stopping


def _build_status() -> dict:
    records = _name_match_state["records"]
    run = _name_match_state["run"]

    status = {
        "filename": _name_match_state["filename"],
        "row_count": len(records),
        "state": RunState.IDLE.value,
        "is_loading": False,
    }
    if run is None:
        return status

    snap = run.snapshot()
    progress = snap["progress"]
    if snap["state"] == RunState.IDLE:
        progress.total = len(run.records)

    status.update({
        "state": snap["state"].value,
        "is_loading": _run_active(run),
        "progress": {
            "completed": progress.completed,
            "total": progress.total,
            "percentage": round(progress.percentage, 1),
        },
        "error": snap["error_message"],
        "results": [
            {
                "original": row.result.original,
                "duplicate": row.result.duplicate,
                "status": row.result.status.value,
                "status_label": row.result.status.label,
                "correct_name": row.result.correct_name or "",
                "correction_needed": row.correction_needed,
                "is_original_correct": row.is_original_correct,
                "is_duplicate_correct": row.is_duplicate_correct,
            }
            for row in build_rows(snap["results"])
        ],
        "sources": [
            {"uri": c.uri, "title": c.title, "kind": c.kind}
            for c in dedupe_citations(snap["citations"])
        ],
        "summary": summarize_results(snap["results"]),
    })
    return status


@router.post("/upload", response_model=UploadResponse)
def upload_file(file: UploadFile = File(...)):
    """
    Upload a spreadsheet with "Original" and "Duplicates" columns.

    Replaces any current session; a running analysis is stopped.
    """
    _clear_state()

    try:
        records = load_pairs(file.file, filename=file.filename)
    except (FormatError, InputReadError) as e:
        logger.warning(f"Rejected upload {file.filename}: {e}")
        raise HTTPException(status_code=400, detail=f"Error parsing file: {e}")

    _name_match_state["filename"] = file.filename
    _name_match_state["records"] = records

    return {
        "filename": file.filename or "",
        "row_count": len(records),
        "preview": [
            {"original": r.original, "duplicate": r.duplicate}
            for r in records[:PREVIEW_ROWS]
        ],
    }


@router.post("/analyze", response_model=AnalysisStatusResponse)
def start_analysis():
    """Start classifying the uploaded rows in the background."""
    records = _name_match_state["records"]
    if not records:
        raise HTTPException(status_code=400, detail="No rows loaded. Upload a file first.")

    if _run_active(_name_match_state["run"]):
        raise HTTPException(status_code=409, detail="Analysis already in progress")
    if _stopping_runs():
        raise HTTPException(status_code=409, detail="Previous analysis is still stopping, try again shortly")

    run = AnalysisRun(records, build_classifier())
    _name_match_state["run"] = run
    submit_run(run)

    return _build_status()


@router.post("/reset", response_model=AnalysisStatusResponse)
def reset_session():
    """Stop any running analysis and clear the session."""
    _clear_state()
    return _build_status()


@router.get("/status", response_model=AnalysisStatusResponse)
def get_status():
    """Current progress, results so far, sources and transient error."""
    return _build_status()


@router.get("/export")
def export_results():
    """Download the analysis results as XLSX."""
    run = _name_match_state["run"]
    if _run_active(run):
        raise HTTPException(status_code=409, detail="Analysis still in progress")
    if run is None or not run.results:
        raise HTTPException(status_code=404, detail="No results to export")

    buffer = export_workbook(list(run.results))
    safe_filename = sanitize_filename(EXPORT_FILENAME)

    def iterfile():
        yield buffer.getvalue()

    return StreamingResponse(
        iterfile(),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={
            "Content-Disposition": f"attachment; filename=\"{safe_filename}\"; filename*=UTF-8''{safe_filename}"
        }
    )
