# Name Match: verify name pairs against a search-grounded LLM
# Siloed module - no imports from other Nebula components or the backend

from .models import (
    NamePair, AnalysisResult, Citation, Classification,
    ProgressState, ResultRow, RunState, Verdict,
)
from .exceptions import NameMatchError, FormatError, InputReadError, ClassificationError
from .config import RetryPolicy, DEFAULT_RETRY_POLICY
from .loader import load_pairs
from .classifier import EntityClassifier, NameMatchClassifier, build_prompt, parse_response
from .driver import AnalysisRun, CancellationToken
from .report import (
    EXPORT_FILENAME, build_rows, dedupe_citations, evaluate_result,
    export_workbook, normalize_name, summarize_results,
)

__version__ = "1.0.0"

__all__ = [
    # Models
    "NamePair",
    "AnalysisResult",
    "Citation",
    "Classification",
    "ProgressState",
    "ResultRow",
    "RunState",
    "Verdict",
    # Errors
    "NameMatchError",
    "FormatError",
    "InputReadError",
    "ClassificationError",
    # Config
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    # Loader
    "load_pairs",
    # Classifier
    "EntityClassifier",
    "NameMatchClassifier",
    "build_prompt",
    "parse_response",
    # Driver
    "AnalysisRun",
    "CancellationToken",
    # Report
    "EXPORT_FILENAME",
    "build_rows",
    "dedupe_citations",
    "evaluate_result",
    "export_workbook",
    "normalize_name",
    "summarize_results",
]
