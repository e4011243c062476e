"""
Pydantic request/response models for the API.
"""
from pydantic import BaseModel
from typing import List, Optional


# ============== Upload ==============

class PairPreview(BaseModel):
    original: str
    duplicate: str


class UploadResponse(BaseModel):
    filename: str
    row_count: int
    preview: List[PairPreview] = []


# ============== Analysis Status ==============

class ProgressModel(BaseModel):
    completed: int = 0
    total: int = 0
    percentage: float = 0.0


class ResultRowModel(BaseModel):
    """One classified row with its display flags."""
    original: str
    duplicate: str
    status: str
    status_label: str
    correct_name: str = ""
    correction_needed: str = ""
    is_original_correct: bool = False
    is_duplicate_correct: bool = False


class SourceModel(BaseModel):
    uri: str
    title: str = ""
    kind: str = "web"


class SummaryModel(BaseModel):
    total: int = 0
    same: int = 0
    different: int = 0
    error: int = 0
    corrections_needed: int = 0


class AnalysisStatusResponse(BaseModel):
    filename: Optional[str] = None
    row_count: int = 0
    state: str = "idle"
    is_loading: bool = False
    progress: ProgressModel = ProgressModel()
    error: Optional[str] = None
    results: List[ResultRowModel] = []
    sources: List[SourceModel] = []
    summary: SummaryModel = SummaryModel()
