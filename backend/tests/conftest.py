"""
Test configuration and fixtures for the backend test suite.

Provides:
- FastAPI TestClient fixture (worker lifespan disabled)
- A scripted classifier and synchronous run submission, so analyses
  complete inside the request without network access or real sleeps
- Factory for building upload spreadsheets
"""
import io
from typing import Optional
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from nebula.name_match import Classification, Citation, ClassificationError, EntityClassifier, Verdict


# ---------------------------------------------------------------------------
# Classifier fixtures
# ---------------------------------------------------------------------------

class ScriptedClassifier(EntityClassifier):
    """Answers from a {(original, duplicate): reply} map; unknown pairs are DIFFERENT."""

    def __init__(self, replies: Optional[dict] = None, failures: int = 0):
        self.replies = replies or {}
        self.failures = failures
        self.calls = []

    def classify(self, original, duplicate):
        self.calls.append((original, duplicate))
        if self.failures > 0:
            self.failures -= 1
            raise ClassificationError("503 UNAVAILABLE: model overloaded")
        return self.replies.get(
            (original, duplicate),
            Classification(status=Verdict.DIFFERENT),
        )


@pytest.fixture()
def classifier():
    return ScriptedClassifier({
        ("Brad Pit", "Brad Pitt"): Classification(
            status=Verdict.SAME,
            correct_name="Brad Pitt",
            citations=(
                Citation(uri="https://en.wikipedia.org/wiki/Brad_Pitt", title="wikipedia.org"),
                Citation(uri="https://www.imdb.com/name/nm0000093/", title="imdb.com"),
            ),
        ),
        ("Beyonse", "Beyonsé"): Classification(
            status=Verdict.SAME,
            correct_name="Beyoncé",
            citations=(Citation(uri="https://en.wikipedia.org/wiki/Brad_Pitt", title="duplicate uri"),),
        ),
    })


@pytest.fixture()
def client(classifier):
    """
    Provide a FastAPI TestClient with the classifier faked.

    Skips the lifespan (worker init/shutdown) to avoid APScheduler side
    effects; submitted runs execute synchronously with a no-op sleep.
    """
    from backend.api.main import app
    from backend.api.routers import name_match

    def run_inline(run):
        run._sleep = lambda seconds: None
        run.run()

    name_match._clear_state()
    with patch("backend.api.main.init_worker"), \
         patch("backend.api.main.stop_scheduler"), \
         patch("backend.api.routers.name_match.build_classifier", return_value=classifier), \
         patch("backend.api.routers.name_match.submit_run", side_effect=run_inline):
        with TestClient(app) as c:
            yield c
    name_match._clear_state()


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------

def make_xlsx(rows: list, headers: Optional[list] = None) -> bytes:
    """Build an upload workbook and return its bytes."""
    wb = Workbook()
    ws = wb.active
    ws.append(headers or ["Original", "Duplicates"])
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def upload(client, content: bytes, filename: str = "names.xlsx"):
    """POST a file to the upload endpoint."""
    return client.post(
        "/api/name-match/upload",
        files={"file": (filename, content, "application/octet-stream")},
    )
