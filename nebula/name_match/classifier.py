"""
Classifier - Ask a search-grounded LLM whether two names are the same entity.

The model must reply in a strict two-line format:

    Status: SAME | DIFFERENT
    Correct Name: <verified spelling>

The transport is injected as a `generate` callable so the classifier
never touches credentials or the network directly.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from .exceptions import ClassificationError
from .models import Citation, Classification, Verdict

logger = logging.getLogger(__name__)

# generate(prompt) -> {"text": str, "grounding_chunks": [{"web": {"uri", "title"}}, ...]}
GenerateFn = Callable[[str], dict[str, Any]]

STATUS_PREFIX = "STATUS:"
CORRECT_NAME_PREFIX = "CORRECT NAME:"
CITATION_KINDS = ("web", "maps")

PROMPT_TEMPLATE = """
Analyze if the following two names refer to the same person.
Name 1: "{original}"
Name 2: "{duplicate}"

MANDATORY INSTRUCTIONS:
1. Use Google Search to identify the real-world personality or entity these names refer to.
2. Determine the OFFICIAL, CORRECT spelling of the name from the search results.
3. Determine if the two provided names refer to this SAME person (checking for typos, nicknames, or variations).

If the names are similar but misspelled (e.g. "Brad Pit" vs "Brad Pitt"), identify the correct spelling of the intended famous personality (e.g. "Brad Pitt") and mark as SAME.

Your response MUST be in the following strict format:
Status: SAME | DIFFERENT
Correct Name: [The verified correct spelling from Google Search]
"""


def build_prompt(original: str, duplicate: str) -> str:
    """Build the classification instruction for one name pair."""
    return PROMPT_TEMPLATE.format(original=original, duplicate=duplicate)


def _find_line(lines: list[str], prefix: str) -> Optional[str]:
    """First line starting with prefix (case-insensitive), or None."""
    for line in lines:
        if line.strip().upper().startswith(prefix):
            return line
    return None


def _parse_status(lines: list[str]) -> Optional[Verdict]:
    line = _find_line(lines, STATUS_PREFIX)
    if line is None:
        return None
    _, _, value = line.partition(":")
    value = value.strip().upper()
    if "SAME" in value:
        return Verdict.SAME
    if "DIFFERENT" in value:
        return Verdict.DIFFERENT
    return None


def _parse_correct_name(lines: list[str]) -> str:
    line = _find_line(lines, CORRECT_NAME_PREFIX)
    if line is None:
        return ""
    # Everything after the first colon, so "Correct Name: Star Wars: Rey" keeps its colon
    _, _, value = line.partition(":")
    return value.strip()


def parse_response(text: str) -> tuple[Verdict, str]:
    """
    Parse a model reply into (status, correct_name).

    Falls back to a bare "SAME"/"DIFFERENT" body when no status line
    parses. correct_name may be empty.

    Raises:
        ClassificationError: No valid status in the reply
    """
    text = text or ""
    lines = text.split("\n")

    status = _parse_status(lines)
    correct_name = _parse_correct_name(lines)

    if status is None:
        simple = text.strip().upper()
        if simple in (Verdict.SAME.value, Verdict.DIFFERENT.value):
            status = Verdict(simple)

    if status is None:
        raise ClassificationError(f"Unexpected API response format: {text[:100]}...")

    return status, correct_name


def extract_citations(grounding_chunks: Optional[list]) -> list[Citation]:
    """
    Pull provenance entries out of the grounding metadata.

    Each chunk carries either a "web" or a "maps" source. Chunks without
    a URI are dropped; a missing list yields no citations.
    """
    citations = []
    for chunk in grounding_chunks or []:
        if not isinstance(chunk, dict):
            continue
        for kind in CITATION_KINDS:
            source = chunk.get(kind)
            if not isinstance(source, dict) or not source.get("uri"):
                continue
            citations.append(Citation(uri=source["uri"], title=source.get("title") or "", kind=kind))
    return citations


class EntityClassifier(ABC):
    """
    Interface for deciding whether two names denote the same entity.

    The driver only depends on this, so tests can swap in scripted
    implementations.
    """

    @abstractmethod
    def classify(self, original: str, duplicate: str) -> Classification:
        """
        Classify one name pair.

        Raises:
            ClassificationError: Attempt failed; caller may retry
        """
        pass


class NameMatchClassifier(EntityClassifier):
    """Classifier backed by a search-grounded generative model."""

    def __init__(self, generate: GenerateFn):
        """
        Args:
            generate: Transport that sends a prompt with search grounding
                      enabled and returns {"text", "grounding_chunks"}
        """
        self._generate = generate

    def classify(self, original: str, duplicate: str) -> Classification:
        prompt = build_prompt(original, duplicate)

        try:
            response = self._generate(prompt)
        except Exception as e:
            raise ClassificationError(str(e) or e.__class__.__name__) from e

        if not isinstance(response, dict):
            raise ClassificationError(f"Unexpected transport response: {type(response).__name__}")

        status, correct_name = parse_response(response.get("text") or "")
        citations = extract_citations(response.get("grounding_chunks"))

        logger.debug(f"Classified {original!r} / {duplicate!r}: {status.value} ({correct_name!r})")
        return Classification(status=status, correct_name=correct_name, citations=tuple(citations))
