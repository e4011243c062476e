"""
Gemini LLM client.

Provides:
- Search-grounded text generation (for name verification)
- Credential/availability checking

Generation raises LLMError instead of returning None so callers can
surface the failure reason to the user.
"""
import logging
import requests
from typing import Optional, Dict, Any

from .config import settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Gemini request failed or returned an unusable payload."""


def _headers() -> dict:
    """Build headers for Gemini API requests."""
    return {
        "Content-Type": "application/json",
        "x-goog-api-key": settings.GEMINI_API_KEY,
    }


def _model_url(model: str) -> str:
    return f"{settings.GEMINI_API_URL}/{model}"


def _error_detail(resp: requests.Response) -> str:
    """Pull the message out of a Gemini error body, falling back to the HTTP reason."""
    try:
        error = resp.json().get("error", {})
        message = error.get("message")
        if message:
            status = error.get("status")
            prefix = f"{resp.status_code} {status}" if status else str(resp.status_code)
            return f"{prefix}: {message}"
    except (ValueError, AttributeError):
        pass
    return f"{resp.status_code} {resp.reason}"


def check_available(model: Optional[str] = None) -> bool:
    """
    Check if the Gemini API is configured and reachable.

    Args:
        model: Model to look up (defaults to GEMINI_MODEL)
    """
    if not settings.GEMINI_API_KEY:
        return False
    try:
        resp = requests.get(
            _model_url(model or settings.GEMINI_MODEL),
            headers=_headers(),
            timeout=10,
        )
        return resp.status_code == 200
    except requests.RequestException:
        return False


def generate_grounded(
    prompt: str,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Send a generation request with Google Search grounding enabled.

    Args:
        prompt: The prompt text
        model: Model to use (defaults to GEMINI_MODEL)
        timeout: Request timeout in seconds (None = transport default)

    Returns:
        {"text": str, "grounding_chunks": list} where each chunk is
        {"web": {"uri", "title"}} or {"maps": {"uri", "title"}}

    Raises:
        LLMError: Missing credential, transport failure, HTTP error or
                  malformed response
    """
    if not settings.GEMINI_API_KEY:
        raise LLMError("Gemini API key is not configured")

    target_model = model or settings.GEMINI_MODEL
    payload: Dict[str, Any] = {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "tools": [{"google_search": {}}],
    }

    try:
        resp = requests.post(
            f"{_model_url(target_model)}:generateContent",
            headers=_headers(),
            json=payload,
            timeout=timeout,
        )
    except requests.RequestException as e:
        logger.error(f"LLM generate request failed: {e}")
        raise LLMError(f"Request failed: {e}") from e

    if not resp.ok:
        detail = _error_detail(resp)
        logger.error(f"LLM generate request failed: {detail}")
        raise LLMError(detail)

    try:
        data = resp.json()
    except ValueError as e:
        raise LLMError("Invalid JSON in Gemini response") from e

    # Gemini response: {"candidates": [{"content": {"parts": [{"text": "..."}]}, "groundingMetadata": {...}}]}
    candidates = data.get("candidates") or []
    if not candidates:
        reason = (data.get("promptFeedback") or {}).get("blockReason")
        raise LLMError(f"No candidates returned{f' (blocked: {reason})' if reason else ''}")

    candidate = candidates[0]
    parts = (candidate.get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    grounding = candidate.get("groundingMetadata") or {}

    return {
        "text": text,
        "grounding_chunks": grounding.get("groundingChunks") or [],
    }
