import json
import logging
from typing import Any, Optional

from google.genai import types

logger = logging.getLogger(__name__)

# Extraction stages, in pipeline order
NULL_RESPONSE = "null_response"
NO_CANDIDATES = "no_candidates"
NO_CONTENT = "no_content"
NO_PARTS = "no_parts"
BLANK_TEXT = "blank_text"
PARSE_ERROR = "parse_error"
INCOMPLETE_SCHEMA = "incomplete_schema"


class ResponseExtractionError(Exception):
    """A Gemini response failed one stage of the extraction pipeline."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage


def _block_reason(response: types.GenerateContentResponse) -> str:
    feedback = getattr(response, "prompt_feedback", None)
    reason = getattr(feedback, "block_reason", None) if feedback else None
    return str(reason) if reason else "N/A"


def extract_text(response: Optional[types.GenerateContentResponse]) -> str:
    """
    Walks response -> candidates[0] -> content -> parts[0] -> text.
    Every missing link raises ResponseExtractionError with its own stage.
    """
    if response is None:
        logger.error("[AI EXTRACT] Gemini response is null.")
        raise ResponseExtractionError(NULL_RESPONSE, "Gemini returned no response")

    if not response.candidates:
        logger.error(f"[AI EXTRACT] No candidates in response. Block reason: {_block_reason(response)}")
        raise ResponseExtractionError(NO_CANDIDATES, "Gemini returned no candidates")

    candidate = response.candidates[0]
    if candidate.content is None:
        logger.error(f"[AI EXTRACT] First candidate has no content. Finish reason: {candidate.finish_reason}")
        raise ResponseExtractionError(NO_CONTENT, "First candidate has no content")

    if not candidate.content.parts:
        logger.error(f"[AI EXTRACT] Candidate content has no parts. Finish reason: {candidate.finish_reason}")
        raise ResponseExtractionError(NO_PARTS, "Candidate content has no parts")

    raw_text = candidate.content.parts[0].text
    if raw_text is None or not raw_text.strip():
        logger.error("[AI EXTRACT] Text inside parts is empty.")
        raise ResponseExtractionError(BLANK_TEXT, "Candidate text is blank")

    logger.debug(f"Raw Gemini text: {raw_text}")
    return raw_text


def strip_code_fences(raw_text: str) -> str:
    """Drops Markdown ```json / ``` markers the model sometimes wraps JSON in."""
    return raw_text.strip().replace("```json", "").replace("```", "").strip()


def parse_json(clean_text: str) -> Any:
    try:
        return json.loads(clean_text)
    except json.JSONDecodeError as e:
        logger.error(f"[AI EXTRACT] Could not parse JSON: {e}")
        raise ResponseExtractionError(PARSE_ERROR, f"Invalid JSON from Gemini: {e}") from e


def extract_json(response: Optional[types.GenerateContentResponse]) -> Any:
    """Full pipeline: text extraction, fence stripping, JSON parsing."""
    return parse_json(strip_code_fences(extract_text(response)))
