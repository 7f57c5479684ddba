"""Strict parsing of model replies into the response schemas."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from pydantic import ValidationError

from ...core.exceptions import ModelResponseParseError
from .models import ModelSuggestionsResponse, SelectionResponse, SuggestionCandidate


def parse_llm_json(response_text: str) -> Dict[str, Any]:
    """Parse a JSON object from an LLM reply, handling markdown code fences.

    Tries two strategies:
    1. Direct JSON parse after stripping code fences
    2. Extract the outermost JSON object from surrounding text

    Raises:
        ModelResponseParseError: If no JSON object can be found
    """
    clean = (response_text or "").strip()
    if clean.startswith("```"):
        lines = clean.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        clean = "\n".join(lines).strip()

    if not clean:
        raise ModelResponseParseError("Empty response from model")

    try:
        parsed = json.loads(clean)
    except json.JSONDecodeError:
        parsed = None
        start = clean.find("{")
        end = clean.rfind("}")
        if start != -1 and end > start:
            try:
                parsed = json.loads(clean[start : end + 1])
            except json.JSONDecodeError:
                parsed = None

    if not isinstance(parsed, dict):
        raise ModelResponseParseError(
            f"Could not parse JSON object from model response: {clean[:200]}..."
        )
    return parsed


def parse_suggestions(response_text: str) -> List[SuggestionCandidate]:
    """Validate a generation reply against ModelSuggestionsResponse.

    Raises:
        ModelResponseParseError: On invalid JSON or schema mismatch
    """
    payload = parse_llm_json(response_text)
    try:
        return ModelSuggestionsResponse.model_validate(payload).suggestions
    except ValidationError as e:
        raise ModelResponseParseError(
            f"Suggestion response did not match schema: {e.error_count()} error(s)"
        ) from e


def parse_selection(response_text: str) -> List[int]:
    """Validate a selection reply against SelectionResponse.

    Raises:
        ModelResponseParseError: On invalid JSON or schema mismatch
    """
    payload = parse_llm_json(response_text)
    try:
        return SelectionResponse.model_validate(payload).selected_indices
    except ValidationError as e:
        raise ModelResponseParseError(
            f"Selection response did not match schema: {e.error_count()} error(s)"
        ) from e
