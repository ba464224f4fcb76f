"""Strict parsing of untrusted LLM text into validated pydantic models.

Model output is treated as untrusted text:
1. Extract the first top-level JSON object substring (string- and
   escape-aware brace matching, so braces inside string values and markdown
   fences around the object are handled).
2. json.loads() the substring.
3. Validate it against the expected pydantic model.

Any failure raises AnalysisParseError with the raw text attached.  There is
no fallback to a default verdict and no partially-filled result.
"""

from __future__ import annotations

import json
import logging
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from alignai.errors import AnalysisParseError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_CLOSERS = {"{": "}", "[": "]"}


def _extract_first(raw: str, opener: str) -> str | None:
    """Return the first balanced ``opener ... closer`` span in *raw*, or None."""
    closer = _CLOSERS[opener]
    start = raw.find(opener)
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(raw)):
            ch = raw[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == opener:
                depth += 1
            elif ch == closer:
                depth -= 1
                if depth == 0:
                    return raw[start:i + 1]
        # Unbalanced from this opener: try the next one
        start = raw.find(opener, start + 1)
    return None


def extract_json_object(raw: str) -> str | None:
    """Return the first top-level ``{...}`` substring of *raw*, or None."""
    return _extract_first(raw, "{")


def extract_json_array(raw: str) -> str | None:
    """Return the first top-level ``[...]`` substring of *raw*, or None."""
    return _extract_first(raw, "[")


def parse_model_output(raw: str, model: type[ModelT]) -> ModelT:
    """Parse *raw* LLM text into an instance of *model*.

    Raises:
        AnalysisParseError: No JSON object, invalid JSON, or schema mismatch.
    """
    candidate = extract_json_object(raw)
    if candidate is None:
        logger.warning("Model output parse: no JSON object found. Raw: %.200s", raw)
        raise AnalysisParseError("No JSON object found in model output", raw_text=raw)

    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as exc:
        logger.warning("Model output parse: invalid JSON: %s. Raw: %.200s", exc, raw)
        raise AnalysisParseError(f"Invalid JSON in model output: {exc}", raw_text=raw) from exc

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        logger.warning(
            "Model output parse: %s schema mismatch: %d error(s). Raw: %.200s",
            model.__name__,
            exc.error_count(),
            raw,
        )
        raise AnalysisParseError(
            f"Model output does not match {model.__name__}: {exc}", raw_text=raw
        ) from exc


def parse_string_list(raw: str) -> list[str] | None:
    """Parse the first JSON array in *raw* as a list of non-empty strings.

    Returns None when there is no array or it is not a list of strings.
    """
    candidate = extract_json_array(raw)
    if candidate is None:
        return None
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
        return None
    return [item.strip() for item in payload if item.strip()]
