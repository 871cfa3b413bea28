"""Utility functions for the debate engine."""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)


def extract_json_object(text: str) -> dict[str, Any]:
    """Pull a JSON object out of a model response.

    Handles markdown code fences, leading or trailing prose and the
    truncated or sloppy JSON small models tend to produce.

    Raises:
        ValueError: If no JSON object can be recovered.
    """
    markdown_match = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", text, re.DOTALL)
    if markdown_match:
        json_text = markdown_match.group(1)
    else:
        json_match = re.search(r"\{.*\}", text, re.DOTALL)
        if json_match:
            json_text = json_match.group()
        else:
            start = text.find("{")
            if start == -1:
                raise ValueError("Response does not contain a JSON object")
            json_text = text[start:]

    try:
        data = json.loads(repair_json(json_text))
    except json.JSONDecodeError as e:
        raise ValueError(f"Response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


def repair_json(json_text: str) -> str:
    """Attempt to repair common JSON issues from small models."""
    repaired = json_text.strip()

    # Remove any trailing comma before closing braces/brackets
    repaired = re.sub(r",(\s*[}\]])", r"\1", repaired)

    # Fix missing quotes around keys
    repaired = re.sub(r"([{,]\s*)([a-zA-Z_][a-zA-Z0-9_]*)\s*:", r'\1"\2":', repaired)

    if not repaired.endswith("}"):
        logger.warning("JSON appears truncated, attempting to complete it")

        open_quotes = repaired.count('"') - repaired.count('\\"')
        if open_quotes % 2 == 1:
            repaired += '"'

        repaired = repaired.rstrip().rstrip(",")

        open_braces = repaired.count("{") - repaired.count("}")
        open_brackets = repaired.count("[") - repaired.count("]")
        repaired += "]" * open_brackets
        repaired += "}" * open_braces

    # Remove any text after the final closing brace
    last_brace = repaired.rfind("}")
    if last_brace != -1:
        repaired = repaired[: last_brace + 1]

    if repaired != json_text:
        logger.debug(f"Repaired JSON text for parsing: {repaired}")

    return repaired
