"""
StarOne - Model Output Recovery

Pure strategies for pulling a JSON object out of free-form model text.
"""

from typing import Any, Callable, Dict, Optional, Tuple
import json
import re

from starone.core.errors import ParseFailure

FENCED_JSON_PATTERN = re.compile(r"```json\n?([\s\S]*?)\n?```")
BRACE_SPAN_PATTERN = re.compile(r"\{[\s\S]*\}")


def from_fenced_block(text: str) -> Optional[str]:
    """Inner content of the first ```json fenced block."""
    match = FENCED_JSON_PATTERN.search(text)
    return match.group(1) if match else None


def from_brace_span(text: str) -> Optional[str]:
    """Everything from the first '{' to the last '}'."""
    match = BRACE_SPAN_PATTERN.search(text)
    return match.group(0) if match else None


# Tried in order; the first strategy that matches wins
EXTRACTION_STRATEGIES: Tuple[Callable[[str], Optional[str]], ...] = (
    from_fenced_block,
    from_brace_span,
)


def extract_json_text(text: str) -> str:
    """Locate the JSON candidate in model output."""
    for strategy in EXTRACTION_STRATEGIES:
        candidate = strategy(text or "")
        if candidate is not None:
            return candidate
    raise ParseFailure("Could not extract JSON from model response")


def recover_json_object(text: str) -> Dict[str, Any]:
    """Extract and parse the JSON object embedded in model output."""
    candidate = extract_json_text(text)

    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseFailure(f"Model response is not valid JSON: {e}") from e

    if not isinstance(value, dict):
        raise ParseFailure(f"Expected a JSON object, got {type(value).__name__}")

    return value
