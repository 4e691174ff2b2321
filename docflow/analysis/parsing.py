import json
import re

from docflow.analysis.exceptions import ProviderResponseError

_LEADING_INT = re.compile(r"-?\d+")


def strip_code_fence(raw: str) -> str:
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)
    return cleaned.strip()


def parse_json_object(raw: str) -> dict[str, object]:
    """Parse a provider answer that must be a JSON object.

    Raises:
        ProviderResponseError: on invalid JSON or a non-object payload.
    """
    try:
        parsed = json.loads(strip_code_fence(raw))
    except json.JSONDecodeError as exc:
        raise ProviderResponseError(f"Invalid JSON response: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ProviderResponseError("JSON response must be an object")
    return parsed


def parse_score(raw: str) -> int:
    """Read a 0-100 score from the start of a provider answer; 0 when absent."""
    match = _LEADING_INT.match(raw.strip())
    if match is None:
        return 0
    return clamp_percentage(int(match.group()))


def clamp_percentage(value: int) -> int:
    return max(0, min(100, value))
