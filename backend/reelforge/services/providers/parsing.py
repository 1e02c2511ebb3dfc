"""
Parsing adapter for structured LLM output

Text backends are asked for bare JSON but regularly wrap it in markdown
fences, prepend chatter or emit invalid escapes. Everything that copes with
that lives here; callers get either a parsed value or GenerationFormatError.
"""

import json
import re
from typing import Any, Dict, List, Optional

import httpx

from ...core import GenerationFormatError, ProviderError


def strip_markdown_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
        text = "\n".join(lines).strip()
    return text


def extract_largest_balanced_json(text: str, expect_array: bool = False) -> Optional[str]:
    """Extract the largest balanced JSON object/array from text.

    Scans for balanced braces/brackets while respecting string literals and escapes.

    Args:
        text: Source text potentially containing JSON.
        expect_array: If True, only return a JSON array (starts with '[').
    """
    if not text:
        return None

    in_string = False
    escape = False
    stack: List[str] = []
    start_idx: Optional[int] = None
    best: Optional[str] = None

    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
            continue

        if ch in "{[":
            if not stack:
                start_idx = i
            stack.append(ch)
            continue

        if ch in "}]":
            if not stack:
                continue
            open_ch = stack[-1]
            if (open_ch == "{" and ch == "}") or (open_ch == "[" and ch == "]"):
                stack.pop()
                if not stack and start_idx is not None:
                    candidate = text[start_idx:i + 1]
                    start_idx = None
                    if expect_array and not candidate.startswith("["):
                        continue
                    if best is None or len(candidate) > len(best):
                        best = candidate
            else:
                stack.clear()
                start_idx = None

    return best


def fix_json_escapes(text: str) -> str:
    """Escape lone backslashes while keeping valid JSON escapes intact."""
    return re.sub(
        r'\\\\|\\(?!["/bfnrt]|u[0-9a-fA-F]{4})',
        lambda m: m.group(0) if m.group(0) == "\\\\" else "\\\\",
        text,
    )


def _candidates(text: str, expect_array: bool) -> List[str]:
    cleaned = strip_markdown_fences(text)
    candidates = [cleaned]
    balanced = extract_largest_balanced_json(cleaned, expect_array=expect_array)
    if balanced and balanced != cleaned:
        candidates.append(balanced)
    return candidates


def _loads(text: str, expect_array: bool) -> Any:
    for candidate in _candidates(text, expect_array):
        for attempt in (candidate, fix_json_escapes(candidate)):
            try:
                return json.loads(attempt)
            except json.JSONDecodeError:
                continue
    raise GenerationFormatError("Backend response did not contain valid JSON")


def parse_json_object(text: str) -> Dict[str, Any]:
    """Parse a JSON object out of an LLM response.

    Raises:
        GenerationFormatError: If no JSON object can be recovered
    """
    value = _loads(text or "", expect_array=False)
    if not isinstance(value, dict):
        raise GenerationFormatError("Expected a JSON object in backend response")
    return value


def parse_json_array(text: str) -> List[Any]:
    """Parse a JSON array out of an LLM response.

    A top-level object wrapping a single array (e.g. {"prompts": [...]}) is
    unwrapped.

    Raises:
        GenerationFormatError: If no JSON array can be recovered
    """
    value = _loads(text or "", expect_array=True)
    if isinstance(value, dict):
        arrays = [v for v in value.values() if isinstance(v, list)]
        if len(arrays) == 1:
            value = arrays[0]
    if not isinstance(value, list):
        raise GenerationFormatError("Expected a JSON array in backend response")
    return value


def response_json(response: httpx.Response, service: str, backend: Optional[str] = None) -> Dict[str, Any]:
    """Decode a provider API body that must be a JSON object."""
    try:
        data = response.json()
    except ValueError as e:
        raise ProviderError(
            f"{service} returned a non-JSON response (HTTP {response.status_code})",
            backend=backend,
        ) from e
    if not isinstance(data, dict):
        raise ProviderError(f"{service} returned unexpected JSON: {type(data).__name__}", backend=backend)
    return data
