import json
import re
from typing import Iterator, Optional

from loguru import logger

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def _reject_constant(name: str):
    raise ValueError(f"Non-standard JSON constant: {name}")


def _is_valid_json(candidate: str) -> bool:
    # NaN and Infinity are not JSON
    try:
        json.loads(candidate, parse_constant=_reject_constant)
        return True
    except ValueError:
        return False


def _balanced_spans(text: str, open_char: str, close_char: str) -> Iterator[str]:
    """
    Yield top-level spans opened by `open_char`, matching nested brackets of
    both kinds and skipping over string literals.
    """
    pairs = {"[": "]", "{": "}"}
    start = text.find(open_char)
    while start != -1:
        stack = []
        in_string = False
        escaped = False
        end = -1
        for idx in range(start, len(text)):
            char = text[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char in pairs:
                stack.append(pairs[char])
            elif char in ("]", "}"):
                if not stack or stack[-1] != char:
                    break
                stack.pop()
                if not stack:
                    end = idx
                    break
        if end != -1 and text[end] == close_char:
            yield text[start : end + 1]
        start = text.find(open_char, start + 1)


def _fenced_spans(text: str, open_char: str, close_char: str) -> Iterator[str]:
    for match in _FENCE_RE.finditer(text):
        body = match.group(1).strip()
        if body.startswith(open_char) and body.endswith(close_char):
            yield body


def _greedy_span(text: str, open_char: str, close_char: str) -> Optional[str]:
    start = text.find(open_char)
    end = text.rfind(close_char)
    if start != -1 and end > start:
        return text[start : end + 1]
    return None


def _candidates(text: str, open_char: str, close_char: str) -> Iterator[str]:
    yield from _balanced_spans(text, open_char, close_char)
    yield from _fenced_spans(text, open_char, close_char)
    greedy = _greedy_span(text, open_char, close_char)
    if greedy is not None:
        yield greedy


def find_json_fragment(text: Optional[str]) -> Optional[str]:
    """
    Locate the first parseable JSON array in free-form text, falling back to
    a single object wrapped as a one-element array.
    Returns None when nothing parses.
    """
    if not text:
        return None
    cleaned = text.strip()

    for candidate in _candidates(cleaned, "[", "]"):
        if _is_valid_json(candidate):
            logger.debug("Extracted JSON array ({} chars)", len(candidate))
            return candidate

    for candidate in _candidates(cleaned, "{", "}"):
        if _is_valid_json(candidate):
            logger.debug("Extracted JSON object ({} chars), wrapping as array", len(candidate))
            return f"[{candidate}]"

    return None


def extract_json(text: Optional[str]) -> str:
    """Same as find_json_fragment, but defaults to an empty array. Never raises."""
    fragment = find_json_fragment(text)
    if fragment is None:
        logger.warning("No valid JSON found in response, returning empty array")
        return "[]"
    return fragment
