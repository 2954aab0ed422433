"""Tolerant parsing of chroma-mcp tool responses.

chroma-mcp returns the text form of Python objects, which is usually JSON
but sometimes a ``repr``: single-quoted dicts, ``None``/``True``/``False``,
numpy ``array(...)`` wrappers and numpy's ``...`` truncation of long vectors.

Repairs, applied in order to text outside string literals:
    1. drop ``array(`` wrappers
    2. turn the orphaned ``]])`` left by step 1 into ``]]``
    3. drop ``...,`` truncation markers (lossy: the vector loses elements)
    4. ``None``/``True``/``False`` -> ``null``/``true``/``false``

String literals are re-quoted as JSON double-quoted strings.
"""

import json
import re
from typing import Any

from oracle_kb_common import ProtocolParseError, get_logger

logger = get_logger(__name__)

_ARRAY_WRAPPER = re.compile(r"\barray\(")
_ORPHAN_CLOSE = re.compile(r"\]\]\)")
_TRUNCATION_MARKER = re.compile(r"\.\.\.,\s*")
_LITERALS = {"None": "null", "True": "true", "False": "false"}
_LITERAL_WORD = re.compile(r"\b(None|True|False)\b")


def _scan_string(text: str, start: int) -> int:
    """Return the index just past the string literal opening at ``start``."""
    quote = text[start]
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
        elif ch == quote:
            return i + 1
        else:
            i += 1
    return len(text)


def _split_literals(text: str) -> list[tuple[bool, str]]:
    """Split text into (is_string, chunk) segments."""
    segments: list[tuple[bool, str]] = []
    code_start = 0
    i = 0
    while i < len(text):
        if text[i] in ("'", '"'):
            if i > code_start:
                segments.append((False, text[code_start:i]))
            end = _scan_string(text, i)
            segments.append((True, text[i:end]))
            i = code_start = end
        else:
            i += 1
    if code_start < len(text):
        segments.append((False, text[code_start:]))
    return segments


def _requote(literal: str) -> str:
    """Convert a Python string literal to a JSON string literal."""
    if literal.startswith('"'):
        return literal
    body = literal[1:-1] if literal.endswith("'") and len(literal) > 1 else literal[1:]
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append("'" if nxt == "'" else ch + nxt)
            i += 2
            continue
        out.append('\\"' if ch == '"' else ch)
        i += 1
    return '"' + "".join(out) + '"'


def repair_response_text(text: str) -> tuple[str, int]:
    """Apply the repair sequence to ``text``.

    Returns:
        Tuple of (repaired text, number of truncation markers removed)
    """
    dropped = 0
    parts = []
    for is_string, chunk in _split_literals(text):
        if is_string:
            parts.append(_requote(chunk))
            continue
        chunk = _ARRAY_WRAPPER.sub("", chunk)
        chunk = _ORPHAN_CLOSE.sub("]]", chunk)
        chunk, n = _TRUNCATION_MARKER.subn("", chunk)
        dropped += n
        chunk = _LITERAL_WORD.sub(lambda m: _LITERALS[m.group(1)], chunk)
        parts.append(chunk)
    return "".join(parts), dropped


def parse_response(text: str) -> Any:
    """Parse a chroma-mcp response into Python data.

    Strict JSON first; on failure the repair sequence runs and the result is
    parsed again.

    Raises:
        ProtocolParseError: If the text is unparseable even after repair.
            The original text is attached as ``error.text``.

    Example:
        >>> parse_response("{'ids': [['a']], 'distances': [[0.1]], 'x': None}")
        {'ids': [['a']], 'distances': [[0.1]], 'x': None}
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    repaired, dropped = repair_response_text(text)
    if dropped:
        logger.warning(
            "truncated_sequence_repaired",
            markers_removed=dropped,
            detail="numeric sequence shortened; embedding dimensionality may be reduced",
        )

    try:
        return json.loads(repaired)
    except json.JSONDecodeError as e:
        logger.error("response_parse_failed", error=str(e), preview=text[:200])
        raise ProtocolParseError(f"Unparseable chroma-mcp response: {e}", text=text) from e
