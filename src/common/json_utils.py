"""
JSON Utilities for LLM Response Parsing.

Locates and parses the JSON object embedded in a provider response, which
may be wrapped in markdown fences, preceded by a <think> reasoning block,
surrounded by prose, or truncated.

Candidates are tried in order, first success wins:
1. the object enclosing a known discriminator key ("analysis", "markets", ...)
2. a bare top-level array
3. the substring from the first '{' to the last '}'
4. the named array alone ("contacts": [...]), wrapped in a minimal object

Each candidate is parsed with json.loads() and, on failure, handed to the
JSON recovery engine. parse_llm_response() never raises: callers receive an
ExtractionResult and decide how to degrade.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from src.common.json_recovery import repair_json_text

logger = logging.getLogger(__name__)

SNIPPET_CHARS = 500

_FENCE_RE = re.compile(r"```[a-zA-Z]*")


@dataclass
class ExtractionResult:
    """Outcome of extracting a JSON object from provider text."""

    success: bool
    data: Optional[Dict[str, Any]] = None
    strategy: Optional[str] = None
    repaired: bool = False
    repairs: Tuple[str, ...] = ()
    error: Optional[str] = None
    raw_snippet: str = ""

    def to_debug(self) -> Dict[str, Any]:
        return {
            "extraction_success": self.success,
            "extraction_strategy": self.strategy,
            "json_repaired": self.repaired,
            "repairs": list(self.repairs),
            "extraction_error": self.error,
        }


def strip_reasoning(text: str) -> str:
    """Drop a <think>...</think> reasoning preamble (deep-research models)."""
    marker = "</think>"
    idx = text.rfind(marker)
    if idx != -1:
        return text[idx + len(marker):]
    return text


def strip_markdown_fences(text: str) -> str:
    """Remove ```json / ``` markers wherever they appear."""
    return _FENCE_RE.sub("", text).strip()


def find_balanced(text: str, start: int) -> Optional[str]:
    """
    Return text[start:] up to the bracket closing text[start], or None.

    String literals and escapes are respected, so braces inside values do not
    count. None means the structure is truncated.
    """
    opener = text[start]
    closer = "}" if opener == "{" else "]"
    depth = 0
    in_string = escape = False
    for i in range(start, len(text)):
        ch = text[i]
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
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def _discriminator_candidate(text: str, key: str) -> Optional[str]:
    """Smallest balanced object that encloses the "key": occurrence."""
    for match in re.finditer(rf'"{re.escape(key)}"\s*:', text):
        pos = text.rfind("{", 0, match.start())
        while pos != -1:
            candidate = find_balanced(text, pos)
            if candidate is not None and pos + len(candidate) > match.end():
                return candidate
            pos = text.rfind("{", 0, pos)
    return None


def _array_candidate(text: str, key: str) -> Optional[str]:
    """Named array alone, wrapped as {"key": [...]}; may be truncated."""
    match = re.search(rf'"{re.escape(key)}"\s*:\s*\[', text)
    if not match:
        return None
    start = match.end() - 1
    array = find_balanced(text, start)
    if array is None:
        array = text[start:]
        return f'{{"{key}": {array}'
    return f'{{"{key}": {array}}}'


def _candidates(
    text: str,
    discriminators: Iterable[str],
    array_key: Optional[str],
) -> List[Tuple[str, str]]:
    found: List[Tuple[str, str]] = []
    for key in discriminators:
        candidate = _discriminator_candidate(text, key)
        if candidate:
            found.append((f"discriminator:{key}", candidate))
            break

    stripped = text.lstrip()
    if stripped.startswith("["):
        found.append(("bare_array", find_balanced(stripped, 0) or stripped))

    first, last = text.find("{"), text.rfind("}")
    if first != -1:
        outer = text[first:last + 1] if last > first else text[first:]
        found.append(("outer_braces", outer))

    if array_key:
        candidate = _array_candidate(text, array_key)
        if candidate:
            found.append((f"array:{array_key}", candidate))

    unique: List[Tuple[str, str]] = []
    seen = set()
    for name, candidate in found:
        if candidate not in seen:
            seen.add(candidate)
            unique.append((name, candidate))
    return unique


def _as_object(decoded: Any, array_key: Optional[str]) -> Optional[Dict[str, Any]]:
    if isinstance(decoded, dict):
        return decoded
    if isinstance(decoded, list) and decoded and all(isinstance(i, dict) for i in decoded):
        # LLM sometimes answers with the bare list
        if array_key:
            return {array_key: decoded}
        if len(decoded) == 1:
            return decoded[0]
    return None


def parse_llm_response(
    text: Optional[str],
    discriminators: Iterable[str] = (),
    array_key: Optional[str] = None,
) -> ExtractionResult:
    """
    Extract the JSON object from a free-form provider response.

    Args:
        text: Raw completion text
        discriminators: Top-level keys identifying the expected schema
            (e.g. ("analysis",), ("markets",))
        array_key: Name of the entity array used for the salvage strategy

    Returns:
        ExtractionResult; success=False carries the first 500 characters of
        the raw input for diagnostics
    """
    raw = text or ""
    snippet = raw[:SNIPPET_CHARS]
    if not raw.strip():
        return ExtractionResult(success=False, error="Empty provider response", raw_snippet=snippet)

    cleaned = strip_markdown_fences(strip_reasoning(raw))
    candidates = _candidates(cleaned, tuple(discriminators), array_key)
    if not candidates:
        logger.warning(f"No JSON object found in provider response: {snippet[:200]}")
        return ExtractionResult(
            success=False,
            error="No JSON object found in provider response",
            raw_snippet=snippet,
        )

    for name, candidate in candidates:
        try:
            data = _as_object(json.loads(candidate), array_key)
        except ValueError:
            data = None
        if data is not None:
            return ExtractionResult(success=True, data=data, strategy=name, raw_snippet=snippet)

        trace: List[str] = []
        repaired = repair_json_text(candidate, trace)
        if repaired is None:
            continue
        data = _as_object(json.loads(repaired), array_key)
        if data is not None:
            logger.info(f"JSON recovered via {name} after repairs: {', '.join(trace)}")
            return ExtractionResult(
                success=True,
                data=data,
                strategy=name,
                repaired=True,
                repairs=tuple(trace),
                raw_snippet=snippet,
            )

    logger.warning(f"JSON repair exhausted all strategies. Original text (first 500 chars): {snippet}")
    return ExtractionResult(
        success=False,
        error="JSON repair exhausted all strategies",
        raw_snippet=snippet,
    )
