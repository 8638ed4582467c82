"""
JSON Recovery for near-valid LLM output.

The providers we call (Perplexity sonar / deep-research) regularly return JSON
that is almost valid: trailing commas, missing commas between array items,
unquoted keys, raw newlines or stray quotes inside French text, and
truncation mid-array when the token budget runs out.

repair_json_text() applies a fixed sequence of repairs. Each repair is a
single pass over the raw characters that tracks string/escape state and
bracket depth explicitly, so nothing inside a string literal is ever
rewritten as structure. The repairs are cumulative and the text is
re-validated with json.loads() after each one; the first parseable result
wins. The json-repair library is the last resort.

Balancing closers can produce syntactically valid but semantically partial
JSON (a truncated array simply ends early). That is accepted: a partially
recovered list is better than nothing, and the normalizer drops incomplete
records afterwards.
"""

import json
import logging
import re
from typing import Callable, List, Optional, Tuple

from json_repair import repair_json

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[a-zA-Z]*")
_VALID_ESCAPES = set('"\\/bfnrtu')
_HEX = set("0123456789abcdefABCDEF")
_CLOSER_FOR = {"{": "}", "[": "]"}
_LITERALS = ("true", "false", "null")


def _loads_ok(text: str) -> bool:
    try:
        json.loads(text)
        return True
    except ValueError:
        return False


# ===== Repair strategies =====

def trim_to_outer_brackets(text: str) -> str:
    """
    Remove markdown fences and any text outside the outermost structure.

    The structure is opened by whichever of '{' or '[' comes first, so a
    top-level array keeps its brackets.
    """
    text = _FENCE_RE.sub("", text).strip()
    openers = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not openers:
        return text
    start = min(openers)
    end = text.rfind(_CLOSER_FOR[text[start]])
    if end < start:
        # Truncated before any closer, keep everything after the opener
        return text[start:]
    return text[start:end + 1]


def remove_trailing_commas(text: str) -> str:
    """Drop commas directly followed (modulo whitespace) by '}' or ']'."""
    out: List[str] = []
    in_string = escape = False
    n = len(text)
    for i, ch in enumerate(text):
        if in_string:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                continue
        out.append(ch)
    return "".join(out)


def insert_missing_commas(text: str) -> str:
    """Insert a comma between adjacent values: '} {', '] [', '"a" "b"'."""
    out: List[str] = []
    in_string = escape = False
    prev = ""  # last significant character emitted outside a string
    for ch in text:
        if in_string:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
                prev = '"'
            continue
        if ch.isspace():
            out.append(ch)
            continue
        if ch in '{["' and (prev in '}]"' and prev != "" or prev.isalnum()):
            # Place the comma right after the previous value, before whitespace
            k = len(out)
            while k > 0 and out[k - 1].isspace():
                k -= 1
            out.insert(k, ",")
        out.append(ch)
        if ch == '"':
            in_string = True
        else:
            prev = ch
    return "".join(out)


def quote_property_names(text: str) -> str:
    """Quote bare or single-quoted keys: {name: 1} -> {"name": 1}."""
    out: List[str] = []
    in_string = escape = False
    prev = ""
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
                prev = '"'
            i += 1
            continue
        if ch.isspace():
            out.append(ch)
            i += 1
            continue
        if prev in ("{", ","):
            if ch == "'":
                end = text.find("'", i + 1)
                if end != -1:
                    j = end + 1
                    while j < n and text[j].isspace():
                        j += 1
                    if j < n and text[j] == ":":
                        out.append(json.dumps(text[i + 1:end], ensure_ascii=False))
                        prev = '"'
                        i = end + 1
                        continue
            elif ch.isalpha() or ch in "_$":
                j = i
                while j < n and (text[j].isalnum() or text[j] in "_-$"):
                    j += 1
                k = j
                while k < n and text[k].isspace():
                    k += 1
                word = text[i:j]
                if k < n and text[k] == ":" and word not in _LITERALS:
                    out.append(f'"{word}"')
                    prev = '"'
                    i = j
                    continue
        out.append(ch)
        if ch == '"':
            in_string = True
        else:
            prev = ch
        i += 1
    return "".join(out)


def fix_string_literals(text: str) -> str:
    """
    Repair broken string literals.

    - raw control characters (newlines, tabs) are escaped
    - invalid escapes such as ``\\é`` or a short ``\\u00e`` keep the
      backslash as a literal character
    - a quote inside a string that is not followed by a structural
      character (, } ] :) is treated as an interior quote and escaped
    """
    out: List[str] = []
    in_string = False
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if not in_string:
            out.append(ch)
            if ch == '"':
                in_string = True
            i += 1
            continue

        if ch == "\\":
            nxt = text[i + 1] if i + 1 < n else ""
            if nxt == "u" and all(c in _HEX for c in text[i + 2:i + 6]) and len(text[i + 2:i + 6]) == 4:
                out.append(text[i:i + 6])
                i += 6
            elif nxt and nxt in _VALID_ESCAPES and nxt != "u":
                out.append(ch + nxt)
                i += 2
            else:
                out.append("\\\\")
                i += 1
            continue
        if ch == '"':
            j = i + 1
            while j < n and text[j] in " \t\r\n":
                j += 1
            # a quote followed by a line break and another string is a close
            # with a missing comma, not an interior quote
            newline_then_string = j < n and text[j] == '"' and "\n" in text[i + 1:j]
            if j >= n or text[j] in ",}]:" or newline_then_string:
                in_string = False
                out.append(ch)
            else:
                out.append('\\"')
            i += 1
            continue
        if ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ord(ch) < 0x20:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
        i += 1
    return "".join(out)


_DANGLING_PATTERNS = (
    re.compile(r",\s*$"),
    # key with colon but no value
    re.compile(r'[,]?\s*"(?:[^"\\]|\\.)*"\s*:\s*$'),
)


def _trim_dangling_tail(text: str, top: Optional[str], after_key: bool) -> str:
    """Remove incomplete trailing tokens so closers can be appended."""
    while True:
        before = text
        text = text.rstrip()
        for pattern in _DANGLING_PATTERNS:
            text = pattern.sub("", text)
        # truncated literal: tr / fal / nul
        m = re.search(r"([A-Za-z]+)$", text)
        if m and m.group(1) not in _LITERALS:
            partial = m.group(1)
            completion = next((lit for lit in _LITERALS if lit.startswith(partial)), None)
            if completion:
                text = text[:m.start()] + completion
            else:
                text = text[:m.start()]
        # number cut after a sign, dot or exponent
        text = re.sub(r"(?<=\d)[.eE+\-]+$", "", text)
        text = re.sub(r"(?<=[:\[,\s])-$", "", text)
        if top == "{" and after_key:
            # string sitting where a key is expected, with no value
            text = re.sub(r'([{,])\s*"(?:[^"\\]|\\.)*"$', r"\1", text)
            after_key = False
        if text == before:
            return text


def balance_closers(text: str) -> str:
    """
    Close an unterminated string and append missing closers.

    Uses an explicit stack of open brackets; a mismatched closer first closes
    the intermediate levels it skips.
    """
    out: List[str] = []
    stack: List[str] = []
    in_string = escape = False
    # True when the last completed string in the innermost object was a key
    # candidate (opened right after '{' or ',')
    expect_key = False
    string_is_key = False
    last_string_closed_as_key = False

    for ch in text:
        if in_string:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
                last_string_closed_as_key = string_is_key
            continue
        if ch == '"':
            in_string = True
            string_is_key = bool(stack) and stack[-1] == "{" and expect_key
            out.append(ch)
            continue
        if ch in "{[":
            stack.append(ch)
            expect_key = ch == "{"
        elif ch in "}]":
            if ch not in (_CLOSER_FOR[o] for o in stack):
                # stray closer with no opener, drop it
                continue
            while stack and _CLOSER_FOR[stack[-1]] != ch:
                out.append(_CLOSER_FOR[stack.pop()])
            stack.pop()
            expect_key = False
        elif ch == ",":
            expect_key = bool(stack) and stack[-1] == "{"
        elif ch == ":":
            expect_key = False
            last_string_closed_as_key = False
        elif not ch.isspace():
            last_string_closed_as_key = False
        out.append(ch)

    result = "".join(out)
    if in_string:
        if escape:
            result = result[:-1]
        result += '"'
        last_string_closed_as_key = string_is_key
    top = stack[-1] if stack else None
    result = _trim_dangling_tail(result, top, last_string_closed_as_key)
    return result + "".join(_CLOSER_FOR[o] for o in reversed(stack))


REPAIR_STRATEGIES: Tuple[Tuple[str, Callable[[str], str]], ...] = (
    ("trim_outer_brackets", trim_to_outer_brackets),
    ("remove_trailing_commas", remove_trailing_commas),
    ("fix_string_literals", fix_string_literals),
    ("insert_missing_commas", insert_missing_commas),
    ("quote_property_names", quote_property_names),
    ("balance_closers", balance_closers),
)


def _library_repair(text: str) -> Optional[str]:
    """Last resort: json-repair library. Only non-empty objects are accepted."""
    try:
        repaired = repair_json(text)
    except Exception as e:  # library raises assorted errors on hostile input
        logger.debug(f"json_repair failed: {e}")
        return None
    if not isinstance(repaired, str) or not repaired:
        return None
    try:
        decoded = json.loads(repaired)
    except ValueError:
        return None
    if isinstance(decoded, (dict, list)) and decoded:
        return repaired
    return None


def repair_json_text(candidate: str, trace: Optional[List[str]] = None) -> Optional[str]:
    """
    Best-effort repair of a JSON string that failed json.loads().

    Args:
        candidate: The broken JSON text
        trace: Optional list receiving the names of the strategies applied

    Returns:
        A string that json.loads() accepts, or None if no strategy worked
    """
    if not candidate or not candidate.strip():
        return None

    text = candidate
    for name, strategy in REPAIR_STRATEGIES:
        repaired = strategy(text)
        if repaired != text:
            text = repaired
            if trace is not None:
                trace.append(name)
        if _loads_ok(text):
            logger.debug(f"JSON repaired after strategy '{name}'")
            return text

    fallback = _library_repair(text)
    if fallback is not None:
        if trace is not None:
            trace.append("json_repair_library")
        return fallback

    logger.debug("JSON repair exhausted all strategies")
    return None
