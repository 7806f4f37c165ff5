"""
Scalar normalizers for spreadsheet cells.

Cells arrive as whatever the spreadsheet reader produced: text, numbers, or
already-parsed lists and objects. Each normalizer turns one cell into its
canonical value and never raises on malformed input.

Every public parser has a ``*_result`` twin returning a ``ParseResult`` so
callers that care can tell "empty" apart from "could not be parsed".
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Callable, List, NamedTuple, Optional, Union

from .rules import JSON_HINT_CHARS, MAX_RANGE_SPAN

Number = Union[int, float]

_RANGE_RE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")
_NUMERIC_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


class ParseResult(NamedTuple):
    value: Any
    was_malformed: bool = False
    was_repaired: bool = False


def is_number(value: Any) -> bool:
    """True for real, non-NaN numbers (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def to_number(raw: Any) -> Number:
    """
    Direct numeric coercion for scalar numeric fields.

    Numbers pass through (integral floats collapse to int), bools become 0/1,
    numeric text is parsed. Everything else, the empty string included,
    becomes NaN.
    """
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if math.isfinite(raw) and raw.is_integer():
            return int(raw)
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if _NUMERIC_RE.fullmatch(text):
            return to_number(float(text))
    return math.nan


def _as_phase(value: Any) -> Optional[int]:
    number = to_number(value)
    if is_number(number) and float(number).is_integer():
        return int(number)
    return None


def _expand_range(text: str) -> Optional[ParseResult]:
    match = _RANGE_RE.match(text)
    if match is None:
        return None
    start, end = int(match.group(1)), int(match.group(2))
    if start > end or end - start + 1 > MAX_RANGE_SPAN:
        return ParseResult([], was_malformed=True)
    return ParseResult(list(range(start, end + 1)))


def _coerce_all(items: List[Any], coerce: Callable[[Any], Any]) -> ParseResult:
    """Coerce every element; ``None`` from ``coerce`` drops the element."""
    values = []
    dropped = False
    for item in items:
        value = coerce(item)
        if value is None:
            dropped = True
            continue
        values.append(value)
    return ParseResult(values, was_malformed=dropped)


def _parse_numbers(raw: Any, coerce: Callable[[Any], Any]) -> ParseResult:
    """
    Shared precedence for numeric list cells.

    Rules:
    - ``<int>-<int>`` expands to the inclusive ascending range; descending
      ranges and ranges wider than MAX_RANGE_SPAN are malformed.
    - Text starting with ``[`` is read as a JSON array.
    - Anything else is a comma list; tokens that are not numbers are dropped.
    """
    if raw is None:
        return ParseResult([])
    if isinstance(raw, (list, tuple)):
        return _coerce_all(list(raw), coerce)
    if isinstance(raw, (int, float)):
        return _coerce_all([raw], coerce)
    if not isinstance(raw, str):
        return ParseResult([], was_malformed=True)

    text = raw.strip()
    if not text:
        return ParseResult([])

    expanded = _expand_range(text)
    if expanded is not None:
        return expanded

    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except ValueError:
            return ParseResult([], was_malformed=True)
        if not isinstance(parsed, list):
            return ParseResult([], was_malformed=True)
        return _coerce_all(parsed, coerce)

    tokens = [token.strip() for token in text.split(",")]
    tokens = [token for token in tokens if token]
    values = []
    for token in tokens:
        value = coerce(token)
        if value is not None and is_number(value):
            values.append(value)
    return ParseResult(values, was_malformed=len(values) < len(tokens))


def parse_comma_list_result(raw: Any) -> ParseResult:
    if isinstance(raw, str):
        items = [item.strip() for item in raw.split(",")]
        return ParseResult([item for item in items if item])
    if isinstance(raw, (list, tuple)):
        items = [str(item).strip() for item in raw if item is not None]
        return ParseResult([item for item in items if item])
    if raw is None:
        return ParseResult([])
    return ParseResult([], was_malformed=True)


def parse_comma_list(raw: Any) -> List[str]:
    """Split ``"a, b,,c"`` into ``["a", "b", "c"]``."""
    return parse_comma_list_result(raw).value


def parse_number_sequence_result(raw: Any) -> ParseResult:
    # Elements that are present but not numeric stay in the list as NaN.
    return _parse_numbers(raw, to_number)


def parse_number_sequence(raw: Any) -> List[Number]:
    """
    Decode a numeric list cell.

    ``"1-3"`` -> ``[1, 2, 3]``, ``"[2,4,5]"`` -> ``[2, 4, 5]``,
    ``"2,4,5"`` -> ``[2, 4, 5]``, ``"not-a-number"`` -> ``[]``.
    """
    return parse_number_sequence_result(raw).value


def parse_phase_expression_result(raw: Any) -> ParseResult:
    return _parse_numbers(raw, _as_phase)


def parse_phase_expression(raw: Any) -> List[int]:
    """Like ``parse_number_sequence`` but only integral phase numbers survive."""
    return parse_phase_expression_result(raw).value


def canonical_phase_cell(raw: Any) -> Any:
    """Render a phase cell in its expanded JSON form: ``"1-3"`` -> ``"[1,2,3]"``."""
    if not isinstance(raw, str) or not raw.strip():
        return raw
    return json.dumps(parse_phase_expression(raw), separators=(",", ":"))


def parse_attributes_json_result(raw: Any) -> ParseResult:
    """
    Decode an AttributesJSON cell.

    Rules:
    - Already-parsed objects and non-text values are returned unchanged.
    - Text that parses as JSON returns the parsed value.
    - Text that does not parse and contains none of ``{``, ``[``, ``:`` is
      taken as a note and wrapped as ``{"message": <text>}``.
    - Text that does not parse but contains one of them is broken JSON: the
      original string comes back flagged as malformed.

    A plain sentence with a colon ("Note: call back") counts as broken JSON.
    """
    if not isinstance(raw, str):
        return ParseResult(raw)
    text = raw.strip()
    if not text:
        return ParseResult(raw)
    try:
        return ParseResult(json.loads(text))
    except ValueError:
        pass
    if any(char in text for char in JSON_HINT_CHARS):
        return ParseResult(raw, was_malformed=True)
    return ParseResult({"message": text}, was_repaired=True)


def parse_attributes_json(raw: Any) -> Any:
    return parse_attributes_json_result(raw).value


def dump_json_cell(value: Any) -> str:
    """Compact JSON text for writing a repaired value back into a cell."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
