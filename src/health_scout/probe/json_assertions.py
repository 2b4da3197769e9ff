"""
JSON path assertions for HTTP response bodies.

Paths are dot separated keys. List elements are addressed by index, either as
a path segment ("items.0.ok") or in brackets ("items[0].ok").
"""

import json
import logging
import re
from typing import Any, Iterable, List, Optional, Tuple, Union

from health_scout.domain import JsonAssertion
from health_scout.errors import JsonAssertionError

# Module logger
logger = logging.getLogger(__name__)

_BRACKET_INDEX = re.compile(r"\[(\d+)\]")

_MISSING = object()

PathSegment = Union[str, int]


def split_path(path: str) -> List[PathSegment]:
    """
    Splits a path expression into keys and list indices.

    Args:
        path: A path such as "data[0].healthy" or "data.0.healthy".

    Returns:
        List[PathSegment]: Keys as strings, bracketed indices as ints.
    """
    segments: List[PathSegment] = []
    for part in path.split("."):
        head, *_ = _BRACKET_INDEX.split(part, maxsplit=1)
        if head:
            segments.append(head)
        segments.extend(int(index) for index in _BRACKET_INDEX.findall(part))
    return segments


def lookup(document: Any, path: str) -> Any:
    """
    Resolves a path inside a decoded JSON document.

    Returns:
        The leaf value, or the module's _MISSING sentinel when any segment does not exist.
    """
    node = document
    for segment in split_path(path):
        if isinstance(node, dict):
            key = str(segment)
            if key not in node:
                return _MISSING
            node = node[key]
        elif isinstance(node, list):
            try:
                index = int(segment)
            except ValueError:
                return _MISSING
            if not 0 <= index < len(node):
                return _MISSING
            node = node[index]
        else:
            return _MISSING
    return node


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_number(value: Any) -> Optional[float]:
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _equals(actual: Any, expected: Any) -> bool:
    if expected is None:
        return actual is None
    if isinstance(expected, bool):
        return isinstance(actual, bool) and actual == expected
    if _is_number(expected):
        number = _as_number(actual)
        return number is not None and number == expected
    if isinstance(expected, str):
        return _as_text(actual) == expected
    return actual == expected


def _ordered(actual: Any, expected: Any) -> Optional[Tuple[float, float]]:
    # Ordering needs a numeric expected value and a numeric (or numeric string) leaf.
    if not _is_number(expected):
        return None
    number = _as_number(actual)
    if number is None:
        return None
    return number, float(expected)


def compare(actual: Any, expected: Any, operator: str) -> bool:
    """
    Compares a JSON leaf value with an expected value.

    Type mismatches and unknown operators evaluate to False rather than raising.

    Args:
        actual: The leaf found in the response body.
        expected: The configured value.
        operator: The comparison operator, case insensitive. Empty means "==".

    Returns:
        bool: Whether the assertion holds.
    """
    op = (operator or "==").strip().lower()
    if op in ("==", "equals"):
        return _equals(actual, expected)
    if op in ("!=", "not_equals"):
        return not _equals(actual, expected)
    if op == "contains":
        return isinstance(actual, str) and isinstance(expected, str) and expected in actual
    if op in (">", "<", ">=", "<="):
        pair = _ordered(actual, expected)
        if pair is None:
            return False
        left, right = pair
        if op == ">":
            return left > right
        if op == "<":
            return left < right
        if op == ">=":
            return left >= right
        return left <= right
    logger.debug(f"Unsupported assertion operator: {operator}")
    return False


def evaluate_assertions(body: Union[str, bytes], assertions: Iterable[JsonAssertion]) -> None:
    """
    Evaluates assertions in order against a response body.

    Args:
        body: The raw response body.
        assertions: The assertions to check.

    Raises:
        JsonAssertionError: On the first assertion that does not hold, when a path
            is missing, or when the body is not valid JSON.
    """
    try:
        document = json.loads(body)
    except ValueError as err:
        raise JsonAssertionError(f"response body is not valid JSON: {err}") from err

    for assertion in assertions:
        actual = lookup(document, assertion.path)
        if actual is _MISSING:
            raise JsonAssertionError(f"JSON path '{assertion.path}' not found in response")
        if not compare(actual, assertion.value, assertion.operator):
            raise JsonAssertionError(
                f"JSON assertion failed: {assertion.path} {assertion.operator or '=='} "
                f"{assertion.value!r}, got {actual!r}"
            )
