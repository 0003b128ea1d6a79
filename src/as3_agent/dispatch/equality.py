"""Semantic equality for serialized declarations.

Two declarations are equal when they describe the same JSON structure:
key order and whitespace are ignored, array order and scalar values are not.
"""
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def parse_json(text: str) -> Any:
    """Parse strict JSON (NaN and Infinity are rejected)."""
    return json.loads(text, parse_constant=_reject_constant)


def canonicalize(value: Any) -> tuple:
    """Build an order-independent, type-tagged tree from parsed JSON.

    Objects become sorted (key, value) tuples, arrays keep their order.
    Booleans are tagged separately from numbers so ``true`` never equals
    ``1``; ints and floats share the number tag, so ``1`` equals ``1.0``.
    """
    if isinstance(value, dict):
        return ("object", tuple(sorted(
            (key, canonicalize(item)) for key, item in value.items()
        )))
    if isinstance(value, list):
        return ("array", tuple(canonicalize(item) for item in value))
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        return ("number", value)
    if isinstance(value, str):
        return ("string", value)
    if value is None:
        return ("null",)
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


def deep_equal_json(decl1: str, decl2: str) -> bool:
    """Compare two serialized declarations for structural equality.

    Two empty strings are equal. Anything that fails to parse is never
    equal to anything, including another copy of itself.
    """
    if decl1 == "" and decl2 == "":
        return True

    try:
        tree1 = canonicalize(parse_json(decl1))
        tree2 = canonicalize(parse_json(decl2))
    except (ValueError, TypeError) as e:
        logger.debug(f"Declarations not comparable: {e}")
        return False

    return tree1 == tree2
