"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used by ``__post_init__``
methods and ``from_dict`` parsers in sibling model modules to enforce
runtime type constraints.
"""

from __future__ import annotations

import string
from typing import Any


_HEX_DIGITS_LOWER = frozenset(string.digits + "abcdef")


def validate_instance(value: Any, expected: type | tuple[type, ...], name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        if isinstance(expected, tuple):
            label = " or ".join(t.__name__ for t in expected)
            raise TypeError(f"{name} must be {label}, got {type(value).__name__}")
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_int(value: Any, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an ``int`` (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")


def validate_non_negative_int(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative ``int`` (``bool`` excluded)."""
    validate_int(value, name)
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def is_lower_hex(value: Any, length: int | None = None) -> bool:
    """Return True if *value* is a lowercase hex string of the given length."""
    if not isinstance(value, str):
        return False
    if length is not None and len(value) != length:
        return False
    return all(c in _HEX_DIGITS_LOWER for c in value)


def freeze_tags(tags: Any, name: str = "tags") -> tuple[tuple[str, ...], ...]:
    """Normalize a sequence of tag sequences into nested tuples of ``str``.

    Raises:
        TypeError: If *tags* is not a list/tuple of lists/tuples of ``str``.
    """
    validate_instance(tags, (list, tuple), name)
    frozen: list[tuple[str, ...]] = []
    for i, tag in enumerate(tags):
        validate_instance(tag, (list, tuple), f"{name}[{i}]")
        for j, value in enumerate(tag):
            validate_instance(value, str, f"{name}[{i}][{j}]")
        frozen.append(tuple(tag))
    return tuple(frozen)
