"""
Key-case conversion between remote documents and local models.

Remote Members and Revenue documents use camelCase (``lastUpdateDate``,
``photoUrl``, ``revenueType``); pydantic models and SQLite columns use
snake_case.  Repositories and ``Model.from_remote``/``to_remote`` convert
at the boundary with :func:`normalize_keys` / :func:`denormalize_keys`.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Union

__all__ = [
    "JsonValue",
    "denormalize_keys",
    "normalize_keys",
    "to_camel_case",
    "to_snake_case",
]

JsonValue = Union[
    str,
    int,
    float,
    bool,
    None,
    dict[str, "JsonValue"],
    list["JsonValue"],
]

# "HTTPServer" -> "HTTP_Server", then "photoUrl" -> "photo_Url".
_ACRONYM_EDGE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_EDGE = re.compile(r"([a-z\d])([A-Z])")


def to_snake_case(name: str) -> str:
    """``aadhaarNumber`` -> ``aadhaar_number``."""
    spaced = _WORD_EDGE.sub(r"\1_\2", _ACRONYM_EDGE.sub(r"\1_\2", name))
    return re.sub(r"_{2,}", "_", spaced).lower()


def to_camel_case(name: str) -> str:
    """``last_update_date`` -> ``lastUpdateDate``.

    Names without underscores pass through, so camelCase input is stable.
    """
    first, *rest = name.split("_")
    return first + "".join(word[:1].upper() + word[1:] for word in rest)


def _rekey(data: JsonValue, convert: Callable[[str], str]) -> JsonValue:
    if isinstance(data, dict):
        return {convert(key): _rekey(value, convert) for key, value in data.items()}
    if isinstance(data, list):
        return [_rekey(item, convert) for item in data]
    return data


def normalize_keys(data: JsonValue) -> JsonValue:
    """Recursively snake_case every mapping key in a remote document."""
    return _rekey(data, to_snake_case)


def denormalize_keys(data: JsonValue) -> JsonValue:
    """Inverse of :func:`normalize_keys`."""
    return _rekey(data, to_camel_case)
