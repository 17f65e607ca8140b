"""Field path helpers for reading and writing nested form documents.

A field path is a ``.``-joined list of segments. A segment made only of ASCII
digits addresses a sequence element, any other segment a mapping key::

    routes.0.upstream_url
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from .consts import PATH_SEPARATOR
from .errors import PathError

logger = logging.getLogger(__name__)


class _Missing:
    """Marker for a value that is absent from a document."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


MISSING: Any = _Missing()


def is_index(segment: str) -> bool:
    """Return True when ``segment`` addresses a sequence element.

    Examples:
        >>> is_index("0")
        True
        >>> is_index("-1")
        False
        >>> is_index("name")
        False
    """
    return segment.isascii() and segment.isdigit()


def split_path(path: str) -> list[str]:
    if not path:
        return []
    return path.split(PATH_SEPARATOR)


def join_path(*segments: str | int | None) -> str:
    """Join segments into a field path, skipping empty ones.

    Examples:
        >>> join_path("routes", 0, "path")
        'routes.0.path'
        >>> join_path("", "service")
        'service'
    """
    return PATH_SEPARATOR.join(str(s) for s in segments if s is not None and s != "")


def field_path(parent: str, name: str | None) -> str:
    """Path of a node named ``name`` inside the container at ``parent``."""
    if not name:
        return parent
    return f"{parent}{PATH_SEPARATOR}{name}" if parent else name


def _child(container: Any, segment: str) -> Any:
    if isinstance(container, dict):
        return container.get(segment, MISSING)
    if isinstance(container, list):
        if not is_index(segment):
            return MISSING
        index = int(segment)
        return container[index] if index < len(container) else MISSING
    return MISSING


def get_path(document: Any, path: str, default: Any = MISSING) -> Any:
    """Read the value at ``path``.

    Missing keys, out-of-range indexes and scalar intermediates all resolve to
    ``default``; this never raises.

    Examples:
        >>> get_path({"routes": [{"path": "/a"}]}, "routes.0.path")
        '/a'
        >>> get_path({"routes": []}, "routes.0.path", default=None) is None
        True
    """
    value = document
    for segment in split_path(path):
        value = _child(value, segment)
        if value is MISSING:
            return default
    return value


def _new_container(next_segment: str) -> dict | list:
    return [] if is_index(next_segment) else {}


def _assign(container: dict | list, segment: str, value: Any, path: str) -> None:
    if isinstance(container, dict):
        container[segment] = value
        return

    if not is_index(segment):
        raise PathError(f"Cannot use key '{segment}' on a sequence in path '{path}'")
    index = int(segment)
    while len(container) <= index:
        container.append({})
    container[index] = value


def set_path(document: dict, path: str, value: Any) -> dict:
    """Return a copy of ``document`` with ``value`` stored at ``path``.

    Existing mappings are addressed by key and existing sequences by index.
    A missing or scalar intermediate slot is replaced by a new sequence when
    the next segment is an index, otherwise by a new mapping. Sequences are
    padded with empty mappings up to the requested index. Mapping or sequence
    values replace the whole subtree at ``path``.

    Args:
        document: Root mapping, left untouched
        path: Target field path; an empty path replaces the root
        value: Value to store (deep-copied)

    Returns:
        New document snapshot

    Raises:
        PathError: If a key segment addresses an existing sequence, or the
            root is replaced by something other than a mapping

    Examples:
        >>> set_path({}, "routes.1.path", "/b")
        {'routes': [{}, {'path': '/b'}]}
    """
    segments = split_path(path)
    if not segments:
        if not isinstance(value, dict):
            raise PathError("Document root must be a mapping")
        return copy.deepcopy(value)

    result = copy.deepcopy(document) if isinstance(document, dict) else {}
    current: dict | list = result

    for i, segment in enumerate(segments[:-1]):
        next_segment = segments[i + 1]
        child = _child(current, segment)
        if not isinstance(child, (dict, list)):
            child = _new_container(next_segment)
            _assign(current, segment, child, path)
        current = child

    _assign(current, segments[-1], copy.deepcopy(value), path)
    return result


def delete_index(document: dict, path: str, index: int) -> dict:
    """Return a copy of ``document`` without element ``index`` of the sequence at ``path``."""
    sequence = get_path(document, path)
    if not isinstance(sequence, list):
        raise PathError(f"No sequence at path '{path}'")
    if not 0 <= index < len(sequence):
        raise PathError(f"Index {index} out of range for '{path}'")

    remaining = [item for i, item in enumerate(sequence) if i != index]
    return set_path(document, path, remaining)
