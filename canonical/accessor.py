"""Typed access to loosely-structured inspection records.

Raw records arrive as nested mappings where any leaf may be wrapped as
``{"value": ..., "status": ...}``. Extractors never walk the tree themselves;
they hand an ordered list of candidate dotted paths to :class:`TreeAccessor`
and get back the first usable value together with the path it came from.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, NamedTuple, Optional

TRUE_TOKENS = {"true", "yes", "1", "on", "present", "installed", "y"}
FALSE_TOKENS = {"false", "no", "0", "off", "none", "absent", "n"}
NUMBER_STRIP_RE = re.compile(r"[^\d.\-]")


class PathValue(NamedTuple):
    value: Any = None
    path: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.path is not None


def unwrap_value(node: Any) -> Any:
    """Unwrap ``{value: ...}`` wrappers recursively; primitives pass through, anything else is None."""
    if node is None:
        return None
    if isinstance(node, (str, int, float, bool)):
        return node
    if isinstance(node, Mapping) and "value" in node:
        return unwrap_value(node["value"])
    return None


def get_by_path(tree: Any, path: str) -> Any:
    current = tree
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if number == number and number not in (float("inf"), float("-inf")) else None
    if isinstance(value, str):
        cleaned = NUMBER_STRIP_RE.sub("", value)
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def to_boolean(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value if value is not None else "").strip().lower()
    if text in TRUE_TOKENS:
        return True
    if text in FALSE_TOKENS:
        return False
    return None


def to_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


class TreeAccessor:
    """Evaluates candidate key-paths against one raw record."""

    def __init__(self, raw: Any):
        self.raw = raw if isinstance(raw, Mapping) else {}

    def get(self, path: str) -> Any:
        node = get_by_path(self.raw, path)
        unwrapped = unwrap_value(node)
        return node if unwrapped is None else unwrapped

    def pick(self, paths: Iterable[str]) -> PathValue:
        for path in paths:
            value = self.get(path)
            if not _is_blank(value):
                return PathValue(value, path)
        return PathValue()

    def pick_number(self, paths: Iterable[str]) -> PathValue:
        picked = self.pick(paths)
        number = to_number(picked.value)
        if number is None:
            return PathValue()
        return PathValue(number, picked.path)

    def pick_bool(self, paths: Iterable[str]) -> PathValue:
        picked = self.pick(paths)
        flag = to_boolean(picked.value)
        if flag is None:
            return PathValue()
        return PathValue(flag, picked.path)

    def pick_text(self, paths: Iterable[str]) -> PathValue:
        picked = self.pick(paths)
        if not picked.found:
            return picked
        return PathValue(to_text(picked.value), picked.path)

    def first_list(self, paths: Iterable[str]) -> PathValue:
        for path in paths:
            node = get_by_path(self.raw, path)
            if isinstance(node, list):
                return PathValue(node, path)
        return PathValue()


def pick_first(tree: Any, paths: Iterable[str]) -> PathValue:
    """First non-blank value among ``paths`` together with the path it came from."""
    return TreeAccessor(tree).pick(paths)
