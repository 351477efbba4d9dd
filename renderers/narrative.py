"""Bullet rendering for executive and narrative slots."""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from models import ContentContribution

from .base import BaseRenderer

BULLET_PREFIXES = {"dash": "- ", "dot": "• "}
_LEADING_BULLET_RE = re.compile(r"^[-*•]\s+")


def to_bullet_lines(items: Iterable[str], bullet: str = "dash") -> str:
    prefix = BULLET_PREFIXES[bullet]
    lines = []
    for item in items:
        text = _LEADING_BULLET_RE.sub("", str(item or "").strip()).strip()
        if text:
            lines.append(f"{prefix}{text}")
    return "\n".join(lines)


class NarrativeRenderer(BaseRenderer):
    name = "narrative"

    def __init__(self, bullet: str = "dash"):
        self.bullet = bullet

    def render(self, items: Sequence[ContentContribution], **options) -> str:
        return to_bullet_lines((item.text for item in items), options.get("bullet", self.bullet))
