"""Renderer registry."""

from __future__ import annotations

from typing import List

from .base import BaseRenderer


def _normalized(name: str) -> str:
    return (name or "").strip().lower()


def get_renderer(name: str) -> BaseRenderer:
    normalized = _normalized(name)
    if normalized in {"findings_html", "finding_pages"}:
        from .findings_html import FindingPagesRenderer

        return FindingPagesRenderer()
    if normalized in {"capex_rows", "capex"}:
        from .capex_rows import CapexRowsRenderer

        return CapexRowsRenderer()
    if normalized in {"narrative", "what_this_means"}:
        from .narrative import NarrativeRenderer

        return NarrativeRenderer("dash")
    if normalized in {"executive", "executive_signals"}:
        from .narrative import NarrativeRenderer

        return NarrativeRenderer("dot")
    raise ValueError(f"Unknown renderer '{name}'")


def available_renderers() -> List[str]:
    return ["capex_rows", "executive", "findings_html", "narrative"]
