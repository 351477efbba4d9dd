"""Safety engine: promotes urgent inspection findings into the merged plan."""

from __future__ import annotations

import logging
import re
from typing import Any, List, Mapping

from canonical.accessor import TreeAccessor, to_text, unwrap_value
from models import ContentContribution, FindingBlock, ModuleComputeOutput
from priority_resolution import URGENT_PRIORITIES, resolve_priority_final
from renderers.templates import render_paragraphs

logger = logging.getLogger(__name__)

MODULE_ID = "safety"
FINDING_LIST_PATHS = ["findings", "inspection.findings"]
SLUG_RE = re.compile(r"[^A-Z0-9]+")


def _field(item: Mapping[str, Any], *names: str) -> str:
    for name in names:
        text = to_text(unwrap_value(item.get(name)))
        if text:
            return text
    return ""


def _photo_ids(item: Mapping[str, Any]) -> List[str]:
    raw = item.get("photo_ids") or item.get("photos") or []
    if not isinstance(raw, list):
        raw = [raw]
    refs: List[str] = []
    for ref in raw:
        text = to_text(unwrap_value(ref))
        if text and text not in refs:
            refs.append(text)
    return refs


def _finding_id(raw_id: str) -> str:
    return SLUG_RE.sub("_", raw_id.upper()).strip("_")


def urgent_findings(raw: Any) -> List[FindingBlock]:
    listed = TreeAccessor(raw).first_list(FINDING_LIST_PATHS)
    if not listed.found:
        return []
    blocks: List[FindingBlock] = []
    for item in listed.value:
        if not isinstance(item, Mapping):
            continue
        raw_id = _field(item, "id", "code")
        if not raw_id:
            continue
        priority = resolve_priority_final(item).upper()
        if priority not in URGENT_PRIORITIES:
            continue
        finding_id = _finding_id(raw_id)
        title = _field(item, "title", "name") or finding_id.replace("_", " ").title()
        observation = _field(item, "observed_condition", "observation", "notes")
        photos = _photo_ids(item)
        blocks.append(
            FindingBlock(
                key=f"safety.finding.{finding_id.lower()}",
                id=finding_id,
                module_id=MODULE_ID,
                title=title,
                priority=priority,
                rationale=_field(item, "risk_interpretation", "rationale")
                or "Recorded as an urgent safety item; rectification is required before other planning decisions.",
                evidence_refs=photos,
                photos=photos,
                html=render_paragraphs(observation) if observation else "",
                evidence_coverage="observed",
                asset_component=_field(item, "location", "asset_component") or title,
                budget_note=_field(item, "budget_range", "budgetary_range") or None,
                sort_key=f"safety.finding.{finding_id.lower()}",
            )
        )
    return blocks


def run_safety_engine(raw: Any, profile: str) -> ModuleComputeOutput:
    blocks = urgent_findings(raw)
    if not blocks:
        return ModuleComputeOutput()
    count = len(blocks)
    noun = "item" if count == 1 else "items"
    exec_line = ContentContribution(
        key="safety.exec.urgent",
        module_id=MODULE_ID,
        text=f"{count} urgent safety {noun} recorded; rectification should precede other upgrade decisions.",
        importance="critical",
        sort_key="safety.exec.001",
    )
    logger.debug("Safety: %d urgent finding(s) for profile %s", count, profile)
    return ModuleComputeOutput(executive_summary=[exec_line], findings=blocks)
