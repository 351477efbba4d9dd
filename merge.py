"""Merge per-module outputs into one deterministic plan.

Executive and narrative lines are concatenated in profile module rank and then
emission order, with whitespace-normalized duplicates dropped. CapEx rows are
unique by ``row_key``. Findings are totally ordered and clipped by density.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from config import ReportEngineConfig
from models import ContentContribution, FindingBlock, MergedPlan, ModuleComputeOutput
from priority_resolution import priority_rank
from profiles import ReportProfile, resolve_profile
from report_contracts import lint_contribution_text

logger = logging.getLogger(__name__)

ROW_SLUG_MAX = 64
_WS_RE = re.compile(r"\s+")
_SLUG_RE = re.compile(r"[^a-z0-9]+")


def normalize_text(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def _clean(items: Iterable[ContentContribution], section: str) -> List[ContentContribution]:
    kept = []
    for item in items:
        errors = lint_contribution_text(item.text)
        if errors:
            logger.warning("Dropping %s contribution %s: %s", section, item.key, "; ".join(errors))
            continue
        kept.append(item)
    return kept


def _module_ordered(profile: ReportProfile, items: Sequence[ContentContribution]) -> List[ContentContribution]:
    indexed = list(enumerate(items))
    indexed.sort(key=lambda pair: (profile.rank_of(pair[1].module_id), pair[0]))
    return [item for _, item in indexed]


def merge_text_contributions(
    profile: ReportProfile,
    items: Sequence[ContentContribution],
    section: str = "text",
) -> List[ContentContribution]:
    seen = set()
    merged: List[ContentContribution] = []
    for item in _module_ordered(profile, _clean(items, section)):
        normalized = normalize_text(item.text)
        if not normalized:
            continue
        if not item.allow_duplicates:
            if normalized in seen:
                continue
            seen.add(normalized)
        merged.append(item.model_copy(update={"text": normalized}))
    return merged


def row_key_fallback(row: ContentContribution) -> str:
    module = _SLUG_RE.sub("_", (row.module_id or "unknown").lower()).strip("_") or "unknown"
    slug = _SLUG_RE.sub("-", normalize_text(row.text).lower()).strip("-")[:ROW_SLUG_MAX].strip("-")
    return f"capex:{module}:{slug or 'row'}"


def _row_identity(row: ContentContribution) -> str:
    return row.row_key or row_key_fallback(row)


def _row_order(row: ContentContribution) -> Tuple[int, str]:
    return priority_rank(row.priority), row.sort_key or _row_identity(row)


def dedupe_capex_rows(rows: Sequence[ContentContribution]) -> List[ContentContribution]:
    """Keep one row per row key; higher priority wins, then the lexically earlier sort key."""
    winners: Dict[str, ContentContribution] = {}
    for row in sorted(rows, key=_row_order):
        identity = _row_identity(row)
        if identity in winners:
            logger.debug("CapEx row %s superseded by %s", row.key, winners[identity].key)
            continue
        winners[identity] = row
    return sorted(winners.values(), key=_row_order)


def _finding_order(profile: ReportProfile, block: FindingBlock):
    return (
        profile.rank_of(block.module_id),
        priority_rank(block.priority),
        block.sort_key or block.key,
        block.title,
    )


def merge_findings(profile: ReportProfile, density: Optional[str], blocks: Sequence[FindingBlock]) -> List[FindingBlock]:
    ordered = sorted(blocks, key=lambda block: _finding_order(profile, block))
    cap = ReportEngineConfig.density_cap(density)
    if len(ordered) > cap:
        logger.debug("Clipping %d findings to %d for %s density", len(ordered), cap, density)
    return ordered[:cap]


def merge_module_outputs(
    profile_id: str,
    density: Optional[str],
    outputs: Sequence[ModuleComputeOutput],
) -> MergedPlan:
    profile = resolve_profile(profile_id)
    return MergedPlan(
        executive_summary=merge_text_contributions(
            profile, [c for o in outputs for c in o.executive_summary], "executive"
        ),
        what_this_means=merge_text_contributions(
            profile, [c for o in outputs for c in o.what_this_means], "what_this_means"
        ),
        capex_rows=dedupe_capex_rows(_clean((c for o in outputs for c in o.capex_rows), "capex")),
        findings=merge_findings(profile, density, [f for o in outputs for f in o.findings]),
    )
