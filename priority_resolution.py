"""Deterministic priority resolution for recorded findings.

The system-calculated priority is the default. A manually selected priority only
replaces it when it differs and the override carries a non-blank reason, so every
override stays auditable. Records without a calculated priority fall back to their
legacy ``priority`` field and finally to ``PLAN_MONITOR``.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

DEFAULT_PRIORITY = "PLAN_MONITOR"

PRIORITY_RANKS = {
    "IMMEDIATE": 1,
    "URGENT": 1,
    "RECOMMENDED": 2,
    "RECOMMENDED_0_3_MONTHS": 2,
    "PLAN": 3,
    "PLAN_MONITOR": 3,
}
UNRANKED = 99
URGENT_PRIORITIES = {"IMMEDIATE", "URGENT"}


def priority_rank(priority: Optional[str]) -> int:
    return PRIORITY_RANKS.get(str(priority or "").strip().upper(), UNRANKED)


def _present(value: Any) -> bool:
    return value is not None and str(value) != ""


def resolve_priority_final(finding: Mapping[str, Any]) -> str:
    already = finding.get("priority_final")
    if _present(already):
        return str(already)

    calculated = finding.get("priority_calculated")
    if _present(calculated):
        selected = finding.get("priority_selected")
        if selected is None:
            selected = finding.get("priority")
        reason = finding.get("override_reason")
        has_override = reason is not None and str(reason).strip() != ""
        if _present(selected) and selected != calculated and has_override:
            return str(selected)
        return str(calculated)

    # priority_selected is never used as the default
    legacy = finding.get("priority")
    return str(legacy) if _present(legacy) else DEFAULT_PRIORITY


def is_override_valid(finding: Mapping[str, Any]) -> bool:
    selected = finding.get("priority_selected")
    if selected is None:
        selected = finding.get("priority")
    calculated = finding.get("priority_calculated")
    if not _present(calculated) or selected == calculated:
        return True
    reason = finding.get("override_reason")
    return reason is not None and str(reason).strip() != ""
