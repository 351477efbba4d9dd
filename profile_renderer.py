"""Profile-specific presentation pass over a merged plan."""

from __future__ import annotations

from typing import Dict, List

from models import ContentContribution, FindingBlock, MergedPlan
from priority_resolution import priority_rank
from profiles import resolve_profile

BASELINE_EXEC_KEY = "baseline.exec.load"

INVESTOR_HIDDEN_FINDING_IDS = {
    "ESTIMATED_COST_BAND",
    "CIRCUIT_CONTRIBUTION_BREAKDOWN",
    "DISTRIBUTED_ENERGY_ASSETS_OVERVIEW",
}

OWNER_ORDER_WEIGHT: Dict[str, int] = {
    "LOAD_STRESS_TEST_RESULT": 10,
    "DISTRIBUTED_ENERGY_ASSETS_OVERVIEW": 20,
    "EV_SOLAR_BATTERY_READINESS_NOTE": 30,
    "CONTINUOUS_MONITORING_UPGRADE_JUSTIFICATION": 40,
    "CIRCUIT_CONTRIBUTION_BREAKDOWN": 50,
    "ESTIMATED_COST_BAND": 60,
}
UNWEIGHTED = 999


def filter_findings(profile: str, findings: List[FindingBlock]) -> List[FindingBlock]:
    if profile == "investor":
        return [f for f in findings if f.id not in INVESTOR_HIDDEN_FINDING_IDS]
    return list(findings)


def order_findings(profile: str, findings: List[FindingBlock]) -> List[FindingBlock]:
    if profile != "owner":
        return findings
    ranked = resolve_profile(profile)
    # weights only break ties inside the module/priority ordering
    return sorted(
        findings,
        key=lambda f: (
            ranked.rank_of(f.module_id),
            priority_rank(f.priority),
            OWNER_ORDER_WEIGHT.get(f.id, UNWEIGHTED),
            f.sort_key or f.key,
            f.title,
        ),
    )


def pin_baseline_line(lines: List[ContentContribution]) -> List[ContentContribution]:
    pinned = [line for line in lines if line.key == BASELINE_EXEC_KEY]
    if not pinned:
        return list(lines)
    return pinned[:1] + [line for line in lines if line is not pinned[0]]


def apply_profile_rendering(merged: MergedPlan, profile: str) -> MergedPlan:
    findings = order_findings(profile, filter_findings(profile, merged.findings))
    return merged.model_copy(
        update={
            "executive_summary": pin_baseline_line(merged.executive_summary),
            "findings": findings,
        }
    )
