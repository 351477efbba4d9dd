"""Distributed energy assets engine: solar, battery and EV readiness signals."""

from __future__ import annotations

import logging
from typing import List, Optional

from canonical.assets import AssetsEnergySignals
from models import ContentContribution, Coverage, FindingBlock, ModuleComputeOutput
from renderers.templates import render_paragraphs

from .baseline_load import HIGH_STRESS_LEVELS

logger = logging.getLogger(__name__)

MODULE_ID = "energy"
OVERVIEW_ID = "DISTRIBUTED_ENERGY_ASSETS_OVERVIEW"
READINESS_ID = "EV_SOLAR_BATTERY_READINESS_NOTE"
MONITORING_ID = "CONTINUOUS_MONITORING_UPGRADE_JUSTIFICATION"


def _presence(flag: Optional[bool]) -> str:
    if flag is True:
        return "Present"
    if flag is False:
        return "Not observed"
    return "Unknown"


def asset_labels(assets: AssetsEnergySignals) -> List[str]:
    return [
        f"Solar: {_presence(assets.has_solar)}",
        f"Battery: {_presence(assets.has_battery)}",
        f"EV: {_presence(assets.has_ev)}",
    ]


def _finding(assets: AssetsEnergySignals, **fields) -> FindingBlock:
    return FindingBlock(
        module_id=MODULE_ID,
        evidence_refs=assets.source_refs(),
        evidence_coverage=assets.coverage,
        **fields,
    )


def readiness_triggered(assets: AssetsEnergySignals, stress_level: str) -> bool:
    return stress_level in HIGH_STRESS_LEVELS and (assets.has_ev is not False or assets.planned_upgrade)


def monitoring_triggered(assets: AssetsEnergySignals, stress_level: str, circuits_coverage: Coverage) -> bool:
    return stress_level in HIGH_STRESS_LEVELS or (assets.has_any_asset and circuits_coverage != "measured")


def run_distributed_assets_engine(
    assets: AssetsEnergySignals,
    profile: str,
    stress_level: str = "unknown",
    circuits_coverage: Coverage = "unknown",
) -> ModuleComputeOutput:
    if assets.insufficient_evidence and stress_level not in HIGH_STRESS_LEVELS:
        logger.debug("Distributed assets: no asset evidence and stress %s", stress_level)
        return ModuleComputeOutput()

    summary = ContentContribution(
        key="assets_energy:summary_line",
        module_id=MODULE_ID,
        text=f"Energy assets ({' • '.join(asset_labels(assets))})",
        sort_key="assets:summary:01",
    )
    planning_note = ContentContribution(
        key="assets_energy:planning_note",
        module_id=MODULE_ID,
        text=(
            "Distributed asset mix is tracked for headroom planning and cost-control strategy."
            if profile == "investor"
            else "Distributed asset mix is incorporated into upgrade planning and household reliability strategy."
        ),
        sort_key="assets:wtm:01",
    )

    findings: List[FindingBlock] = []
    if profile == "owner":
        findings.append(
            _finding(
                assets,
                key=OVERVIEW_ID,
                id=OVERVIEW_ID,
                title="Distributed energy assets overview",
                priority="PLAN_MONITOR",
                rationale="Presence of distributed assets changes the load profile and future upgrade priorities.",
                html=render_paragraphs(" | ".join(asset_labels(assets))),
                asset_component="Solar / Battery / EV infrastructure",
                budget_note="TBD after detailed design and metering data.",
                sort_key="assets:overview",
            )
        )
    if readiness_triggered(assets, stress_level):
        ev_state = "not detected" if assets.has_ev is False else "planned or unknown"
        findings.append(
            _finding(
                assets,
                key=READINESS_ID,
                id=READINESS_ID,
                title="EV/Solar/Battery readiness note",
                priority="RECOMMENDED_0_3_MONTHS",
                rationale=(
                    "Without readiness planning, added EV, solar or battery demand may compress headroom "
                    "and increase reactive costs."
                ),
                html=render_paragraphs(f"Stress level: {stress_level}. EV readiness status is {ev_state}."),
                asset_component="Future distributed energy integration",
                budget_note="Allowance for switchboard and pathway verification is recommended.",
                sort_key="assets:readiness",
            )
        )
    if profile == "owner" and monitoring_triggered(assets, stress_level, circuits_coverage):
        findings.append(
            _finding(
                assets,
                key=MONITORING_ID,
                id=MONITORING_ID,
                title="Continuous monitoring upgrade justification",
                priority="PLAN_MONITOR",
                rationale="Monitoring reduces uncertainty for tariff optimisation, phase balancing and upgrade timing.",
                html=render_paragraphs(
                    f"Distributed assets recorded with load stress {stress_level} and circuit coverage {circuits_coverage}."
                ),
                asset_component="Energy monitoring pathway",
                budget_note="Subscription-level monitoring option can be staged.",
                sort_key="assets:monitoring",
            )
        )

    return ModuleComputeOutput(executive_summary=[summary], what_this_means=[planning_note], findings=findings)
