"""Lifecycle engine: property age, switchboard technology and RCD coverage."""

from __future__ import annotations

import logging
from typing import List

from canonical.lifecycle import AGING_BANDS, LEGACY_SWITCHBOARD_TYPES, LifecycleSignals
from models import ContentContribution, FindingBlock, ModuleComputeOutput
from renderers.templates import render_paragraphs

logger = logging.getLogger(__name__)

MODULE_ID = "lifecycle"
MAX_FINDINGS = 5

WHAT_THIS_MEANS = {
    "owner": [
        "- Align major appliance additions (e.g. air conditioning or EV charging) with a pre-upgrade condition review window.",
        "- If recurring trips, thermal stress or scorch indicators appear, move from planning to near-term review.",
    ],
    "tenant": [
        "- Keep usage observations transparent; report repeated tripping, heat or smell events, "
        "or visible deterioration to property management.",
        "- Trigger a formal review if conditions shift from occasional inconvenience to repeated interruptions.",
    ],
    "investor": [
        "- Plan a lifecycle review window (typically 6-12 months for legacy indicators) to avoid reactive upgrade decisions.",
        "- Trigger earlier reassessment if trip frequency increases, thermal stress appears, "
        "or legacy switchboard indicators worsen.",
    ],
}


def _exec(key: str, text: str, sort_key: str, **extra) -> ContentContribution:
    return ContentContribution(key=key, text=text, module_id=MODULE_ID, sort_key=sort_key, **extra)


def executive_lines(profile: str, s: LifecycleSignals) -> List[ContentContribution]:
    lines = []
    if s.property_age_band in AGING_BANDS:
        lines.append(_exec(
            "lifecycle.exec.age-window",
            "Electrical assets may be approaching end-of-life; a condition review window of 6-12 months is advisable.",
            "lifecycle.exec.001",
            importance="normal",
        ))
    if s.legacy_fuse_board:
        lines.append(_exec(
            "lifecycle.exec.legacy-switchboard-window",
            "Switchboard technology indicates legacy-era components; upgrade planning within 0-12 months "
            "is advisable, subject to site validation.",
            "lifecycle.exec.002",
            importance="critical",
            allow_duplicates=True,
        ))
    if s.rcd_gap:
        lines.append(_exec(
            f"lifecycle.exec.rcd-{s.rcd_coverage}",
            "RCD coverage profile is a lifecycle risk multiplier; staged uplift planning is advisable "
            "with conditional trigger-based review.",
            "lifecycle.exec.003",
            importance="normal",
        ))
    if not lines and profile == "tenant":
        lines.append(_exec(
            "lifecycle.exec.tenant-transparency",
            "Lifecycle indicators are currently limited; maintain transparent records and trigger review "
            "when operating conditions change.",
            "lifecycle.exec.999",
            importance="normal",
        ))
    return lines


def what_this_means(profile: str) -> List[ContentContribution]:
    texts = WHAT_THIS_MEANS.get(profile, WHAT_THIS_MEANS["investor"])
    return [
        ContentContribution(
            key=f"lifecycle.wtm.{profile}.{idx}",
            text=text,
            module_id=MODULE_ID,
            sort_key=f"lifecycle.wtm.{idx:03d}",
        )
        for idx, text in enumerate(texts, start=1)
    ]


def _capex(slug: str, text: str, sort_key: str) -> ContentContribution:
    return ContentContribution(
        key=f"lifecycle.capex.{slug}",
        row_key=f"capex:{MODULE_ID}:{slug}",
        text=text,
        module_id=MODULE_ID,
        amount_is_tbd=True,
        priority="PLAN_MONITOR",
        sort_key=sort_key,
    )


def capex_rows(s: LifecycleSignals) -> List[ContentContribution]:
    rows = []
    if s.switchboard_type in LEGACY_SWITCHBOARD_TYPES:
        rows.append(_capex(
            "switchboard-modernisation-planning",
            "| Year 0-1 | Switchboard modernisation planning (scope dependent) | TBD |",
            "lifecycle.capex.001",
        ))
    if s.rcd_gap:
        rows.append(_capex(
            "rcd-rcbo-coverage-uplift",
            "| Year 1-2 | RCD/RCBO coverage uplift planning | TBD |",
            "lifecycle.capex.002",
        ))
    if s.property_age_band in AGING_BANDS:
        rows.append(_capex(
            "legacy-wiring-refresh-pathway",
            "| Year 3-5 | Legacy wiring refresh pathway review (condition dependent) | TBD |",
            "lifecycle.capex.003",
        ))
    return rows


def _flag_text(flag) -> str:
    return "unknown" if flag is None else ("yes" if flag else "no")


def findings(s: LifecycleSignals) -> List[FindingBlock]:
    refs = s.evidence_refs[:6]
    photos = s.evidence_refs[:3]
    blocks = []
    if s.switchboard_type != "unknown":
        blocks.append(FindingBlock(
            key="lifecycle.finding.legacy-switchboard",
            id="LIFECYCLE_LEGACY_SWITCHBOARD",
            module_id=MODULE_ID,
            title="Legacy-era switchboard indicators",
            priority="RECOMMENDED_0_3_MONTHS" if s.legacy_fuse_board else "PLAN_MONITOR",
            rationale=(
                "Observed switchboard characteristics indicate legacy component age. If thermal signs, repeated "
                "trips or insulation deterioration appear, priority should escalate to near-term review."
            ),
            evidence_refs=refs,
            photos=photos,
            html=render_paragraphs(f"Switchboard type observed: {s.switchboard_type.replace('_', ' ')}."),
            evidence_coverage=s.coverage,
            score=66,
            asset_component="Main switchboard and protective devices",
            sort_key="lifecycle.finding.001",
        ))
    if s.rcd_gap:
        blocks.append(FindingBlock(
            key="lifecycle.finding.rcd-coverage-gap",
            id="LIFECYCLE_RCD_COVERAGE_GAP",
            module_id=MODULE_ID,
            title="RCD coverage gaps as lifecycle risk multiplier",
            priority="RECOMMENDED_0_3_MONTHS",
            rationale=(
                "Current RCD coverage indicates staged modernisation need. If additional high-load usage or "
                "repeated trip events occur, earlier intervention planning is advisable."
            ),
            evidence_refs=refs,
            photos=photos,
            html=render_paragraphs(f"RCD coverage observed as {s.rcd_coverage}."),
            evidence_coverage=s.coverage,
            score=64,
            asset_component="Residual current protection coverage",
            sort_key="lifecycle.finding.002",
        ))
    if s.visible_thermal_stress is True or s.mixed_wiring_indicators is True:
        blocks.append(FindingBlock(
            key="lifecycle.finding.thermal-or-mixed-trigger",
            id="LIFECYCLE_THERMAL_OR_MIXED_TRIGGER",
            module_id=MODULE_ID,
            title="Thermal stress or mixed-era wiring trigger",
            priority="RECOMMENDED_0_3_MONTHS",
            rationale=(
                "Observed stress or mixed-era indicators suggest reduced planning flexibility. If these indicators "
                "recur or intensify, the review window should move to early action."
            ),
            evidence_refs=refs,
            photos=photos,
            html=render_paragraphs(
                f"Visible thermal stress: {_flag_text(s.visible_thermal_stress)}; "
                f"mixed wiring indicators: {_flag_text(s.mixed_wiring_indicators)}."
            ),
            evidence_coverage=s.coverage,
            score=68,
            asset_component="Wiring condition and thermal visual indicators",
            sort_key="lifecycle.finding.003",
        ))
    return blocks[:MAX_FINDINGS]


def run_lifecycle_engine(signals: LifecycleSignals, profile: str) -> ModuleComputeOutput:
    if not signals.meaningful:
        logger.debug("Lifecycle: no classifiable signal")
        return ModuleComputeOutput()
    return ModuleComputeOutput(
        executive_summary=executive_lines(profile, signals),
        what_this_means=what_this_means(profile),
        capex_rows=capex_rows(signals),
        findings=findings(signals),
    )
