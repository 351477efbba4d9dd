"""Enhanced energy engine: circuit contributors, monthly cost band and optimisation CapEx."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import List, Optional

from canonical.circuits import EnhancedCircuitsSignals
from config import EngineSettings
from models import ContentContribution, FindingBlock, ModuleComputeOutput
from renderers.templates import render_paragraphs, render_table

from .baseline_load import BaselineLoadMetrics

logger = logging.getLogger(__name__)

MODULE_ID = "energy"
MAX_CONTRIBUTORS = 5
MAX_CAPEX_ROWS = 3
MAX_EVIDENCE_REFS = 8
TONE_PREFIX = {
    "owner": "Action-oriented view",
    "investor": "Asset-planning view",
    "tenant": "Usage-awareness view",
}

# (category pattern, key suffix, row text); monitoring row is appended separately
CATEGORY_CAPEX = [
    (
        re.compile(r"hot.?water", re.IGNORECASE),
        "hot-water-optimisation",
        "| Year 1-2 | Hot water control and load-shift optimisation | AUD $1,200 - $4,800 |",
    ),
    (
        re.compile(r"\bac\b|cooling|air", re.IGNORECASE),
        "ac-optimisation",
        "| Year 1-2 | Air-conditioning efficiency and scheduling package | AUD $1,500 - $6,500 |",
    ),
    (
        re.compile(r"light", re.IGNORECASE),
        "lighting-optimisation",
        "| Year 1-2 | Lighting load reduction and controls tune-up | AUD $600 - $2,500 |",
    ),
]
MONITORING_CAPEX_TEXT = "| Year 1-2 | Circuit-level monitoring and alert baseline | AUD $600 - $2,000 |"


@dataclass
class Contributor:
    label: str
    category: Optional[str]
    current_a: float
    kw: float
    share_pct: float


@dataclass
class CostBand:
    low: int
    typical: int


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _num(value: float) -> str:
    text = f"{_round_half_up(value, 2):.2f}".rstrip("0").rstrip(".")
    return text or "0"


def current_to_kw(current_a: float, voltage_v: float) -> float:
    return _round_half_up(current_a * voltage_v / 1000, 2)


def derive_peak_kw(
    signals: EnhancedCircuitsSignals, baseline: Optional[BaselineLoadMetrics], settings: EngineSettings
) -> float:
    if baseline is not None and baseline.peak_kw and baseline.peak_kw > 0:
        return baseline.peak_kw
    total_a = sum(c.measured_current_a for c in signals.circuits)
    return current_to_kw(max(total_a, 0.0), settings.nominal_voltage_v)


def rank_contributors(
    signals: EnhancedCircuitsSignals, peak_kw: float, settings: EngineSettings
) -> List[Contributor]:
    denominator = peak_kw if peak_kw > 0 else 0.01
    contributors = []
    for circuit in signals.circuits:
        kw = current_to_kw(circuit.measured_current_a, settings.nominal_voltage_v)
        contributors.append(
            Contributor(
                label=circuit.label,
                category=circuit.category,
                current_a=circuit.measured_current_a,
                kw=kw,
                share_pct=_round_half_up(kw / denominator * 100, 2),
            )
        )
    contributors.sort(key=lambda c: -c.kw)
    return contributors[:MAX_CONTRIBUTORS]


def estimate_cost_band(peak_kw: float, rate_c_per_kwh: float, supply_c_per_day: float,
                       settings: EngineSettings) -> CostBand:
    rate = rate_c_per_kwh / 100
    supply = supply_c_per_day / 100
    monthly_supply = supply * 30
    low = _round_half_up(peak_kw * settings.avg_factor_low * 24 * 30 * rate + monthly_supply)
    typical = _round_half_up(peak_kw * settings.avg_factor_typ * 24 * 30 * rate + monthly_supply)
    return CostBand(low=int(low), typical=int(typical))


def should_run(signals: EnhancedCircuitsSignals) -> bool:
    return len(signals.circuits) >= 2 or signals.has_customer_tariff or signals.unknown_high_draw


def _capex_rows(contributors: List[Contributor], include_monitoring: bool) -> List[ContentContribution]:
    categories = [c.category or "" for c in contributors]
    rows = []
    for idx, (pattern, slug, text) in enumerate(CATEGORY_CAPEX, start=1):
        if any(pattern.search(category) for category in categories):
            rows.append(
                ContentContribution(
                    key=f"enhanced.energy.capex.{slug}",
                    module_id=MODULE_ID,
                    row_key=f"capex:{MODULE_ID}:{slug}",
                    text=text,
                    priority="PLAN_MONITOR",
                    sort_key=f"enhanced.energy.capex.{idx:03d}",
                )
            )
    if include_monitoring:
        rows.append(
            ContentContribution(
                key="enhanced.energy.capex.monitoring",
                module_id=MODULE_ID,
                row_key=f"capex:{MODULE_ID}:continuous-monitoring-upgrade",
                text=MONITORING_CAPEX_TEXT,
                priority="PLAN_MONITOR",
                sort_key="enhanced.energy.capex.004",
            )
        )
    return rows[:MAX_CAPEX_ROWS]


def run_enhanced_energy_engine(
    signals: EnhancedCircuitsSignals,
    profile: str,
    baseline: Optional[BaselineLoadMetrics] = None,
    settings: Optional[EngineSettings] = None,
) -> ModuleComputeOutput:
    settings = settings or EngineSettings()
    if not should_run(signals):
        logger.debug("Enhanced energy skipped: %d circuit(s), no tariff", len(signals.circuits))
        return ModuleComputeOutput()

    rate = signals.tariff_rate_c_per_kwh
    supply = signals.tariff_supply_c_per_day
    rate = settings.tariff_rate_c_per_kwh if rate is None else rate
    supply = settings.tariff_supply_c_per_day if supply is None else supply
    source_label = "customer provided" if signals.has_customer_tariff else "default estimate"

    peak_kw = derive_peak_kw(signals, baseline, settings)
    contributors = rank_contributors(signals, peak_kw, settings)
    band = estimate_cost_band(peak_kw, rate, supply, settings)
    include_monitoring = len(contributors) >= 3 or (baseline is not None and baseline.high_stress)
    evidence_refs = signals.source_refs()[:MAX_EVIDENCE_REFS]

    top = ", ".join(f"{c.label} {_num(c.share_pct)}%" for c in contributors[:3]) or "insufficient circuit data"
    tone = TONE_PREFIX.get(profile, TONE_PREFIX["investor"])
    exec_line = ContentContribution(
        key=f"energy.exec.v2.{profile}.enhanced",
        module_id=MODULE_ID,
        text=(
            f"{tone}: peak {_num(peak_kw)} kW; top contributors {top}. "
            f"Estimated monthly band AUD ${band.low}-${band.typical}."
        ),
        sort_key="enhanced.energy.exec.001",
    )
    wtm_line = ContentContribution(
        key=f"energy.wtm.v2.{profile}.enhanced",
        module_id=MODULE_ID,
        text=(
            "Use contributor ranking to prioritise low-disruption efficiency actions before major upgrades."
            if profile == "owner"
            else "Use contributor ranking to stage improvements and reduce capex timing uncertainty."
        ),
        sort_key="enhanced.energy.wtm.001",
    )

    table_rows = [
        [c.label, c.category or "-", _num(c.current_a), _num(c.kw), f"{_num(c.share_pct)}%"]
        for c in contributors
    ] or [["N/A", "-", "-", "-", "-"]]
    findings = [
        FindingBlock(
            key="enhanced.energy.finding.circuit-contribution-breakdown",
            id="CIRCUIT_CONTRIBUTION_BREAKDOWN",
            module_id=MODULE_ID,
            title="Circuit contribution breakdown",
            priority="PLAN_MONITOR",
            rationale="Top circuit contributors are ordered by estimated kW share of peak demand.",
            evidence_refs=evidence_refs,
            html=render_table(["Label", "Category", "A", "kW", "%"], table_rows),
            evidence_coverage="measured",
            asset_component="Final sub-circuits and connected loads",
            sort_key="enhanced.energy.finding.001",
        ),
        FindingBlock(
            key="enhanced.energy.finding.estimated-cost-band",
            id="ESTIMATED_COST_BAND",
            module_id=MODULE_ID,
            title="Estimated cost band",
            priority="PLAN_MONITOR",
            rationale=(
                f"Cost band uses {settings.avg_factor_low:.0%}/{settings.avg_factor_typ:.0%} "
                "utilisation assumptions with the resolved tariff."
            ),
            evidence_refs=evidence_refs,
            html=render_table(
                ["Metric", "Value"],
                [
                    ["Top contributors captured", str(max(len(contributors), 1))],
                    ["Estimated monthly band", f"AUD ${band.low} - AUD ${band.typical}"],
                ],
            )
            + render_paragraphs(
                f"Tariff used: {source_label}. Rate: {_num(rate)} c/kWh, Supply: {_num(supply)} c/day, "
                f"avg factors: {_num(settings.avg_factor_low)} / {_num(settings.avg_factor_typ)}, 30-day month.",
                "Prioritise top contributor scheduling and appliance tuning first; add monitoring when "
                "recurrent peaks or uncertainty remain.",
            ),
            evidence_coverage="measured",
            asset_component="Household energy consumption",
            budget_note=f"Running cost estimate AUD ${band.low} - ${band.typical} per month (indicative).",
            sort_key="enhanced.energy.finding.002",
        ),
    ]
    if include_monitoring:
        findings.append(
            FindingBlock(
                key="enhanced.energy.finding.monitoring-justification",
                id="CONTINUOUS_MONITORING_UPGRADE_JUSTIFICATION",
                module_id=MODULE_ID,
                title="Continuous monitoring upgrade justification",
                priority="PLAN_MONITOR",
                rationale="Contributor concentration and load uncertainty justify monitoring to reduce decision risk.",
                evidence_refs=evidence_refs,
                html=render_paragraphs(
                    "Continuous monitoring is recommended for sustained visibility on peak events and contributor drift."
                ),
                evidence_coverage="measured",
                asset_component="Energy monitoring pathway",
                sort_key="enhanced.energy.finding.003",
            )
        )

    logger.debug("Enhanced energy: peak=%.2f kW, %d contributor(s), tariff=%s", peak_kw, len(contributors), source_label)
    return ModuleComputeOutput(
        executive_summary=[exec_line],
        what_this_means=[wtm_line],
        capex_rows=_capex_rows(contributors, include_monitoring),
        findings=findings,
    )
