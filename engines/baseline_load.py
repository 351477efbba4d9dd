"""Baseline load engine: switchboard stress from supply and stress-test readings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from canonical.baseline import BaselineLoadSignals
from models import ContentContribution, FindingBlock, ModuleComputeOutput
from renderers.templates import render_table

logger = logging.getLogger(__name__)

MODULE_ID = "capacity"
FINDING_ID = "LOAD_STRESS_TEST_RESULT"
HIGH_STRESS_LEVELS = {"high", "critical"}


@dataclass
class BaselineLoadMetrics:
    stress_level: str = "unknown"
    peak_kw: Optional[float] = None
    stress_ratio: Optional[float] = None
    headroom_a: Optional[float] = None
    peak_current_a: Optional[float] = None
    has_evidence: bool = False

    @property
    def high_stress(self) -> bool:
        return self.stress_level in HIGH_STRESS_LEVELS


def classify_stress(ratio: Optional[float]) -> str:
    if ratio is None:
        return "unknown"
    if ratio >= 0.95:
        return "critical"
    if ratio >= 0.8:
        return "high"
    if ratio >= 0.6:
        return "moderate"
    return "low"


def _fixed(value: Optional[float], digits: int = 1) -> str:
    if value is None:
        return "unknown"
    return f"{value:.{digits}f}"


def _peak_current(signals: BaselineLoadSignals) -> Optional[float]:
    readings = [v for v in [signals.total_current_a, *signals.phase_currents] if v is not None]
    return max(readings) if readings else None


def _peak_kw(signals: BaselineLoadSignals) -> Optional[float]:
    voltage = signals.voltage_v
    if voltage is None:
        return None
    if signals.phase_supply == "three":
        terms = [voltage * amps / 1000 for amps in signals.phase_currents if amps is not None]
        if terms:
            return sum(terms)
    if signals.total_current_a is not None:
        return voltage * signals.total_current_a / 1000
    return None


def compute_baseline_metrics(signals: BaselineLoadSignals) -> BaselineLoadMetrics:
    peak_current = _peak_current(signals)
    main = signals.main_switch_a
    ratio = peak_current / main if main and main > 0 and peak_current is not None else None
    headroom = max(main - peak_current, 0.0) if main is not None and peak_current is not None else None
    has_evidence = (
        main is not None
        or signals.voltage_v is not None
        or peak_current is not None
        or bool(signals.sources)
    )
    return BaselineLoadMetrics(
        stress_level=classify_stress(ratio),
        peak_kw=_peak_kw(signals),
        stress_ratio=ratio,
        headroom_a=headroom,
        peak_current_a=peak_current,
        has_evidence=has_evidence,
    )


def run_baseline_load_engine(signals: BaselineLoadSignals, profile: str) -> ModuleComputeOutput:
    metrics = compute_baseline_metrics(signals)
    if not metrics.has_evidence:
        logger.debug("Baseline load: no evidence for profile %s", profile)
        return ModuleComputeOutput()

    headroom = "unknown" if metrics.headroom_a is None else f"{_fixed(metrics.headroom_a)} A"
    exec_line = ContentContribution(
        key="baseline.exec.load",
        module_id=MODULE_ID,
        text=(
            f"Peak load: {_fixed(metrics.peak_kw, 2)} kW ({_fixed(metrics.peak_current_a)} A) "
            f"• Stress: {metrics.stress_level} • Headroom: {headroom}"
        ),
        sort_key="baseline:exec:01",
    )

    capex_rows = []
    if metrics.high_stress:
        capex_rows.append(
            ContentContribution(
                key="baseline.capex.capacity_planning_review",
                module_id=MODULE_ID,
                row_key=f"capex:{MODULE_ID}:capacity-planning-review",
                text="| Year 0-1 | Capacity planning review: verify headroom, phase balance and upgrade pathway | TBD |",
                amount_is_tbd=True,
                priority="RECOMMENDED_0_3_MONTHS",
                sort_key="baseline:capex:01",
            )
        )

    observed = render_table(
        ["Phase", "Voltage (V)", "Main Switch (A)", "Peak Current (A)", "Peak kW", "Stress Level", "Coverage"],
        [[
            signals.phase_supply or "unknown",
            _fixed(signals.voltage_v),
            _fixed(signals.main_switch_a),
            _fixed(metrics.peak_current_a),
            _fixed(metrics.peak_kw, 2),
            metrics.stress_level,
            signals.coverage,
        ]],
    )
    ratio_text = "unknown" if metrics.stress_ratio is None else f"{metrics.stress_ratio:.2f}"
    finding = FindingBlock(
        key=FINDING_ID,
        id=FINDING_ID,
        module_id=MODULE_ID,
        title="Load stress test (baseline)",
        priority="RECOMMENDED_0_3_MONTHS" if metrics.high_stress else "PLAN_MONITOR",
        rationale=(
            f"Peak demand sits at a stress ratio of {ratio_text} against the main switch rating "
            f"({metrics.stress_level}), with {headroom} of headroom remaining."
        ),
        evidence_refs=signals.source_refs(),
        html=observed,
        evidence_coverage=signals.coverage,
        asset_component="Load baseline and switchboard capacity",
        budget_note=(
            "Capacity planning review recommended."
            if metrics.high_stress
            else "Monitor under normal operating conditions."
        ),
        sort_key="baseline:finding:load-stress",
    )
    logger.debug("Baseline load: stress=%s ratio=%s", metrics.stress_level, ratio_text)
    return ModuleComputeOutput(executive_summary=[exec_line], capex_rows=capex_rows, findings=[finding])
