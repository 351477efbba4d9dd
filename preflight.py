"""Input-sufficiency preflight.

Preflight never blocks generation. It records which evidence bundles were too
thin to support their sections, flags contradictions between the merged plan
and the evidence gates, and grades the overall severity for operators.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from canonical import extract_assets_energy, extract_baseline_load_signals, extract_enhanced_circuits
from canonical.accessor import TreeAccessor, to_text
from canonical.assets import PRIMARY_GOAL_PATHS, UPGRADE_GOAL_RE
from models import MergedPlan, PreflightFlags, PreflightResult, PreflightSummary, PreflightWarning

logger = logging.getLogger(__name__)

BASELINE_INSUFFICIENT = "BASELINE_INSUFFICIENT"
ENHANCED_INSUFFICIENT = "ENHANCED_INSUFFICIENT"
ENHANCED_SKIPPED = "ENHANCED_SKIPPED"
ASSETS_COVERAGE_UNKNOWN = "ASSETS_COVERAGE_UNKNOWN"
READINESS_TRIGGER_BLOCKED_BY_UNKNOWN_COVERAGE = "READINESS_TRIGGER_BLOCKED_BY_UNKNOWN_COVERAGE"
TARIFF_DEFAULT_USED = "TARIFF_DEFAULT_USED"
CIRCUITS_COVERAGE_NOT_MEASURED = "CIRCUITS_COVERAGE_NOT_MEASURED"

PREFLIGHT_WARNING_CODES = [
    BASELINE_INSUFFICIENT,
    ENHANCED_INSUFFICIENT,
    ENHANCED_SKIPPED,
    ASSETS_COVERAGE_UNKNOWN,
    READINESS_TRIGGER_BLOCKED_BY_UNKNOWN_COVERAGE,
    TARIFF_DEFAULT_USED,
    CIRCUITS_COVERAGE_NOT_MEASURED,
]

HIGH_STRESS_LEVELS = {"high", "critical"}
SKIP_NOTE_MAX = 80


def _dedupe_warnings(items: List[PreflightWarning]) -> List[PreflightWarning]:
    seen = set()
    out = []
    for item in items:
        signature = f"{item.code}|{json.dumps(item.meta or {}, sort_keys=True, default=str)}"
        if signature in seen:
            continue
        seen.add(signature)
        out.append(item)
    return out


def classify_severity(warnings: List[PreflightWarning], profile: Optional[str]) -> str:
    if not warnings:
        return "none"
    codes = {w.code for w in warnings}
    if (
        BASELINE_INSUFFICIENT in codes
        or READINESS_TRIGGER_BLOCKED_BY_UNKNOWN_COVERAGE in codes
        or (ENHANCED_INSUFFICIENT in codes and profile == "owner")
    ):
        return "high"
    if codes & {ASSETS_COVERAGE_UNKNOWN, CIRCUITS_COVERAGE_NOT_MEASURED, TARIFF_DEFAULT_USED}:
        return "medium"
    return "low"


def run_preflight(
    raw: Any,
    merged: Optional[MergedPlan] = None,
    stress_level: Optional[str] = None,
    profile: Optional[str] = None,
) -> PreflightResult:
    warnings: List[PreflightWarning] = []
    baseline = extract_baseline_load_signals(raw)
    circuits = extract_enhanced_circuits(raw)
    assets = extract_assets_energy(raw)
    tree = TreeAccessor(raw if isinstance(raw, Mapping) else {})

    skip_code = to_text(tree.get("energy_v2.enhancedSkipReason.code"))
    skip_note = to_text(tree.get("energy_v2.enhancedSkipReason.note"))[:SKIP_NOTE_MAX]
    enhanced_skipped = bool(skip_code)

    has_voltage = baseline.voltage_v is not None
    has_current = baseline.has_current_reading
    baseline_insufficient = not (has_voltage and has_current)
    if baseline_insufficient:
        warnings.append(PreflightWarning(
            code=BASELINE_INSUFFICIENT,
            message="baseline insufficient: missing voltage or current",
            meta={"hasVoltage": has_voltage, "hasCurrent": has_current},
        ))

    circuits_count = len(circuits.circuits)
    has_tariff = circuits.has_customer_tariff
    if has_tariff:
        tariff_source = "customer"
    elif circuits_count >= 2:
        tariff_source = "default"
    else:
        tariff_source = "missing"

    enhanced_insufficient = circuits_count < 2 and not has_tariff
    if enhanced_insufficient:
        warnings.append(PreflightWarning(
            code=ENHANCED_INSUFFICIENT,
            message="enhanced insufficient: circuits<2 and tariff missing",
            meta={"circuitsCount": circuits_count, "hasTariff": has_tariff},
        ))
    if enhanced_skipped:
        warnings.append(PreflightWarning(
            code=ENHANCED_SKIPPED,
            message="enhanced section skipped with recorded reason",
            meta={"code": skip_code},
        ))
    if tariff_source == "default":
        warnings.append(PreflightWarning(
            code=TARIFF_DEFAULT_USED,
            message="tariff default used: customer tariff not provided",
            meta={"circuitsCount": circuits_count},
        ))
    if circuits_count > 0 and circuits.coverage != "measured":
        warnings.append(PreflightWarning(
            code=CIRCUITS_COVERAGE_NOT_MEASURED,
            message="circuits coverage is not measured",
            meta={"coverage": circuits.coverage, "circuitsCount": circuits_count},
        ))

    assets_coverage_unknown = assets.coverage == "unknown"
    if assets_coverage_unknown:
        warnings.append(PreflightWarning(code=ASSETS_COVERAGE_UNKNOWN, message="assets coverage unknown"))

    flags = PreflightFlags(
        baseline_insufficient=baseline_insufficient,
        enhanced_insufficient=enhanced_insufficient,
        assets_coverage_unknown=assets_coverage_unknown,
    )
    stress_high = stress_level in HIGH_STRESS_LEVELS
    finding_ids = {f.id for f in merged.findings} if merged is not None else set()

    if merged is not None:
        if enhanced_insufficient and "ESTIMATED_COST_BAND" in finding_ids:
            warnings.append(PreflightWarning(
                code=ENHANCED_INSUFFICIENT,
                message="enhanced violation: ESTIMATED_COST_BAND should not appear when enhanced insufficient",
                meta={
                    "circuitsCount": circuits_count,
                    "hasTariff": has_tariff,
                    "violation": "ESTIMATED_COST_BAND_PRESENT",
                },
            ))
            flags.enhanced_cost_band_violation = True
        if assets_coverage_unknown and "EV_SOLAR_BATTERY_READINESS_NOTE" in finding_ids and not stress_high:
            warnings.append(PreflightWarning(
                code=READINESS_TRIGGER_BLOCKED_BY_UNKNOWN_COVERAGE,
                message="assets readiness violation: unknown coverage allows readiness only on high/critical stress",
            ))
            flags.assets_readiness_gate_violation = True

    # Goal is read directly so a declared intent still counts when asset coverage is unknown
    primary_goal = to_text(tree.pick_text(PRIMARY_GOAL_PATHS).value).lower()
    readiness_candidate = (
        assets_coverage_unknown and assets.has_ev is not False and bool(UPGRADE_GOAL_RE.search(primary_goal))
    )
    if readiness_candidate and not stress_high:
        warnings.append(PreflightWarning(
            code=READINESS_TRIGGER_BLOCKED_BY_UNKNOWN_COVERAGE,
            message="readiness trigger blocked by unknown assets coverage under non-high stress",
            meta={"primaryGoal": primary_goal, "stressLevel": stress_level or "unknown"},
        ))

    deduped = _dedupe_warnings(warnings)
    counts: Dict[str, int] = {}
    for warning in deduped:
        counts[warning.code] = counts.get(warning.code, 0) + 1

    severity = classify_severity(deduped, profile)
    lead_reasons: List[str] = []
    if profile == "owner" and severity == "high":
        lead_reasons.append("OWNER_HIGH_SEVERITY")
    if "CONTINUOUS_MONITORING_UPGRADE_JUSTIFICATION" in finding_ids:
        lead_reasons.append("MONITORING_FINDING_PRESENT")
    if assets.has_any_asset and circuits.coverage != "measured":
        lead_reasons.append("ASSETS_WITH_NON_MEASURED_CIRCUITS")

    if deduped:
        logger.info("Preflight: %d warning(s), severity=%s", len(deduped), severity)

    return PreflightResult(
        warnings=deduped,
        flags=flags,
        summary=PreflightSummary(
            warning_counts=counts,
            has_any_warning=bool(deduped),
            severity=severity,
            baseline_complete=not baseline_insufficient,
            enhanced_complete=not enhanced_insufficient,
            assets_coverage=assets.coverage,
            circuits_coverage=circuits.coverage,
            tariff_source=tariff_source,
            circuits_count=circuits_count,
            enhanced_skipped=enhanced_skipped,
            enhanced_skip_code=skip_code or None,
            enhanced_skip_note=skip_note or None,
            subscription_lead=bool(lead_reasons),
            subscription_lead_reasons=lead_reasons,
        ),
    )
