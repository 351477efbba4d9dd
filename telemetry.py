"""Per-report engine telemetry and fleet aggregation.

One JSON line per generated report is emitted on the ``report_engine.telemetry``
logger. Records use camelCase keys so they can be shipped to log pipelines as-is.
"""

from __future__ import annotations

import logging
import re
import time
from itertools import combinations
from typing import Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from injection import (
    DEFAULT_LEGACY_MODE,
    INJECTION_FLAG_DISABLED,
    MERGED_CAPEX_EMPTY,
    MERGED_CAPEX_VALIDATION_FAILED,
    MERGED_FINDINGS_VALIDATION_FAILED,
    NO_EXPLICIT_MODULES,
)
from models import ReportPlan, SlotSource

telemetry_logger = logging.getLogger("report_engine.telemetry")

TELEMETRY_TAG = "[REPORT_ENGINE_TELEMETRY]"
TRACKED_FALLBACKS = [
    NO_EXPLICIT_MODULES,
    MERGED_FINDINGS_VALIDATION_FAILED,
    INJECTION_FLAG_DISABLED,
    MERGED_CAPEX_EMPTY,
]
_TBD_RE = re.compile(r"\bTBD\b", re.IGNORECASE)


class TelemetryModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MergedMetrics(TelemetryModel):
    findings_count: int = 0
    capex_row_count: int = 0
    capex_tbd_count: int = 0


class ValidationFlags(TelemetryModel):
    merged_findings_validation_passed: bool = True
    merged_capex_validation_passed: bool = True


class ReportEngineTelemetry(TelemetryModel):
    report_id: str
    profile: str
    modules: List[str] = Field(default_factory=list)
    injection_mode: str = "legacy"
    slot_source_map: Dict[str, SlotSource] = Field(default_factory=dict)
    fallback_reasons: List[str] = Field(default_factory=list)
    merged_metrics: MergedMetrics = Field(default_factory=MergedMetrics)
    validation_flags: ValidationFlags = Field(default_factory=ValidationFlags)
    timestamp: int


class InjectionRatio(TelemetryModel):
    legacy_mode: float = 0.0
    merged_exec_wtm_mode: float = 0.0
    merged_capex: float = 0.0
    merged_findings: float = 0.0


class SlotCoverage(TelemetryModel):
    what_this_means_merged: float = 0.0
    executive_merged: float = 0.0
    capex_merged: float = 0.0
    findings_merged: float = 0.0


class ModuleUsage(TelemetryModel):
    counts: Dict[str, int] = Field(default_factory=dict)
    co_occurrence: Dict[str, float] = Field(default_factory=dict)
    energy_count: int = 0
    lifecycle_count: int = 0
    energy_and_lifecycle_together_ratio: float = 0.0


class ReportEngineTelemetryAggregate(TelemetryModel):
    total_reports: int = 0
    injection_ratio: InjectionRatio = Field(default_factory=InjectionRatio)
    slot_coverage: SlotCoverage = Field(default_factory=SlotCoverage)
    fallback_rate: Dict[str, float] = Field(default_factory=dict)
    module_usage: ModuleUsage = Field(default_factory=ModuleUsage)
    capex_tbd_ratio: float = 0.0
    findings_validation_failure_ratio: float = 0.0


def is_fallback_reason(reason: Optional[str]) -> bool:
    if not reason:
        return False
    if reason in (DEFAULT_LEGACY_MODE, INJECTION_FLAG_DISABLED):
        return False
    return not reason.endswith("_APPLIED")


def count_capex_tbd(plan: ReportPlan) -> int:
    return sum(1 for row in plan.merged.capex_rows if row.amount_is_tbd or _TBD_RE.search(row.text or ""))


def build_report_engine_telemetry(
    report_id: str,
    profile: str,
    modules: Iterable[str],
    injection_mode: str,
    slot_source_map: Mapping[str, SlotSource],
    plan: ReportPlan,
    timestamp: Optional[int] = None,
) -> ReportEngineTelemetry:
    reasons: List[str] = []
    for slot in slot_source_map.values():
        if slot.source == "legacy" and is_fallback_reason(slot.reason) and slot.reason not in reasons:
            reasons.append(slot.reason)

    findings_reason = slot_source_map.get("FINDING_PAGES_HTML")
    capex_reasons = [
        slot_source_map[name].reason
        for name in ("CAPEX_TABLE_ROWS", "CAPEX_SNAPSHOT")
        if name in slot_source_map
    ]
    return ReportEngineTelemetry(
        report_id=report_id,
        profile=profile,
        modules=list(modules),
        injection_mode=injection_mode,
        slot_source_map=dict(slot_source_map),
        fallback_reasons=reasons,
        merged_metrics=MergedMetrics(
            findings_count=len(plan.merged.findings),
            capex_row_count=len(plan.merged.capex_rows),
            capex_tbd_count=count_capex_tbd(plan),
        ),
        validation_flags=ValidationFlags(
            merged_findings_validation_passed=not (
                findings_reason is not None
                and findings_reason.reason.startswith(MERGED_FINDINGS_VALIDATION_FAILED)
            ),
            merged_capex_validation_passed=not any(
                reason == MERGED_CAPEX_EMPTY or reason.startswith(MERGED_CAPEX_VALIDATION_FAILED)
                for reason in capex_reasons
            ),
        ),
        timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
    )


def emit_report_engine_telemetry(telemetry: ReportEngineTelemetry) -> str:
    payload = telemetry.model_dump_json(by_alias=True)
    telemetry_logger.info("%s %s", TELEMETRY_TAG, payload)
    return payload


def _reason_code(reason: str) -> str:
    return reason.split(":", 1)[0]


def aggregate_report_engine_telemetry(records: List[ReportEngineTelemetry]) -> ReportEngineTelemetryAggregate:
    total = len(records)
    denominator = total or 1

    def rate(n: int) -> float:
        return n / denominator

    def merged_count(slot: str) -> int:
        return sum(1 for t in records if t.slot_source_map.get(slot) and t.slot_source_map[slot].source == "merged")

    fallback_counts: Dict[str, int] = {code: 0 for code in TRACKED_FALLBACKS}
    for record in records:
        for code in {_reason_code(reason) for reason in record.fallback_reasons}:
            fallback_counts[code] = fallback_counts.get(code, 0) + 1
        # flag-disabled slots are not fallbacks per report but are still tracked
        if any(slot.reason == INJECTION_FLAG_DISABLED for slot in record.slot_source_map.values()):
            fallback_counts[INJECTION_FLAG_DISABLED] += 1

    module_counts: Dict[str, int] = {}
    pair_counts: Dict[str, int] = {}
    for record in records:
        unique = sorted(set(record.modules))
        for module_id in unique:
            module_counts[module_id] = module_counts.get(module_id, 0) + 1
        for first, second in combinations(unique, 2):
            pair = f"{first}+{second}"
            pair_counts[pair] = pair_counts.get(pair, 0) + 1

    capex_rows = sum(t.merged_metrics.capex_row_count for t in records)
    capex_tbd = sum(t.merged_metrics.capex_tbd_count for t in records)

    return ReportEngineTelemetryAggregate(
        total_reports=total,
        injection_ratio=InjectionRatio(
            legacy_mode=rate(sum(1 for t in records if t.injection_mode == "legacy")),
            merged_exec_wtm_mode=rate(sum(1 for t in records if t.injection_mode == "merged_exec+wtm")),
            merged_capex=rate(merged_count("CAPEX_TABLE_ROWS")),
            merged_findings=rate(merged_count("FINDING_PAGES_HTML")),
        ),
        slot_coverage=SlotCoverage(
            what_this_means_merged=rate(merged_count("WHAT_THIS_MEANS_SECTION")),
            executive_merged=rate(merged_count("EXECUTIVE_DECISION_SIGNALS")),
            capex_merged=rate(merged_count("CAPEX_TABLE_ROWS")),
            findings_merged=rate(merged_count("FINDING_PAGES_HTML")),
        ),
        fallback_rate={code: rate(count) for code, count in sorted(fallback_counts.items())},
        module_usage=ModuleUsage(
            counts=module_counts,
            co_occurrence={pair: rate(count) for pair, count in sorted(pair_counts.items())},
            energy_count=module_counts.get("energy", 0),
            lifecycle_count=module_counts.get("lifecycle", 0),
            energy_and_lifecycle_together_ratio=rate(pair_counts.get("energy+lifecycle", 0)),
        ),
        capex_tbd_ratio=capex_tbd / capex_rows if capex_rows else 0.0,
        findings_validation_failure_ratio=rate(
            sum(1 for t in records if not t.validation_flags.merged_findings_validation_passed)
        ),
    )
