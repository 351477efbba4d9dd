"""
Report generation facade: plan, inject, record telemetry, enforce the contract.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from config import EngineSettings, ReportEngineConfig
from injection import InjectionResult, apply_merged_overrides
from logging_utils import log_exception
from models import ReportPlan, ReportRequest, SlotSource
from plan_builder import build_report_plan
from renderers.findings_html import PhotoSigner
from report_contracts import ReportContractError, assert_report_ready
from telemetry import ReportEngineTelemetry, build_report_engine_telemetry, emit_report_engine_telemetry

logger = logging.getLogger(__name__)


@dataclass
class ReportOutcome:
    plan: ReportPlan
    template_data: Dict[str, Any]
    slot_source_map: Dict[str, SlotSource]
    telemetry: Optional[ReportEngineTelemetry] = None
    warnings: list = field(default_factory=list)


def generate_report(
    raw: Any,
    request: ReportRequest,
    template_data: Mapping[str, Any],
    mode: Optional[str] = None,
    injection: Optional[Mapping[str, Optional[bool]]] = None,
    report_id: Optional[str] = None,
    enforce_contract: bool = True,
    emit_telemetry: Optional[bool] = None,
    settings: Optional[EngineSettings] = None,
    signer: Optional[PhotoSigner] = None,
    timestamp: Optional[int] = None,
) -> ReportOutcome:
    """
    Build the plan for ``request``, inject merged content into a copy of
    ``template_data`` and optionally enforce the final report contract.

    Raises:
        ReportContractError: when ``enforce_contract`` is set and the final
            slot values violate any rule.
    """
    plan = build_report_plan(request, raw, settings)
    inspection_id = request.inspection_id or report_id
    result: InjectionResult = apply_merged_overrides(
        template_data,
        plan,
        mode=mode,
        injection=injection,
        has_explicit_modules=request.has_explicit_modules,
        inspection_id=inspection_id,
        signer=signer,
    )

    telemetry = build_report_engine_telemetry(
        report_id=report_id or inspection_id or "unknown",
        profile=plan.profile,
        modules=plan.modules,
        injection_mode=result.mode,
        slot_source_map=result.slot_source_map,
        plan=plan,
        timestamp=timestamp,
    )
    should_emit = ReportEngineConfig.TELEMETRY_ENABLED if emit_telemetry is None else emit_telemetry
    if should_emit:
        emit_report_engine_telemetry(telemetry)

    outcome = ReportOutcome(
        plan=plan,
        template_data=result.template_data,
        slot_source_map=result.slot_source_map,
        telemetry=telemetry,
        warnings=list(plan.debug.get("preflight", {}).get("warnings", [])),
    )

    if enforce_contract:
        try:
            assert_report_ready(result.template_data)
        except ReportContractError as exc:
            log_exception(logger, exc, context="assert_report_ready", report_id=report_id,
                          profile=plan.profile, modules=plan.modules)
            raise
    return outcome
