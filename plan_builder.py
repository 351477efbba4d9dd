"""Build a ReportPlan: resolve modules, run the applicable ones, merge and render."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, List, Optional, Sequence

from config import EngineSettings, ReportEngineConfig
from merge import merge_module_outputs
from models import ModuleComputeOutput, ReportPlan, ReportRequest
from modules import MODULE_REGISTRY, ModuleContext
from preflight import run_preflight
from profile_renderer import apply_profile_rendering
from profiles import resolve_profile

logger = logging.getLogger(__name__)


def resolve_modules(profile: str, requested: Optional[Sequence[str]] = None) -> List[str]:
    """Explicit non-empty selection overrides the profile defaults; unknown ids are dropped."""
    base = list(requested) if requested else list(resolve_profile(profile).default_modules)
    modules: List[str] = []
    for module_id in base:
        if module_id not in MODULE_REGISTRY:
            logger.warning("Ignoring unknown module '%s'", module_id)
            continue
        if module_id not in modules:
            modules.append(module_id)
    return modules


def build_report_plan(
    request: ReportRequest,
    raw: Any,
    settings: Optional[EngineSettings] = None,
) -> ReportPlan:
    profile = resolve_profile(request.profile).id
    modules = resolve_modules(profile, request.modules)
    density = request.options.narrative_density
    ctx = ModuleContext(
        profile=profile,
        modules=modules,
        raw=raw,
        explicit_modules=request.has_explicit_modules,
        settings=settings or ReportEngineConfig.engine_settings(),
    )

    plan = ReportPlan(
        profile=profile,
        modules=modules,
        explicit_modules=request.has_explicit_modules,
        density=density,
    )

    outputs: List[ModuleComputeOutput] = []
    for module_id, module in MODULE_REGISTRY.items():
        if module_id not in modules:
            continue
        if not module.applicability(ctx):
            logger.debug("Module %s not applicable for profile %s", module_id, profile)
            continue
        output = module.compute(ctx)
        outputs.append(output)
        plan.summary_focus.extend(output.executive_summary)
        plan.what_this_means_focus.extend(output.what_this_means)
        plan.capex_rows.extend(output.capex_rows)
        plan.findings_blocks.extend(output.findings)

    merged = merge_module_outputs(profile, density, outputs)
    plan.merged = apply_profile_rendering(merged, profile)

    metrics = ctx.baseline_metrics
    plan.debug["baseline_metrics"] = asdict(metrics)
    plan.debug["preflight"] = run_preflight(
        raw, plan.merged, stress_level=metrics.stress_level, profile=profile
    ).model_dump()

    logger.info(
        "Report plan built: profile=%s modules=%s findings=%d capex_rows=%d",
        profile,
        ",".join(modules),
        len(plan.merged.findings),
        len(plan.merged.capex_rows),
    )
    return plan
