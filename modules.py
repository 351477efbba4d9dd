"""Module registry: identifier to applicability predicate and compute function."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Callable, Dict, List

from canonical import (
    AssetsEnergySignals,
    BaselineLoadSignals,
    EnhancedCircuitsSignals,
    LifecycleSignals,
    extract_assets_energy,
    extract_baseline_load_signals,
    extract_enhanced_circuits,
    extract_lifecycle_signals,
)
from config import EngineSettings
from engines import (
    BaselineLoadMetrics,
    compute_baseline_metrics,
    run_baseline_load_engine,
    run_distributed_assets_engine,
    run_enhanced_energy_engine,
    run_lifecycle_engine,
    run_safety_engine,
)
from models import FindingBlock, ModuleComputeOutput

logger = logging.getLogger(__name__)

ENERGY_DEFAULT_PROFILES = {"owner", "investor"}


@dataclass
class ModuleContext:
    """Per-request inputs shared by every module; canonical signals are extracted once."""

    profile: str
    modules: List[str]
    raw: Any
    explicit_modules: bool = False
    settings: EngineSettings = field(default_factory=EngineSettings)

    @cached_property
    def baseline(self) -> BaselineLoadSignals:
        return extract_baseline_load_signals(self.raw)

    @cached_property
    def baseline_metrics(self) -> BaselineLoadMetrics:
        return compute_baseline_metrics(self.baseline)

    @cached_property
    def circuits(self) -> EnhancedCircuitsSignals:
        return extract_enhanced_circuits(self.raw)

    @cached_property
    def assets(self) -> AssetsEnergySignals:
        return extract_assets_energy(self.raw)

    @cached_property
    def lifecycle(self) -> LifecycleSignals:
        return extract_lifecycle_signals(self.raw)


@dataclass(frozen=True)
class ReportModule:
    id: str
    name: str
    applicability: Callable[[ModuleContext], bool]
    compute: Callable[[ModuleContext], ModuleComputeOutput]


def _dedupe_findings_by_id(findings: List[FindingBlock]) -> List[FindingBlock]:
    seen = set()
    kept = []
    for finding in findings:
        if finding.id in seen:
            continue
        seen.add(finding.id)
        kept.append(finding)
    return kept


def _compute_energy(ctx: ModuleContext) -> ModuleComputeOutput:
    metrics = ctx.baseline_metrics if ctx.baseline_metrics.has_evidence else None
    enhanced = run_enhanced_energy_engine(ctx.circuits, ctx.profile, metrics, ctx.settings)
    assets = run_distributed_assets_engine(
        ctx.assets,
        ctx.profile,
        stress_level=ctx.baseline_metrics.stress_level,
        circuits_coverage=ctx.circuits.coverage,
    )
    combined = enhanced.extend(assets)
    combined.findings = _dedupe_findings_by_id(combined.findings)
    return combined


MODULE_REGISTRY: Dict[str, ReportModule] = {
    "safety": ReportModule(
        id="safety",
        name="Safety",
        applicability=lambda ctx: True,
        compute=lambda ctx: run_safety_engine(ctx.raw, ctx.profile),
    ),
    "capacity": ReportModule(
        id="capacity",
        name="Capacity (baseline load)",
        applicability=lambda ctx: True,
        compute=lambda ctx: run_baseline_load_engine(ctx.baseline, ctx.profile),
    ),
    "energy": ReportModule(
        id="energy",
        name="Energy",
        applicability=lambda ctx: ctx.explicit_modules or ctx.profile in ENERGY_DEFAULT_PROFILES,
        compute=_compute_energy,
    ),
    "lifecycle": ReportModule(
        id="lifecycle",
        name="Lifecycle",
        applicability=lambda ctx: ctx.lifecycle.meaningful,
        compute=lambda ctx: run_lifecycle_engine(ctx.lifecycle, ctx.profile),
    ),
}


def registered_modules() -> List[str]:
    return list(MODULE_REGISTRY)
