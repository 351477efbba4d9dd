from __future__ import annotations

import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

ProfileId = Literal["investor", "owner", "tenant"]
Density = Literal["compact", "standard", "detailed"]
BudgetBias = Literal["conservative", "balanced", "proactive"]
Coverage = Literal["measured", "observed", "declared", "unknown"]
SlotSourceKind = Literal["legacy", "merged"]

ROW_KEY_PATTERN = re.compile(r"^capex:([a-z0-9_]+):([a-z0-9][a-z0-9-]*)$")


class ContentContribution(BaseModel):
    """One unit of generated content: a summary line, narrative bullet or CapEx row."""

    key: str
    text: str
    row_key: Optional[str] = None
    amount_low: Optional[float] = None
    amount_high: Optional[float] = None
    currency: Optional[str] = None
    amount_is_tbd: Optional[bool] = None
    module_id: Optional[str] = None
    importance: Optional[Literal["critical", "normal"]] = None
    allow_duplicates: bool = False
    sort_key: Optional[str] = None
    priority: Optional[str] = None

    @field_validator("key")
    def validate_key(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Contribution key cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_row_key(self) -> "ContentContribution":
        if self.row_key is None:
            return self
        match = ROW_KEY_PATTERN.match(self.row_key)
        if not match:
            raise ValueError(f"rowKey must match capex:<moduleId>:<slug> (got {self.row_key})")
        if self.module_id and match.group(1) != self.module_id:
            raise ValueError(f"rowKey {self.row_key} does not belong to module {self.module_id}")
        return self


class FindingBlock(BaseModel):
    key: str
    id: str
    module_id: str
    title: str
    priority: Optional[str] = None
    rationale: str = ""
    evidence_refs: List[str] = Field(default_factory=list)
    photos: List[str] = Field(default_factory=list)
    html: str = ""
    evidence_coverage: Optional[Coverage] = None
    score: Optional[float] = None
    sort_key: Optional[str] = None
    asset_component: Optional[str] = None
    budget_note: Optional[str] = None


class ModuleComputeOutput(BaseModel):
    executive_summary: List[ContentContribution] = Field(default_factory=list)
    what_this_means: List[ContentContribution] = Field(default_factory=list)
    capex_rows: List[ContentContribution] = Field(default_factory=list)
    findings: List[FindingBlock] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.executive_summary or self.what_this_means or self.capex_rows or self.findings)

    def extend(self, other: "ModuleComputeOutput") -> "ModuleComputeOutput":
        return ModuleComputeOutput(
            executive_summary=[*self.executive_summary, *other.executive_summary],
            what_this_means=[*self.what_this_means, *other.what_this_means],
            capex_rows=[*self.capex_rows, *other.capex_rows],
            findings=[*self.findings, *other.findings],
        )


class MergedPlan(BaseModel):
    executive_summary: List[ContentContribution] = Field(default_factory=list)
    what_this_means: List[ContentContribution] = Field(default_factory=list)
    capex_rows: List[ContentContribution] = Field(default_factory=list)
    findings: List[FindingBlock] = Field(default_factory=list)


class ReportOptions(BaseModel):
    narrative_density: Density = "standard"
    budget_bias: BudgetBias = "balanced"


class ReportRequest(BaseModel):
    profile: ProfileId = "investor"
    modules: Optional[List[str]] = None
    options: ReportOptions = Field(default_factory=ReportOptions)
    inspection_id: Optional[str] = None

    @field_validator("modules")
    def normalize_modules(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        return [str(m).strip().lower() for m in v if str(m).strip()]

    @property
    def has_explicit_modules(self) -> bool:
        return bool(self.modules)


class ReportPlan(BaseModel):
    profile: ProfileId
    modules: List[str]
    explicit_modules: bool = False
    density: Density = "standard"
    summary_focus: List[ContentContribution] = Field(default_factory=list)
    what_this_means_focus: List[ContentContribution] = Field(default_factory=list)
    capex_rows: List[ContentContribution] = Field(default_factory=list)
    findings_blocks: List[FindingBlock] = Field(default_factory=list)
    merged: MergedPlan = Field(default_factory=MergedPlan)
    debug: Dict[str, Any] = Field(default_factory=dict)


class SlotSource(BaseModel):
    source: SlotSourceKind
    reason: str


class InjectionFlags(BaseModel):
    what_this_means: bool = False
    executive: bool = False
    capex: bool = False
    findings: bool = False


class PreflightWarning(BaseModel):
    code: str
    message: str
    meta: Optional[Dict[str, Any]] = None


class PreflightFlags(BaseModel):
    baseline_insufficient: bool
    enhanced_insufficient: bool
    assets_coverage_unknown: bool
    enhanced_cost_band_violation: bool = False
    assets_readiness_gate_violation: bool = False


class PreflightSummary(BaseModel):
    warning_counts: Dict[str, int] = Field(default_factory=dict)
    has_any_warning: bool = False
    severity: Literal["none", "low", "medium", "high"] = "none"
    baseline_complete: bool = False
    enhanced_complete: bool = False
    assets_coverage: Coverage = "unknown"
    circuits_coverage: Coverage = "unknown"
    tariff_source: Literal["customer", "default", "missing"] = "missing"
    circuits_count: int = 0
    enhanced_skipped: bool = False
    enhanced_skip_code: Optional[str] = None
    enhanced_skip_note: Optional[str] = None
    subscription_lead: bool = False
    subscription_lead_reasons: List[str] = Field(default_factory=list)


class PreflightResult(BaseModel):
    warnings: List[PreflightWarning] = Field(default_factory=list)
    flags: PreflightFlags
    summary: PreflightSummary
