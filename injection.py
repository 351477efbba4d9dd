"""Slot-level injection of merged plan content into legacy template data.

Every managed slot resolves independently to ``legacy`` or ``merged`` and records
why. Merged content is only used when its flag is on, the slot's safety guard
passes and the rendered value is non-empty and structurally valid. The input
record is never mutated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from config import ReportEngineConfig
from merge import dedupe_capex_rows
from models import InjectionFlags, ReportPlan, SlotSource
from renderers import get_renderer
from renderers.capex_rows import compute_capex_snapshot
from renderers.findings_html import PhotoSigner
from report_contracts import lint_bullet_block, lint_capex_rows_markdown, validate_finding_pages_html

logger = logging.getLogger(__name__)

DEFAULT_LEGACY_MODE = "DEFAULT_LEGACY_MODE"
INJECTION_FLAG_DISABLED = "INJECTION_FLAG_DISABLED"
NO_EXPLICIT_MODULES = "NO_EXPLICIT_MODULES"
MERGED_WTM_APPLIED = "MERGED_WTM_APPLIED"
MERGED_WTM_EMPTY = "MERGED_WTM_EMPTY"
MERGED_WTM_VALIDATION_FAILED = "MERGED_WTM_VALIDATION_FAILED"
MERGED_EXEC_APPLIED = "MERGED_EXEC_APPLIED"
MERGED_EXEC_EMPTY = "MERGED_EXEC_EMPTY"
MERGED_EXEC_VALIDATION_FAILED = "MERGED_EXEC_VALIDATION_FAILED"
MERGED_CAPEX_APPLIED = "MERGED_CAPEX_APPLIED"
MERGED_CAPEX_EMPTY = "MERGED_CAPEX_EMPTY"
MERGED_CAPEX_VALIDATION_FAILED = "MERGED_CAPEX_VALIDATION_FAILED"
MERGED_FINDINGS_APPLIED = "MERGED_FINDINGS_APPLIED"
MERGED_FINDINGS_EMPTY = "MERGED_FINDINGS_EMPTY"
MERGED_FINDINGS_VALIDATION_FAILED = "MERGED_FINDINGS_VALIDATION_FAILED"

WTM_SLOTS = ["WHAT_THIS_MEANS_SECTION"]
EXEC_SLOTS = ["EXECUTIVE_DECISION_SIGNALS", "EXEC_SUMMARY_TEXT", "EXECUTIVE_SUMMARY"]
CAPEX_SLOTS = ["CAPEX_TABLE_ROWS", "CAPEX_SNAPSHOT"]
FINDINGS_SLOTS = ["FINDING_PAGES_HTML"]
MANAGED_SLOTS = WTM_SLOTS + EXEC_SLOTS + CAPEX_SLOTS + FINDINGS_SLOTS

MODE_FLAGS: Dict[str, InjectionFlags] = {
    "legacy": InjectionFlags(),
    "merged_what_this_means": InjectionFlags(what_this_means=True),
    "merged_exec+wtm": InjectionFlags(what_this_means=True, executive=True),
    "merged_all": InjectionFlags(what_this_means=True, executive=True, capex=True, findings=True),
}


@dataclass
class InjectionResult:
    template_data: Dict[str, Any]
    slot_source_map: Dict[str, SlotSource]
    injection: InjectionFlags
    mode: str = "legacy"
    errors: Dict[str, str] = field(default_factory=dict)


def resolve_injection_flags(
    mode: Optional[str] = None,
    overrides: Optional[Mapping[str, Optional[bool]]] = None,
) -> InjectionFlags:
    """Flags implied by ``mode``; explicit per-flag overrides win."""
    key = mode or "legacy"
    if key not in MODE_FLAGS:
        logger.warning("Unknown injection mode '%s'; using legacy", mode)
        key = "legacy"
    flags = MODE_FLAGS[key].model_dump()
    for name, value in (overrides or {}).items():
        if name not in flags:
            raise ValueError(f"Unknown injection flag '{name}'")
        if value is not None:
            flags[name] = bool(value)
    return InjectionFlags(**flags)


def _set(slot_map: Dict[str, SlotSource], slots, source: str, reason: str) -> None:
    for slot in slots:
        slot_map[slot] = SlotSource(source=source, reason=reason)


def _failed(reason: str, errors) -> str:
    return f"{reason}:{errors[0] if errors else 'unknown'}"


def apply_merged_overrides(
    template_data: Mapping[str, Any],
    plan: ReportPlan,
    mode: Optional[str] = None,
    injection: Optional[Mapping[str, Optional[bool]]] = None,
    has_explicit_modules: Optional[bool] = None,
    inspection_id: Optional[str] = None,
    base_url: Optional[str] = None,
    signing_secret: Optional[str] = None,
    signer: Optional[PhotoSigner] = None,
) -> InjectionResult:
    resolved_mode = mode or ReportEngineConfig.INJECTION_MODE
    flags = resolve_injection_flags(resolved_mode, injection)
    explicit = plan.explicit_modules if has_explicit_modules is None else has_explicit_modules
    disabled_reason = DEFAULT_LEGACY_MODE if resolved_mode == "legacy" and not injection else INJECTION_FLAG_DISABLED

    data: Dict[str, Any] = dict(template_data)
    slot_map: Dict[str, SlotSource] = {}
    errors: Dict[str, str] = {}
    _set(slot_map, MANAGED_SLOTS, "legacy", DEFAULT_LEGACY_MODE)

    if flags.what_this_means:
        wtm = get_renderer("narrative").render(plan.merged.what_this_means)
        problems = lint_bullet_block(wtm) if wtm else []
        if not wtm:
            _set(slot_map, WTM_SLOTS, "legacy", MERGED_WTM_EMPTY)
        elif problems:
            _set(slot_map, WTM_SLOTS, "legacy", _failed(MERGED_WTM_VALIDATION_FAILED, problems))
            errors["what_this_means"] = problems[0]
        else:
            data["WHAT_THIS_MEANS_SECTION"] = wtm
            data["WHAT_THIS_MEANS_TEXT"] = wtm
            _set(slot_map, WTM_SLOTS, "merged", MERGED_WTM_APPLIED)
    else:
        _set(slot_map, WTM_SLOTS, "legacy", disabled_reason)

    if flags.executive:
        bullets = get_renderer("executive").render(plan.merged.executive_summary)
        problems = lint_bullet_block(bullets) if bullets else []
        if not bullets:
            _set(slot_map, EXEC_SLOTS, "legacy", MERGED_EXEC_EMPTY)
        elif problems:
            _set(slot_map, EXEC_SLOTS, "legacy", _failed(MERGED_EXEC_VALIDATION_FAILED, problems))
            errors["executive"] = problems[0]
        else:
            data["EXECUTIVE_DECISION_SIGNALS"] = bullets
            data["EXEC_SUMMARY_TEXT"] = bullets
            data["EXECUTIVE_SUMMARY"] = " ".join(item.text for item in plan.merged.executive_summary)
            _set(slot_map, EXEC_SLOTS, "merged", MERGED_EXEC_APPLIED)
    else:
        _set(slot_map, EXEC_SLOTS, "legacy", disabled_reason)

    # CapEx and findings only switch when the caller chose modules explicitly
    if not flags.capex:
        _set(slot_map, CAPEX_SLOTS, "legacy", disabled_reason)
    elif not explicit:
        _set(slot_map, CAPEX_SLOTS, "legacy", NO_EXPLICIT_MODULES)
    else:
        rows = dedupe_capex_rows(plan.merged.capex_rows)
        rows_markdown = get_renderer("capex_rows").render(rows)
        problems = lint_capex_rows_markdown(rows_markdown) if rows_markdown else []
        if not rows_markdown:
            _set(slot_map, CAPEX_SLOTS, "legacy", MERGED_CAPEX_EMPTY)
        elif problems:
            _set(slot_map, CAPEX_SLOTS, "legacy", _failed(MERGED_CAPEX_VALIDATION_FAILED, problems))
            errors["capex"] = problems[0]
        else:
            data["CAPEX_TABLE_ROWS"] = rows_markdown
            data["CAPEX_SNAPSHOT"] = compute_capex_snapshot(rows)
            _set(slot_map, CAPEX_SLOTS, "merged", MERGED_CAPEX_APPLIED)

    if not flags.findings:
        _set(slot_map, FINDINGS_SLOTS, "legacy", disabled_reason)
    elif not explicit:
        _set(slot_map, FINDINGS_SLOTS, "legacy", NO_EXPLICIT_MODULES)
    elif not plan.merged.findings:
        _set(slot_map, FINDINGS_SLOTS, "legacy", MERGED_FINDINGS_EMPTY)
    else:
        findings = plan.merged.findings
        html = get_renderer("findings_html").render(
            findings,
            inspection_id=inspection_id,
            base_url=base_url or ReportEngineConfig.PHOTO_BASE_URL,
            signing_secret=signing_secret or ReportEngineConfig.PHOTO_SIGNING_SECRET,
            signer=signer,
        )
        problems = validate_finding_pages_html(html, len(findings))
        if problems:
            _set(slot_map, FINDINGS_SLOTS, "legacy", _failed(MERGED_FINDINGS_VALIDATION_FAILED, problems))
            errors["findings"] = problems[0]
        else:
            data["FINDING_PAGES_HTML"] = html
            _set(slot_map, FINDINGS_SLOTS, "merged", MERGED_FINDINGS_APPLIED)

    for section, problem in errors.items():
        logger.warning("Merged %s content rejected, keeping legacy: %s", section, problem)

    return InjectionResult(
        template_data=data,
        slot_source_map=slot_map,
        injection=flags,
        mode=resolved_mode,
        errors=errors,
    )
