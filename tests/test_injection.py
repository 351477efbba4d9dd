import copy

import pytest

from injection import MANAGED_SLOTS, apply_merged_overrides, resolve_injection_flags
from models import ContentContribution, FindingBlock, MergedPlan, ReportPlan


def _line(key, text, module_id="capacity", **extra):
    return ContentContribution(key=key, text=text, module_id=module_id, **extra)


def _plan(explicit=True, **merged):
    defaults = dict(
        executive_summary=[
            _line("baseline.exec.load", "Peak load: 9.43 kW (41.0 A) • Stress: moderate • Headroom: 22.0 A"),
            _line("lifecycle.exec.age-window", "Condition review window of 6-12 months is advisable.", "lifecycle"),
        ],
        what_this_means=[_line("wtm.1", "- Plan a lifecycle review window.", "lifecycle")],
        capex_rows=[
            _line(
                "capex.1",
                "| Year 1-2 | Switchboard upgrade | $1,800 - $6,800 |",
                "lifecycle",
                row_key="capex:lifecycle:switchboard",
            )
        ],
        findings=[
            FindingBlock(
                key="lifecycle.finding.001",
                id="LIFECYCLE_LEGACY_SWITCHBOARD",
                module_id="lifecycle",
                title="Legacy switchboard",
                priority="RECOMMENDED_0_3_MONTHS",
                rationale="Legacy-era protection devices.",
                photos=["P1"],
            )
        ],
    )
    defaults.update(merged)
    return ReportPlan(
        profile="investor",
        modules=["lifecycle"],
        explicit_modules=explicit,
        merged=MergedPlan(**defaults),
    )


def _legacy():
    return {
        "WHAT_THIS_MEANS_SECTION": "legacy wtm",
        "EXECUTIVE_DECISION_SIGNALS": "legacy exec",
        "CAPEX_TABLE_ROWS": "| Year 1 | Legacy | $100 - $200 |",
        "CAPEX_SNAPSHOT": "legacy snapshot",
        "FINDING_PAGES_HTML": "legacy findings",
    }


def test_legacy_mode_keeps_every_slot():
    result = apply_merged_overrides(_legacy(), _plan(), mode="legacy")
    assert result.template_data == _legacy()
    assert set(result.slot_source_map) == set(MANAGED_SLOTS)
    assert all(s.source == "legacy" and s.reason == "DEFAULT_LEGACY_MODE" for s in result.slot_source_map.values())


def test_exec_and_wtm_mode():
    result = apply_merged_overrides(_legacy(), _plan(), mode="merged_exec+wtm")
    data = result.template_data
    assert data["WHAT_THIS_MEANS_SECTION"] == "- Plan a lifecycle review window."
    assert data["EXECUTIVE_DECISION_SIGNALS"].split("\n")[0].startswith("• Peak load: 9.43 kW")
    assert data["EXECUTIVE_SUMMARY"].startswith("Peak load")
    assert result.slot_source_map["EXEC_SUMMARY_TEXT"].reason == "MERGED_EXEC_APPLIED"
    assert result.slot_source_map["WHAT_THIS_MEANS_SECTION"].reason == "MERGED_WTM_APPLIED"
    assert result.slot_source_map["CAPEX_TABLE_ROWS"].reason == "INJECTION_FLAG_DISABLED"
    assert data["CAPEX_TABLE_ROWS"] == _legacy()["CAPEX_TABLE_ROWS"]


def test_capex_and_findings_require_explicit_modules():
    result = apply_merged_overrides(_legacy(), _plan(explicit=False), mode="merged_all")
    for slot in ("CAPEX_TABLE_ROWS", "CAPEX_SNAPSHOT", "FINDING_PAGES_HTML"):
        assert result.slot_source_map[slot].source == "legacy"
        assert result.slot_source_map[slot].reason == "NO_EXPLICIT_MODULES"
    assert result.slot_source_map["EXECUTIVE_DECISION_SIGNALS"].source == "merged"

    result = apply_merged_overrides(_legacy(), _plan(explicit=False), mode="legacy", injection={"capex": True})
    assert result.slot_source_map["CAPEX_TABLE_ROWS"].source == "legacy"
    assert result.slot_source_map["CAPEX_TABLE_ROWS"].reason == "NO_EXPLICIT_MODULES"
    assert result.template_data["CAPEX_TABLE_ROWS"] == _legacy()["CAPEX_TABLE_ROWS"]


def test_merged_all_with_explicit_modules():
    result = apply_merged_overrides(_legacy(), _plan(), mode="merged_all")
    data = result.template_data
    assert data["CAPEX_TABLE_ROWS"] == "| Year 1-2 | Switchboard upgrade | $1,800 - $6,800 |"
    assert data["CAPEX_SNAPSHOT"] == "AUD $1,800 - $6,800 (indicative, planning only)"
    assert data["FINDING_PAGES_HTML"].count("SENTINEL_FINDINGS_V1") == 1
    assert "Photo reference: P1" in data["FINDING_PAGES_HTML"]
    assert all(s.source == "merged" for s in result.slot_source_map.values())
    assert result.errors == {}


def test_explicit_argument_overrides_plan_flag():
    result = apply_merged_overrides(_legacy(), _plan(explicit=True), mode="merged_all", has_explicit_modules=False)
    assert result.slot_source_map["FINDING_PAGES_HTML"].reason == "NO_EXPLICIT_MODULES"


def test_empty_wtm_falls_back():
    result = apply_merged_overrides(_legacy(), _plan(what_this_means=[]), mode="merged_what_this_means")
    assert result.template_data["WHAT_THIS_MEANS_SECTION"] == "legacy wtm"
    assert result.slot_source_map["WHAT_THIS_MEANS_SECTION"].reason == "MERGED_WTM_EMPTY"


def test_empty_capex_falls_back():
    result = apply_merged_overrides(_legacy(), _plan(capex_rows=[]), mode="merged_all")
    assert result.slot_source_map["CAPEX_TABLE_ROWS"].reason == "MERGED_CAPEX_EMPTY"
    assert result.template_data["CAPEX_SNAPSHOT"] == "legacy snapshot"


def test_empty_findings_keep_legacy_pages():
    result = apply_merged_overrides(_legacy(), _plan(findings=[]), mode="merged_all")
    source = result.slot_source_map["FINDING_PAGES_HTML"]
    assert source.source == "legacy"
    assert source.reason == "MERGED_FINDINGS_EMPTY"
    assert result.template_data["FINDING_PAGES_HTML"] == "legacy findings"
    assert result.slot_source_map["CAPEX_TABLE_ROWS"].source == "merged"


def test_findings_validation_failure_keeps_legacy():
    bad = FindingBlock(
        key="bad", id="BAD", module_id="lifecycle", title="Bad", html="<h2>Injected heading</h2>"
    )
    result = apply_merged_overrides(_legacy(), _plan(findings=[bad]), mode="merged_all")
    source = result.slot_source_map["FINDING_PAGES_HTML"]
    assert source.source == "legacy"
    assert source.reason.startswith("MERGED_FINDINGS_VALIDATION_FAILED:")
    assert "<h2>" in source.reason
    assert result.template_data["FINDING_PAGES_HTML"] == "legacy findings"
    assert "findings" in result.errors


def test_exec_validation_failure_keeps_legacy():
    plan = _plan(executive_summary=[_line("x", "Rate {{x}}")])
    result = apply_merged_overrides(_legacy(), plan, mode="merged_exec+wtm")
    assert result.template_data["EXECUTIVE_DECISION_SIGNALS"] == "legacy exec"
    assert result.slot_source_map["EXECUTIVE_DECISION_SIGNALS"].reason.startswith("MERGED_EXEC_VALIDATION_FAILED:")


def test_flag_overrides_and_reasons():
    result = apply_merged_overrides(_legacy(), _plan(), mode="legacy", injection={"executive": True})
    assert result.injection.executive is True
    assert result.slot_source_map["EXECUTIVE_DECISION_SIGNALS"].source == "merged"
    assert result.slot_source_map["WHAT_THIS_MEANS_SECTION"].reason == "INJECTION_FLAG_DISABLED"

    result = apply_merged_overrides(_legacy(), _plan(), mode="merged_all", injection={"findings": False})
    assert result.slot_source_map["FINDING_PAGES_HTML"].reason == "INJECTION_FLAG_DISABLED"
    assert result.slot_source_map["CAPEX_TABLE_ROWS"].source == "merged"


def test_resolve_injection_flags():
    assert resolve_injection_flags("merged_all").findings is True
    assert resolve_injection_flags("merged_all", {"capex": None}).capex is True
    assert resolve_injection_flags("nonsense").executive is False
    with pytest.raises(ValueError):
        resolve_injection_flags("legacy", {"thermal": True})


def test_input_template_data_is_not_mutated():
    legacy = _legacy()
    before = copy.deepcopy(legacy)
    plan = _plan()
    plan_before = plan.model_dump_json()
    apply_merged_overrides(legacy, plan, mode="merged_all")
    assert legacy == before
    assert plan.model_dump_json() == plan_before


def test_signed_photo_links_use_signer():
    calls = []

    def signer(inspection_id, photo_id, base_url, secret):
        calls.append((inspection_id, photo_id, base_url, secret))
        return f"{base_url}/photos/{photo_id}"

    result = apply_merged_overrides(
        _legacy(),
        _plan(),
        mode="merged_all",
        inspection_id="INS-1",
        base_url="https://reports.example.com",
        signing_secret="s3cret",
        signer=signer,
    )
    assert calls == [("INS-1", "P1", "https://reports.example.com", "s3cret")]
    assert '<a href="https://reports.example.com/photos/P1">View photo</a>' in result.template_data["FINDING_PAGES_HTML"]
