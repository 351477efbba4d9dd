from models import ContentContribution, FindingBlock, MergedPlan
from profile_renderer import apply_profile_rendering, filter_findings, order_findings, pin_baseline_line


def _finding(fid, module_id="energy", sort_key=None, priority=None):
    return FindingBlock(
        key=fid.lower(), id=fid, module_id=module_id, title=fid, sort_key=sort_key, priority=priority
    )


def _line(key, module_id="capacity"):
    return ContentContribution(key=key, text=f"Line {key}", module_id=module_id)


def test_investor_hides_energy_detail():
    findings = [
        _finding("LOAD_STRESS_TEST_RESULT", "capacity"),
        _finding("ESTIMATED_COST_BAND"),
        _finding("CIRCUIT_CONTRIBUTION_BREAKDOWN"),
        _finding("DISTRIBUTED_ENERGY_ASSETS_OVERVIEW"),
    ]
    assert [f.id for f in filter_findings("investor", findings)] == ["LOAD_STRESS_TEST_RESULT"]
    assert len(filter_findings("owner", findings)) == 4
    assert len(filter_findings("tenant", findings)) == 4


def test_owner_module_rank_then_weights():
    findings = [
        _finding("ESTIMATED_COST_BAND"),
        _finding("LIFECYCLE_RCD_COVERAGE_GAP", "lifecycle", sort_key="lifecycle.finding.002"),
        _finding("LIFECYCLE_LEGACY_SWITCHBOARD", "lifecycle", sort_key="lifecycle.finding.001"),
        _finding("LOAD_STRESS_TEST_RESULT", "capacity"),
        _finding("CIRCUIT_CONTRIBUTION_BREAKDOWN"),
    ]
    ordered = [f.id for f in order_findings("owner", findings)]
    assert ordered == [
        "CIRCUIT_CONTRIBUTION_BREAKDOWN",
        "ESTIMATED_COST_BAND",
        "LOAD_STRESS_TEST_RESULT",
        "LIFECYCLE_LEGACY_SWITCHBOARD",
        "LIFECYCLE_RCD_COVERAGE_GAP",
    ]


def test_owner_weights_never_override_module_or_priority():
    findings = [
        _finding("LOAD_STRESS_TEST_RESULT", "capacity", priority="PLAN_MONITOR"),
        _finding("EXPOSED_LIVE_CONDUCTOR", "safety", priority="IMMEDIATE"),
        _finding("DISTRIBUTED_ENERGY_ASSETS_OVERVIEW", priority="PLAN_MONITOR"),
        _finding("EV_SOLAR_BATTERY_READINESS_NOTE", priority="RECOMMENDED_0_3_MONTHS"),
        _finding("LIFECYCLE_LEGACY_SWITCHBOARD", "lifecycle", priority="URGENT"),
    ]
    ordered = [f.id for f in order_findings("owner", findings)]
    assert ordered == [
        "EV_SOLAR_BATTERY_READINESS_NOTE",
        "DISTRIBUTED_ENERGY_ASSETS_OVERVIEW",
        "LOAD_STRESS_TEST_RESULT",
        "EXPOSED_LIVE_CONDUCTOR",
        "LIFECYCLE_LEGACY_SWITCHBOARD",
    ]


def test_non_owner_order_untouched():
    findings = [_finding("B"), _finding("A")]
    assert [f.id for f in order_findings("tenant", findings)] == ["B", "A"]


def test_baseline_line_pinned_first():
    lines = [_line("safety.exec.urgent", "safety"), _line("baseline.exec.load"), _line("other")]
    assert [l.key for l in pin_baseline_line(lines)] == ["baseline.exec.load", "safety.exec.urgent", "other"]
    assert [l.key for l in pin_baseline_line(lines[:1])] == ["safety.exec.urgent"]


def test_apply_profile_rendering_returns_copy():
    merged = MergedPlan(
        executive_summary=[_line("energy.exec", "energy"), _line("baseline.exec.load")],
        findings=[_finding("ESTIMATED_COST_BAND"), _finding("LOAD_STRESS_TEST_RESULT", "capacity")],
    )
    rendered = apply_profile_rendering(merged, "investor")
    assert [f.id for f in rendered.findings] == ["LOAD_STRESS_TEST_RESULT"]
    assert rendered.executive_summary[0].key == "baseline.exec.load"
    assert len(merged.findings) == 2
    assert merged.executive_summary[0].key == "energy.exec"
