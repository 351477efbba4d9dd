from models import FindingBlock, MergedPlan, PreflightWarning
from preflight import classify_severity, run_preflight


def _full_raw():
    return {
        "load_baseline": {"voltageV": 230, "mainSwitchA": 63, "stressTest": {"totalCurrentA": 41}},
        "energy_v2": {
            "circuits": [
                {"label": "C1", "measuredCurrentA": 16},
                {"label": "C2", "measuredCurrentA": 18},
            ],
            "tariff": {"rate_c_per_kwh": 30},
        },
        "assets_energy": {"hasSolar": "no", "hasBattery": "no", "hasEv": "no"},
    }


def _codes(result):
    return [w.code for w in result.warnings]


def test_empty_record_is_high_severity():
    result = run_preflight({})
    assert _codes(result) == ["BASELINE_INSUFFICIENT", "ENHANCED_INSUFFICIENT", "ASSETS_COVERAGE_UNKNOWN"]
    assert result.summary.severity == "high"
    assert result.summary.tariff_source == "missing"
    assert result.flags.baseline_insufficient
    assert result.flags.enhanced_insufficient
    assert result.warnings[0].meta == {"hasVoltage": False, "hasCurrent": False}


def test_complete_measured_record_has_no_warnings():
    result = run_preflight(_full_raw())
    assert result.warnings == []
    assert result.summary.severity == "none"
    assert result.summary.tariff_source == "customer"
    assert result.summary.baseline_complete
    assert result.summary.enhanced_complete
    assert result.summary.circuits_count == 2


def test_observed_circuits_without_tariff_is_medium():
    raw = _full_raw()
    del raw["energy_v2"]
    raw["circuits"] = [{"label": "C1", "currentA": 12}, {"label": "C2", "currentA": 9}]
    result = run_preflight(raw)
    assert set(_codes(result)) == {"TARIFF_DEFAULT_USED", "CIRCUITS_COVERAGE_NOT_MEASURED"}
    assert result.summary.severity == "medium"
    assert result.summary.tariff_source == "default"


def test_enhanced_skip_note_truncated():
    raw = _full_raw()
    raw["energy_v2"]["enhancedSkipReason"] = {"code": "CUSTOMER_DECLINED", "note": "x" * 200}
    result = run_preflight(raw)
    assert result.summary.enhanced_skipped
    assert result.summary.enhanced_skip_code == "CUSTOMER_DECLINED"
    assert len(result.summary.enhanced_skip_note) == 80
    assert result.summary.severity == "low"


def test_cost_band_violation_recorded_separately():
    merged = MergedPlan(findings=[FindingBlock(key="c", id="ESTIMATED_COST_BAND", module_id="energy", title="Cost")])
    result = run_preflight({}, merged)
    assert result.flags.enhanced_cost_band_violation
    assert result.summary.warning_counts["ENHANCED_INSUFFICIENT"] == 2


def test_readiness_violation_without_high_stress():
    merged = MergedPlan(
        findings=[FindingBlock(key="r", id="EV_SOLAR_BATTERY_READINESS_NOTE", module_id="energy", title="Ready")]
    )
    assert run_preflight({}, merged, stress_level="moderate").flags.assets_readiness_gate_violation
    assert not run_preflight({}, merged, stress_level="high").flags.assets_readiness_gate_violation


def test_readiness_candidate_from_primary_goal():
    raw = {"snapshot_intake": {"primaryGoal": "plan_upgrade"}}
    result = run_preflight(raw, stress_level="low")
    blocked = [w for w in result.warnings if w.code == "READINESS_TRIGGER_BLOCKED_BY_UNKNOWN_COVERAGE"]
    assert len(blocked) == 1
    assert blocked[0].meta == {"primaryGoal": "plan_upgrade", "stressLevel": "low"}

    result = run_preflight(raw, stress_level="critical")
    assert "READINESS_TRIGGER_BLOCKED_BY_UNKNOWN_COVERAGE" not in _codes(result)


def test_owner_high_severity_is_a_lead():
    result = run_preflight({}, profile="owner")
    assert result.summary.subscription_lead
    assert "OWNER_HIGH_SEVERITY" in result.summary.subscription_lead_reasons

    result = run_preflight({}, profile="investor")
    assert "OWNER_HIGH_SEVERITY" not in result.summary.subscription_lead_reasons


def test_assets_with_unmeasured_circuits_is_a_lead():
    result = run_preflight({"assets_energy": {"hasSolar": "yes"}})
    assert "ASSETS_WITH_NON_MEASURED_CIRCUITS" in result.summary.subscription_lead_reasons


def test_classify_severity_owner_enhanced():
    warnings = [PreflightWarning(code="ENHANCED_INSUFFICIENT", message="x")]
    assert classify_severity(warnings, "owner") == "high"
    assert classify_severity(warnings, "tenant") == "low"
    assert classify_severity([], "owner") == "none"
