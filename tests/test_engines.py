import pytest

from canonical import (
    extract_assets_energy,
    extract_baseline_load_signals,
    extract_enhanced_circuits,
    extract_lifecycle_signals,
)
from config import EngineSettings
from engines import (
    compute_baseline_metrics,
    run_baseline_load_engine,
    run_distributed_assets_engine,
    run_enhanced_energy_engine,
    run_lifecycle_engine,
    run_safety_engine,
)
from engines.baseline_load import classify_stress
from engines.enhanced_energy import estimate_cost_band


def _baseline(total=41, main=63, voltage=230):
    return extract_baseline_load_signals(
        {"load_baseline": {"voltageV": voltage, "mainSwitchA": main, "stressTest": {"totalCurrentA": total}}}
    )


def _circuits(*currents, tariff=None):
    categories = ["hot_water", "ac", "lighting", "general"]
    raw = {
        "energy_v2": {
            "circuits": [
                {"label": f"C{idx + 1}", "measuredCurrentA": amps, "category": categories[idx % 4]}
                for idx, amps in enumerate(currents)
            ]
        }
    }
    if tariff:
        raw["energy_v2"]["tariff"] = tariff
    return extract_enhanced_circuits(raw)


def test_classify_stress_buckets():
    assert classify_stress(None) == "unknown"
    assert classify_stress(0.59) == "low"
    assert classify_stress(0.6) == "moderate"
    assert classify_stress(0.8) == "high"
    assert classify_stress(0.95) == "critical"


def test_baseline_moderate_investor_scenario():
    signals = _baseline()
    metrics = compute_baseline_metrics(signals)
    assert metrics.stress_ratio == pytest.approx(0.65, abs=0.01)
    assert metrics.stress_level == "moderate"
    assert metrics.peak_kw == pytest.approx(9.43)
    assert metrics.headroom_a == pytest.approx(22.0)

    output = run_baseline_load_engine(signals, "investor")
    assert [f.id for f in output.findings] == ["LOAD_STRESS_TEST_RESULT"]
    assert output.findings[0].priority == "PLAN_MONITOR"
    assert output.capex_rows == []
    assert output.executive_summary[0].key == "baseline.exec.load"
    assert output.executive_summary[0].text == "Peak load: 9.43 kW (41.0 A) • Stress: moderate • Headroom: 22.0 A"


def test_baseline_high_stress_adds_tbd_capex_row():
    output = run_baseline_load_engine(_baseline(total=55), "owner")
    assert output.findings[0].priority == "RECOMMENDED_0_3_MONTHS"
    assert len(output.capex_rows) == 1
    row = output.capex_rows[0]
    assert row.row_key == "capex:capacity:capacity-planning-review"
    assert row.amount_is_tbd is True
    assert "TBD" in row.text


def test_baseline_three_phase_sums_phase_terms():
    signals = extract_baseline_load_signals(
        {
            "load_baseline": {
                "phaseSupply": "three",
                "voltageV": 230,
                "mainSwitchA": 63,
                "stressTest": {"currentA_L1": 20, "currentA_L2": 25, "currentA_L3": 30},
            }
        }
    )
    metrics = compute_baseline_metrics(signals)
    assert metrics.peak_kw == pytest.approx(17.25)
    assert metrics.peak_current_a == 30


def test_baseline_without_evidence_is_empty():
    output = run_baseline_load_engine(extract_baseline_load_signals({}), "investor")
    assert output.is_empty()


def test_enhanced_energy_default_tariff_band():
    output = run_enhanced_energy_engine(_circuits(16, 18), "owner", settings=EngineSettings())
    ids = [f.id for f in output.findings]
    assert ids == ["CIRCUIT_CONTRIBUTION_BREAKDOWN", "ESTIMATED_COST_BAND"]
    assert "Estimated monthly band AUD $599-$824." in output.executive_summary[0].text
    assert output.executive_summary[0].text.startswith("Action-oriented view: peak 7.82 kW")
    assert "default estimate" in output.findings[1].html
    assert [r.row_key for r in output.capex_rows] == ["capex:energy:hot-water-optimisation", "capex:energy:ac-optimisation"]


def test_enhanced_energy_customer_tariff_label():
    output = run_enhanced_energy_engine(
        _circuits(16, 18, tariff={"rate_c_per_kwh": 30, "supply_c_per_day": 100}), "investor"
    )
    assert "customer provided" in output.findings[1].html
    assert output.executive_summary[0].text.startswith("Asset-planning view")


def test_enhanced_energy_requires_two_circuits_or_tariff():
    assert run_enhanced_energy_engine(_circuits(16), "owner").is_empty()


def test_enhanced_energy_monitoring_with_three_contributors():
    output = run_enhanced_energy_engine(_circuits(10, 12, 8, 5), "owner")
    assert "CONTINUOUS_MONITORING_UPGRADE_JUSTIFICATION" in [f.id for f in output.findings]
    assert len(output.capex_rows) == 3


def test_estimate_cost_band_formula():
    band = estimate_cost_band(10, 40, 120, EngineSettings())
    assert band.low == 756
    assert band.typical == 1044


def test_distributed_assets_empty_without_evidence_or_stress():
    assets = extract_assets_energy({})
    assert run_distributed_assets_engine(assets, "owner", stress_level="moderate").is_empty()


def test_distributed_assets_owner_overview_and_monitoring():
    assets = extract_assets_energy({"assets_energy": {"hasSolar": True}})
    output = run_distributed_assets_engine(assets, "owner", stress_level="low", circuits_coverage="unknown")
    ids = [f.id for f in output.findings]
    assert ids == ["DISTRIBUTED_ENERGY_ASSETS_OVERVIEW", "CONTINUOUS_MONITORING_UPGRADE_JUSTIFICATION"]
    assert output.executive_summary[0].text == "Energy assets (Solar: Present • Battery: Unknown • EV: Unknown)"


def test_distributed_assets_readiness_on_high_stress():
    output = run_distributed_assets_engine(extract_assets_energy({}), "investor", stress_level="high")
    assert [f.id for f in output.findings] == ["EV_SOLAR_BATTERY_READINESS_NOTE"]


def test_distributed_assets_readiness_blocked_when_ev_absent():
    assets = extract_assets_energy({"assets_energy": {"hasEv": "no"}})
    output = run_distributed_assets_engine(assets, "investor", stress_level="critical")
    assert output.findings == []

    planned = extract_assets_energy({"assets_energy": {"hasEv": "no"}, "snapshot_intake": {"primaryGoal": "plan_upgrade"}})
    output = run_distributed_assets_engine(planned, "investor", stress_level="critical")
    assert [f.id for f in output.findings] == ["EV_SOLAR_BATTERY_READINESS_NOTE"]

    review = extract_assets_energy({"assets_energy": {"hasEv": "no"}, "snapshot_intake": {"primaryGoal": "energy_review"}})
    assert run_distributed_assets_engine(review, "investor", stress_level="critical").findings == []


def _lifecycle_raw():
    return {
        "job": {"property_age_band": "pre-1970"},
        "switchboard": {"type": "ceramic fuse"},
        "test_data": {"rcd_tests": {"coverage": "partial"}},
        "photo_ids": ["P1"],
    }


def test_lifecycle_engine_full_signal():
    output = run_lifecycle_engine(extract_lifecycle_signals(_lifecycle_raw()), "investor")
    assert [line.key for line in output.executive_summary] == [
        "lifecycle.exec.age-window",
        "lifecycle.exec.legacy-switchboard-window",
        "lifecycle.exec.rcd-partial",
    ]
    assert [r.row_key for r in output.capex_rows] == [
        "capex:lifecycle:switchboard-modernisation-planning",
        "capex:lifecycle:rcd-rcbo-coverage-uplift",
        "capex:lifecycle:legacy-wiring-refresh-pathway",
    ]
    assert all(r.amount_is_tbd for r in output.capex_rows)
    assert [f.id for f in output.findings] == ["LIFECYCLE_LEGACY_SWITCHBOARD", "LIFECYCLE_RCD_COVERAGE_GAP"]
    assert output.findings[0].photos == ["P1"]


def test_lifecycle_tenant_transparency_line():
    signals = extract_lifecycle_signals({"switchboard": {"type": "modern rcbo board"}})
    output = run_lifecycle_engine(signals, "tenant")
    assert [line.key for line in output.executive_summary] == ["lifecycle.exec.tenant-transparency"]
    assert output.findings[0].priority == "PLAN_MONITOR"


def test_lifecycle_thermal_trigger():
    signals = extract_lifecycle_signals({"switchboard": {"type": "old cb"}, "visible_thermal_stress": "yes"})
    output = run_lifecycle_engine(signals, "owner")
    assert "LIFECYCLE_THERMAL_OR_MIXED_TRIGGER" in [f.id for f in output.findings]


def test_lifecycle_without_signal_is_empty():
    assert run_lifecycle_engine(extract_lifecycle_signals({}), "investor").is_empty()


def test_safety_engine_promotes_urgent_findings_only():
    raw = {
        "findings": [
            {"id": "exposed-live-conductor", "title": "Exposed live conductor", "priority_calculated": "IMMEDIATE",
             "photo_ids": ["P3"]},
            {"id": "minor-label", "priority": "PLAN_MONITOR"},
            {
                "id": "sparking-outlet",
                "priority_calculated": "PLAN_MONITOR",
                "priority_selected": "URGENT",
                "override_reason": "Client reported sparking",
            },
        ]
    }
    output = run_safety_engine(raw, "investor")
    assert [f.id for f in output.findings] == ["EXPOSED_LIVE_CONDUCTOR", "SPARKING_OUTLET"]
    assert output.findings[0].photos == ["P3"]
    assert output.executive_summary[0].text.startswith("2 urgent safety items recorded")


def test_safety_engine_empty_without_urgent_items():
    assert run_safety_engine({"findings": [{"id": "x", "priority": "PLAN"}]}, "tenant").is_empty()
    assert run_safety_engine({}, "tenant").is_empty()
