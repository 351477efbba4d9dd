from priority_resolution import is_override_valid, priority_rank, resolve_priority_final


def test_priority_final_wins_when_already_set():
    assert resolve_priority_final({"priority_final": "URGENT", "priority_calculated": "PLAN_MONITOR"}) == "URGENT"


def test_calculated_is_default():
    assert resolve_priority_final({"priority_calculated": "RECOMMENDED_0_3_MONTHS"}) == "RECOMMENDED_0_3_MONTHS"


def test_override_requires_reason():
    finding = {"priority_calculated": "PLAN_MONITOR", "priority_selected": "URGENT"}
    assert resolve_priority_final(finding) == "PLAN_MONITOR"
    assert not is_override_valid(finding)

    finding["override_reason"] = "   "
    assert resolve_priority_final(finding) == "PLAN_MONITOR"

    finding["override_reason"] = "Owner reported burning smell"
    assert resolve_priority_final(finding) == "URGENT"
    assert is_override_valid(finding)


def test_legacy_priority_acts_as_selection():
    finding = {"priority_calculated": "PLAN_MONITOR", "priority": "IMMEDIATE", "override_reason": "Site visit"}
    assert resolve_priority_final(finding) == "IMMEDIATE"


def test_legacy_fallback_without_calculated():
    assert resolve_priority_final({"priority": "RECOMMENDED"}) == "RECOMMENDED"
    assert resolve_priority_final({"priority_selected": "URGENT"}) == "PLAN_MONITOR"
    assert resolve_priority_final({}) == "PLAN_MONITOR"


def test_priority_rank_ordering():
    assert priority_rank("immediate") == priority_rank("URGENT") == 1
    assert priority_rank("RECOMMENDED_0_3_MONTHS") == 2
    assert priority_rank("PLAN_MONITOR") == 3
    assert priority_rank(None) == 99
    assert priority_rank("whenever") == 99
