"""Baseline load signals: supply phase, voltage, main switch rating and stress-test currents."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models import Coverage

from .accessor import PathValue, TreeAccessor, to_boolean, to_text
from .coverage import reduce_coverage

PHASE_PATHS = [
    "load_baseline.phaseSupply",
    "energy_v2.supply.phaseSupply",
    "job.supply_phase",
    "electrical.supply.phase",
    "supply.phase",
    "measured.phase",
]
VOLTAGE_PATHS = [
    "load_baseline.voltageV",
    "energy_v2.supply.voltageV",
    "measured.voltage",
    "test_data.measured.voltage",
    "electrical.supply.voltage",
    "supply.voltage",
]
MAIN_SWITCH_PATHS = [
    "load_baseline.mainSwitchA",
    "energy_v2.supply.mainSwitchA",
    "switchboard.main_switch_rating",
    "main_switch.rating",
    "job.main_switch_rating",
    "measured.main_switch_rating",
]
PERFORMED_PATHS = ["load_baseline.stressTest.performed", "energy_v2.stressTest.performed"]
DURATION_PATHS = [
    "load_baseline.stressTest.durationSec",
    "energy_v2.stressTest.durationSec",
    "stress_test.duration_sec",
]
TOTAL_CURRENT_PATHS = [
    "load_baseline.stressTest.totalCurrentA",
    "energy_v2.stressTest.totalCurrentA",
    "stress_test.total_current_a",
    "measured.load_current",
    "test_data.measured.load_current",
    "measured.clamp_current",
    "electrical.load_current",
]


def _phase_paths(line: str) -> List[str]:
    return [f"load_baseline.stressTest.currentA_{line}", f"energy_v2.stressTest.currentA_{line}"]


THREE_PHASE_RE = re.compile(r"three|triphase|\b3\s*(?:ph|phase|-phase)?\b")
SINGLE_PHASE_RE = re.compile(r"single|\b1\s*(?:ph|phase|-phase)?\b")


def parse_phase(value: Any) -> Optional[str]:
    text = to_text(value).lower()
    if not text:
        return None
    if THREE_PHASE_RE.search(text):
        return "three"
    if SINGLE_PHASE_RE.search(text):
        return "single"
    return "unknown"


@dataclass
class BaselineLoadSignals:
    phase_supply: Optional[str] = None
    voltage_v: Optional[float] = None
    main_switch_a: Optional[float] = None
    performed: Optional[bool] = None
    duration_sec: Optional[float] = None
    total_current_a: Optional[float] = None
    current_l1: Optional[float] = None
    current_l2: Optional[float] = None
    current_l3: Optional[float] = None
    coverage: Coverage = "unknown"
    sources: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def phase_currents(self) -> List[Optional[float]]:
        return [self.current_l1, self.current_l2, self.current_l3]

    @property
    def has_current_reading(self) -> bool:
        return self.total_current_a is not None or any(c is not None for c in self.phase_currents)

    @property
    def insufficient_evidence(self) -> bool:
        return not self.sources

    def source_refs(self) -> List[str]:
        return [path for paths in self.sources.values() for path in paths]


def extract_baseline_load_signals(raw: Any) -> BaselineLoadSignals:
    tree = TreeAccessor(raw)
    picked: Dict[str, PathValue] = {
        "phase_supply": tree.pick(PHASE_PATHS),
        "voltage_v": tree.pick_number(VOLTAGE_PATHS),
        "main_switch_a": tree.pick_number(MAIN_SWITCH_PATHS),
        "performed": tree.pick(PERFORMED_PATHS),
        "duration_sec": tree.pick_number(DURATION_PATHS),
        "total_current_a": tree.pick_number(TOTAL_CURRENT_PATHS),
        "current_l1": tree.pick_number(_phase_paths("L1")),
        "current_l2": tree.pick_number(_phase_paths("L2")),
        "current_l3": tree.pick_number(_phase_paths("L3")),
    }
    sources = {name: [pv.path] for name, pv in picked.items() if pv.found}

    return BaselineLoadSignals(
        phase_supply=parse_phase(picked["phase_supply"].value),
        voltage_v=picked["voltage_v"].value,
        main_switch_a=picked["main_switch_a"].value,
        performed=to_boolean(picked["performed"].value) if picked["performed"].found else None,
        duration_sec=picked["duration_sec"].value,
        total_current_a=picked["total_current_a"].value,
        current_l1=picked["current_l1"].value,
        current_l2=picked["current_l2"].value,
        current_l3=picked["current_l3"].value,
        coverage=reduce_coverage(path for paths in sources.values() for path in paths),
        sources=sources,
    )
