"""Per-circuit load readings and customer tariff inputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from models import Coverage

from .accessor import TreeAccessor, to_number, to_text, unwrap_value
from .coverage import classify_path, reduce_coverage

CIRCUIT_LIST_PATHS = ["energy_v2.circuits", "stress_test.circuits", "energy.stress_test.circuits", "circuits"]
TARIFF_RATE_PATHS = [
    "energy_v2.tariff.rate_c_per_kwh",
    "tariffs.rate_c_per_kwh",
    "energy.tariffs.rate_c_per_kwh",
    "snapshot_intake.tariffs.rate_c_per_kwh",
]
TARIFF_SUPPLY_PATHS = [
    "energy_v2.tariff.supply_c_per_day",
    "tariffs.supply_c_per_day",
    "energy.tariffs.supply_c_per_day",
    "snapshot_intake.tariffs.supply_c_per_day",
]
UNKNOWN_HIGH_DRAW_PATHS = ["energy_v2.unknownHighDraw", "unknown_high_draw", "unknownHighDraw"]


@dataclass
class CircuitReading:
    label: str
    measured_current_a: float
    category: Optional[str] = None
    evidence_coverage: Coverage = "unknown"


@dataclass
class EnhancedCircuitsSignals:
    circuits: List[CircuitReading] = field(default_factory=list)
    tariff_rate_c_per_kwh: Optional[float] = None
    tariff_supply_c_per_day: Optional[float] = None
    unknown_high_draw: bool = False
    coverage: Coverage = "unknown"
    sources: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def has_customer_tariff(self) -> bool:
        return self.tariff_rate_c_per_kwh is not None or self.tariff_supply_c_per_day is not None

    @property
    def insufficient_evidence(self) -> bool:
        return not self.circuits and not self.has_customer_tariff and not self.unknown_high_draw

    def source_refs(self) -> List[str]:
        return [path for key in ("circuits", "tariff_rate", "tariff_supply") for path in self.sources.get(key, [])]


def _field(row: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if row.get(name) is not None:
            return unwrap_value(row.get(name))
    return None


def _parse_circuits(rows: List[Any], path: str) -> List[CircuitReading]:
    coverage = classify_path(path)
    circuits: List[CircuitReading] = []
    for idx, item in enumerate(rows):
        row = item if isinstance(item, Mapping) else {}
        current = to_number(_field(row, "measuredCurrentA", "currentA", "current", "amps"))
        if current is None:
            continue
        label = to_text(_field(row, "label", "name", "circuit")) or f"Circuit {idx + 1}"
        category = to_text(_field(row, "category", "group")).lower() or None
        circuits.append(CircuitReading(label=label, measured_current_a=current, category=category, evidence_coverage=coverage))
    return circuits


def _has_unknown_high_draw(tree: TreeAccessor) -> bool:
    for path in UNKNOWN_HIGH_DRAW_PATHS:
        if to_text(tree.get(path)).lower() in {"true", "yes"}:
            return True
    return False


def extract_enhanced_circuits(raw: Any) -> EnhancedCircuitsSignals:
    tree = TreeAccessor(raw)
    sources: Dict[str, List[str]] = {}

    circuits: List[CircuitReading] = []
    for path in CIRCUIT_LIST_PATHS:
        candidate = tree.first_list([path])
        if not candidate.found:
            continue
        circuits = _parse_circuits(candidate.value, path)
        if circuits:
            sources["circuits"] = [path]
            break

    rate = tree.pick_number(TARIFF_RATE_PATHS)
    supply = tree.pick_number(TARIFF_SUPPLY_PATHS)
    if rate.found:
        sources["tariff_rate"] = [rate.path]
    if supply.found:
        sources["tariff_supply"] = [supply.path]

    return EnhancedCircuitsSignals(
        circuits=circuits,
        tariff_rate_c_per_kwh=rate.value,
        tariff_supply_c_per_day=supply.value,
        unknown_high_draw=_has_unknown_high_draw(tree),
        coverage=reduce_coverage(path for paths in sources.values() for path in paths),
        sources=sources,
    )
