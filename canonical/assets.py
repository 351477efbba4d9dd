"""Distributed energy assets (solar, battery, EV charging) and declared upgrade intent."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models import Coverage

from .accessor import TreeAccessor, to_text
from .coverage import reduce_coverage

SOLAR_PATHS = [
    "assets_energy.hasSolar",
    "assets_energy.has_solar",
    "snapshot_intake.hasSolar",
    "loads.solar",
    "job.solar",
    "solar_present",
]
BATTERY_PATHS = [
    "assets_energy.hasBattery",
    "assets_energy.has_battery",
    "snapshot_intake.hasBattery",
    "loads.battery",
    "job.battery",
    "battery_present",
]
EV_PATHS = [
    "assets_energy.hasEv",
    "assets_energy.has_ev",
    "snapshot_intake.hasEv",
    "loads.ev_charger",
    "job.ev",
    "ev_charger_present",
]
PRIMARY_GOAL_PATHS = ["snapshot_intake.primaryGoal", "snapshot.primaryGoal", "snapshot.focus"]
UPGRADE_GOAL_RE = re.compile(r"plan_upgrade|upgrade|(?<![a-z])ev(?![a-z])")


@dataclass
class AssetsEnergySignals:
    has_solar: Optional[bool] = None
    has_battery: Optional[bool] = None
    has_ev: Optional[bool] = None
    primary_goal: str = ""
    coverage: Coverage = "unknown"
    sources: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def has_any_asset(self) -> bool:
        return any(flag is True for flag in (self.has_solar, self.has_battery, self.has_ev))

    @property
    def planned_upgrade(self) -> bool:
        return bool(UPGRADE_GOAL_RE.search(self.primary_goal))

    @property
    def insufficient_evidence(self) -> bool:
        return not self.sources

    def source_refs(self) -> List[str]:
        return [path for paths in self.sources.values() for path in paths]


def extract_assets_energy(raw: Any) -> AssetsEnergySignals:
    tree = TreeAccessor(raw)
    solar = tree.pick_bool(SOLAR_PATHS)
    battery = tree.pick_bool(BATTERY_PATHS)
    ev = tree.pick_bool(EV_PATHS)
    goal = tree.pick_text(PRIMARY_GOAL_PATHS)

    sources = {
        name: [picked.path]
        for name, picked in (("has_solar", solar), ("has_battery", battery), ("has_ev", ev))
        if picked.found
    }
    return AssetsEnergySignals(
        has_solar=solar.value,
        has_battery=battery.value,
        has_ev=ev.value,
        primary_goal=to_text(goal.value).lower(),
        coverage=reduce_coverage(path for paths in sources.values() for path in paths),
        sources=sources,
    )
