"""Lifecycle indicators normalised from free-text and declared fields."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from models import Coverage

from .accessor import TreeAccessor, get_by_path, unwrap_value

AGE_BAND_PATHS = ["job.property_age_band", "property.age_band", "property.age", "lifecycle.property_age_band"]
SWITCHBOARD_PATHS = ["switchboard.type", "electrical.switchboard.type", "lifecycle.switchboard_type"]
RCD_PATHS = ["test_data.rcd_tests.coverage", "rcd_coverage", "lifecycle.rcd_coverage"]
THERMAL_PATHS = ["visible_thermal_stress", "lifecycle.visible_thermal_stress", "test_data.thermal.visible_stress"]
MIXED_WIRING_PATHS = [
    "mixed_wiring_indicators",
    "lifecycle.mixed_wiring_indicators",
    "electrical.mixed_wiring_indicators",
]
PHOTO_REF_PATHS = [
    "lifecycle.evidence_refs",
    "lifecycle.photo_ids",
    "photo_ids",
    "test_data.lifecycle.photo_ids",
]
MAX_PHOTO_REFS = 8

AGE_BAND_RULES: List[Tuple[str, re.Pattern]] = [
    ("pre-1970", re.compile(r"pre[-\s]?1970|before[-\s]?1970")),
    ("1970-1990", re.compile(r"1970.*1990|70s|80s")),
    ("1990-2010", re.compile(r"1990.*2010|90s|2000")),
    ("post-2010", re.compile(r"post[-\s]?2010|after[-\s]?2010|2010\+")),
]
SWITCHBOARD_RULES: List[Tuple[str, re.Pattern]] = [
    ("ceramic_fuse", re.compile(r"(ceramic|porcelain).*fuse")),
    ("rewireable_fuse", re.compile(r"rewireable.*fuse|rewirable.*fuse|wireable.*fuse")),
    ("old_cb", re.compile(r"old.*cb|older.*breaker|legacy.*cb")),
    ("modern_rcbo", re.compile(r"rcbo|modern.*board|modern.*switchboard")),
]
RCD_RULES: List[Tuple[str, re.Pattern]] = [
    ("full", re.compile(r"full|all.*covered|complete")),
    ("partial", re.compile(r"partial|some.*covered")),
    ("none", re.compile(r"none|no.*rcd|without.*rcd")),
]
TRUE_RE = re.compile(r"^(true|yes|1|present|observed)$", re.IGNORECASE)
FALSE_RE = re.compile(r"^(false|no|0|none|not observed)$", re.IGNORECASE)

LEGACY_FUSE_TYPES = {"ceramic_fuse", "rewireable_fuse"}
LEGACY_SWITCHBOARD_TYPES = LEGACY_FUSE_TYPES | {"old_cb"}
AGING_BANDS = {"pre-1970", "1970-1990"}


def _classify(text: Optional[str], rules: List[Tuple[str, re.Pattern]]) -> str:
    lowered = (text or "").strip().lower()
    for label, pattern in rules:
        if pattern.search(lowered):
            return label
    return "unknown"


def normalize_age_band(text: Optional[str]) -> str:
    return _classify(text, AGE_BAND_RULES)


def normalize_switchboard_type(text: Optional[str]) -> str:
    return _classify(text, SWITCHBOARD_RULES)


def normalize_rcd_coverage(text: Optional[str]) -> str:
    return _classify(text, RCD_RULES)


def normalize_flag(text: Optional[str]) -> Optional[bool]:
    if not text:
        return None
    if TRUE_RE.match(text):
        return True
    if FALSE_RE.match(text):
        return False
    return None


def _collect_photo_refs(raw: Any) -> List[str]:
    refs: List[str] = []
    for path in PHOTO_REF_PATHS:
        node = get_by_path(raw, path)
        items = node if isinstance(node, list) else [unwrap_value(node)]
        for item in items:
            if isinstance(item, str) and item.strip() and item.strip() not in refs:
                refs.append(item.strip())
    return refs[:MAX_PHOTO_REFS]


@dataclass
class LifecycleSignals:
    property_age_band: str = "unknown"
    switchboard_type: str = "unknown"
    rcd_coverage: str = "unknown"
    visible_thermal_stress: Optional[bool] = None
    mixed_wiring_indicators: Optional[bool] = None
    evidence_refs: List[str] = field(default_factory=list)
    coverage: Coverage = "unknown"
    sources: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def meaningful(self) -> bool:
        return (
            self.property_age_band != "unknown"
            or self.switchboard_type != "unknown"
            or bool(self.evidence_refs)
        )

    @property
    def insufficient_evidence(self) -> bool:
        return not self.meaningful

    @property
    def legacy_fuse_board(self) -> bool:
        return self.switchboard_type in LEGACY_FUSE_TYPES

    @property
    def rcd_gap(self) -> bool:
        return self.rcd_coverage in {"none", "partial"}


def _lifecycle_coverage(signals: LifecycleSignals) -> Coverage:
    if not signals.meaningful:
        return "unknown"
    observed = [
        signals.switchboard_type != "unknown",
        signals.visible_thermal_stress is not None,
        signals.mixed_wiring_indicators is not None,
        bool(signals.evidence_refs),
    ]
    if any(observed):
        return "observed"
    if signals.property_age_band != "unknown" or signals.rcd_coverage != "unknown":
        return "declared"
    return "unknown"


def extract_lifecycle_signals(raw: Any) -> LifecycleSignals:
    tree = TreeAccessor(raw)
    age = tree.pick_text(AGE_BAND_PATHS)
    switchboard = tree.pick_text(SWITCHBOARD_PATHS)
    rcd = tree.pick_text(RCD_PATHS)
    thermal = tree.pick_text(THERMAL_PATHS)
    mixed = tree.pick_text(MIXED_WIRING_PATHS)

    signals = LifecycleSignals(
        property_age_band=normalize_age_band(age.value),
        switchboard_type=normalize_switchboard_type(switchboard.value),
        rcd_coverage=normalize_rcd_coverage(rcd.value),
        visible_thermal_stress=normalize_flag(thermal.value),
        mixed_wiring_indicators=normalize_flag(mixed.value),
        evidence_refs=_collect_photo_refs(tree.raw),
        sources={
            name: [picked.path]
            for name, picked in (
                ("property_age_band", age),
                ("switchboard_type", switchboard),
                ("rcd_coverage", rcd),
                ("visible_thermal_stress", thermal),
                ("mixed_wiring_indicators", mixed),
            )
            if picked.found
        },
    )
    signals.coverage = _lifecycle_coverage(signals)
    return signals
