"""Canonical signal extraction from raw inspection records."""

from .accessor import PathValue, TreeAccessor, get_by_path, pick_first, to_boolean, to_number, unwrap_value
from .assets import AssetsEnergySignals, extract_assets_energy
from .baseline import BaselineLoadSignals, extract_baseline_load_signals
from .circuits import CircuitReading, EnhancedCircuitsSignals, extract_enhanced_circuits
from .coverage import classify_path, reduce_coverage
from .lifecycle import LifecycleSignals, extract_lifecycle_signals

__all__ = [
    "AssetsEnergySignals",
    "BaselineLoadSignals",
    "CircuitReading",
    "EnhancedCircuitsSignals",
    "LifecycleSignals",
    "PathValue",
    "TreeAccessor",
    "classify_path",
    "extract_assets_energy",
    "extract_baseline_load_signals",
    "extract_enhanced_circuits",
    "extract_lifecycle_signals",
    "get_by_path",
    "pick_first",
    "reduce_coverage",
    "to_boolean",
    "to_number",
    "unwrap_value",
]
