"""Module compute engines."""

from .baseline_load import BaselineLoadMetrics, compute_baseline_metrics, run_baseline_load_engine
from .distributed_assets import run_distributed_assets_engine
from .enhanced_energy import run_enhanced_energy_engine
from .lifecycle import run_lifecycle_engine
from .safety import run_safety_engine

__all__ = [
    "BaselineLoadMetrics",
    "compute_baseline_metrics",
    "run_baseline_load_engine",
    "run_distributed_assets_engine",
    "run_enhanced_energy_engine",
    "run_lifecycle_engine",
    "run_safety_engine",
]
