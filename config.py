"""
Report Engine Configuration

Environment-backed settings for the inspection report engine. Values are read once
at import time; the compute core only ever sees the resolved ``EngineSettings``
snapshot produced by :meth:`ReportEngineConfig.engine_settings`.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class EngineSettings:
    """Resolved estimation and tariff defaults passed into the compute engines."""

    tariff_rate_c_per_kwh: float = 40.0
    tariff_supply_c_per_day: float = 120.0
    avg_factor_low: float = 0.25
    avg_factor_typ: float = 0.35
    nominal_voltage_v: float = 230.0


class ReportEngineConfig:
    """Runtime configuration used across the report engine."""

    # Tariff defaults (cents) used when the customer supplies none
    ENERGY_RATE_C_PER_KWH = float(os.getenv("ENERGY_RATE_C_PER_KWH", "40"))
    ENERGY_SUPPLY_C_PER_DAY = float(os.getenv("ENERGY_SUPPLY_C_PER_DAY", "120"))

    # Average-load utilisation factors applied to peak kW
    ENERGY_AVG_FACTOR_LOW = float(os.getenv("ENERGY_AVG_FACTOR_LOW", "0.25"))
    ENERGY_AVG_FACTOR_TYP = float(os.getenv("ENERGY_AVG_FACTOR_TYP", "0.35"))
    NOMINAL_VOLTAGE_V = float(os.getenv("REPORT_NOMINAL_VOLTAGE_V", "230"))

    # Injection and telemetry
    INJECTION_MODE = os.getenv("REPORT_INJECTION_MODE", "legacy")
    INJECTION_MODES: List[str] = ["legacy", "merged_what_this_means", "merged_exec+wtm", "merged_all"]
    TELEMETRY_ENABLED = _env_bool("REPORT_TELEMETRY_ENABLED", "true")

    # Photo evidence links
    PHOTO_BASE_URL: Optional[str] = os.getenv("PHOTO_BASE_URL") or None
    PHOTO_SIGNING_SECRET: Optional[str] = os.getenv("PHOTO_SIGNING_SECRET") or None
    PHOTO_LINK_TTL_SECONDS = int(os.getenv("PHOTO_LINK_TTL_SECONDS", str(7 * 86400)))

    DENSITY_CAPS: Dict[str, int] = {"compact": 8, "standard": 16, "detailed": 24}
    DEFAULT_DENSITY = "standard"
    DEFAULT_PROFILE = "investor"

    @classmethod
    def engine_settings(cls) -> EngineSettings:
        return _resolve_engine_settings(
            cls.ENERGY_RATE_C_PER_KWH,
            cls.ENERGY_SUPPLY_C_PER_DAY,
            cls.ENERGY_AVG_FACTOR_LOW,
            cls.ENERGY_AVG_FACTOR_TYP,
            cls.NOMINAL_VOLTAGE_V,
        )

    @classmethod
    def density_cap(cls, density: Optional[str]) -> int:
        return cls.DENSITY_CAPS.get(density or cls.DEFAULT_DENSITY, cls.DENSITY_CAPS[cls.DEFAULT_DENSITY])


@lru_cache(maxsize=8)
def _resolve_engine_settings(
    rate: float, supply: float, factor_low: float, factor_typ: float, voltage: float
) -> EngineSettings:
    # Non-positive overrides fall back to the shipped defaults
    defaults = EngineSettings()
    return EngineSettings(
        tariff_rate_c_per_kwh=rate if rate > 0 else defaults.tariff_rate_c_per_kwh,
        tariff_supply_c_per_day=supply if supply >= 0 else defaults.tariff_supply_c_per_day,
        avg_factor_low=factor_low if factor_low > 0 else defaults.avg_factor_low,
        avg_factor_typ=factor_typ if factor_typ > 0 else defaults.avg_factor_typ,
        nominal_voltage_v=voltage if voltage > 0 else defaults.nominal_voltage_v,
    )
