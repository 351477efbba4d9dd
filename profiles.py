"""Report profiles and their module ordering.

Module rank is explicit per-profile data: the order in which modules' findings and
summary lines appear in the merged plan reflects what each audience cares about
first, and is independent of registry iteration order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from config import ReportEngineConfig

logger = logging.getLogger(__name__)

UNRANKED_MODULE = 99


@dataclass(frozen=True)
class ReportProfile:
    id: str
    name: str
    default_modules: Tuple[str, ...]
    module_rank: Tuple[str, ...]

    def rank_of(self, module_id: Optional[str]) -> int:
        if module_id in self.module_rank:
            return self.module_rank.index(module_id)
        return UNRANKED_MODULE


REPORT_PROFILES: Dict[str, ReportProfile] = {
    "investor": ReportProfile(
        id="investor",
        name="Investor",
        default_modules=("safety", "capacity"),
        module_rank=("safety", "capacity", "lifecycle", "energy"),
    ),
    "owner": ReportProfile(
        id="owner",
        name="Owner",
        default_modules=("safety", "capacity", "energy"),
        module_rank=("energy", "capacity", "safety", "lifecycle"),
    ),
    "tenant": ReportProfile(
        id="tenant",
        name="Tenant",
        default_modules=("safety", "capacity"),
        module_rank=("safety", "capacity", "lifecycle", "energy"),
    ),
}


def resolve_profile(profile_id: Optional[str]) -> ReportProfile:
    key = (profile_id or ReportEngineConfig.DEFAULT_PROFILE).strip().lower()
    profile = REPORT_PROFILES.get(key)
    if profile is None:
        logger.warning("Unknown report profile '%s'; using %s", profile_id, ReportEngineConfig.DEFAULT_PROFILE)
        profile = REPORT_PROFILES[ReportEngineConfig.DEFAULT_PROFILE]
    return profile


def available_profiles() -> List[str]:
    return list(REPORT_PROFILES)
