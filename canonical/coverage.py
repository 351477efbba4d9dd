"""Evidence-coverage classification for source paths.

Rules are evaluated strictly in the order of ``COVERAGE_RULES``: the first class
whose pattern matches a path wins. A resolved path that matches no rule is treated
as ``observed``; when no path resolved at all the coverage is ``unknown``.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

from models import Coverage

COVERAGE_RULES: List[Tuple[Coverage, re.Pattern]] = [
    ("measured", re.compile(r"measured|stress_test|stress test|load_baseline|energy_v2", re.IGNORECASE)),
    ("observed", re.compile(r"observed|inspection|(?:^|\.)snapshot(?:\.|$)", re.IGNORECASE)),
    (
        "declared",
        re.compile(r"(?:^|\.)(?:job|loads|client|lead)\.|assets_|snapshot_intake|_present\b", re.IGNORECASE),
    ),
]
DEFAULT_RESOLVED_COVERAGE: Coverage = "observed"
COVERAGE_RANK = {"measured": 0, "observed": 1, "declared": 2, "unknown": 3}


def classify_path(path: Optional[str]) -> Coverage:
    if not path:
        return "unknown"
    for coverage, pattern in COVERAGE_RULES:
        if pattern.search(path):
            return coverage
    return DEFAULT_RESOLVED_COVERAGE


def strongest(classes: Iterable[Coverage]) -> Coverage:
    best: Coverage = "unknown"
    for item in classes:
        if COVERAGE_RANK[item] < COVERAGE_RANK[best]:
            best = item
    return best


def reduce_coverage(paths: Iterable[Optional[str]]) -> Coverage:
    """Most authoritative class among the contributing paths."""
    return strongest(classify_path(path) for path in paths if path)
