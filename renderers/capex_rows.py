"""CapEx table rows and the headline snapshot."""

from __future__ import annotations

import re
from typing import List, NamedTuple, Optional, Sequence

from models import ContentContribution

from .base import BaseRenderer

MONEY_BAND_RE = re.compile(r"\$\s*([0-9][0-9,]*)\s*-\s*\$\s*([0-9][0-9,]*)", re.IGNORECASE)
DEFAULT_CURRENCY = "AUD"
TBD_SNAPSHOT = "TBD (site dependent)"


class AmountBand(NamedTuple):
    low: float
    high: float
    currency: str


class CapexRow(NamedTuple):
    year: str
    item: str
    cost: str


def parse_money_band(text: str) -> Optional[AmountBand]:
    match = MONEY_BAND_RE.search(text or "")
    if not match:
        return None
    low = float(match.group(1).replace(",", ""))
    high = float(match.group(2).replace(",", ""))
    return AmountBand(low, high, DEFAULT_CURRENCY)


def resolve_amount_band(row: ContentContribution) -> Optional[AmountBand]:
    """Explicit amounts win over a ``$low - $high`` band parsed from the row text."""
    if row.amount_is_tbd:
        return None
    currency = row.currency or DEFAULT_CURRENCY
    if row.amount_low is not None or row.amount_high is not None:
        low = row.amount_low if row.amount_low is not None else 0.0
        high = row.amount_high if row.amount_high is not None else low
        return AmountBand(low, high, currency)
    parsed = parse_money_band(row.text)
    if parsed is None:
        return None
    return parsed._replace(currency=currency)


def _money(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def compute_capex_snapshot(rows: Sequence[ContentContribution]) -> str:
    bands = [band for band in (resolve_amount_band(row) for row in rows) if band is not None]
    if not bands:
        return TBD_SNAPSHOT
    low = sum(band.low for band in bands)
    high = sum(band.high for band in bands)
    return f"{bands[0].currency} ${_money(low)} - ${_money(high)} (indicative, planning only)"


def parse_markdown_row(text: str) -> Optional[CapexRow]:
    trimmed = (text or "").strip()
    if not trimmed.startswith("|"):
        return None
    parts = [part.strip() for part in trimmed.split("|") if part.strip()]
    if len(parts) < 3:
        return None
    return CapexRow(parts[0], parts[1], parts[2])


def render_capex_rows_markdown(rows: Sequence[ContentContribution]) -> str:
    parsed: List[CapexRow] = [r for r in (parse_markdown_row(row.text) for row in rows) if r is not None]
    return "\n".join(f"| {r.year} | {r.item} | {r.cost} |" for r in parsed)


class CapexRowsRenderer(BaseRenderer):
    name = "capex_rows"

    def render(self, items: Sequence[ContentContribution], **options) -> str:
        return render_capex_rows_markdown(items)
