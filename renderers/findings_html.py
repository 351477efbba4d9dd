"""Finding pages HTML built from merged finding blocks."""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Optional, Sequence

from markupsafe import Markup

from models import FindingBlock
from photo_links import sign_photo_url
from priority_resolution import priority_rank
from report_contracts import FINDINGS_MARKER, NO_FINDINGS_TEXT

from .base import BaseRenderer
from .templates import EVIDENCE_LINKS_TEMPLATE, FINDING_PAGE_TEMPLATE, render_markdown_text, render_paragraphs

logger = logging.getLogger(__name__)

PhotoSigner = Callable[[str, str, str, Optional[str]], str]

PRIORITY_LABELS = {
    1: "🔴 Urgent Liability Risk",
    2: "🟡 Budgetary Provision Recommended",
}
DEFAULT_PRIORITY_LABEL = "🟢 Acceptable"
DEFAULT_BUDGET = "TBD (site dependent)"
DEFAULT_RISK = "This condition may affect reliability and planning confidence over time."
CONSEQUENCE_LINE = "If not addressed, this item is likely to carry forward into future planning and compliance reviews."
NO_EVIDENCE_TEXT = "No photographic evidence captured at time of assessment."
_UNDEFINED_RE = re.compile(r"\bundefined\b", re.IGNORECASE)


def priority_label(priority: Optional[str]) -> str:
    return PRIORITY_LABELS.get(priority_rank(priority), DEFAULT_PRIORITY_LABEL)


def _scrub(html: str) -> str:
    return _UNDEFINED_RE.sub("unknown", html)


def render_evidence(
    finding: FindingBlock,
    inspection_id: Optional[str],
    base_url: Optional[str],
    signing_secret: Optional[str] = None,
    signer: Optional[PhotoSigner] = None,
) -> str:
    sign = signer or sign_photo_url
    parts: List[str] = []
    if finding.photos:
        items: List[Dict[str, Optional[str]]] = []
        for ref in finding.photos:
            url = None
            if inspection_id and base_url:
                try:
                    url = sign(inspection_id, ref, base_url, signing_secret)
                except Exception as exc:
                    logger.warning("Photo link unavailable for %s/%s: %s", inspection_id, ref, exc)
            items.append({"ref": ref, "url": url})
        parts.append(EVIDENCE_LINKS_TEMPLATE.render(items=items))

    other_refs = [ref for ref in finding.evidence_refs if ref not in finding.photos]
    if other_refs:
        parts.append(render_paragraphs(f"Evidence references: {', '.join(other_refs)}"))
    if not parts:
        parts.append(render_paragraphs(NO_EVIDENCE_TEXT))
    return "\n".join(parts)


def render_finding_page(
    finding: FindingBlock,
    index: int,
    inspection_id: Optional[str] = None,
    base_url: Optional[str] = None,
    signing_secret: Optional[str] = None,
    signer: Optional[PhotoSigner] = None,
) -> str:
    title = finding.title.strip() or finding.id or f"Finding {index + 1}"
    observed = finding.html.strip() or render_paragraphs(f"Module signal observed for {title}.")
    return FINDING_PAGE_TEMPLATE.render(
        index=index,
        module_id=finding.module_id,
        title=title,
        asset_component=finding.asset_component or title,
        observed_html=Markup(_scrub(observed)),
        evidence_html=Markup(render_evidence(finding, inspection_id, base_url, signing_secret, signer)),
        risk_html=render_markdown_text(finding.rationale.strip() or DEFAULT_RISK),
        consequence=CONSEQUENCE_LINE,
        priority_label=priority_label(finding.priority),
        budget=finding.budget_note or DEFAULT_BUDGET,
    )


def build_finding_pages_html(
    findings: Sequence[FindingBlock],
    inspection_id: Optional[str] = None,
    base_url: Optional[str] = None,
    signing_secret: Optional[str] = None,
    signer: Optional[PhotoSigner] = None,
) -> str:
    """Render merged findings in their incoming order under a single marker."""
    if not findings:
        return f"{FINDINGS_MARKER}\n<p>{NO_FINDINGS_TEXT}</p>"
    blocks = [
        render_finding_page(finding, idx, inspection_id, base_url, signing_secret, signer)
        for idx, finding in enumerate(findings)
    ]
    return _scrub(f"{FINDINGS_MARKER}\n" + "\n".join(blocks))


class FindingPagesRenderer(BaseRenderer):
    name = "findings_html"

    def render(self, findings: Sequence[FindingBlock], **options) -> str:
        return build_finding_pages_html(findings, **options)
