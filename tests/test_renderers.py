import pytest

from models import ContentContribution, FindingBlock
from renderers import available_renderers, get_renderer
from renderers.capex_rows import (
    compute_capex_snapshot,
    parse_markdown_row,
    parse_money_band,
    render_capex_rows_markdown,
    resolve_amount_band,
)
from renderers.findings_html import build_finding_pages_html, priority_label, render_evidence
from renderers.narrative import to_bullet_lines
from report_contracts import validate_finding_pages_html


def _row(text, **extra):
    return ContentContribution(key=text[:8] or "row", text=text, module_id="lifecycle", **extra)


def _finding(**extra):
    fields = dict(key="f1", id="F1", module_id="capacity", title="Main switch headroom")
    fields.update(extra)
    return FindingBlock(**fields)


def test_registry_aliases():
    assert get_renderer("finding_pages").name == "findings_html"
    assert get_renderer("CAPEX").name == "capex_rows"
    assert get_renderer("executive").bullet == "dot"
    assert get_renderer("what_this_means").bullet == "dash"
    assert "findings_html" in available_renderers()
    with pytest.raises(ValueError):
        get_renderer("slides")


def test_bullet_lines_strip_existing_bullets():
    assert to_bullet_lines(["- one", "• two", "* three", "", "four"]) == "- one\n- two\n- three\n- four"
    assert to_bullet_lines(["- one"], "dot") == "• one"


def test_money_band_parsing():
    assert parse_money_band("| Year 1 | Item | $1,800 - $6,800 |") == (1800.0, 6800.0, "AUD")
    assert parse_money_band("| Year 1 | Item | TBD |") is None


def test_amount_band_precedence():
    assert resolve_amount_band(_row("| Y1 | A | $100 - $200 |", amount_is_tbd=True)) is None
    assert resolve_amount_band(_row("| Y1 | A | $100 - $200 |", amount_low=500, amount_high=900)).low == 500
    assert resolve_amount_band(_row("| Y1 | A | $100 - $200 |", currency="NZD")).currency == "NZD"
    assert resolve_amount_band(_row("| Y1 | A | $100 - $200 |", amount_low=300)).high == 300


def test_capex_snapshot_sums_bands():
    rows = [
        _row("| Y1 | A | $1,000 - $2,000 |"),
        _row("| Y2 | B | Allowance |", amount_low=500.5, amount_high=1000),
        _row("| Y3 | C | TBD |"),
    ]
    assert compute_capex_snapshot(rows) == "AUD $1,500.50 - $3,000 (indicative, planning only)"
    assert compute_capex_snapshot([_row("| Y3 | C | TBD |")]) == "TBD (site dependent)"
    assert compute_capex_snapshot([]) == "TBD (site dependent)"


def test_capex_rows_markdown_normalizes_and_skips_invalid():
    rows = [_row("|Year 1|Switchboard| $100 - $200|"), _row("not a row"), _row("| only | two |")]
    assert render_capex_rows_markdown(rows) == "| Year 1 | Switchboard | $100 - $200 |"
    assert parse_markdown_row("| a | b | c | d |") == ("a", "b", "c")


def test_priority_labels():
    assert priority_label("IMMEDIATE").startswith("🔴")
    assert priority_label("RECOMMENDED_0_3_MONTHS").startswith("🟡")
    assert priority_label("PLAN_MONITOR") == "🟢 Acceptable"
    assert priority_label(None) == "🟢 Acceptable"


def test_finding_pages_structure():
    findings = [_finding(), _finding(key="f2", id="F2", title="Second", html="<p>Scorch marks</p>")]
    html = build_finding_pages_html(findings)
    assert html.startswith("<!-- SENTINEL_FINDINGS_V1 -->")
    assert html.count("<h4>Evidence</h4>") == 2
    assert "<p>Scorch marks</p>" in html
    assert "If not addressed" in html
    assert "TBD (site dependent)" in html
    assert validate_finding_pages_html(html, 2) == []


def test_finding_pages_preserve_incoming_order():
    findings = [_finding(key="b", id="B", title="Bravo"), _finding(key="a", id="A", title="Alpha")]
    html = build_finding_pages_html(findings)
    assert html.index("Bravo") < html.index("Alpha")


def test_empty_findings_placeholder():
    html = build_finding_pages_html([])
    assert "No findings were identified during this assessment." in html
    assert html.count("SENTINEL_FINDINGS_V1") == 1


def test_titles_are_escaped_and_undefined_scrubbed():
    html = build_finding_pages_html([_finding(title="<script>x</script>", html="<p>value undefined</p>")])
    assert "<script>" not in html
    assert "undefined" not in html
    assert "value unknown" in html


def test_evidence_without_photos_or_refs():
    assert "No photographic evidence captured" in render_evidence(_finding(), None, None)


def test_evidence_lists_non_photo_refs():
    html = render_evidence(_finding(evidence_refs=["load_baseline.voltageV"]), None, None)
    assert "Evidence references: load_baseline.voltageV" in html


def test_evidence_link_failure_falls_back_to_reference():
    def broken(*args):
        raise RuntimeError("signing service down")

    html = render_evidence(_finding(photos=["P7"]), "INS-9", "https://x.example", signer=broken)
    assert "Photo reference: P7 (Photo link unavailable)" in html
    assert "<a href" not in html


def test_evidence_signed_link():
    html = render_evidence(_finding(photos=["P2"]), "INS-9", "https://x.example", signing_secret="k")
    assert '<a href="https://x.example/api/inspectionPhoto?inspection_id=INS-9&amp;photo_id=P2&amp;expires=' in html
    assert "Photo P2:" in html
