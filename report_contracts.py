import re
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import BaseModel

FINDINGS_MARKER_TOKEN = "SENTINEL_FINDINGS_V1"
FINDINGS_MARKER = f"<!-- {FINDINGS_MARKER_TOKEN} -->"
NO_FINDINGS_TEXT = "No findings were identified during this assessment."
FINDING_SECTION_HEADINGS = [
    "Asset Component",
    "Observed Condition",
    "Evidence",
    "Risk Interpretation",
    "Priority Classification",
    "Budgetary Planning Range",
]

UNDEFINED_RE = re.compile(r"\bundefined\b", re.IGNORECASE)
TABLE_SEPARATOR_RE = re.compile(r"\|[-—]{3,}\|")
CONTRIBUTION_FORBIDDEN = [
    (UNDEFINED_RE, "undefined"),
    (re.compile(r"\bnull\b", re.IGNORECASE), "null"),
    (re.compile(r"\bnan\b", re.IGNORECASE), "NaN"),
    (re.compile(r"\{\{|\}\}"), "template placeholder"),
    (re.compile(r"<h2", re.IGNORECASE), "<h2> markup"),
    (re.compile(re.escape(FINDINGS_MARKER_TOKEN)), "findings marker"),
    (TABLE_SEPARATOR_RE, "markdown table separator"),
    (re.compile(r"###"), "markdown heading"),
]
CAPEX_ROW_RE = re.compile(r"^\|\s*[^|]+?\s*\|\s*[^|]+?\s*\|\s*[^|]+?\s*\|$")
PENDING_COST_RE = re.compile(r"\|\s*Pending\s*\|", re.IGNORECASE)
BULLET_PREFIXES = ("• ", "- ")

IF_NOT_ADDRESSED_RE = re.compile(r"if.*not.*addressed|if.*left.*unresolved|if.*deferred|if.*not.*remedied", re.IGNORECASE)
MANAGEABLE_RISK_RE = re.compile(r"why not immediate|manageable risk|not emergency|manageable.*not emergency", re.IGNORECASE)
PHOTO_REF_RE = re.compile(r"Photo P\d+", re.IGNORECASE)

REQUIRED_REPORT_FIELDS = [
    "INSPECTION_ID",
    "ASSESSMENT_DATE",
    "PREPARED_FOR",
    "PREPARED_BY",
    "PROPERTY_ADDRESS",
    "PROPERTY_TYPE",
    "ASSESSMENT_PURPOSE",
    "OVERALL_STATUS",
    "OVERALL_STATUS_BADGE",
    "EXECUTIVE_DECISION_SIGNALS",
    "CAPEX_SNAPSHOT",
    "PRIORITY_TABLE_ROWS",
    "SCOPE_SECTION",
    "LIMITATIONS_SECTION",
    "FINDING_PAGES_HTML",
    "THERMAL_SECTION",
    "CAPEX_TABLE_ROWS",
    "CAPEX_DISCLAIMER_LINE",
    "DECISION_PATHWAYS",
    "TERMS_AND_CONDITIONS",
    "TEST_DATA_SECTION",
    "TECHNICAL_NOTES",
    "CLOSING_STATEMENT",
]


class ReportEngineError(Exception):
    """Base error for the report engine."""


class ContractFailure(BaseModel):
    rule: str
    field: Optional[str] = None
    message: str

    def describe(self) -> str:
        prefix = f"{self.field}: " if self.field else ""
        return f"[{self.rule}] {prefix}{self.message}"


class ReportContractError(ReportEngineError):
    """A final report violates the renderer contract; delivery must be blocked."""

    def __init__(self, failures: List[ContractFailure]):
        self.failures = list(failures)
        lines = "\n".join(f"  {failure.describe()}" for failure in self.failures)
        super().__init__(
            f"Report contract failed ({len(self.failures)} rule(s)):\n{lines}\n\nFix data/config and retry."
        )


def lint_contribution_text(text: str) -> List[str]:
    """Return forbidden tokens or reserved markup found in one contribution text."""
    errors: List[str] = []
    if not isinstance(text, str) or not text.strip():
        return ["contribution text must be a non-empty string"]
    for pattern, label in CONTRIBUTION_FORBIDDEN:
        if pattern.search(text):
            errors.append(f"contains forbidden token: {label}")
    return errors


def lint_bullet_block(block: str) -> List[str]:
    errors: List[str] = []
    lines = [line for line in (block or "").split("\n") if line.strip()]
    if not lines:
        return ["bullet block is empty"]
    for idx, line in enumerate(lines):
        if not line.startswith(BULLET_PREFIXES):
            errors.append(f"line {idx + 1} is not a bullet")
        for message in lint_contribution_text(line):
            errors.append(f"line {idx + 1} {message}")
    return errors


def lint_capex_rows_markdown(rows_markdown: str) -> List[str]:
    errors: List[str] = []
    lines = [line for line in (rows_markdown or "").split("\n") if line.strip()]
    if not lines:
        return ["capex rows are empty"]
    for idx, line in enumerate(lines):
        if TABLE_SEPARATOR_RE.search(line.replace(" ", "")):
            errors.append(f"row {idx + 1} is a table separator")
        elif not CAPEX_ROW_RE.match(line.strip()):
            errors.append(f"row {idx + 1} is not a three-column table row")
        if PENDING_COST_RE.search(line):
            errors.append(f"row {idx + 1} uses Pending instead of a banded range")
        if UNDEFINED_RE.search(line) or "{{" in line or "}}" in line:
            errors.append(f"row {idx + 1} contains a placeholder token")
    return errors


def validate_finding_pages_html(html: str, expected_count: int) -> List[str]:
    """Return structural violations for merged finding pages HTML."""

    errors: List[str] = []
    marker_count = html.count(FINDINGS_MARKER_TOKEN)
    if marker_count == 0:
        errors.append(f"missing {FINDINGS_MARKER_TOKEN}")
    elif marker_count > 1:
        errors.append(f"{FINDINGS_MARKER_TOKEN} appears {marker_count} times")
    for heading in FINDING_SECTION_HEADINGS:
        tag = f"<h4>{heading}</h4>"
        count = html.count(tag)
        if count < expected_count:
            errors.append(f"missing heading count for {tag}: got {count}, expected >= {expected_count}")
    if UNDEFINED_RE.search(html):
        errors.append("contains forbidden token: undefined")
    if TABLE_SEPARATOR_RE.search(html):
        errors.append("contains markdown table separator leakage")
    if "###" in html:
        errors.append("contains markdown heading leakage")
    if re.search(r"<h2", html, re.IGNORECASE):
        errors.append("contains forbidden <h2> in finding block html")
    if "{{" in html or "}}" in html:
        errors.append("contains template placeholder")
    return errors


def _forbidden_value(value: str) -> Optional[str]:
    lower = value.lower().strip()
    if "{{" in value or "}}" in value:
        return "{{ or }}"
    if UNDEFINED_RE.search(value) or lower == "null" or re.search(r"\bnan\b", lower):
        return "undefined/null/nan"
    if lower in {"pending", "to be confirmed", "tbc"}:
        return lower
    return None


def _evidence_sections(html: str) -> Iterable[str]:
    parts = re.split(r"<h4>Evidence</h4>", html, flags=re.IGNORECASE)
    for part in parts[1:]:
        yield re.split(r"<h4>", part, maxsplit=1)[0]


def check_evidence_structure(html: str, failures: List[ContractFailure]) -> None:
    if not html or not html.strip():
        failures.append(ContractFailure(rule="evidence_structure", field="FINDING_PAGES_HTML",
                                        message="Finding pages HTML is empty"))
        return
    if NO_FINDINGS_TEXT in html:
        return
    lower = html.lower()
    evidence_idx = lower.find("<h4>evidence</h4>")
    if evidence_idx < 0:
        failures.append(ContractFailure(rule="evidence_structure",
                                        message="Evidence section is missing in finding pages"))
        return
    observed_idx = lower.find("<h4>observed condition</h4>")
    risk_idx = lower.find("<h4>risk interpretation</h4>")
    if 0 <= evidence_idx < observed_idx:
        failures.append(ContractFailure(rule="evidence_structure",
                                        message="Evidence must appear after Observed Condition, not before"))
    if 0 <= risk_idx < evidence_idx:
        failures.append(ContractFailure(rule="evidence_structure",
                                        message="Evidence must appear before Risk Interpretation, not after"))
    for idx, section in enumerate(_evidence_sections(html), start=1):
        content = re.sub(r"<[^>]+>", " ", section).replace("&nbsp;", " ").strip()
        if not content or content.lower() == "undefined":
            failures.append(ContractFailure(rule="evidence_structure",
                                            message=f"Evidence section {idx} has empty or undefined content"))
        if PHOTO_REF_RE.search(section) and not re.search(r"<a\s+href=[\"']", section):
            failures.append(ContractFailure(
                rule="evidence_structure",
                message=f"Evidence section {idx} references a photo without a clickable link",
            ))


def collect_report_failures(report: Mapping[str, Any]) -> List[ContractFailure]:
    failures: List[ContractFailure] = []

    for key in REQUIRED_REPORT_FIELDS:
        value = report.get(key)
        if value is None:
            failures.append(ContractFailure(rule="required_field", field=key, message=f"Missing required field: {key}"))
            continue
        text = str(value).strip()
        if not text:
            failures.append(ContractFailure(rule="required_field", field=key, message=f"Empty required field: {key}"))
            continue
        forbidden = _forbidden_value(text)
        if forbidden:
            failures.append(ContractFailure(rule="forbidden_value", field=key,
                                            message=f"Field {key} contains forbidden value: {forbidden}"))

    signals = str(report.get("EXECUTIVE_DECISION_SIGNALS") or "")
    if signals:
        bullets = [line for line in signals.split("\n") if line.strip().startswith(("•", "-"))]
        if len(bullets) < 3:
            failures.append(ContractFailure(rule="executive_signals", field="EXECUTIVE_DECISION_SIGNALS",
                                            message=f"Must contain at least 3 bullet points (found {len(bullets)})"))
        if not IF_NOT_ADDRESSED_RE.search(signals):
            failures.append(ContractFailure(rule="executive_signals", field="EXECUTIVE_DECISION_SIGNALS",
                                            message="Must include 'if not addressed' (or equivalent)"))
        if not MANAGEABLE_RISK_RE.search(signals):
            failures.append(ContractFailure(rule="executive_signals", field="EXECUTIVE_DECISION_SIGNALS",
                                            message="Must include 'manageable risk, not emergency' (or equivalent)"))

    finding_html = str(report.get("FINDING_PAGES_HTML") or "")
    if finding_html and NO_FINDINGS_TEXT not in finding_html:
        for heading in FINDING_SECTION_HEADINGS:
            if heading not in finding_html:
                failures.append(ContractFailure(rule="finding_page_structure",
                                                message=f"Finding pages missing heading: {heading}"))
                break
        lower = finding_html.lower()
        if "risk interpretation" in lower and "if not addressed" not in lower:
            failures.append(ContractFailure(rule="finding_page_structure",
                                            message="Risk Interpretation must include 'if not addressed'"))

    if PENDING_COST_RE.search(str(report.get("CAPEX_TABLE_ROWS") or "")):
        failures.append(ContractFailure(rule="capex_rows", field="CAPEX_TABLE_ROWS",
                                        message="CapEx rows must not contain Pending; use banded range"))

    check_evidence_structure(finding_html, failures)
    return failures


def assert_report_ready(report: Mapping[str, Any]) -> None:
    """Raise ReportContractError listing every violated rule, or return silently."""
    failures = collect_report_failures(report)
    if failures:
        raise ReportContractError(failures)
