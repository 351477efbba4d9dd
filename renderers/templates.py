"""Templating utilities for report fragments."""

from __future__ import annotations

from typing import Any, Iterable, Sequence

import markdown
from jinja2 import BaseLoader, Environment
from markupsafe import Markup, escape


def _nl2br(value: Any) -> Markup:
    return Markup("<br/>").join(escape(str(value)).split("\n"))


ENV = Environment(
    loader=BaseLoader(),
    autoescape=True,
    trim_blocks=True,
    lstrip_blocks=True,
    variable_start_string="[[",
    variable_end_string="]]",
)
ENV.filters["nl2br"] = _nl2br

TABLE_TEMPLATE = ENV.from_string(
    "<table><tr>{% for header in headers %}<th>[[ header ]]</th>{% endfor %}</tr>"
    "{% for row in rows %}<tr>{% for cell in row %}<td>[[ cell ]]</td>{% endfor %}</tr>{% endfor %}</table>"
)

PARAGRAPH_TEMPLATE = ENV.from_string("{% for line in lines %}<p>[[ line | nl2br ]]</p>{% endfor %}")

FINDING_PAGE_TEMPLATE = ENV.from_string(
    """<div style="page-break-before:always;"></div>
<h3 data-finding-index="[[ index ]]" data-module-id="[[ module_id ]]">[[ title ]]</h3>
<h4>Asset Component</h4>
<p>[[ asset_component | nl2br ]]</p>
<h4>Observed Condition</h4>
[[ observed_html ]]
<h4>Evidence</h4>
[[ evidence_html ]]
<h4>Risk Interpretation</h4>
[[ risk_html ]]
<p>[[ consequence ]]</p>
<h4>Priority Classification</h4>
<p>[[ priority_label ]]</p>
<h4>Budgetary Planning Range</h4>
<p>[[ budget ]]</p>"""
)

EVIDENCE_LINKS_TEMPLATE = ENV.from_string(
    "<ul>{% for item in items %}"
    "{% if item.url %}<li>Photo [[ item.ref ]]: <a href=\"[[ item.url ]]\">View photo</a></li>"
    "{% else %}<li>Photo reference: [[ item.ref ]] (Photo link unavailable)</li>{% endif %}"
    "{% endfor %}</ul>"
)


def render_table(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    return TABLE_TEMPLATE.render(headers=list(headers), rows=[list(row) for row in rows])


def render_paragraphs(*lines: str) -> str:
    return PARAGRAPH_TEMPLATE.render(lines=[line for line in lines if line])


def render_markdown_text(text: str) -> Markup:
    """Render short engine-authored prose (emphasis, line breaks) as HTML paragraphs."""
    return Markup(markdown.markdown(str(escape(text or "")), extensions=["nl2br"]))
