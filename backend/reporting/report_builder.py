"""
Render a ReportDocument to HTML.

The markup has three kinds of region, which the rasterizer relies on:
  .continuous-flow               header plus every flowing section, sliced across pages
  [data-section=<key>]           one wrapper per section; forced-break sections carry .forced-break
  .page                          discrete full-page regions, rasterized one by one
Galleries are only rendered into the HTML preview; the PDF draws them directly.
"""
from __future__ import annotations

import html
import re
from pathlib import Path
from typing import Any

from models import ImageGallery, ReportDocument, ReportSection

# Template path relative to this file
_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
_REPORT_HTML = (_TEMPLATE_DIR / "valuation_report.html").read_text(encoding="utf-8")
_PLACEHOLDER = re.compile(r"__[A-Z_]+__")

FLOW_SELECTOR = ".continuous-flow"
PAGE_SELECTOR = ".page"


def _escape(s: Any) -> str:
    return html.escape(str(s or ""), quote=True)


def _form_rows(section: ReportSection) -> str:
    out = [
        f'<tr class="section-title"><td class="row-num"></td><td class="label" colspan="2">{_escape(section.title)}</td></tr>'
    ] if section.title else []
    for row in section.rows:
        cls = ' class="heading"' if row.heading else ""
        out.append(
            f"<tr{cls}>"
            f'<td class="row-num">{_escape(row.index)}</td>'
            f'<td class="label">{_escape(row.label)}</td>'
            f'<td class="value">{_escape(row.value)}</td>'
            "</tr>"
        )
    return f'<table class="form-table">{"".join(out)}</table>'


def _items_rows(section: ReportSection) -> str:
    head = "".join(f"<th>{_escape(c)}</th>" for c in section.columns)
    out = [
        f'<tr class="section-title"><td colspan="{len(section.columns)}">{_escape(section.title)}</td></tr>',
        f"<tr>{head}</tr>",
    ]
    for row in section.rows:
        if row.heading:
            out.append(
                '<tr class="total">'
                f'<td class="num"></td><td class="desc" colspan="3">{_escape(row.label)}</td>'
                f'<td class="amount">{_escape(row.value)}</td></tr>'
            )
            continue
        out.append(
            "<tr>"
            f'<td class="num">{_escape(row.index)}</td>'
            f'<td class="desc">{_escape(row.label)}</td>'
            f'<td class="qty">{_escape(row.quantity)}</td>'
            f'<td class="rate">{_escape(row.rate)}</td>'
            f'<td class="amount">{_escape(row.value)}</td>'
            "</tr>"
        )
    return f'<table class="form-table items-table">{"".join(out)}</table>'


def _column_rows(section: ReportSection) -> str:
    head = "".join(f"<th>{_escape(c)}</th>" for c in section.columns)
    out = [f"<tr>{head}</tr>"]
    for row in section.rows:
        cells = [row.label, row.value] if len(section.columns) == 2 else [row.index, row.label, row.value]
        out.append("<tr>" + "".join(f"<td>{_escape(c)}</td>" for c in cells) + "</tr>")
    return f'<table class="form-table">{"".join(out)}</table>'


def _paragraphs(section: ReportSection) -> str:
    out = []
    for text in section.paragraphs:
        cls = ' class="subheading"' if text.rstrip().endswith(":") or text.rstrip().endswith("-") else ""
        out.append(f"<p{cls}>{_escape(text)}</p>")
    return "".join(out)


def _signature(document: ReportDocument) -> str:
    v = document.values
    lines = [f'<p class="signer">{_escape(v.get("signer"))}</p>', "<p>Signature of Approved Valuer</p>"]
    if v.get("designation"):
        lines.append(f"<p>{_escape(v['designation'])}</p>")
    if v.get("company"):
        lines.append(f"<p>{_escape(v['company'])}</p>")
    if v.get("registration_no"):
        lines.append(f"<p>{_escape(v['registration_no'])}</p>")
    return f'<div class="signature">{"".join(lines)}</div>'


def _section_body(section: ReportSection) -> str:
    if section.key == "valuation_details":
        return _items_rows(section)
    if section.columns:
        caption = f'<p class="section-caption">{_escape(section.title)}</p>' if section.title else ""
        return caption + _column_rows(section)
    if section.key == "value_of_flat":
        return f'<p class="section-caption">{_escape(section.title)}</p>' + _form_rows(
            section.model_copy(update={"title": ""})
        )
    return _form_rows(section)


def _flow_section(section: ReportSection) -> str:
    classes = "report-section forced-break" if section.forced_break else "report-section"
    return f'<div class="{classes}" data-section="{_escape(section.key)}">{_section_body(section)}</div>'


def _discrete_page(section: ReportSection, document: ReportDocument) -> str:
    parts = []
    if section.title:
        parts.append(f'<p class="page-title">{_escape(section.title)}</p>')
    if section.columns:
        parts.append(_column_rows(section))
    parts.append(_paragraphs(section))
    if section.signature:
        parts.append(_signature(document))
    return f'<div class="page" data-section="{_escape(section.key)}">{"".join(parts)}</div>'


def _gallery(gallery: ImageGallery) -> str:
    parts = [f"<h2>{_escape(gallery.title)}</h2>"]
    for group in gallery.groups:
        if group.name:
            parts.append(f"<h3>{_escape(group.name)}</h3>")
        items = "".join(
            '<div class="image-container">'
            f'<p class="caption">{_escape(img.label)}</p>'
            f'<img class="pdf-image" src="{_escape(img.url)}" alt="{_escape(img.label)}">'
            "</div>"
            for img in group.images
        )
        parts.append(f'<div class="grid">{items}</div>')
    return f'<div class="gallery {gallery.layout}" data-gallery="{_escape(gallery.key)}">{"".join(parts)}</div>'


def build_report_html(document: ReportDocument, include_galleries: bool = True) -> str:
    """Fill the report template. include_galleries=False for the markup handed to the rasterizer."""
    addressee_html = "".join(f"<p>{_escape(line)}</p>" for line in document.addressee)
    flow_html = "\n".join(_flow_section(s) for s in document.flow_sections)
    pages_html = "\n".join(_discrete_page(s, document) for s in document.discrete_sections)
    galleries_html = "\n".join(_gallery(g) for g in document.galleries) if include_galleries else ""
    client = document.values.get("client_name") or document.values.get("unique_id") or ""
    doc_title = f"Valuation Report - {client}" if client else "Valuation Report"

    fills = {
        "__DOCUMENT_TITLE__": _escape(doc_title),
        "__REFERENCE_NO__": _escape(document.reference_no),
        "__REPORT_DATE__": _escape(document.report_date),
        "__ADDRESSEE_HTML__": addressee_html,
        "__REPORT_TITLE__": _escape(document.title),
        "__FLOW_SECTIONS_HTML__": flow_html,
        "__DISCRETE_PAGES_HTML__": pages_html,
        "__GALLERIES_HTML__": galleries_html,
    }
    # Single pass: placeholder text inside record values is left as typed.
    return _PLACEHOLDER.sub(lambda m: fills.get(m.group(0), m.group(0)), _REPORT_HTML)
