from __future__ import annotations

import re

from reporting.report_builder import build_report_html
from reporting.report_data import build_report_document
from services.field_resolver import resolve_record


def _document(**raw):
    return build_report_document(resolve_record(raw))


def test_template_placeholders_are_all_filled():
    html = build_report_html(_document(clientName="Asha Patil", referenceNo="SRD/24/117"))
    assert not re.search(r"__[A-Z_]+__", html)
    assert "SRD/24/117" in html
    assert "Valuation Report - Asha Patil" in html


def test_regions_for_rasterizer():
    html = build_report_html(_document(), include_galleries=False)
    assert html.count('<div class="continuous-flow">') == 1
    assert '<div class="report-section forced-break" data-section="valuation_details">' in html
    assert html.count('<div class="page" data-section=') == 5
    assert "data-gallery=" not in html


def test_values_are_escaped():
    html = build_report_html(_document(clientName="<script>alert(1)</script>", branch="A & B"))
    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html
    assert "A &amp; B" in html


def test_galleries_in_preview_only():
    doc = _document(propertyImages=[{"url": "https://cdn.example.com/1.jpg"}])
    preview = build_report_html(doc, include_galleries=True)
    assert 'data-gallery="property"' in preview
    assert 'src="https://cdn.example.com/1.jpg"' in preview
    assert "data-gallery=" not in build_report_html(doc, include_galleries=False)


def test_declaration_subheading_and_signature():
    html = build_report_html(_document(valuersName="R. K. Joshi"))
    assert '<p class="subheading">I hereby declare that-</p>' in html
    assert '<p class="signer">R. K. Joshi</p>' in html


def test_placeholder_text_in_record_values_is_not_expanded():
    doc = _document(referenceNo="__GALLERIES_HTML__", propertyImages=["https://cdn.example.com/1.jpg"])
    html = build_report_html(doc, include_galleries=True)
    assert "Ref. No.: __GALLERIES_HTML__" in html
    assert html.count('data-gallery="property"') == 1
