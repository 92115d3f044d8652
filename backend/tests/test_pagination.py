from __future__ import annotations

import logging

import numpy as np
import pytest
from PIL import Image, ImageDraw

from reporting.pagination import PaginationEngine, ScanState, forced_break_offsets

# 210 px wide bitmaps give exactly 1 px per mm: usable page height is 257 px.
WIDTH = 210


def _blank(height: int) -> Image.Image:
    return Image.new("RGB", (WIDTH, height), (255, 255, 255))


def _with_rules(height: int, rows) -> Image.Image:
    img = _blank(height)
    draw = ImageDraw.Draw(img)
    for y in rows:
        draw.line([(0, y), (WIDTH - 1, y)], fill=(0, 0, 0), width=1)
    return img


@pytest.mark.parametrize("y", [120, 200, 300, 470])
def test_no_page_spans_a_forced_break(y):
    pages = PaginationEngine().paginate(_blank(700), forced_breaks=[y])
    assert pages
    for page in pages:
        assert not (page.source_top < y < page.source_bottom)
    assert any(page.source_top == y for page in pages)


def test_forced_break_truncates_first_page():
    pages = PaginationEngine().paginate(_blank(600), forced_breaks=[200])
    assert [(p.source_top, p.image.height) for p in pages] == [(0, 200), (200, 257), (457, 143)]


def test_forced_break_at_page_top_adds_no_extra_page():
    pages = PaginationEngine().paginate(_blank(600), forced_breaks=[257])
    assert [p.source_top for p in pages] == [0, 257, 514]


def test_no_trailing_page_for_negligible_remainder():
    pages = PaginationEngine().paginate(_blank(257 + 4))
    assert len(pages) == 1
    assert pages[0].image.height == 257


def test_tiny_slices_are_not_emitted():
    pages = PaginationEngine().paginate(_blank(1))
    assert pages == []


def test_cut_moves_up_to_last_border_row():
    pages = PaginationEngine().paginate(_with_rules(600, [100, 200]))
    assert pages[0].image.height == 200
    assert pages[1].source_top == 200
    assert sum(p.image.height for p in pages) == 600


def test_naive_cutoff_when_no_border_rows():
    pages = PaginationEngine().paginate(_blank(600))
    assert [p.image.height for p in pages] == [257, 257, 86]


def test_border_at_top_of_continuation_page_is_emphasized():
    flow = _with_rules(600, [100, 200])
    pages = PaginationEngine().paginate(flow)
    second = pages[1]
    assert second.image.getpixel((105, 0)) == (0, 0, 0)
    assert second.image.getpixel((105, 1)) == (127, 127, 127)
    assert second.image.getpixel((105, 10)) == (255, 255, 255)
    # The source bitmap is left untouched.
    assert flow.getpixel((105, 201)) == (255, 255, 255)


def test_border_detection_failure_falls_back_to_plain_cutoff(caplog, monkeypatch):
    engine = PaginationEngine()

    def broken(*args, **kwargs):
        raise RuntimeError("pixel read failed")

    monkeypatch.setattr(engine, "border_rows", broken)
    with caplog.at_level(logging.WARNING):
        pages = engine.paginate(_with_rules(600, [100, 200]))
    assert [p.image.height for p in pages] == [257, 257, 86]
    assert "BORDER_SCAN_FAILED" in caplog.text


def test_table_bounds_from_vertical_rules():
    img = _blank(100)
    draw = ImageDraw.Draw(img)
    draw.line([(12, 0), (12, 99)], fill=(0, 0, 0))
    draw.line([(197, 0), (197, 99)], fill=(0, 0, 0))
    assert PaginationEngine().table_bounds(np.array(img)) == (12, 197)


def test_discrete_pages_are_whole_pages():
    pages = PaginationEngine().paginate_discrete([Image.new("RGB", (420, 594), "white")])
    assert len(pages) == 1
    assert pages[0].discrete is True
    assert pages[0].height_mm == pytest.approx(297.0)


def test_forced_break_offsets_skips_unrendered_sections():
    assert forced_break_offsets({"valuation_details": 199.6}, ["valuation_details", "missing"]) == [200]


def test_scan_states():
    assert {s.value for s in ScanState} == {"scanning", "forced_break_pending", "done"}
