"""
Lay rendered pages and gallery images onto A4 pages.

All coordinates are millimetres from the top-left of the page.
"""
from __future__ import annotations

import logging
import re
import time
from collections.abc import Mapping
from typing import Any, List, Optional, Sequence

from PIL import Image

from services.image_loader import LoadedGallery

from .document_writer import ImagePlacement, PageLayout, TextPlacement
from .format_utils import NOT_AVAILABLE, is_blank
from .pagination import A4_HEIGHT_MM, A4_WIDTH_MM, RenderedPage

logger = logging.getLogger(__name__)

FLOW_TOP_MM = 20.0
DISCRETE_MARGIN_MM = 12.0
DISCRETE_MAX_HEIGHT_MM = A4_HEIGHT_MM - 2 * DISCRETE_MARGIN_MM
SHARE_PAGE_MAX_CONTENT_MM = 20.0

GRID_COLUMNS_MM = (12.0, 108.0)
GRID_ROWS = 3
GRID_TOP_MM = 15.0
GRID_ROW_PITCH_MM = 92.0
GRID_CELL_MM = (92.0, 82.0)
GRID_CAPTION_GAP_MM = 4.0

SINGLE_TITLE_AT_MM = (15.0, 15.0)
SINGLE_BOX_MM = (15.0, 25.0, 180.0, 220.0)

PAGE_NUMBER_Y_MM = 292.0
PAGE_NUMBER_PT = 9.0


def fit_within(image: Image.Image, box_w: float, box_h: float) -> tuple[float, float]:
    """Largest (w, h) with the image's aspect ratio that fits in the box."""
    if image.width <= 0 or image.height <= 0:
        return 0.0, 0.0
    ratio = min(box_w / image.width, box_h / image.height)
    return image.width * ratio, image.height * ratio


def _content_height(page: PageLayout) -> float:
    return sum(img.height_mm for img in page.images)


class DocumentAssembler:
    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def _flow_pages(self, pages: Sequence[RenderedPage]) -> List[PageLayout]:
        return [
            PageLayout(
                kind="flow",
                images=[ImagePlacement(p.image, 0.0, FLOW_TOP_MM, A4_WIDTH_MM, p.height_mm)],
            )
            for p in pages
        ]

    def _place_discrete(self, out: List[PageLayout], pages: Sequence[RenderedPage]) -> None:
        usable_w = A4_WIDTH_MM - 2 * DISCRETE_MARGIN_MM
        for p in pages:
            current = out[-1] if out else None
            if current is None or current.kind == "gallery" or _content_height(current) > SHARE_PAGE_MAX_CONTENT_MM:
                current = PageLayout(kind="discrete")
                out.append(current)
                top = DISCRETE_MARGIN_MM
            else:
                # Short tail of content: continue below it on the same page.
                top = max(DISCRETE_MARGIN_MM, current.content_bottom_mm + GRID_CAPTION_GAP_MM)
            max_h = A4_HEIGHT_MM - DISCRETE_MARGIN_MM - top
            w, h = fit_within(p.image, usable_w, min(max_h, DISCRETE_MAX_HEIGHT_MM))
            x = DISCRETE_MARGIN_MM + (usable_w - w) / 2
            current.images.append(ImagePlacement(p.image, x, top, w, h))

    def _grid_pages(self, gallery: LoadedGallery) -> List[PageLayout]:
        per_page = GRID_ROWS * len(GRID_COLUMNS_MM)
        images = gallery.images
        out: List[PageLayout] = []
        for start in range(0, len(images), per_page):
            page = PageLayout(kind="gallery")
            for i, loaded in enumerate(images[start:start + per_page]):
                row, col = divmod(i, len(GRID_COLUMNS_MM))
                x = GRID_COLUMNS_MM[col]
                y = GRID_TOP_MM + row * GRID_ROW_PITCH_MM
                box_w, box_h = GRID_CELL_MM
                w, h = fit_within(loaded.image, box_w, box_h)
                page.texts.append(TextPlacement(loaded.label, x, y, size_pt=8, bold=True))
                page.images.append(
                    ImagePlacement(
                        loaded.image,
                        x + (box_w - w) / 2,
                        y + GRID_CAPTION_GAP_MM + (box_h - h) / 2,
                        w,
                        h,
                    )
                )
            out.append(page)
        return out

    def _single_pages(self, gallery: LoadedGallery) -> List[PageLayout]:
        x, y, box_w, box_h = SINGLE_BOX_MM
        out: List[PageLayout] = []
        for loaded in gallery.images:
            w, h = fit_within(loaded.image, box_w, box_h)
            out.append(
                PageLayout(
                    kind="gallery",
                    images=[ImagePlacement(loaded.image, x + (box_w - w) / 2, y, w, h)],
                    texts=[TextPlacement(loaded.label, *SINGLE_TITLE_AT_MM, size_pt=11, bold=True)],
                )
            )
        return out

    def assemble(
        self,
        flow_pages: Sequence[RenderedPage],
        discrete_pages: Sequence[RenderedPage] = (),
        galleries: Sequence[LoadedGallery] = (),
    ) -> List[PageLayout]:
        """Flow pages, then discrete pages, then gallery pages; every page numbered."""
        out = self._flow_pages(flow_pages)
        self._place_discrete(out, discrete_pages)
        for gallery in galleries:
            out += self._grid_pages(gallery) if gallery.layout == "grid" else self._single_pages(gallery)

        for n, page in enumerate(out, start=1):
            page.texts.append(TextPlacement(f"Page {n}", A4_WIDTH_MM / 2, PAGE_NUMBER_Y_MM, size_pt=PAGE_NUMBER_PT, align="center"))

        self.log.debug(
            "ASSEMBLED pages=%s images=%s",
            len(out), sum(p.image_count for p in out if p.kind == "gallery"),
        )
        return out


def embedded_image_count(pages: Sequence[PageLayout]) -> int:
    """Gallery images placed in the document (rendered report pages are not counted)."""
    return sum(p.image_count for p in pages if p.kind == "gallery")


def report_filename(record: Mapping[str, Any], now_ms: Optional[int] = None) -> str:
    """valuation_<clientName|uniqueId|epoch ms>.pdf, reduced to filesystem-safe characters."""
    stem = ""
    for key in ("clientName", "uniqueId"):
        value = record.get(key)
        if not is_blank(value) and value != NOT_AVAILABLE:
            stem = re.sub(r"[^A-Za-z0-9._-]+", "_", str(value).strip()).strip("._")
            if stem:
                break
    if not stem:
        stem = str(now_ms if now_ms is not None else int(time.time() * 1000))
    return f"valuation_{stem}.pdf"
