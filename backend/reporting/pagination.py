"""
Slice the rasterized continuous-flow bitmap into A4 pages.

A single top-to-bottom scan fills one page at a time:
  SCANNING              take up to one usable page height, then pull the cut up to the
                        last table border row inside that window so no row is split
  FORCED_BREAK_PENDING  a forced-break section starts inside the window: the page is cut
                        exactly at the section top and the next page begins there
  DONE                  what is left is shorter than the minimum visible height

Border rows are found from pixels (a row is a border when most of it is dark). Any
failure while reading pixels degrades to the plain cutoff for that page.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

A4_WIDTH_MM = 210.0
A4_HEIGHT_MM = 297.0


class ScanState(str, Enum):
    SCANNING = "scanning"
    FORCED_BREAK_PENDING = "forced_break_pending"
    DONE = "done"


@dataclass(frozen=True)
class PageGeometry:
    width_mm: float = A4_WIDTH_MM
    height_mm: float = A4_HEIGHT_MM
    header_mm: float = 20.0
    footer_mm: float = 20.0
    min_visible_mm: float = 5.0
    min_emit_mm: float = 2.0

    @property
    def usable_mm(self) -> float:
        return self.height_mm - self.header_mm - self.footer_mm


@dataclass(frozen=True)
class BorderHeuristic:
    dark_threshold: int = 150
    row_ratio: float = 0.6
    bound_scan_cols: int = 200
    bound_rows: tuple[int, int] = (10, 50)
    bound_min_dark: int = 10
    cut_margin_rows: int = 5
    emphasis_window: int = 50
    emphasis_radius: int = 2
    emphasis_factor: float = 0.5


@dataclass
class RenderedPage:
    """One output page worth of bitmap. source_top is the offset in the flow bitmap (flow pages only)."""
    image: Image.Image
    height_mm: float
    discrete: bool = False
    source_top: int = 0

    @property
    def source_bottom(self) -> int:
        return self.source_top + self.image.height


@dataclass
class _ScanContext:
    pixels: np.ndarray
    px_per_mm: float
    top: int = 0
    state: ScanState = ScanState.SCANNING
    handled: set[int] = field(default_factory=set)

    @property
    def total(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def remaining(self) -> int:
        return self.total - self.top


class PaginationEngine:
    def __init__(
        self,
        geometry: PageGeometry | None = None,
        heuristic: BorderHeuristic | None = None,
        log: Optional[logging.Logger] = None,
    ):
        self.geometry = geometry or PageGeometry()
        self.heuristic = heuristic or BorderHeuristic()
        self.log = log or logger

    # ---- pixel heuristics ----

    def _dark(self, region: np.ndarray) -> np.ndarray:
        t = self.heuristic.dark_threshold
        return (region[..., :3] < t).all(axis=-1)

    def table_bounds(self, region: np.ndarray) -> tuple[int, int]:
        """Left/right columns of the outer table lines, or the full width when none are found."""
        h = self.heuristic
        height, width = region.shape[0], region.shape[1]
        r0, r1 = h.bound_rows
        band = region[r0:min(r1, height)]
        if band.shape[0] == 0:
            return 0, width
        per_col = self._dark(band).sum(axis=0)

        left = 0
        for col in range(min(h.bound_scan_cols, width)):
            if per_col[col] > h.bound_min_dark:
                left = col
                break

        right = width
        floor = max(left + 100, width - h.bound_scan_cols)
        for col in range(width - 1, floor, -1):
            if per_col[col] > h.bound_min_dark:
                right = col
                break
        return left, right

    def border_rows(self, region: np.ndarray, bounds: tuple[int, int] | None = None) -> np.ndarray:
        """Row indices (within region) judged to be horizontal table borders."""
        left, right = bounds or self.table_bounds(region)
        span = right - left
        if span <= 0 or region.shape[0] == 0:
            return np.empty(0, dtype=int)
        dark = self._dark(region[:, left:right]).sum(axis=1)
        return np.flatnonzero(dark > span * self.heuristic.row_ratio)

    def safe_cut(self, pixels: np.ndarray, top: int, window: int, min_rows: int = 1) -> int:
        """Height to take from top: the last border row in the window, else the window itself."""
        try:
            region = pixels[top:top + window]
            rows = self.border_rows(region)
            rows = rows[(rows > 0) & (rows < window - self.heuristic.cut_margin_rows)]
            if rows.size and int(rows[-1]) >= min_rows:
                return int(rows[-1])
        except Exception as e:
            self.log.warning("BORDER_SCAN_FAILED top=%s window=%s error=%s", top, window, e)
        return window

    def emphasize(self, region: np.ndarray, top_edge: bool, bottom_edge: bool) -> None:
        """Darken the first border near the top and/or the last border near the bottom, in place."""
        h = self.heuristic
        try:
            height = region.shape[0]
            bounds = self.table_bounds(region)
            rows = self.border_rows(region, bounds)
            targets = []
            if top_edge:
                near_top = rows[rows < min(h.emphasis_window, height)]
                if near_top.size:
                    targets.append(int(near_top[0]))
            if bottom_edge:
                near_bottom = rows[rows >= max(0, height - h.emphasis_window)]
                if near_bottom.size:
                    targets.append(int(near_bottom[-1]))
            left, right = bounds
            for row in targets:
                lo = max(0, row - h.emphasis_radius)
                hi = min(height, row + h.emphasis_radius + 1)
                block = region[lo:hi, left:right, :3].astype(np.float32) * h.emphasis_factor
                region[lo:hi, left:right, :3] = block.astype(np.uint8)
        except Exception as e:
            self.log.warning("BORDER_SCAN_FAILED stage=emphasis error=%s", e)

    # ---- scan ----

    def _next_forced_break(self, ctx: _ScanContext, breaks: Sequence[int], window: int) -> Optional[int]:
        for y in breaks:
            if y in ctx.handled:
                continue
            if y <= ctx.top:
                # Section already sits at (or above) the page top: nothing to break.
                ctx.handled.add(y)
                continue
            if y < ctx.top + window:
                ctx.handled.add(y)
                return y
            break
        return None

    def paginate(self, flow: Image.Image, forced_breaks: Iterable[int] = ()) -> list[RenderedPage]:
        """Cut the flow bitmap into pages. forced_breaks are pixel offsets of forced-break sections."""
        g = self.geometry
        pixels = np.array(flow.convert("RGB"), dtype=np.uint8)
        if pixels.ndim != 3 or pixels.shape[1] == 0:
            return []
        ctx = _ScanContext(pixels=pixels, px_per_mm=pixels.shape[1] / g.width_mm)
        usable_px = max(1, int(g.usable_mm * ctx.px_per_mm))
        min_visible_px = g.min_visible_mm * ctx.px_per_mm
        breaks = sorted({int(round(y)) for y in forced_breaks if 0 < y < ctx.total})

        pages: list[RenderedPage] = []
        while True:
            if ctx.remaining <= min_visible_px:
                ctx.state = ScanState.DONE
                break

            window = min(usable_px, ctx.remaining)
            forced_at = self._next_forced_break(ctx, breaks, window)
            if forced_at is not None:
                ctx.state = ScanState.FORCED_BREAK_PENDING
                cut = forced_at - ctx.top
                self.log.debug("PAGINATE_FORCED_BREAK top=%s section_top=%s", ctx.top, forced_at)
                is_last = False
            else:
                ctx.state = ScanState.SCANNING
                is_last = ctx.remaining <= usable_px
                if is_last:
                    cut = window
                else:
                    cut = self.safe_cut(pixels, ctx.top, window, min_rows=int(min_visible_px))

            height_mm = cut / ctx.px_per_mm
            if height_mm > g.min_emit_mm:
                region = pixels[ctx.top:ctx.top + cut].copy()
                self.emphasize(region, top_edge=bool(pages), bottom_edge=not is_last)
                pages.append(
                    RenderedPage(
                        image=Image.fromarray(region),
                        height_mm=height_mm,
                        source_top=ctx.top,
                    )
                )
                self.log.debug("PAGINATE_PAGE n=%s top=%s cut=%s state=%s", len(pages), ctx.top, cut, ctx.state.value)
            ctx.top += cut

        self.log.debug(
            "PAGINATED pages=%s forced_breaks=%s height_px=%s",
            len(pages), len(breaks), ctx.total,
        )
        return pages

    def paginate_discrete(self, bitmaps: Iterable[Image.Image]) -> list[RenderedPage]:
        """Each discrete region becomes one whole page; empty bitmaps are skipped."""
        out: list[RenderedPage] = []
        for bmp in bitmaps:
            if bmp is None or bmp.width == 0 or bmp.height == 0:
                continue
            out.append(
                RenderedPage(
                    image=bmp.convert("RGB"),
                    height_mm=bmp.height * self.geometry.width_mm / bmp.width,
                    discrete=True,
                )
            )
        return out


def forced_break_offsets(offsets: Mapping[str, float], keys: Iterable[str]) -> list[int]:
    """Pixel offsets for the named forced-break sections that were found in the rendered flow."""
    return [int(round(offsets[k])) for k in keys if k in offsets]
