"""Headless-browser rasterization of report HTML into bitmaps."""
from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Dict, List, Protocol, Sequence

from PIL import Image

from settings import RASTER_SCALE, RASTER_VIEWPORT_WIDTH_PX

from .report_builder import FLOW_SELECTOR, PAGE_SELECTOR


class RasterizerUnavailable(RuntimeError):
    """Browser runtime missing or failed to launch."""


@dataclass
class RasterizedDocument:
    flow: Image.Image
    section_offsets: Dict[str, float] = field(default_factory=dict)
    pages: List[Image.Image] = field(default_factory=list)
    scale: float = 1.0


class Rasterizer(Protocol):
    def rasterize(self, html: str, forced_break_sections: Sequence[str] = ()) -> RasterizedDocument:
        ...


_OFFSETS_JS = """
([flowSelector, keys]) => {
  const flow = document.querySelector(flowSelector);
  if (!flow) return {width: 0, offsets: {}};
  const base = flow.getBoundingClientRect();
  const offsets = {};
  for (const key of keys) {
    const el = flow.querySelector(`[data-section="${key}"]`);
    if (el) offsets[key] = el.getBoundingClientRect().top - base.top;
  }
  return {width: base.width, offsets};
}
"""


def _to_image(png: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(png))
    img.load()
    return img.convert("RGB")


class PlaywrightRasterizer:
    """Chromium via sync Playwright. Each call launches and closes its own browser."""

    def __init__(
        self,
        viewport_width: int = RASTER_VIEWPORT_WIDTH_PX,
        scale: float = RASTER_SCALE,
        launch_args: Sequence[str] = ("--no-sandbox",),
    ):
        self.viewport_width = viewport_width
        self.scale = scale
        self.launch_args = list(launch_args)

    def rasterize(self, html: str, forced_break_sections: Sequence[str] = ()) -> RasterizedDocument:
        try:
            from playwright.sync_api import sync_playwright
        except Exception as e:
            raise RasterizerUnavailable("Playwright is not installed.") from e

        with sync_playwright() as p:
            try:
                browser = p.chromium.launch(args=self.launch_args)
            except Exception as e:
                raise RasterizerUnavailable(f"Chromium failed to launch: {str(e)[:500]}") from e
            try:
                page = browser.new_page(
                    viewport={"width": self.viewport_width, "height": 1123},
                    device_scale_factor=self.scale,
                )
                page.set_content(html, wait_until="networkidle")

                flow_el = page.query_selector(FLOW_SELECTOR)
                if flow_el is None:
                    raise ValueError(f"rendered report has no {FLOW_SELECTOR} region")
                flow = _to_image(flow_el.screenshot(type="png"))

                meta = page.evaluate(_OFFSETS_JS, [FLOW_SELECTOR, list(forced_break_sections)])
                css_width = float(meta.get("width") or 0) or self.viewport_width
                px_scale = flow.width / css_width
                offsets = {k: float(v) * px_scale for k, v in (meta.get("offsets") or {}).items()}

                pages = [_to_image(el.screenshot(type="png")) for el in page.query_selector_all(PAGE_SELECTOR)]
            finally:
                browser.close()

        return RasterizedDocument(flow=flow, section_offsets=offsets, pages=pages, scale=px_scale)


def check_rasterizer() -> None:
    """Launch Chromium once; raises RasterizerUnavailable with a short reason when it cannot."""
    try:
        from playwright.sync_api import sync_playwright
    except Exception as e:
        raise RasterizerUnavailable("Playwright is not installed.") from e

    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(args=["--no-sandbox"])
            page = browser.new_page()
            page.set_content("<html><body>ok</body></html>")
            browser.close()
    except Exception as e:
        raise RasterizerUnavailable(f"Playwright runtime unavailable: {str(e)[:500]}") from e
