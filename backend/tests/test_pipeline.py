from __future__ import annotations

import asyncio
import io

import httpx
from PIL import Image

from reporting.pipeline import generate_valuation_pdf
from reporting.rasterizer import RasterizedDocument


class FakeRasterizer:
    def __init__(self):
        self.html = ""

    def rasterize(self, html, forced_break_sections=()):
        self.html = html
        return RasterizedDocument(
            flow=Image.new("RGB", (420, 600), "white"),
            section_offsets={"valuation_details": 300.0},
            pages=[Image.new("RGB", (420, 594), "white")],
            scale=2.0,
        )


def _png() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (64, 48), (40, 90, 160)).save(buf, format="PNG")
    return buf.getvalue()


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path in ("/one.png", "/two.png"):
        return httpx.Response(200, content=_png())
    return httpx.Response(404)


def _generate(record):
    client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    rasterizer = FakeRasterizer()
    try:
        artifact = generate_valuation_pdf(record, rasterizer=rasterizer, http_client=client)
    finally:
        asyncio.run(client.aclose())
    return artifact, rasterizer


def test_only_loadable_images_are_embedded():
    record = {
        "clientName": "Asha Patil",
        "propertyImages": [
            "ftp://files.example.com/a.jpg",
            "https://img.example.com/missing.png",
            "blob:http://localhost:3000/8d1f",
            {"url": "https://img.example.com/one.png"},
            {"secure_url": "https://img.example.com/two.png"},
        ],
    }
    artifact, rasterizer = _generate(record)
    assert artifact.image_count == 2
    # two flow pages, one discrete page, one gallery grid page
    assert artifact.page_count == 4
    assert artifact.content.startswith(b"%PDF")
    assert "data-gallery=" not in rasterizer.html


def test_no_gallery_page_when_every_image_fails():
    record = {
        "uniqueId": "BOF-17",
        "propertyImages": ["https://img.example.com/missing.png", "blob:http://localhost:3000/8d1f"],
        "locationImages": ["ftp://files.example.com/map.jpg"],
    }
    artifact, _ = _generate(record)
    assert artifact.image_count == 0
    assert artifact.page_count == 3
    assert artifact.filename == "valuation_BOF-17.pdf"
