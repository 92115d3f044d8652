from __future__ import annotations

import asyncio
import base64
import io
import logging

import httpx
import pytest
from PIL import Image

from models import GalleryImage, ImageGallery, ImageGroup
from services.image_loader import ImageRejected, compress_image, decode_data_uri, load_gallery_images


def _png(w=40, h=30, mode="RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, (w, h), (10, 120, 200) if mode == "RGB" else (10, 120, 200, 128)).save(buf, format="PNG")
    return buf.getvalue()


async def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/ok.png":
        return httpx.Response(200, content=_png())
    if request.url.path == "/slow.png":
        await asyncio.sleep(1.0)
        return httpx.Response(200, content=_png())
    if request.url.path == "/garbage.png":
        return httpx.Response(200, content=b"not an image")
    return httpx.Response(404)


def _load(galleries, timeout_s=0.2):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
            return await load_gallery_images(galleries, timeout_s, client=client)

    return asyncio.run(run())


def _gallery(key, urls, layout="grid"):
    return ImageGallery(
        key=key,
        title=key,
        layout=layout,
        groups=[ImageGroup(images=[GalleryImage(url=u, label=f"{key} {i}") for i, u in enumerate(urls)])],
    )


def test_failed_and_slow_images_are_dropped(caplog):
    data_uri = "data:image/png;base64," + base64.b64encode(_png()).decode()
    galleries = [
        _gallery(
            "property",
            [
                "https://img.example.com/ok.png",
                "https://img.example.com/missing.png",
                "https://img.example.com/slow.png",
                "blob:http://localhost:3000/1234",
                data_uri,
                "https://img.example.com/garbage.png",
            ],
        )
    ]
    with caplog.at_level(logging.WARNING):
        loaded = _load(galleries)
    assert len(loaded) == 1
    assert [img.label for img in loaded[0].images] == ["property 0", "property 4"]
    assert "IMAGE_LOAD_TIMEOUT" in caplog.text
    assert "IMAGE_LOAD_FAILED" in caplog.text
    assert "IMAGE_REJECTED" in caplog.text


def test_gallery_with_no_loadable_images_is_dropped():
    galleries = [
        _gallery("location", ["https://img.example.com/missing.png"], layout="single"),
        _gallery("documents", ["https://img.example.com/ok.png"], layout="single"),
    ]
    loaded = _load(galleries)
    assert [g.key for g in loaded] == ["documents"]
    assert loaded[0].layout == "single"


def test_empty_input_loads_nothing():
    assert _load([]) == []


def test_compress_image_caps_width_and_reencodes_jpeg():
    img = compress_image(_png(3000, 150), max_width=1200, quality=70)
    assert img.format == "JPEG"
    assert img.size == (1200, 60)


def test_compress_image_flattens_transparency():
    img = compress_image(_png(20, 20, mode="RGBA"))
    assert img.mode == "RGB"


def test_compress_image_rejects_garbage():
    with pytest.raises(ImageRejected):
        compress_image(b"\x00\x01")
    with pytest.raises(ImageRejected):
        compress_image(b"")


def test_decode_data_uri():
    assert decode_data_uri("data:text/plain,hello%20world") == b"hello world"
    with pytest.raises(ImageRejected):
        decode_data_uri("data:image/png;base64")


def test_oversized_image_dimensions_are_rejected_not_raised(monkeypatch):
    # 40x30 is over twice a 100 pixel limit, which makes Pillow raise instead of warn
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(ImageRejected):
        compress_image(_png())


def test_oversized_image_is_dropped_from_gallery(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 200)
    big = "data:image/png;base64," + base64.b64encode(_png(40, 30)).decode()
    small = "data:image/png;base64," + base64.b64encode(_png(10, 10)).decode()
    loaded = _load([_gallery("property", [big, small])])
    assert [img.url for img in loaded[0].images] == [small]
