"""
Concurrent gallery image loading.

Every image is fetched at once and each load is bounded by its own timeout; the
call returns only after all of them have loaded, failed or timed out. Anything
that cannot be loaded is left out of the result rather than raising.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
import urllib.parse
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import httpx
from PIL import Image, UnidentifiedImageError

from models import GalleryImage, ImageGallery
from settings import IMAGE_JPEG_QUALITY, IMAGE_LOAD_TIMEOUT_S, IMAGE_MAX_WIDTH_PX

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 15_000_000


class ImageRejected(ValueError):
    pass


@dataclass
class LoadedImage:
    label: str
    url: str
    image: Image.Image


@dataclass
class LoadedGroup:
    name: str = ""
    images: List[LoadedImage] = field(default_factory=list)


@dataclass
class LoadedGallery:
    key: str
    title: str
    layout: str
    groups: List[LoadedGroup] = field(default_factory=list)

    @property
    def images(self) -> List[LoadedImage]:
        return [img for g in self.groups for img in g.images]


def decode_data_uri(url: str) -> bytes:
    header, sep, payload = url.partition(",")
    if not sep or not header.lower().startswith("data:"):
        raise ImageRejected("malformed data URI")
    if header.lower().endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise ImageRejected(f"invalid base64 payload: {e}") from e
    return urllib.parse.unquote_to_bytes(payload)


def compress_image(raw: bytes, max_width: int = IMAGE_MAX_WIDTH_PX, quality: int = IMAGE_JPEG_QUALITY) -> Image.Image:
    """Decode, flatten to RGB, cap the width and round-trip through JPEG."""
    if not raw:
        raise ImageRejected("empty image payload")
    if len(raw) > MAX_IMAGE_BYTES:
        raise ImageRejected(f"image too large ({len(raw)} bytes)")
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except Image.DecompressionBombError as e:
        raise ImageRejected(f"image dimensions too large: {e}") from e
    except (UnidentifiedImageError, OSError) as e:
        raise ImageRejected(f"undecodable image: {e}") from e

    if img.mode in ("RGBA", "LA", "P"):
        img = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        img = background
    else:
        img = img.convert("RGB")

    if img.width > max_width:
        height = max(1, round(img.height * max_width / img.width))
        img = img.resize((max_width, height), Image.LANCZOS)

    out = io.BytesIO()
    img.save(out, format="JPEG", quality=quality, optimize=True)
    out.seek(0)
    compressed = Image.open(out)
    compressed.load()
    return compressed


async def _fetch(url: str, client: httpx.AsyncClient) -> bytes:
    lowered = url.lower()
    if lowered.startswith("data:"):
        return decode_data_uri(url)
    if lowered.startswith(("http://", "https://")):
        resp = await client.get(url)
        resp.raise_for_status()
        return resp.content
    # blob: URLs only exist inside the browser that created them
    raise ImageRejected(f"unresolvable scheme: {url.split(':', 1)[0]}")


async def _load_one(
    ref: GalleryImage,
    client: httpx.AsyncClient,
    timeout_s: float,
    log: logging.Logger,
) -> Optional[LoadedImage]:
    short = ref.url[:80]
    try:
        raw = await asyncio.wait_for(_fetch(ref.url, client), timeout=timeout_s)
        image = compress_image(raw)
    except asyncio.TimeoutError:
        log.warning("IMAGE_LOAD_TIMEOUT label=%s url=%s timeout_s=%s", ref.label, short, timeout_s)
        return None
    except ImageRejected as e:
        log.warning("IMAGE_REJECTED label=%s url=%s reason=%s", ref.label, short, e)
        return None
    except (httpx.HTTPError, OSError, ValueError) as e:
        log.warning("IMAGE_LOAD_FAILED label=%s url=%s error=%s", ref.label, short, e)
        return None
    return LoadedImage(label=ref.label, url=ref.url, image=image)


async def _load_all(
    galleries: Sequence[ImageGallery],
    client: httpx.AsyncClient,
    timeout_s: float,
    log: logging.Logger,
) -> List[LoadedGallery]:
    refs = [(gi, grp_i, img) for gi, g in enumerate(galleries) for grp_i, grp in enumerate(g.groups) for img in grp.images]
    results = await asyncio.gather(*(_load_one(img, client, timeout_s, log) for _, _, img in refs))

    loaded = [
        LoadedGallery(key=g.key, title=g.title, layout=g.layout, groups=[LoadedGroup(name=grp.name) for grp in g.groups])
        for g in galleries
    ]
    for (gi, grp_i, _), result in zip(refs, results):
        if result is not None:
            loaded[gi].groups[grp_i].images.append(result)

    out = []
    for g in loaded:
        g.groups = [grp for grp in g.groups if grp.images]
        if g.groups:
            out.append(g)
    log.info("IMAGES_LOADED requested=%s loaded=%s", len(refs), sum(1 for r in results if r is not None))
    return out


async def load_gallery_images(
    galleries: Sequence[ImageGallery],
    timeout_s: float = IMAGE_LOAD_TIMEOUT_S,
    client: httpx.AsyncClient | None = None,
    log: Optional[logging.Logger] = None,
) -> List[LoadedGallery]:
    """Load every gallery image concurrently; galleries and groups left empty are dropped."""
    log = log or logger
    if client is not None:
        return await _load_all(galleries, client, timeout_s, log)
    async with httpx.AsyncClient(timeout=timeout_s, follow_redirects=True) as own_client:
        return await _load_all(galleries, own_client, timeout_s, log)
