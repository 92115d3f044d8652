"""Page layouts and the reportlab writer that turns them into PDF bytes."""
from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import List, Literal, Protocol, Sequence

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas


@dataclass
class ImagePlacement:
    """Bitmap placed with its top-left corner at (x_mm, y_mm), measured from the page's top-left."""
    image: Image.Image
    x_mm: float
    y_mm: float
    width_mm: float
    height_mm: float


@dataclass
class TextPlacement:
    text: str
    x_mm: float
    y_mm: float
    size_pt: float = 9.0
    align: Literal["left", "center"] = "left"
    bold: bool = False


@dataclass
class PageLayout:
    kind: Literal["flow", "discrete", "gallery"] = "flow"
    images: List[ImagePlacement] = field(default_factory=list)
    texts: List[TextPlacement] = field(default_factory=list)

    @property
    def content_bottom_mm(self) -> float:
        return max((img.y_mm + img.height_mm for img in self.images), default=0.0)

    @property
    def image_count(self) -> int:
        return len(self.images)


class DocumentWriter(Protocol):
    def compose(self, pages: Sequence[PageLayout]) -> bytes:
        ...


class ReportLabDocumentWriter:
    def __init__(self, title: str = "Valuation Report", author: str = ""):
        self.title = title
        self.author = author

    def compose(self, pages: Sequence[PageLayout]) -> bytes:
        buf = io.BytesIO()
        c = canvas.Canvas(buf, pagesize=A4)
        c.setTitle(self.title)
        if self.author:
            c.setAuthor(self.author)
        page_h = A4[1]

        for layout in pages:
            for img in layout.images:
                c.drawImage(
                    ImageReader(img.image),
                    img.x_mm * mm,
                    page_h - (img.y_mm + img.height_mm) * mm,
                    width=img.width_mm * mm,
                    height=img.height_mm * mm,
                )
            for t in layout.texts:
                c.setFont("Helvetica-Bold" if t.bold else "Helvetica", t.size_pt)
                y = page_h - t.y_mm * mm
                if t.align == "center":
                    c.drawCentredString(t.x_mm * mm, y, t.text)
                else:
                    c.drawString(t.x_mm * mm, y, t.text)
            c.showPage()

        c.save()
        return buf.getvalue()
