"""
End-to-end PDF generation for one valuation record.

resolve -> build report -> load images (concurrent, joined) -> rasterize ->
paginate -> assemble -> write. Everything is request-local; only the
documented degradations are absorbed, anything else propagates.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

import httpx

from models import ReportArtifact, ValuerProfile
from services.field_resolver import resolve_record
from services.image_loader import load_gallery_images
from settings import IMAGE_LOAD_TIMEOUT_S

from .assembler import DocumentAssembler, embedded_image_count, report_filename
from .document_writer import DocumentWriter, ReportLabDocumentWriter
from .pagination import PaginationEngine, forced_break_offsets
from .rasterizer import PlaywrightRasterizer, Rasterizer
from .report_builder import build_report_html
from .report_data import build_report_document

logger = logging.getLogger(__name__)


def generate_valuation_pdf(
    raw: Any,
    *,
    rasterizer: Optional[Rasterizer] = None,
    writer: Optional[DocumentWriter] = None,
    valuer: Optional[ValuerProfile] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    image_timeout_s: float = IMAGE_LOAD_TIMEOUT_S,
    log: Optional[logging.Logger] = None,
) -> ReportArtifact:
    log = log or logger
    t0 = time.perf_counter()

    canonical = resolve_record(raw, log=log)
    document = build_report_document(canonical, valuer)
    html = build_report_html(document, include_galleries=False)

    galleries = asyncio.run(
        load_gallery_images(document.galleries, image_timeout_s, client=http_client, log=log)
    )

    rendered = (rasterizer or PlaywrightRasterizer()).rasterize(html, document.forced_break_keys)
    engine = PaginationEngine(log=log)
    flow_pages = engine.paginate(
        rendered.flow, forced_break_offsets(rendered.section_offsets, document.forced_break_keys)
    )
    discrete_pages = engine.paginate_discrete(rendered.pages)

    layouts = DocumentAssembler(log=log).assemble(flow_pages, discrete_pages, galleries)
    if writer is None:
        writer = ReportLabDocumentWriter(
            title=f"{document.title} {document.reference_no}".strip(),
            author=str(document.values.get("signer") or ""),
        )
    content = writer.compose(layouts)

    artifact = ReportArtifact(
        filename=report_filename(canonical),
        content=content,
        page_count=len(layouts),
        image_count=embedded_image_count(layouts),
    )
    log.info(
        "REPORT_GENERATED filename=%s pages=%s images=%s flow_pages=%s discrete_pages=%s elapsed_ms=%s",
        artifact.filename,
        artifact.page_count,
        artifact.image_count,
        len(flow_pages),
        len(discrete_pages),
        int((time.perf_counter() - t0) * 1000),
    )
    return artifact
