from __future__ import annotations

import logging
import os
import time
import uuid
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from backend directory so VALUATION_API_URL etc. are available
load_dotenv(Path(__file__).resolve().parent / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from models import PreviewReference, ReportArtifact, ReportRequest, ValuerProfile
from previews_store import PreviewStore
from reporting.pipeline import generate_valuation_pdf
from reporting.rasterizer import PlaywrightRasterizer, RasterizerUnavailable, check_rasterizer
from reporting.report_builder import build_report_html
from reporting.report_data import build_report_document
from services.field_resolver import resolve_record
from services.record_gateway import RecordGateway
from settings import ALLOWED_ORIGINS
from valuers import find_valuer, get_valuer, list_valuers

VERSION = (os.environ.get("RENDER_GIT_COMMIT") or "").strip() or "unknown"

_LOG = logging.getLogger("uvicorn.error")

# Swapped out in tests.
_rasterizer_factory = PlaywrightRasterizer
_gateway_factory = RecordGateway
preview_store = PreviewStore()


app = FastAPI(title="Flat Valuation Report Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = (request.headers.get("x-request-id") or "").strip()[:64] or uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        _LOG.info(
            "request_id=%s method=%s path=%s status=%s duration_ms=%.0f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-Id"] = request_id
        return response


app.add_middleware(RequestLogMiddleware)


@app.on_event("startup")
def startup_log() -> None:
    _LOG.info("Backend starting version=%s origins=%s", VERSION, ",".join(ALLOWED_ORIGINS))


def _rid(request: Request) -> str:
    return getattr(request.state, "request_id", "") or uuid.uuid4().hex[:8]


def _valuer_for(valuer_id: Optional[str]) -> ValuerProfile:
    if valuer_id:
        valuer = find_valuer(valuer_id)
        if valuer is None:
            raise HTTPException(status_code=400, detail=f"Unknown valuer_id: {valuer_id}")
        return valuer
    return get_valuer(None)


def _generate(record: dict, valuer: ValuerProfile, rid: str) -> ReportArtifact:
    t0 = time.perf_counter()
    _LOG.info("REPORT_START rid=%s client=%s", rid, str(record.get("clientName") or "")[:40])
    try:
        artifact = generate_valuation_pdf(record, rasterizer=_rasterizer_factory(), valuer=valuer)
    except RasterizerUnavailable as e:
        _LOG.warning("REPORT_FAILED rid=%s reason=rasterizer_unavailable error=%s", rid, e)
        raise HTTPException(status_code=503, detail=str(e)) from e
    except Exception as e:
        _LOG.exception("REPORT_FAILED rid=%s error=%s", rid, e)
        raise HTTPException(status_code=500, detail=f"Report generation failed: {e!s}"[:500]) from e
    _LOG.info(
        "REPORT_DONE rid=%s pages=%s images=%s elapsed_ms=%.0f",
        rid,
        artifact.page_count,
        artifact.image_count,
        (time.perf_counter() - t0) * 1000,
    )
    return artifact


def _pdf_response(artifact: ReportArtifact, disposition: str = "attachment") -> Response:
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={
            "Content-Disposition": f'{disposition}; filename="{artifact.filename}"',
            "X-Report-Pages": str(artifact.page_count),
            "X-Report-Images": str(artifact.image_count),
        },
    )


@app.get("/health")
def health():
    return {"status": "ok", "version": VERSION}


@app.get("/health/pdf")
def health_pdf():
    """
    Runtime check for the headless browser used to rasterize reports.
    Returns 200 only when Chromium can launch successfully.
    """
    try:
        check_rasterizer()
    except RasterizerUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return {"status": "ok", "pdf_runtime": "ready"}


@app.get("/valuers")
def valuers():
    return [v.model_dump() for v in list_valuers()]


@app.post("/valuations/resolve")
def resolve_valuation(req: ReportRequest):
    """Canonical (flat) record for a raw stored record."""
    return resolve_record(req.record)


@app.post("/valuations/report/html", response_class=HTMLResponse)
def valuation_report_html(req: ReportRequest) -> HTMLResponse:
    """HTML preview of the report, galleries included. No browser needed."""
    valuer = _valuer_for(req.valuer_id)
    document = build_report_document(resolve_record(req.record), valuer)
    return HTMLResponse(content=build_report_html(document, include_galleries=True))


@app.post("/valuations/report")
def valuation_report_pdf(req: ReportRequest, request: Request) -> Response:
    valuer = _valuer_for(req.valuer_id)
    artifact = _generate(req.record, valuer, _rid(request))
    return _pdf_response(artifact)


@app.post("/valuations/report/preview", response_model=PreviewReference)
def valuation_report_preview(req: ReportRequest, request: Request) -> PreviewReference:
    valuer = _valuer_for(req.valuer_id)
    artifact = _generate(req.record, valuer, _rid(request))
    preview_id, expires_at = preview_store.save(artifact)
    return PreviewReference(
        preview_id=preview_id,
        url=f"/valuations/previews/{preview_id}",
        filename=artifact.filename,
        expires_at=expires_at,
    )


@app.get("/valuations/previews/{preview_id}")
def valuation_preview(preview_id: str) -> Response:
    try:
        filename, content = preview_store.load(preview_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Preview not found or expired")
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@app.get("/valuations/{record_id}/report")
def stored_valuation_report(
    record_id: str,
    request: Request,
    username: Optional[str] = None,
    userRole: Optional[str] = None,
    clientId: Optional[str] = None,
    valuer_id: Optional[str] = None,
) -> Response:
    """Fetch a stored record through the records API, then render it."""
    valuer = _valuer_for(valuer_id)
    with _gateway_factory() as gateway:
        result = gateway.get_by_id(record_id, username, userRole, clientId)
    if not result.success:
        status = 404 if result.status_code == 404 else 502
        raise HTTPException(status_code=status, detail=result.message or "Record lookup failed")
    if not isinstance(result.data, dict):
        raise HTTPException(status_code=502, detail="Records API returned no record")
    artifact = _generate(result.data, valuer, _rid(request))
    return _pdf_response(artifact)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8010")),
        reload=False,
    )
