"""
Store generated report PDFs on disk so they can be opened by preview id.
"""
from __future__ import annotations

import json
import time
import uuid
from pathlib import Path

from models import ReportArtifact
from settings import PREVIEW_DIR, PREVIEW_TTL_S

_ID_CHARS = set("0123456789abcdef-")


class PreviewStore:
    def __init__(self, directory: Path = PREVIEW_DIR, ttl_s: float = PREVIEW_TTL_S):
        self.directory = Path(directory)
        self.ttl_s = ttl_s

    def ensure_dir(self) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory

    def _paths(self, preview_id: str) -> tuple[Path, Path]:
        if not preview_id or not set(preview_id) <= _ID_CHARS:
            raise KeyError(preview_id)
        return self.directory / f"{preview_id}.pdf", self.directory / f"{preview_id}.json"

    def save(self, artifact: ReportArtifact, now: float | None = None) -> tuple[str, float]:
        """Write the PDF plus a small sidecar; returns (preview_id, expires_at)."""
        now = time.time() if now is None else now
        self.ensure_dir()
        self.prune(now)
        preview_id = str(uuid.uuid4())
        pdf_path, meta_path = self._paths(preview_id)
        expires_at = now + self.ttl_s
        pdf_path.write_bytes(artifact.content)
        with open(meta_path, "w") as f:
            json.dump({"filename": artifact.filename, "expires_at": expires_at}, f, indent=2)
        return preview_id, expires_at

    def load(self, preview_id: str, now: float | None = None) -> tuple[str, bytes]:
        """(filename, pdf bytes). KeyError when unknown or expired."""
        now = time.time() if now is None else now
        pdf_path, meta_path = self._paths(preview_id)
        if not pdf_path.is_file() or not meta_path.is_file():
            raise KeyError(preview_id)
        with open(meta_path) as f:
            meta = json.load(f)
        if float(meta.get("expires_at") or 0) <= now:
            raise KeyError(preview_id)
        return str(meta.get("filename") or f"{preview_id}.pdf"), pdf_path.read_bytes()

    def prune(self, now: float | None = None) -> int:
        """Delete expired previews; returns how many were removed."""
        now = time.time() if now is None else now
        if not self.directory.is_dir():
            return 0
        removed = 0
        for meta_path in self.directory.glob("*.json"):
            try:
                with open(meta_path) as f:
                    expires_at = float(json.load(f).get("expires_at") or 0)
            except (OSError, ValueError):
                expires_at = 0
            if expires_at <= now:
                meta_path.unlink(missing_ok=True)
                meta_path.with_suffix(".pdf").unlink(missing_ok=True)
                removed += 1
        return removed
