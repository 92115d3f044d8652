from __future__ import annotations

import pytest

from models import ReportArtifact
from previews_store import PreviewStore


def _artifact():
    return ReportArtifact(filename="valuation_Asha_Patil.pdf", content=b"%PDF-1.4 test", page_count=1)


def test_save_and_load_roundtrip(tmp_path):
    store = PreviewStore(tmp_path, ttl_s=60)
    preview_id, expires_at = store.save(_artifact(), now=1000.0)
    assert expires_at == 1060.0
    filename, content = store.load(preview_id, now=1030.0)
    assert filename == "valuation_Asha_Patil.pdf"
    assert content == b"%PDF-1.4 test"


def test_expired_preview_is_gone(tmp_path):
    store = PreviewStore(tmp_path, ttl_s=60)
    preview_id, _ = store.save(_artifact(), now=1000.0)
    with pytest.raises(KeyError):
        store.load(preview_id, now=2000.0)


def test_save_prunes_expired(tmp_path):
    store = PreviewStore(tmp_path, ttl_s=60)
    old_id, _ = store.save(_artifact(), now=1000.0)
    store.save(_artifact(), now=5000.0)
    assert not (tmp_path / f"{old_id}.pdf").exists()
    assert len(list(tmp_path.glob("*.pdf"))) == 1


def test_rejects_path_like_ids(tmp_path):
    store = PreviewStore(tmp_path)
    for bad in ("", "../secrets", "abc/def", "ZZZ"):
        with pytest.raises(KeyError):
            store.load(bad)
