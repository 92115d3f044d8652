"""
HTTP client for the valuation records API.

Every call returns a GatewayResult: the server's {success, message, data}
envelope unwrapped, or a failure carrying the server message when there is
one and the transport error otherwise. Successful GETs are cached; every
mutating call drops the cached entries for the resource.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

import httpx

from cache.response_cache import ResponseCache, cache_key, response_cache
from models import GatewayResult
from settings import (
    VALUATION_API_RESOURCE,
    VALUATION_API_TIMEOUT_S,
    VALUATION_API_TOKEN,
    VALUATION_API_URL,
)

logger = logging.getLogger(__name__)

MANAGER_ACTIONS = ("approved", "rejected")


def _invalid(message: str) -> GatewayResult:
    return GatewayResult(success=False, message=message)


def _valid_id(record_id: Any) -> bool:
    return isinstance(record_id, str) and bool(record_id.strip())


def _server_message(resp: httpx.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, Mapping):
        msg = body.get("message") or body.get("error")
        return str(msg) if msg else None
    return None


class RecordGateway:
    def __init__(
        self,
        base_url: str = VALUATION_API_URL,
        resource: str = VALUATION_API_RESOURCE,
        token: str = VALUATION_API_TOKEN,
        timeout_s: float = VALUATION_API_TIMEOUT_S,
        cache: ResponseCache = response_cache,
        client: httpx.Client | None = None,
        token_refresher: Callable[[], Optional[str]] | None = None,
        log: Optional[logging.Logger] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.resource = resource.strip("/")
        self.token = token
        self.cache = cache
        self.token_refresher = token_refresher
        self.log = log or logger
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout_s)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "RecordGateway":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @property
    def collection_url(self) -> str:
        return f"{self.base_url}/{self.resource}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, method: str, url: str, params: Mapping[str, Any] | None, json: Any) -> httpx.Response:
        resp = self.client.request(method, url, params=params, json=json, headers=self._headers())
        if resp.status_code == 401 and self.token_refresher is not None:
            new_token = self.token_refresher()
            if new_token:
                self.log.info("GATEWAY_TOKEN_REFRESHED method=%s url=%s", method, url)
                self.token = new_token
                resp = self.client.request(method, url, params=params, json=json, headers=self._headers())
        return resp

    def _call(
        self,
        method: str,
        path: str = "",
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        op: str,
    ) -> GatewayResult:
        url = self.collection_url + path
        params = {k: v for k, v in (params or {}).items() if v is not None} or None
        key = cache_key(url, params) if method == "GET" else None

        if key is not None:
            cached = self.cache.get(key)
            if cached is not None:
                self.log.debug("GATEWAY_CACHE_HIT op=%s key=%s", op, key)
                return cached

        try:
            resp = self._send(method, url, params, json)
        except httpx.HTTPError as e:
            self.log.warning("GATEWAY_FAILED op=%s url=%s error=%s", op, url, e)
            return GatewayResult(success=False, message=str(e) or e.__class__.__name__)

        if resp.status_code >= 400:
            message = _server_message(resp) or f"HTTP {resp.status_code} {resp.reason_phrase}".strip()
            self.log.warning("GATEWAY_FAILED op=%s url=%s status=%s message=%s", op, url, resp.status_code, message)
            return GatewayResult(success=False, message=message, status_code=resp.status_code)

        try:
            body = resp.json()
        except ValueError:
            return GatewayResult(success=False, message="Invalid JSON response", status_code=resp.status_code)
        if not isinstance(body, Mapping):
            body = {"success": True, "data": body}
        if not body.get("success", False):
            return GatewayResult(
                success=False,
                message=str(body.get("message") or f"{op} failed"),
                status_code=resp.status_code,
            )

        result = GatewayResult(
            success=True,
            data=body.get("data"),
            message=body.get("message"),
            status_code=resp.status_code,
            pagination=body.get("pagination") if isinstance(body.get("pagination"), Mapping) else None,
        )
        if key is not None:
            self.cache.set(key, result)
        elif method != "GET":
            dropped = self.cache.invalidate(f"/{self.resource}")
            self.log.debug("GATEWAY_CACHE_INVALIDATED op=%s dropped=%s", op, dropped)
        return result

    # ---- operations ----

    def create(self, record: Mapping[str, Any]) -> GatewayResult:
        return self._call("POST", json=dict(record), op="create")

    def list(self, filters: Mapping[str, Any] | None = None) -> GatewayResult:
        return self._call("GET", params=filters, op="list")

    def get_by_id(
        self,
        record_id: str,
        username: str | None = None,
        user_role: str | None = None,
        client_id: str | None = None,
    ) -> GatewayResult:
        if not _valid_id(record_id):
            return _invalid("Invalid form ID format")
        return self._call(
            "GET",
            f"/{record_id}",
            params={"username": username, "userRole": user_role, "clientId": client_id},
            op="get_by_id",
        )

    def update(
        self,
        record_id: str,
        record: Mapping[str, Any],
        username: str,
        user_role: str,
        client_id: str,
    ) -> GatewayResult:
        if not _valid_id(record_id):
            return _invalid("Invalid form ID format")
        if not username or not user_role or not client_id:
            return _invalid("Missing required user information")
        return self._call(
            "PUT",
            f"/{record_id}",
            params={"username": username, "userRole": user_role, "clientId": client_id},
            json=dict(record),
            op="update",
        )

    def delete(self, record_id: str) -> GatewayResult:
        if not _valid_id(record_id):
            return _invalid("Invalid form ID format")
        return self._call("DELETE", f"/{record_id}", op="delete")

    def bulk_delete(self, ids: Sequence[str]) -> GatewayResult:
        ids = [i for i in (ids or []) if _valid_id(i)]
        if not ids:
            return _invalid("No form IDs provided")
        return self._call("POST", "/bulk/delete", json={"ids": ids}, op="bulk_delete")

    def manager_decision(
        self,
        record_id: str,
        action: str,
        feedback: str | None,
        username: str,
        user_role: str,
        client_id: str = "unknown",
    ) -> GatewayResult:
        if not _valid_id(record_id):
            return _invalid("Invalid form ID format")
        if action not in MANAGER_ACTIONS:
            return _invalid('Invalid action. Must be "approved" or "rejected"')
        body = {
            "action": action,
            "feedback": (feedback or "").strip(),
            "username": username,
            "userRole": user_role,
            "clientId": client_id,
        }
        return self._call("POST", f"/{record_id}/manager-submit", json=body, op="manager_decision")

    def request_rework(
        self,
        record_id: str,
        comments: str | None,
        username: str,
        user_role: str,
        client_id: str = "unknown",
    ) -> GatewayResult:
        if not _valid_id(record_id):
            return _invalid("Invalid form ID format")
        body = {
            "comments": (comments or "").strip(),
            "username": username,
            "userRole": user_role,
            "clientId": client_id,
        }
        return self._call("POST", f"/{record_id}/request-rework", json=body, op="request_rework")
