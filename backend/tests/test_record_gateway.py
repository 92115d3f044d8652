from __future__ import annotations

import json

import httpx

from cache.response_cache import ResponseCache, cache_key
from services.record_gateway import RecordGateway

BASE = "https://api.example.com/api"


class _Server:
    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.records = {"rec-1": {"uniqueId": "rec-1", "clientName": "Asha Patil"}}
        self.token_ok = {"good-token"}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        auth = request.headers.get("Authorization", "")
        if auth and auth.removeprefix("Bearer ") not in self.token_ok:
            return httpx.Response(401, json={"success": False, "message": "Token expired"})
        path = request.url.path.removeprefix("/api/bof-maharashtra")
        if request.method == "GET" and path == "":
            return httpx.Response(
                200,
                json={"success": True, "data": list(self.records.values()), "pagination": {"total": len(self.records)}},
            )
        if request.method == "GET":
            record = self.records.get(path.strip("/"))
            if record is None:
                return httpx.Response(404, json={"success": False, "message": "Form not found"})
            return httpx.Response(200, json={"success": True, "data": record})
        if request.method == "PUT":
            body = json.loads(request.content)
            self.records[path.strip("/")] = body
            return httpx.Response(200, json={"success": True, "data": body})
        if request.method == "POST" and path.endswith("/manager-submit"):
            return httpx.Response(200, json={"success": False, "message": "Form already approved"})
        if request.method == "POST":
            return httpx.Response(200, json={"success": True, "data": json.loads(request.content or b"{}")})
        if request.method == "DELETE":
            return httpx.Response(200, json={"success": True, "data": None})
        return httpx.Response(405)


def _gateway(server=None, **kwargs):
    server = server or _Server()
    client = httpx.Client(transport=httpx.MockTransport(server))
    gateway = RecordGateway(base_url=BASE, token="good-token", cache=ResponseCache(), client=client, **kwargs)
    return gateway, server


def test_get_by_id_unwraps_envelope_and_caches():
    gateway, server = _gateway()
    first = gateway.get_by_id("rec-1", "asha", "user", "client-9")
    second = gateway.get_by_id("rec-1", "asha", "user", "client-9")
    assert first.success and first.data["clientName"] == "Asha Patil"
    assert second == first
    assert len(server.calls) == 1
    sent = server.calls[0]
    assert sent.url.params["userRole"] == "user"
    assert sent.headers["Authorization"] == "Bearer good-token"


def test_update_invalidates_cached_reads():
    gateway, server = _gateway()
    gateway.get_by_id("rec-1", "asha", "user", "client-9")
    result = gateway.update("rec-1", {"uniqueId": "rec-1", "clientName": "A. Patil"}, "asha", "user", "client-9")
    assert result.success
    assert len(gateway.cache) == 0
    again = gateway.get_by_id("rec-1", "asha", "user", "client-9")
    assert again.data["clientName"] == "A. Patil"
    assert len(server.calls) == 3


def test_list_returns_pagination():
    gateway, _ = _gateway()
    result = gateway.list({"status": "pending", "page": 1})
    assert result.success
    assert result.pagination == {"total": 1}
    assert len(result.data) == 1


def test_server_message_propagates():
    gateway, _ = _gateway()
    missing = gateway.get_by_id("nope")
    assert not missing.success
    assert missing.message == "Form not found"
    assert missing.status_code == 404
    rejected = gateway.manager_decision("rec-1", "approved", " ok ", "mgr", "manager")
    assert not rejected.success
    assert rejected.message == "Form already approved"


def test_transport_error_message_when_no_server_message():
    def boom(request):
        raise httpx.ConnectError("connection refused")

    client = httpx.Client(transport=httpx.MockTransport(boom))
    gateway = RecordGateway(base_url=BASE, cache=ResponseCache(), client=client)
    result = gateway.list()
    assert not result.success
    assert result.message == "connection refused"


def test_validation_happens_before_any_request():
    gateway, server = _gateway()
    assert gateway.get_by_id("").message == "Invalid form ID format"
    assert gateway.update("rec-1", {}, "", "user", "c").message == "Missing required user information"
    assert not gateway.manager_decision("rec-1", "maybe", None, "mgr", "manager").success
    assert not gateway.bulk_delete([]).success
    assert server.calls == []


def test_mutations_post_expected_bodies():
    gateway, server = _gateway()
    gateway.request_rework("rec-1", "  fix rates ", "mgr", "manager", "client-9")
    gateway.bulk_delete(["a", "b"])
    gateway.delete("rec-1")
    rework, bulk, delete = server.calls
    assert rework.url.path.endswith("/rec-1/request-rework")
    assert json.loads(rework.content) == {"comments": "fix rates", "username": "mgr", "userRole": "manager", "clientId": "client-9"}
    assert bulk.url.path.endswith("/bulk/delete")
    assert json.loads(bulk.content) == {"ids": ["a", "b"]}
    assert delete.method == "DELETE"


def test_token_refreshed_once_on_401():
    server = _Server()
    client = httpx.Client(transport=httpx.MockTransport(server))
    refreshed = []

    def refresher():
        refreshed.append(True)
        return "good-token"

    gateway = RecordGateway(base_url=BASE, token="stale", cache=ResponseCache(), client=client, token_refresher=refresher)
    result = gateway.get_by_id("rec-1")
    assert result.success
    assert refreshed == [True]
    assert len(server.calls) == 2


def test_response_cache_ttl_and_invalidate():
    now = [100.0]
    cache = ResponseCache(ttl_s=10, clock=lambda: now[0])
    key = cache_key(f"{BASE}/bof-maharashtra", {"page": 2, "status": "pending"})
    assert key == f"{BASE}/bof-maharashtra?page=2&status=pending"
    cache.set(key, "cached")
    cache.set("https://other/x", "other")
    assert cache.get(key) == "cached"
    now[0] = 111.0
    assert cache.get(key) is None
    cache.set(key, "again")
    assert cache.invalidate("bof-maharashtra") == 1
    assert len(cache) == 1
    cache.set(key, "x")
    cache.clear()
    assert cache.get(key) is None
