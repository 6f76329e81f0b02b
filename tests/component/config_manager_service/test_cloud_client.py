import json

import httpx
import pytest

from services.config_manager_service.src.cloud_client import CloudClient
from services.config_manager_service.src.validator import TransientSyncError


def make_client(handler) -> CloudClient:
    return CloudClient(
        backend_url="http://backend.test/",
        app_id="app",
        app_secret="secret",
        rasp_id="abcdefghij0123456789",
        transport=httpx.MockTransport(handler),
    )


def test_heartbeat_request_and_config():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={
            "status": 0,
            "description": "ok",
            "data": {"config_time": 1700000000, "config": {"block.status_code": 404}},
        })

    client = make_client(handler)
    try:
        assert client.fetch_config() == {"block.status_code": 404}
        assert client.config_time == 1700000000
    finally:
        client.close()

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "http://backend.test/v1/agent/heartbeat"
    assert request.headers["X-OpenRASP-AppID"] == "app"
    assert request.headers["X-OpenRASP-AppSecret"] == "secret"
    assert json.loads(request.content) == {"rasp_id": "abcdefghij0123456789", "config_time": 0}


def test_config_time_is_sent_back():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"status": 0, "data": {"config_time": 5, "config": {}}})

    client = make_client(handler)
    client.fetch_config()
    client.fetch_config()
    client.close()
    assert [body["config_time"] for body in bodies] == [0, 5]


def test_no_configuration_change():
    client = make_client(lambda request: httpx.Response(200, json={"status": 0, "data": {"config_time": 0}}))
    assert client.fetch_config() is None
    client.close()


def test_rejected_heartbeat():
    client = make_client(lambda request: httpx.Response(200, json={"status": 401, "description": "bad secret"}))
    with pytest.raises(TransientSyncError, match="bad secret"):
        client.fetch_config()


def test_http_error_status():
    client = make_client(lambda request: httpx.Response(502))
    with pytest.raises(TransientSyncError):
        client.fetch_config()


def test_invalid_payload():
    client = make_client(lambda request: httpx.Response(200, content=b"not json"))
    with pytest.raises(TransientSyncError):
        client.fetch_config()


def test_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(TransientSyncError):
        client.fetch_config()
