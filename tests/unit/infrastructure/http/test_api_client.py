import json

import httpx
import pytest

from fueltrakr.domain.errors import HttpStatusFailure, TransportFailure

BASE_URL = "https://testproj.supabase.co/functions/v1/make-server-218dc5b7"


@pytest.mark.asyncio
async def test_post_sends_json_with_bearer_token(api_client_factory, recorded_requests):
    client = api_client_factory(lambda request: httpx.Response(200, json={"id": "entry-1"}))

    payload = await client.post("/fuel-entries", {"mileage": 45000}, token="abc123")

    assert payload == {"id": "entry-1"}
    request = recorded_requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{BASE_URL}/fuel-entries"
    assert request.headers["Authorization"] == "Bearer abc123"
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.content) == {"mileage": 45000}


@pytest.mark.asyncio
async def test_request_without_token_has_no_authorization_header(api_client_factory, recorded_requests):
    client = api_client_factory(lambda request: httpx.Response(200, json=[]))

    await client.get("users")

    assert "Authorization" not in recorded_requests[0].headers


@pytest.mark.asyncio
async def test_get_passes_query_params(api_client_factory, recorded_requests):
    client = api_client_factory(lambda request: httpx.Response(200, json=[]))

    await client.get("/fuel-entries", token="t", params={"limit": 5})

    assert recorded_requests[0].url.params["limit"] == "5"


@pytest.mark.asyncio
async def test_non_2xx_raises_http_status_failure(api_client_factory):
    client = api_client_factory(lambda request: httpx.Response(404, json={"error": "User profile not found"}))

    with pytest.raises(HttpStatusFailure) as excinfo:
        await client.get("/user/profile", token="t")

    assert excinfo.value.status_code == 404
    assert excinfo.value.server_message == "User profile not found"


@pytest.mark.asyncio
async def test_transport_error_is_retried_then_raised(api_client_factory, recorded_requests):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = api_client_factory(handler, max_retries=2)

    with pytest.raises(TransportFailure):
        await client.delete("/admin/users/u1", token="t")

    assert len(recorded_requests) == 3


@pytest.mark.asyncio
async def test_upload_sends_multipart_photo(api_client_factory, recorded_requests):
    client = api_client_factory(
        lambda request: httpx.Response(200, json={"url": "https://cdn/x.jpg", "path": "u/x.jpg"})
    )

    result = await client.upload("/upload-photo", {"photo": ("receipt.jpg", b"\xff\xd8jpeg")}, token="t")

    assert result["url"] == "https://cdn/x.jpg"
    request = recorded_requests[0]
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    body = request.read()
    assert b'name="photo"' in body
    assert b'filename="receipt.jpg"' in body


@pytest.mark.asyncio
async def test_download_returns_raw_bytes(api_client_factory):
    client = api_client_factory(lambda request: httpx.Response(200, content=b"date,gallons\n2024-01-01,12.5\n"))

    content = await client.download("/admin/export", token="t")

    assert content == b"date,gallons\n2024-01-01,12.5\n"


@pytest.mark.asyncio
async def test_default_headers_are_sent(api_client_factory, recorded_requests):
    client = api_client_factory(lambda request: httpx.Response(200, json={}))
    client.default_headers["apikey"] = "anon-key"

    await client.put("/admin/users/u1/role", {"role": "admin"}, token="t")

    assert recorded_requests[0].headers["apikey"] == "anon-key"
    assert recorded_requests[0].method == "PUT"
