import json
from datetime import date, datetime, timezone

import httpx
import pytest

from fueltrakr.core.services.admin_service import AdminService
from fueltrakr.core.services.demo_fixtures import DEMO_USERS, demo_fuel_entries
from fueltrakr.domain.models.result import Err, ErrorKind, Ok

USERS = [
    {"id": "a1", "email": "boss@example.com", "name": "Boss", "role": "admin"},
    {"id": "p1", "email": "pat@example.com", "name": "Pat", "role": "porter"},
]
ADMIN_TOKEN = "demo-token-admin"


# --- Demo mode ---

@pytest.mark.asyncio
async def test_demo_users(demo_settings):
    result = await AdminService(demo_settings).get_all_users(ADMIN_TOKEN)

    assert [user.id for user in result.value] == ["demo-admin", "demo-porter"]


@pytest.mark.asyncio
async def test_demo_role_change_does_not_touch_fixtures(demo_settings):
    service = AdminService(demo_settings)

    result = await service.update_user_role("demo-porter", "admin", ADMIN_TOKEN)

    assert result.value.role == "admin"
    assert DEMO_USERS[1].role == "porter"
    assert [u.role for u in (await service.get_all_users(ADMIN_TOKEN)).value] == ["admin", "admin"]


@pytest.mark.asyncio
async def test_invalid_role_is_rejected(demo_settings):
    result = await AdminService(demo_settings).update_user_role("demo-porter", "manager", ADMIN_TOKEN)

    assert result.kind == ErrorKind.VALIDATION


@pytest.mark.asyncio
async def test_demo_unknown_user(demo_settings):
    service = AdminService(demo_settings)

    assert (await service.update_user_role("ghost", "admin", ADMIN_TOKEN)).kind == ErrorKind.NOT_FOUND
    assert (await service.delete_user("ghost", ADMIN_TOKEN)).kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_demo_delete_user(demo_settings):
    service = AdminService(demo_settings)

    assert isinstance(await service.delete_user("demo-porter", ADMIN_TOKEN), Ok)
    assert [u.id for u in (await service.get_all_users(ADMIN_TOKEN)).value] == ["demo-admin"]


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["demo-token-porter", "dev-token-porter", "garbage"])
async def test_demo_user_management_requires_admin_token(demo_settings, token):
    service = AdminService(demo_settings)

    assert (await service.get_all_users(token)).kind == ErrorKind.AUTH
    assert (await service.update_user_role("demo-porter", "admin", token)).kind == ErrorKind.AUTH
    assert (await service.delete_user("demo-porter", token)).kind == ErrorKind.AUTH
    assert [u.role for u in (await service.get_all_users(ADMIN_TOKEN)).value] == ["admin", "porter"]


@pytest.mark.asyncio
async def test_demo_export_is_unavailable(demo_settings, tmp_path):
    result = await AdminService(demo_settings).export_data("demo-token-admin", tmp_path)

    assert isinstance(result, Err)
    assert result.kind == ErrorKind.VALIDATION
    assert list(tmp_path.iterdir()) == []


# --- Live mode ---

@pytest.mark.asyncio
async def test_live_get_all_users(live_settings, api_client_factory, recorded_requests):
    service = AdminService(live_settings, api_client_factory(lambda request: httpx.Response(200, json=USERS)))

    result = await service.get_all_users("tok")

    assert [user.name for user in result.value] == ["Boss", "Pat"]
    assert recorded_requests[0].url.path.endswith("/admin/users")


@pytest.mark.asyncio
async def test_live_get_all_users_failure(live_settings, api_client_factory):
    service = AdminService(live_settings, api_client_factory(lambda request: httpx.Response(403, json={})))

    result = await service.get_all_users("tok")

    assert result.message == "Network error while fetching users"
    assert result.kind == ErrorKind.HTTP_STATUS


@pytest.mark.asyncio
async def test_live_update_role(live_settings, api_client_factory, recorded_requests):
    service = AdminService(
        live_settings, api_client_factory(lambda request: httpx.Response(200, json={**USERS[1], "role": "admin"}))
    )

    result = await service.update_user_role("p1", "admin", "tok")

    assert result.value.role == "admin"
    request = recorded_requests[0]
    assert request.method == "PUT"
    assert request.url.path.endswith("/admin/users/p1/role")
    assert json.loads(request.content) == {"role": "admin"}


@pytest.mark.asyncio
async def test_live_delete_missing_user(live_settings, api_client_factory):
    service = AdminService(live_settings, api_client_factory(lambda request: httpx.Response(404, json={})))

    result = await service.delete_user("ghost", "tok")

    assert result.kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_live_export_writes_dated_csv(live_settings, api_client_factory, tmp_path):
    csv = b"Date,Stock Number,Gallons\n2024-03-14,STK123,12.5\n"
    service = AdminService(live_settings, api_client_factory(lambda request: httpx.Response(200, content=csv)))

    result = await service.export_data("tok", tmp_path / "exports", today=date(2024, 3, 15))

    assert result.value == tmp_path / "exports" / "fueltrakr-export-2024-03-15.csv"
    assert result.value.read_bytes() == csv


@pytest.mark.asyncio
async def test_live_export_unwritable_destination(live_settings, api_client_factory, tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file", encoding="utf-8")
    service = AdminService(live_settings, api_client_factory(lambda request: httpx.Response(200, content=b"x")))

    result = await service.export_data("tok", blocker)

    assert result.kind == ErrorKind.LOCAL_IO


# --- Overview ---

def test_summarize():
    now = datetime(2024, 3, 15, tzinfo=timezone.utc)
    entries = demo_fuel_entries(now)

    overview = AdminService.summarize(DEMO_USERS, entries, now=now)

    assert overview.total_users == 2
    assert overview.admin_users == 1
    assert overview.total_entries == 2
    assert overview.total_gallons == 20.7
    assert overview.total_cost == 70.65
    assert overview.entries_this_month == 2
    assert overview.missing_receipts == 2
