from unittest.mock import AsyncMock, MagicMock

import pytest
from elasticsearch import ConnectionError as SearchConnectionError
from elasticsearch import NotFoundError

from fueltrakr.domain.models.user import User
from fueltrakr.infrastructure.config.settings import ElasticsearchSettings
from fueltrakr.infrastructure.search.user_index import UserIndex


@pytest.fixture
def es():
    client = MagicMock()
    for name in ("index", "get", "search", "update", "delete", "exists"):
        setattr(client, name, AsyncMock())
    return client


@pytest.fixture
def users(es):
    return UserIndex(es, ElasticsearchSettings(index_prefix="test"))


@pytest.mark.asyncio
async def test_create_user_lowercases_email(users, es):
    document = await users.create_user("u1", "Pat@Example.com", "Pat")

    assert document["email"] == "pat@example.com"
    assert document["role"] == "porter"
    assert document["created_at"] == document["updated_at"]
    es.index.assert_awaited_once()
    assert es.index.await_args.kwargs["index"] == "test_users"
    assert es.index.await_args.kwargs["id"] == "u1"


@pytest.mark.asyncio
async def test_create_user_rejects_unknown_role(users, es):
    with pytest.raises(ValueError):
        await users.create_user("u1", "pat@example.com", "Pat", role="owner")
    es.index.assert_not_awaited()


@pytest.mark.asyncio
async def test_index_user_from_model(users, es):
    await users.index_user(User(id="a1", email="boss@example.com", name="Boss", role="admin"))

    assert es.index.await_args.kwargs["document"]["role"] == "admin"


@pytest.mark.asyncio
async def test_get_user_by_email(users, es):
    es.search.return_value = {"hits": {"hits": [{"_source": {"id": "u1"}}]}}

    assert await users.get_user_by_email("PAT@example.com") == {"id": "u1"}
    assert es.search.await_args.kwargs["query"] == {"term": {"email": "pat@example.com"}}


@pytest.mark.asyncio
async def test_update_user_returns_fresh_document(users, es):
    es.get.return_value = {"_source": {"id": "u1", "role": "admin"}}

    updated = await users.update_user("u1", role="admin")

    assert updated == {"id": "u1", "role": "admin"}
    changes = es.update.await_args.kwargs["doc"]
    assert changes["role"] == "admin"
    assert "name" not in changes


@pytest.mark.asyncio
async def test_update_missing_user(users, es):
    es.update.side_effect = NotFoundError("missing", meta=MagicMock(status=404), body={})

    assert await users.update_user("ghost", name="Nobody") is None


@pytest.mark.asyncio
async def test_delete_user(users, es):
    assert await users.delete_user("u1") is True

    es.delete.side_effect = NotFoundError("missing", meta=MagicMock(status=404), body={})
    assert await users.delete_user("u1") is False


@pytest.mark.asyncio
async def test_users_by_role(users, es):
    es.search.return_value = {"hits": {"hits": []}}

    assert await users.users_by_role("admin") == []
    assert es.search.await_args.kwargs["query"] == {"term": {"role": "admin"}}


@pytest.mark.asyncio
async def test_user_exists_is_false_when_store_unreachable(users, es):
    es.exists.side_effect = SearchConnectionError("refused")

    assert await users.user_exists("u1") is False
