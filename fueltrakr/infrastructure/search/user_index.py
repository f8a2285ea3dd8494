"""User documents in the search index."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from elasticsearch import ApiError, AsyncElasticsearch, TransportError

from fueltrakr.domain.constants import ROLE_PORTER, ROLES
from fueltrakr.domain.models.user import User
from fueltrakr.infrastructure.config.settings import ElasticsearchSettings
from fueltrakr.infrastructure.search.client import USERS, index_name, is_not_found, translate_error

logger = logging.getLogger(__name__)

MAX_USERS = 10000


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserIndex:
    """CRUD over the ``users`` index. Documents are keyed by user id."""

    def __init__(self, client: AsyncElasticsearch, settings: ElasticsearchSettings):
        self.client = client
        self.index = index_name(settings, USERS)

    async def create_user(self, user_id: str, email: str, name: str, role: str = ROLE_PORTER) -> Dict[str, Any]:
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        timestamp = _now()
        document = {
            "id": user_id,
            "email": email.lower(),
            "name": name,
            "role": role,
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        try:
            await self.client.index(index=self.index, id=user_id, document=document, refresh="wait_for")
        except (ApiError, TransportError) as e:
            raise translate_error(e) from e
        return document

    async def index_user(self, user: User) -> Dict[str, Any]:
        return await self.create_user(user.id, user.email, user.name, user.role)

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = await self.client.get(index=self.index, id=user_id)
        except ApiError as e:
            if is_not_found(e):
                return None
            raise translate_error(e) from e
        except TransportError as e:
            raise translate_error(e) from e
        return response["_source"]

    async def _search(self, **body: Any) -> List[Dict[str, Any]]:
        try:
            response = await self.client.search(index=self.index, **body)
        except (ApiError, TransportError) as e:
            logger.error(f"Search on {self.index} failed: {e}")
            raise translate_error(e) from e
        return [hit["_source"] for hit in response["hits"]["hits"]]

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        hits = await self._search(query={"term": {"email": email.lower()}})
        return hits[0] if hits else None

    async def update_user(
        self, user_id: str, name: Optional[str] = None, role: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Applies the given changes; returns the updated document or None if absent."""
        if role is not None and role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        changes: Dict[str, Any] = {"updated_at": _now()}
        if name is not None:
            changes["name"] = name
        if role is not None:
            changes["role"] = role
        try:
            await self.client.update(index=self.index, id=user_id, doc=changes, refresh="wait_for")
        except ApiError as e:
            if is_not_found(e):
                return None
            raise translate_error(e) from e
        except TransportError as e:
            raise translate_error(e) from e
        return await self.get_user(user_id)

    async def delete_user(self, user_id: str) -> bool:
        try:
            await self.client.delete(index=self.index, id=user_id, refresh="wait_for")
        except ApiError as e:
            if is_not_found(e):
                return False
            raise translate_error(e) from e
        except TransportError as e:
            raise translate_error(e) from e
        return True

    async def all_users(self) -> List[Dict[str, Any]]:
        return await self._search(query={"match_all": {}}, sort=[{"created_at": "desc"}], size=MAX_USERS)

    async def users_by_role(self, role: str) -> List[Dict[str, Any]]:
        return await self._search(query={"term": {"role": role}}, sort=[{"created_at": "desc"}])

    async def user_exists(self, user_id: str) -> bool:
        try:
            return bool(await self.client.exists(index=self.index, id=user_id))
        except (ApiError, TransportError) as e:
            logger.warning(f"Could not check whether user {user_id} exists: {e}")
            return False
