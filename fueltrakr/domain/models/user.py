"""User and session models."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Role = Literal["admin", "porter"]


class User(BaseModel):
    """An authenticated FuelTrakr user (porter or admin)."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    role: Role


class AuthSession(BaseModel):
    """A signed-in user together with the credentials for backend calls."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    user: User
    access_token: str
    refresh_token: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.user.role == "admin"
