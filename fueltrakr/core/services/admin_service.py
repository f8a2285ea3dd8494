"""Core service for administrator operations.

User management, the accounting export, and the overview figures shown
on the admin dashboard.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Union

import aiofiles
from pydantic import ValidationError

from fueltrakr.core.services.base import BaseService
from fueltrakr.core.services.demo_fixtures import DEMO_USERS, demo_user_for_token
from fueltrakr.domain.constants import EXPORT_FILENAME_TEMPLATE, ROLE_ADMIN, ROLES
from fueltrakr.domain.errors import FuelTrakrError
from fueltrakr.domain.models.fuel import FuelEntry
from fueltrakr.domain.models.result import Err, ErrorKind, Ok, ServiceResult
from fueltrakr.domain.models.user import User
from fueltrakr.infrastructure.config.settings import AppSettings
from fueltrakr.infrastructure.http.api_client import ApiClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdminOverview:
    """Dashboard figures for a set of users and entries."""
    total_users: int
    admin_users: int
    porter_users: int
    total_entries: int
    total_gallons: float
    total_cost: float
    entries_this_month: int
    cost_this_month: float
    missing_receipts: int


class AdminService(BaseService):
    """Administrator operations over demo fixtures or the backend API."""

    def __init__(self, settings: AppSettings, api_client: Optional[ApiClient] = None):
        super().__init__(settings, api_client)
        self._lock = threading.Lock()
        # Private copy so demo mutations never touch the shared fixtures
        self._demo_users: List[User] = list(DEMO_USERS)
        logger.info(f"AdminService initialized (demo_mode={self.demo_mode})")

    @staticmethod
    def _demo_admin_denied(token: str) -> Optional[Err]:
        user = demo_user_for_token(token)
        if user is None or user.role != ROLE_ADMIN:
            return Err(message="Admin access required", kind=ErrorKind.AUTH)
        return None

    async def get_all_users(self, token: str) -> ServiceResult[List[User]]:
        if self.demo_mode:
            denied = self._demo_admin_denied(token)
            if denied:
                return denied
            logger.debug("Demo mode: Returning demo users")
            with self._lock:
                return Ok(list(self._demo_users))

        try:
            data = await self.api.get("/admin/users", token=token)
            return Ok([User.model_validate(item) for item in data or []])
        except FuelTrakrError as e:
            logger.error(f"Failed to fetch users: {e}")
            return self._err("Network error while fetching users", e)
        except (ValidationError, TypeError) as e:
            logger.error(f"Unexpected users response: {e}")
            return self._err("Network error while fetching users", e, kind=ErrorKind.HTTP_STATUS)

    async def update_user_role(self, user_id: str, role: str, token: str) -> ServiceResult[User]:
        if role not in ROLES:
            return Err(message=f"Role must be one of: {', '.join(ROLES)}", kind=ErrorKind.VALIDATION)

        if self.demo_mode:
            denied = self._demo_admin_denied(token)
            if denied:
                return denied
            with self._lock:
                for index, user in enumerate(self._demo_users):
                    if user.id == user_id:
                        updated = user.model_copy(update={"role": role})
                        self._demo_users[index] = updated
                        logger.debug(f"Demo mode: {user_id} is now {role}")
                        return Ok(updated)
            return Err(message=f"User not found: {user_id}", kind=ErrorKind.NOT_FOUND)

        try:
            data = await self.api.put(f"/admin/users/{user_id}/role", {"role": role}, token=token)
            return Ok(User.model_validate(data))
        except FuelTrakrError as e:
            logger.error(f"Failed to update role of {user_id} to {role}: {e}")
            if getattr(e, "status_code", None) == 404:
                return self._err(f"User not found: {user_id}", e, kind=ErrorKind.NOT_FOUND)
            return self._err("Network error while updating user role", e)
        except ValidationError as e:
            return self._err("Network error while updating user role", e, kind=ErrorKind.HTTP_STATUS)

    async def delete_user(self, user_id: str, token: str) -> ServiceResult[bool]:
        if self.demo_mode:
            denied = self._demo_admin_denied(token)
            if denied:
                return denied
            with self._lock:
                remaining = [user for user in self._demo_users if user.id != user_id]
                if len(remaining) == len(self._demo_users):
                    return Err(message=f"User not found: {user_id}", kind=ErrorKind.NOT_FOUND)
                self._demo_users = remaining
            logger.debug(f"Demo mode: deleted {user_id}")
            return Ok(True)

        try:
            await self.api.delete(f"/admin/users/{user_id}", token=token)
        except FuelTrakrError as e:
            logger.error(f"Failed to delete user {user_id}: {e}")
            if getattr(e, "status_code", None) == 404:
                return self._err(f"User not found: {user_id}", e, kind=ErrorKind.NOT_FOUND)
            return self._err("Network error while deleting user", e)
        return Ok(True)

    async def export_data(
        self, token: str, destination_dir: Union[str, Path] = ".", today: Optional[date] = None,
    ) -> ServiceResult[Path]:
        """Downloads the accounting CSV into ``destination_dir``.

        The report is produced by the backend, so there is nothing to
        export in demo mode.
        """
        if self.demo_mode:
            return Err(
                message="Data export is not available in demo mode. Connect to the live backend to export.",
                kind=ErrorKind.VALIDATION,
            )

        logger.info("Exporting data")
        try:
            content = await self.api.download("/admin/export", token=token)
        except FuelTrakrError as e:
            logger.error(f"Failed to export data: {e}")
            return self._err("Failed to export data", e)

        today = today or datetime.now(timezone.utc).date()
        target = Path(destination_dir) / EXPORT_FILENAME_TEMPLATE.format(date=today.isoformat())
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, mode='wb') as f:
                await f.write(content)
        except OSError as e:
            logger.error(f"Failed to write export to {target}: {e}")
            return self._err(f"Could not write export file {target}", e, kind=ErrorKind.LOCAL_IO)
        logger.info(f"Data export written to {target}")
        return Ok(target)

    @staticmethod
    def summarize(
        users: Sequence[User], entries: Sequence[FuelEntry], now: Optional[datetime] = None,
    ) -> AdminOverview:
        now = now or datetime.now(timezone.utc)
        this_month = [
            entry for entry in entries
            if entry.timestamp.year == now.year and entry.timestamp.month == now.month
        ]
        return AdminOverview(
            total_users=len(users),
            admin_users=sum(1 for user in users if user.role == "admin"),
            porter_users=sum(1 for user in users if user.role == "porter"),
            total_entries=len(entries),
            total_gallons=round(sum(entry.fuel_amount for entry in entries), 2),
            total_cost=round(sum(entry.fuel_cost for entry in entries), 2),
            entries_this_month=len(this_month),
            cost_this_month=round(sum(entry.fuel_cost for entry in this_month), 2),
            missing_receipts=sum(1 for entry in entries if not entry.receipt_photo),
        )
