"""Core service for recording and listing fuel entries."""

import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import aiofiles
from pydantic import ValidationError

from fueltrakr.core.services.base import BaseService
from fueltrakr.core.services.demo_fixtures import demo_fuel_entries, demo_user_for_token
from fueltrakr.domain.constants import DEMO_PHOTO_PATH, DEMO_PHOTO_URL, MAX_PHOTO_SIZE
from fueltrakr.domain.errors import FuelTrakrError, TransportFailure
from fueltrakr.domain.models.fuel import FuelEntry, PhotoUpload
from fueltrakr.domain.models.result import Err, ErrorKind, Ok, ServiceResult
from fueltrakr.domain.validation import FuelEntryDraft, validate_data
from fueltrakr.infrastructure.config.settings import AppSettings
from fueltrakr.infrastructure.http.api_client import ApiClient

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FuelService(BaseService):
    """Submits and lists fuel entries, and uploads receipt or VIN photos.

    In demo mode entries live in a list owned by this instance, newest
    first. Reads hand out copies of that list.
    """

    def __init__(
        self,
        settings: AppSettings,
        api_client: Optional[ApiClient] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        super().__init__(settings, api_client)
        self._clock = clock
        self._lock = threading.Lock()
        self._demo_entries: List[FuelEntry] = demo_fuel_entries(clock()) if self.demo_mode else []
        logger.info(f"FuelService initialized (demo_mode={self.demo_mode})")

    async def submit_fuel_entry(
        self, entry_data: Union[FuelEntryDraft, Dict[str, Any]], token: str,
    ) -> ServiceResult[FuelEntry]:
        """Validates and records a fill-up.

        Args:
            entry_data: A draft, or a mapping with snake_case or camelCase keys.
            token: Access token of the submitting user.
        """
        draft = validate_data(FuelEntryDraft, entry_data)
        if isinstance(draft, Err):
            logger.info(f"Rejected fuel entry: {draft.message}")
            return draft

        if self.demo_mode:
            return self._demo_submit(draft.value, token)

        try:
            data = await self.api.post("/fuel-entries", draft.value.to_payload(), token=token)
        except TransportFailure as e:
            return self._err("Network error while submitting fuel entry", e)
        except FuelTrakrError as e:
            return self._err("Failed to create fuel entry", e)
        try:
            entry = FuelEntry.model_validate(data)
        except ValidationError as e:
            return self._err("Failed to create fuel entry: unexpected response", e, kind=ErrorKind.HTTP_STATUS)
        logger.info(f"Fuel entry {entry.id} submitted for {entry.vehicle_label}")
        return Ok(entry)

    def _demo_submit(self, draft: FuelEntryDraft, token: str) -> ServiceResult[FuelEntry]:
        user = demo_user_for_token(token)
        if user is None:
            return Err(message="Please sign in again to submit entries", kind=ErrorKind.AUTH)
        entry = FuelEntry(
            id=f"demo-{uuid.uuid4().hex}",
            user_id=user.id,
            user_name=user.name,
            submitted_at=self._clock(),
            **draft.model_dump(),
        )
        with self._lock:
            self._demo_entries.insert(0, entry)
        logger.debug(f"Demo mode: stored fuel entry {entry.id}")
        return Ok(entry)

    async def get_user_fuel_entries(self, token: str) -> ServiceResult[List[FuelEntry]]:
        """Lists the entries visible to ``token``'s user, newest first.

        Admins see every entry; porters see their own.
        """
        if self.demo_mode:
            user = demo_user_for_token(token)
            if user is None:
                return Err(message="Please sign in again to view entries", kind=ErrorKind.AUTH)
            with self._lock:
                if user.role == "admin":
                    return Ok(list(self._demo_entries))
                return Ok([entry for entry in self._demo_entries if entry.user_id == user.id])

        try:
            data = await self.api.get("/fuel-entries", token=token)
        except TransportFailure as e:
            return self._err("Network error while fetching fuel entries", e)
        except FuelTrakrError as e:
            return self._err("Failed to fetch fuel entries", e)
        try:
            return Ok([FuelEntry.model_validate(item) for item in data or []])
        except (ValidationError, TypeError) as e:
            return self._err("Failed to fetch fuel entries: unexpected response", e, kind=ErrorKind.HTTP_STATUS)

    async def upload_photo(self, photo_path: Union[str, Path], token: str) -> ServiceResult[PhotoUpload]:
        """Uploads a receipt or VIN photo and returns where it was stored."""
        path = Path(photo_path)
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            return Err(message=f"Photo not found: {path}", kind=ErrorKind.NOT_FOUND)
        except OSError as e:
            return self._err(f"Could not read photo: {path}", e, kind=ErrorKind.LOCAL_IO)
        if not path.is_file():
            return Err(message=f"Photo not found: {path}", kind=ErrorKind.NOT_FOUND)
        if size > MAX_PHOTO_SIZE:
            return Err(
                message=f"Photo is too large ({size / (1024 * 1024):.1f}MB). Maximum is 5MB.",
                kind=ErrorKind.VALIDATION,
            )

        if self.demo_mode:
            logger.debug(f"Demo mode: skipping upload of {path.name}")
            return Ok(PhotoUpload(url=DEMO_PHOTO_URL, path=DEMO_PHOTO_PATH))

        try:
            async with aiofiles.open(path, mode='rb') as f:
                content = await f.read()
        except OSError as e:
            return self._err(f"Could not read photo: {path}", e, kind=ErrorKind.LOCAL_IO)

        try:
            data = await self.api.upload("/upload-photo", files={"photo": (path.name, content)}, token=token)
        except TransportFailure as e:
            return self._err("Network error while uploading photo", e)
        except FuelTrakrError as e:
            return self._err("Failed to upload photo", e)
        try:
            return Ok(PhotoUpload.model_validate(data))
        except ValidationError as e:
            return self._err("Failed to upload photo: unexpected response", e, kind=ErrorKind.HTTP_STATUS)
