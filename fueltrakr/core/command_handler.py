"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the
work to the application services (AuthService, FuelService,
AdminService) or to the search index layer. Every handler reports the
outcome through the UserInterface and returns True on success.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from elasticsearch import AsyncElasticsearch

from fueltrakr.core.services.admin_service import AdminService
from fueltrakr.core.services.auth_service import AuthService
from fueltrakr.core.services.fuel_service import FuelService
from fueltrakr.domain.errors import FuelTrakrError
from fueltrakr.domain.interfaces.user_interface import UserInterface
from fueltrakr.domain.models.fuel import FuelEntry
from fueltrakr.domain.models.result import Err
from fueltrakr.domain.models.user import AuthSession
from fueltrakr.infrastructure.config.settings import AppSettings
from fueltrakr.infrastructure.search.fuel_entry_index import FuelEntryIndex, FuelEntrySearchParams, document_from_entry
from fueltrakr.infrastructure.search.provisioning import IndexProvisioner
from fueltrakr.infrastructure.search.user_index import UserIndex

logger = logging.getLogger(__name__)

SearchClientFactory = Callable[[], AsyncElasticsearch]


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        settings: AppSettings,
        auth_service: AuthService,
        fuel_service: FuelService,
        admin_service: AdminService,
        ui: UserInterface,
        search_client_factory: Optional[SearchClientFactory] = None,
    ):
        self.settings = settings
        self.auth_service = auth_service
        self.fuel_service = fuel_service
        self.admin_service = admin_service
        self.ui = ui
        self.search_client_factory = search_client_factory

    # --- Helpers ---

    def _report(self, result: Err) -> bool:
        self.ui.display_error(result.message, detail=result.detail)
        return False

    async def _require_session(self, admin: bool = False) -> Optional[AuthSession]:
        session = await self.auth_service.restore_session()
        if session is None:
            self.ui.display_error("Please log in first (fueltrakr login).")
            return None
        if admin and not session.is_admin:
            self.ui.display_error("This command requires an admin account.")
            return None
        return session

    def _report_failure(self, action: str, error: Exception) -> bool:
        logger.error(f"{action} failed: {error}")
        detail = f"{type(error).__name__}: {error}" if self.settings.debug_mode else None
        self.ui.display_error(f"{action} failed. Check the search index connection settings.", detail=detail)
        return False

    # --- Authentication ---

    async def handle_login(self, email: str, password: str) -> bool:
        logger.info(f"Handling 'login' for {email}")
        result = await self.auth_service.sign_in(email, password)
        if isinstance(result, Err):
            return self._report(result)
        user = result.value.user
        self.ui.display_success(f"Signed in as {user.name} ({user.role}).")
        return True

    async def handle_logout(self) -> bool:
        await self.auth_service.sign_out()
        self.ui.display_success("Signed out.")
        return True

    async def handle_whoami(self) -> bool:
        session = await self._require_session()
        if session is None:
            return False
        self.ui.display_mapping(
            {
                "Name": session.user.name,
                "Email": session.user.email,
                "Role": session.user.role,
                "Mode": "demo" if self.settings.demo_mode else "live",
            },
            title="Current User",
        )
        return True

    async def handle_refresh(self) -> bool:
        token = await self.auth_service.refresh_token()
        if token is None:
            self.ui.display_warning("Session could not be refreshed. Please log in again.")
            return False
        self.ui.display_success("Session refreshed.")
        return True

    async def handle_signup(self, email: str, password: str, name: str) -> bool:
        result = await self.auth_service.sign_up(email, password, name)
        if isinstance(result, Err):
            return self._report(result)
        self.ui.display_success(f"Account created for {result.value.email}. You can now log in.")
        return True

    # --- Fuel entries ---

    async def handle_submit(
        self,
        entry_data: Dict[str, Any],
        receipt_path: Optional[Path] = None,
        vin_photo_path: Optional[Path] = None,
    ) -> bool:
        """Uploads any photos first, then records the entry with their URLs."""
        session = await self._require_session()
        if session is None:
            return False
        payload = {key: value for key, value in entry_data.items() if value is not None}
        for field_name, path in (("receipt_photo", receipt_path), ("vin_photo", vin_photo_path)):
            if path is None:
                continue
            upload = await self.fuel_service.upload_photo(path, session.access_token)
            if isinstance(upload, Err):
                return self._report(upload)
            payload[field_name] = upload.value.url

        result = await self.fuel_service.submit_fuel_entry(payload, session.access_token)
        if isinstance(result, Err):
            return self._report(result)
        entry = result.value
        self.ui.display_success(
            f"Recorded {entry.fuel_amount:.2f} gal (${entry.fuel_cost:.2f}) for {entry.vehicle_label}. Entry id: {entry.id}"
        )
        return True

    async def handle_entries(self) -> bool:
        session = await self._require_session()
        if session is None:
            return False
        result = await self.fuel_service.get_user_fuel_entries(session.access_token)
        if isinstance(result, Err):
            return self._report(result)
        title = "All Fuel Entries" if session.is_admin else "My Fuel Entries"
        self.ui.display_entries(result.value, title=title)
        return True

    async def handle_upload_photo(self, photo_path: Path) -> bool:
        session = await self._require_session()
        if session is None:
            return False
        result = await self.fuel_service.upload_photo(photo_path, session.access_token)
        if isinstance(result, Err):
            return self._report(result)
        self.ui.display_success(f"Photo uploaded: {result.value.url}")
        return True

    # --- Administration ---

    async def handle_users(self) -> bool:
        session = await self._require_session(admin=True)
        if session is None:
            return False
        result = await self.admin_service.get_all_users(session.access_token)
        if isinstance(result, Err):
            return self._report(result)
        self.ui.display_users(result.value)
        return True

    async def handle_set_role(self, user_id: str, role: str) -> bool:
        session = await self._require_session(admin=True)
        if session is None:
            return False
        result = await self.admin_service.update_user_role(user_id, role, session.access_token)
        if isinstance(result, Err):
            return self._report(result)
        self.ui.display_success(f"{result.value.name} is now {result.value.role}.")
        return True

    async def handle_delete_user(self, user_id: str) -> bool:
        session = await self._require_session(admin=True)
        if session is None:
            return False
        if user_id == session.user.id:
            self.ui.display_error("You cannot delete your own account.")
            return False
        result = await self.admin_service.delete_user(user_id, session.access_token)
        if isinstance(result, Err):
            return self._report(result)
        self.ui.display_success(f"User {user_id} deleted.")
        return True

    async def handle_export(self, destination: Path) -> bool:
        session = await self._require_session(admin=True)
        if session is None:
            return False
        result = await self.admin_service.export_data(session.access_token, destination)
        if isinstance(result, Err):
            return self._report(result)
        self.ui.display_success(f"Export saved to {result.value}")
        return True

    async def handle_overview(self) -> bool:
        session = await self._require_session(admin=True)
        if session is None:
            return False
        users = await self.admin_service.get_all_users(session.access_token)
        if isinstance(users, Err):
            return self._report(users)
        entries = await self.fuel_service.get_user_fuel_entries(session.access_token)
        if isinstance(entries, Err):
            return self._report(entries)

        overview = self.admin_service.summarize(users.value, entries.value)
        self.ui.display_mapping(
            {
                "Total users": f"{overview.total_users} ({overview.admin_users} admin, {overview.porter_users} porter)",
                "Total entries": overview.total_entries,
                "Total gallons": f"{overview.total_gallons:,.2f}",
                "Total cost": f"${overview.total_cost:,.2f}",
                "This month": f"{overview.entries_this_month} entries, ${overview.cost_this_month:,.2f}",
                "Missing receipts": overview.missing_receipts,
            },
            title="Admin Overview",
        )
        return True

    # --- Search index ---

    def _search_client(self) -> Optional[AsyncElasticsearch]:
        if self.search_client_factory is None:
            self.ui.display_error("Search indexing is not configured.")
            return None
        return self.search_client_factory()

    async def handle_init_indices(self) -> bool:
        client = self._search_client()
        if client is None:
            return False
        try:
            created = await IndexProvisioner(client, self.settings.elasticsearch).ensure_indices()
        except FuelTrakrError as e:
            return self._report_failure("Index initialization", e)
        finally:
            await client.close()
        if created:
            self.ui.display_success(f"Created indices: {', '.join(created)}")
        else:
            self.ui.display_info("All indices already exist.")
        return True

    async def handle_sync_index(self) -> bool:
        """Copies every user and fuel entry into the search index.

        Documents are keyed by their ids, so running it again overwrites
        instead of duplicating.
        """
        session = await self._require_session(admin=True)
        if session is None:
            return False
        users = await self.admin_service.get_all_users(session.access_token)
        if isinstance(users, Err):
            return self._report(users)
        entries = await self.fuel_service.get_user_fuel_entries(session.access_token)
        if isinstance(entries, Err):
            return self._report(entries)

        client = self._search_client()
        if client is None:
            return False
        try:
            await IndexProvisioner(client, self.settings.elasticsearch).ensure_indices()
            user_index = UserIndex(client, self.settings.elasticsearch)
            for user in users.value:
                await user_index.index_user(user)
            entry_index = FuelEntryIndex(client, self.settings.elasticsearch)
            for entry in entries.value:
                await entry_index.create_entry(document_from_entry(entry))
        except FuelTrakrError as e:
            return self._report_failure("Index sync", e)
        finally:
            await client.close()
        logger.info(f"Indexed {len(users.value)} users and {len(entries.value)} entries")
        self.ui.display_success(f"Indexed {len(users.value)} users and {len(entries.value)} fuel entries.")
        return True

    async def handle_search_entries(self, params: FuelEntrySearchParams) -> bool:
        session = await self._require_session(admin=True)
        if session is None:
            return False
        client = self._search_client()
        if client is None:
            return False
        try:
            documents = await FuelEntryIndex(client, self.settings.elasticsearch).search(params)
        except FuelTrakrError as e:
            return self._report_failure("Search", e)
        finally:
            await client.close()
        entries = [_entry_from_document(doc) for doc in documents]
        self.ui.display_entries(entries, title=f"Search Results ({len(entries)})")
        return True

    async def handle_user_stats(self, user_id: str) -> bool:
        session = await self._require_session(admin=True)
        if session is None:
            return False
        client = self._search_client()
        if client is None:
            return False
        try:
            stats = await FuelEntryIndex(client, self.settings.elasticsearch).user_stats(user_id)
        except FuelTrakrError as e:
            return self._report_failure("Statistics lookup", e)
        finally:
            await client.close()
        self.ui.display_mapping(
            {
                "Entries": stats["total_entries"],
                "Gallons": f"{stats['total_gallons']:,.2f}",
                "Amount": f"${stats['total_amount']:,.2f}",
                "Avg price/gal": f"${stats['average_price_per_gallon']:,.3f}",
            },
            title=f"Fuel Statistics for {user_id}",
        )
        return True


def _entry_from_document(document: Dict[str, Any]) -> FuelEntry:
    """Display form of an indexed document."""
    return FuelEntry(
        id=document["id"],
        user_id=document["user_id"],
        user_name=document.get("user_name") or document["user_id"],
        stock_number=document.get("stock_number"),
        vin=document.get("vin"),
        mileage=document.get("odometer") or 0,
        fuel_amount=document.get("gallons") or 0,
        fuel_cost=document.get("total_amount") or 0,
        timestamp=document["timestamp"],
        notes=document.get("notes"),
        receipt_photo=document.get("receipt_photo"),
        vin_photo=document.get("vin_photo"),
        submitted_at=document.get("created_at") or document["timestamp"],
    )
