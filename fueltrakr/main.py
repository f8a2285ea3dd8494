"""Main entry point for the FuelTrakr CLI.

Sets up the Typer CLI application, performs dependency injection
(Composition Root), defines CLI commands, and delegates execution to the
CommandHandler.
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Coroutine, Dict, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from fueltrakr.core.command_handler import CommandHandler
from fueltrakr.core.services.admin_service import AdminService
from fueltrakr.core.services.auth_service import AuthService
from fueltrakr.core.services.fuel_service import FuelService

# --- Domain Layer ---
from fueltrakr.domain.constants import ROLES
from fueltrakr.domain.errors import ConfigurationError

# --- Infrastructure Layer ---
from fueltrakr.infrastructure.auth.supabase_auth import SupabaseAuthBackend
from fueltrakr.infrastructure.cache.session_cache import DiskSessionStore
from fueltrakr.infrastructure.cli.display import ConsoleDisplay
from fueltrakr.infrastructure.config.settings import AppSettings, default_log_level, load_settings
from fueltrakr.infrastructure.http.api_client import ApiClient
from fueltrakr.infrastructure.monitoring.logger_setup import setup_logging
from fueltrakr.infrastructure.resilience.api_retry import ApiRetryService, RetryPolicy
from fueltrakr.infrastructure.search.client import create_search_client
from fueltrakr.infrastructure.search.fuel_entry_index import FuelEntrySearchParams

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_dependencies(settings: AppSettings) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.

    Raises:
        ConfigurationError: If live mode is selected without backend settings.
    """
    logger.info(f"Initializing application dependencies (demo_mode={settings.demo_mode})...")
    dependencies: Dict[str, Any] = {'settings': settings}

    dependencies['ui'] = ConsoleDisplay()
    dependencies['session_store'] = DiskSessionStore(settings.session_dir)

    api_client = None
    auth_backend = None
    if not settings.demo_mode:
        supabase = settings.supabase
        if not supabase.api_base_url or not supabase.project_url:
            raise ConfigurationError(
                "FUELTRAKR_SUPABASE_PROJECT_ID (or FUELTRAKR_SUPABASE_URL) is required outside demo mode. "
                "Set FUELTRAKR_DEMO_MODE=true to try the app without a backend."
            )
        if not supabase.anon_key:
            raise ConfigurationError("FUELTRAKR_SUPABASE_ANON_KEY is required outside demo mode.")

        dependencies['api_retry_service'] = ApiRetryService(
            default_policy=RetryPolicy(
                max_retries=settings.retry.max_retries,
                base_delay_ms=settings.retry.base_delay_ms,
                max_delay_ms=settings.retry.max_delay_ms,
            ),
            timeout_ms=settings.api_timeout_ms,
        )
        api_client = ApiClient(
            supabase.api_base_url,
            dependencies['api_retry_service'],
            default_headers={"apikey": supabase.anon_key},
        )
        auth_backend = SupabaseAuthBackend(supabase.project_url, supabase.anon_key)

    dependencies['auth_service'] = AuthService(
        settings, dependencies['session_store'], api_client=api_client, auth_backend=auth_backend,
    )
    dependencies['fuel_service'] = FuelService(settings, api_client=api_client)
    dependencies['admin_service'] = AdminService(settings, api_client=api_client)
    logger.info("Core services initialized.")

    dependencies['command_handler'] = CommandHandler(
        settings=settings,
        auth_service=dependencies['auth_service'],
        fuel_service=dependencies['fuel_service'],
        admin_service=dependencies['admin_service'],
        ui=dependencies['ui'],
        search_client_factory=lambda: create_search_client(settings.elasticsearch),
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="fueltrakr",
    help="FuelTrakr: log dealership fuel fill-ups and manage porter accounts.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(ctx: typer.Context, coro: Coroutine[Any, Any, bool]) -> None:
    """Runs a handler coroutine, releases resources, and sets the exit code."""
    dependencies: Dict[str, Any] = ctx.obj

    async def runner() -> bool:
        try:
            return await coro
        finally:
            executor = dependencies.get('api_retry_service')
            if executor is not None:
                await executor.aclose()

    try:
        succeeded = asyncio.run(runner())
    finally:
        dependencies['session_store'].close()
    if not succeeded:
        raise typer.Exit(code=1)


def _handler(ctx: typer.Context) -> CommandHandler:
    """Wires the application on first use so ``--help`` never needs a backend."""
    if 'command_handler' not in ctx.obj:
        try:
            ctx.obj.update(create_dependencies(ctx.obj['settings']))
        except ConfigurationError as e:
            logger.error(f"Fatal Error during application initialization: {e}")
            ConsoleDisplay().display_error(str(e))
            raise typer.Exit(code=2)
    return ctx.obj['command_handler']


@app.callback()
def main_callback(
    ctx: typer.Context,
    demo: Annotated[
        Optional[bool],
        typer.Option("--demo/--live", help="Override the configured mode for this invocation."),
    ] = None,
    debug: Annotated[
        Optional[bool],
        typer.Option("--debug/--no-debug", help="Show debug logging and error detail."),
    ] = None,
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", help="Path to a YAML configuration file."),
    ] = None,
):
    """Loads configuration once for the invocation."""
    try:
        settings = load_settings(config_file=config_file)
    except ConfigurationError as e:
        ConsoleDisplay().display_error(f"Invalid configuration: {e}")
        raise typer.Exit(code=2)

    overrides: Dict[str, Any] = {}
    if demo is not None:
        overrides['demo_mode'] = demo
    if debug is not None:
        overrides['debug_mode'] = debug
        overrides['log_level'] = default_log_level(debug, settings.console_logging)
    if overrides:
        settings = settings.with_overrides(**overrides)

    setup_logging(log_level=settings.log_level, log_format=settings.log_format, log_file=settings.log_file)

    ctx.obj = {'settings': settings}


# --- CLI Commands ---

@app.command()
def login(
    ctx: typer.Context,
    email: Annotated[str, typer.Option("--email", "-e", prompt=True, help="Account email.")],
    password: Annotated[str, typer.Option("--password", "-p", prompt=True, hide_input=True, help="Account password.")],
):
    """Sign in and remember the session."""
    run_async(ctx, _handler(ctx).handle_login(email, password))


@app.command()
def logout(ctx: typer.Context):
    """Sign out and forget the stored session."""
    run_async(ctx, _handler(ctx).handle_logout())


@app.command()
def whoami(ctx: typer.Context):
    """Show the signed-in user."""
    run_async(ctx, _handler(ctx).handle_whoami())


@app.command()
def refresh(ctx: typer.Context):
    """Refresh the access token of the stored session."""
    run_async(ctx, _handler(ctx).handle_refresh())


@app.command()
def signup(
    ctx: typer.Context,
    email: Annotated[str, typer.Option("--email", "-e", prompt=True, help="Account email.")],
    name: Annotated[str, typer.Option("--name", "-n", prompt=True, help="Full name.")],
    password: Annotated[
        str, typer.Option("--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True, help="Password (8+ characters).")
    ],
):
    """Create a porter account."""
    run_async(ctx, _handler(ctx).handle_signup(email, password, name))


@app.command()
def submit(
    ctx: typer.Context,
    mileage: Annotated[float, typer.Option("--mileage", "-m", help="Odometer reading.")],
    gallons: Annotated[float, typer.Option("--gallons", "-g", help="Fuel amount in gallons.")],
    cost: Annotated[float, typer.Option("--cost", "-c", help="Total cost in dollars.")],
    stock_number: Annotated[Optional[str], typer.Option("--stock-number", "-s", help="Dealer stock number.")] = None,
    vin: Annotated[Optional[str], typer.Option("--vin", help="17-character VIN.")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Free-form notes.")] = None,
    latitude: Annotated[Optional[float], typer.Option(help="Latitude of the fill-up.")] = None,
    longitude: Annotated[Optional[float], typer.Option(help="Longitude of the fill-up.")] = None,
    address: Annotated[Optional[str], typer.Option(help="Address of the fill-up.")] = None,
    timestamp: Annotated[
        Optional[datetime], typer.Option(help="When the fill-up happened (defaults to now).")
    ] = None,
    receipt: Annotated[
        Optional[Path], typer.Option("--receipt", exists=True, dir_okay=False, help="Receipt photo to upload.")
    ] = None,
    vin_photo: Annotated[
        Optional[Path], typer.Option("--vin-photo", exists=True, dir_okay=False, help="VIN photo to upload.")
    ] = None,
):
    """Record a fuel fill-up. Requires a stock number or a VIN."""
    entry_data: Dict[str, Any] = {
        "stock_number": stock_number,
        "vin": vin,
        "mileage": mileage,
        "fuel_amount": gallons,
        "fuel_cost": cost,
        "notes": notes,
        "timestamp": timestamp,
    }
    if latitude is not None and longitude is not None:
        entry_data["location"] = {"latitude": latitude, "longitude": longitude, "address": address}
    run_async(ctx, _handler(ctx).handle_submit(entry_data, receipt_path=receipt, vin_photo_path=vin_photo))


@app.command()
def entries(ctx: typer.Context):
    """List fuel entries (all entries for admins)."""
    run_async(ctx, _handler(ctx).handle_entries())


@app.command(name="upload-photo")
def upload_photo_command(
    ctx: typer.Context,
    photo: Annotated[Path, typer.Argument(help="Photo file (max 5MB).")],
):
    """Upload a receipt or VIN photo."""
    run_async(ctx, _handler(ctx).handle_upload_photo(photo))


@app.command()
def users(ctx: typer.Context):
    """List all users (admin only)."""
    run_async(ctx, _handler(ctx).handle_users())


@app.command(name="set-role")
def set_role_command(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Id of the user to change.")],
    role: Annotated[str, typer.Argument(help=f"New role ({', '.join(ROLES)}).")],
):
    """Change a user's role (admin only)."""
    run_async(ctx, _handler(ctx).handle_set_role(user_id, role))


@app.command(name="delete-user")
def delete_user_command(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Id of the user to delete.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt.")] = False,
):
    """Delete a user account (admin only)."""
    if not yes:
        typer.confirm(f"Delete user {user_id}?", abort=True)
    run_async(ctx, _handler(ctx).handle_delete_user(user_id))


@app.command()
def export(
    ctx: typer.Context,
    output_dir: Annotated[Path, typer.Option("--output-dir", "-o", file_okay=False, help="Where to save the CSV.")] = Path("."),
):
    """Download the accounting export CSV (admin only)."""
    run_async(ctx, _handler(ctx).handle_export(output_dir))


@app.command()
def overview(ctx: typer.Context):
    """Show dashboard totals (admin only)."""
    run_async(ctx, _handler(ctx).handle_overview())


@app.command(name="init-indices")
def init_indices_command(ctx: typer.Context):
    """Create the search indices if they do not exist."""
    run_async(ctx, _handler(ctx).handle_init_indices())


@app.command(name="sync-index")
def sync_index_command(ctx: typer.Context):
    """Copy all users and fuel entries into the search index (admin only)."""
    run_async(ctx, _handler(ctx).handle_sync_index())


@app.command()
def search(
    ctx: typer.Context,
    user_id: Annotated[Optional[str], typer.Option(help="Only entries of this user.")] = None,
    stock_number: Annotated[Optional[str], typer.Option(help="Only this stock number.")] = None,
    vin: Annotated[Optional[str], typer.Option(help="Only this VIN.")] = None,
    start_date: Annotated[Optional[str], typer.Option(help="Earliest timestamp (ISO 8601).")] = None,
    end_date: Annotated[Optional[str], typer.Option(help="Latest timestamp (ISO 8601).")] = None,
    min_amount: Annotated[Optional[float], typer.Option(help="Minimum total amount.")] = None,
    max_amount: Annotated[Optional[float], typer.Option(help="Maximum total amount.")] = None,
    limit: Annotated[int, typer.Option(min=1, help="Maximum results.")] = 100,
    offset: Annotated[int, typer.Option(min=0, help="Results to skip.")] = 0,
):
    """Search indexed fuel entries (admin only)."""
    params = FuelEntrySearchParams(
        user_id=user_id,
        stock_number=stock_number,
        vin=vin.upper() if vin else None,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
        limit=limit,
        offset=offset,
    )
    run_async(ctx, _handler(ctx).handle_search_entries(params))


@app.command()
def stats(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="User to summarize.")],
):
    """Show indexed fuel statistics for one user (admin only)."""
    run_async(ctx, _handler(ctx).handle_user_stats(user_id))


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
