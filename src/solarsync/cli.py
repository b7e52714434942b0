"""Command-line interface for Solar Sync."""

import asyncio
from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

console = Console()


def run_async(coro):
    """Run an async coroutine to completion."""
    return asyncio.run(coro)


def load_settings(config_path: str | None = None):
    """Load and validate settings.

    Args:
        config_path: Optional path to .env file.

    Returns:
        Validated Settings object.
    """
    from solarsync.config.logging import configure_logging
    from solarsync.config.settings import Settings, get_settings

    try:
        if config_path:
            settings = Settings(_env_file=config_path)
        else:
            get_settings.cache_clear()
            settings = get_settings()
        configure_logging(settings)
        return settings
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        console.print("\n[yellow]Hint:[/yellow] Settings are read from SOLARSYNC_* variables or a .env file.")
        raise SystemExit(1) from None


def _format_time(value: str | datetime | None) -> str:
    if not value:
        return "-"
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.strftime("%Y-%m-%d %H:%M")


def _print_results(title: str, results, noun: str) -> None:
    table = Table(title=title)
    table.add_column("Vendor ID", style="cyan")
    table.add_column("Vendor")
    table.add_column("Organization")
    table.add_column("Status")
    table.add_column("Synced")
    table.add_column("Created")
    table.add_column("Updated")

    for result in results:
        status = "[green]Success[/green]" if result.success else "[red]Failed[/red]"
        table.add_row(
            str(result.vendor_id),
            result.vendor_name,
            result.org_name or "-",
            status,
            str(result.synced),
            str(result.created),
            str(result.updated),
        )
    console.print(table)

    successful = sum(1 for r in results if r.success)
    synced = sum(r.synced for r in results)
    console.print(
        f"\n[bold]Summary:[/bold] {successful}/{len(results)} vendors synced, {synced} {noun}"
    )
    for result in results:
        if result.error:
            console.print(f"[red]Vendor {result.vendor_id}:[/red] {result.error}")


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to .env configuration file",
)
@click.pass_context
def cli(ctx: click.Context, config: str | None) -> None:
    """Solar Sync - Pull plants and alerts from solar monitoring vendors."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config


@cli.command()
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Initialize the database schema."""
    from solarsync.config.logging import get_logger
    from solarsync.db.engine import create_engine, create_tables

    settings = load_settings(ctx.obj.get("config_path"))
    logger = get_logger(__name__)

    console.print("[bold]Initializing database...[/bold]")

    try:
        engine = create_engine(settings)
        create_tables(engine)
        console.print("[green]Database initialized successfully![/green]")
        logger.info("Database initialized", url=settings.database_url)
    except Exception as e:
        console.print(f"[red]Failed to initialize database:[/red] {e}")
        logger.error("Database initialization failed", error=str(e))
        raise SystemExit(1) from None


@cli.command()
@click.option("--force", is_flag=True, help="Ignore organization auto-sync settings")
@click.option("--vendor", "-v", "vendor_id", type=int, help="Sync a single vendor only")
@click.pass_context
def sync_plants(ctx: click.Context, force: bool, vendor_id: int | None) -> None:
    """Synchronize plants from every active vendor."""
    from solarsync.config.logging import get_logger
    from solarsync.db.engine import create_engine, create_tables
    from solarsync.sync.context import SyncContext
    from solarsync.sync.plants import PlantSyncService

    settings = load_settings(ctx.obj.get("config_path"))
    logger = get_logger(__name__)

    console.print("[bold]Starting plant sync...[/bold]")

    async def _sync():
        engine = create_engine(settings)
        create_tables(engine)
        service = PlantSyncService(engine, settings)
        context = SyncContext.for_user("sync-plants-cli", None, "CLI")

        if vendor_id:
            return [await service.sync_vendor(vendor_id, context)]
        summary = await service.sync_all(context, force=force)
        return summary.results

    try:
        results = run_async(_sync())
        if not results:
            console.print("[yellow]No vendors were due for sync.[/yellow]")
            return
        _print_results("Plant Sync Results", results, "plants")
        logger.info("Plant sync complete", vendors=len(results), force=force)
    except Exception as e:
        console.print(f"[red]Plant sync failed:[/red] {e}")
        logger.error("Plant sync failed", error=str(e))
        raise SystemExit(1) from None


@cli.command()
@click.option("--vendor", "-v", "vendor_id", type=int, help="Sync a single vendor only")
@click.pass_context
def sync_alerts(ctx: click.Context, vendor_id: int | None) -> None:
    """Synchronize alerts from every vendor that supports them."""
    from solarsync.config.logging import get_logger
    from solarsync.db.engine import create_engine, create_tables
    from solarsync.sync.alerts import AlertSyncService
    from solarsync.sync.context import SyncContext

    settings = load_settings(ctx.obj.get("config_path"))
    logger = get_logger(__name__)

    console.print("[bold]Starting alert sync...[/bold]")

    async def _sync():
        engine = create_engine(settings)
        create_tables(engine)
        service = AlertSyncService(engine, settings)
        context = SyncContext.for_user("sync-alerts-cli", None, "CLI")

        if vendor_id:
            return [await service.sync_vendor(vendor_id, context)]
        summary = await service.sync_all(context)
        return summary.results

    try:
        results = run_async(_sync())
        if not results:
            console.print("[yellow]No vendors with alert support.[/yellow]")
            return
        _print_results("Alert Sync Results", results, "alerts")
        logger.info("Alert sync complete", vendors=len(results))
    except Exception as e:
        console.print(f"[red]Alert sync failed:[/red] {e}")
        logger.error("Alert sync failed", error=str(e))
        raise SystemExit(1) from None


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the last sync times of every vendor."""
    from solarsync.config.logging import get_logger
    from solarsync.db.engine import create_engine
    from solarsync.sync.status import get_vendor_sync_status

    settings = load_settings(ctx.obj.get("config_path"))
    logger = get_logger(__name__)

    try:
        vendors = get_vendor_sync_status(create_engine(settings))

        if not vendors:
            console.print("[yellow]No vendors configured.[/yellow]")
            return

        table = Table(title="Vendor Sync Status")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("Active")
        table.add_column("Organization")
        table.add_column("Auto Sync")
        table.add_column("Last Plant Sync")
        table.add_column("Last Alert Sync")

        for vendor in vendors:
            org = vendor["organization"]
            auto_sync = "-"
            if org:
                auto_sync = (
                    f"every {org['sync_interval_minutes']}m" if org["auto_sync_enabled"] else "off"
                )
            table.add_row(
                str(vendor["id"]),
                vendor["name"],
                vendor["vendor_type"],
                "[green]yes[/green]" if vendor["is_active"] else "[red]no[/red]",
                org["name"] if org else "-",
                auto_sync,
                _format_time(vendor["last_synced_at"]),
                _format_time(vendor["last_alert_synced_at"]),
            )

        console.print(table)
        logger.info("Status displayed", vendors=len(vendors))
    except Exception as e:
        console.print(f"[red]Failed to get status:[/red] {e}")
        logger.error("Status check failed", error=str(e))
        raise SystemExit(1) from None


@cli.command()
@click.argument("vendor_id", type=int)
@click.pass_context
def check_vendor(ctx: click.Context, vendor_id: int) -> None:
    """Authenticate against a vendor and list its plants."""
    from solarsync.config.logging import get_logger
    from solarsync.db.engine import create_engine
    from solarsync.sync.plants import PlantSyncService
    from solarsync.vendors.base import adapter_capabilities

    settings = load_settings(ctx.obj.get("config_path"))
    logger = get_logger(__name__)

    console.print(f"[bold]Checking vendor {vendor_id}...[/bold]")

    async def _check():
        service = PlantSyncService(create_engine(settings), settings)
        target = service.load_target(vendor_id)
        adapter = service.create_adapter(target.vendor)
        async with adapter:
            await adapter.authenticate()
            plants = await adapter.list_plants()
        return target, adapter_capabilities(adapter), plants

    try:
        target, capabilities, plants = run_async(_check())

        console.print(f"  Vendor: {target.vendor.name} ({target.vendor.vendor_type.value})")
        console.print(f"  Capabilities: {', '.join(capabilities) or 'none'}")

        if not plants:
            console.print("[yellow]No plants returned by the vendor.[/yellow]")
            return

        table = Table(title="Vendor Plants")
        table.add_column("Vendor Plant ID", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Capacity (kW)")
        table.add_column("Status")

        for plant in plants:
            capacity = f"{plant.capacity_kw:.2f}" if plant.capacity_kw is not None else "-"
            table.add_row(plant.id, plant.name or "-", capacity, plant.network_status or "-")

        console.print(table)
        console.print(f"\n[green]Found {len(plants)} plant(s)[/green]")
        logger.info("Vendor check successful", vendor_id=vendor_id, plants=len(plants))
    except Exception as e:
        console.print(f"[red]Vendor check failed:[/red] {e}")
        logger.error("Vendor check failed", vendor_id=vendor_id, error=str(e))
        raise SystemExit(1) from None


@cli.command()
@click.option("--host", help="Bind address (defaults to SOLARSYNC_API_HOST)")
@click.option("--port", type=int, help="Port (defaults to SOLARSYNC_API_PORT)")
@click.option("--scheduler/--no-scheduler", default=None, help="Run the in-process scheduler")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, scheduler: bool | None) -> None:
    """Run the HTTP API."""
    import uvicorn

    from solarsync.web.app import create_app

    settings = load_settings(ctx.obj.get("config_path"))
    if scheduler is not None:
        settings = settings.model_copy(update={"scheduler_enabled": scheduler})

    uvicorn.run(
        create_app(settings),
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_config=None,
    )


@cli.command()
@click.pass_context
def scheduler(ctx: click.Context) -> None:
    """Run the sync scheduler in the foreground."""
    from solarsync.config.logging import get_logger
    from solarsync.db.engine import create_engine, create_tables
    from solarsync.sync.scheduler import SyncScheduler

    settings = load_settings(ctx.obj.get("config_path"))
    logger = get_logger(__name__)

    async def _run():
        engine = create_engine(settings)
        create_tables(engine)
        sync_scheduler = SyncScheduler(engine, settings)
        await sync_scheduler.start()
        try:
            while sync_scheduler.running:
                await asyncio.sleep(settings.scheduler_poll_seconds)
        finally:
            await sync_scheduler.stop()

    console.print(
        f"[bold]Scheduler running every {settings.scheduler_interval_minutes} minutes "
        f"({settings.sync_timezone}). Press Ctrl+C to stop.[/bold]"
    )
    try:
        run_async(_run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Scheduler stopped.[/yellow]")
        logger.info("Scheduler stopped by user")


if __name__ == "__main__":
    cli()
