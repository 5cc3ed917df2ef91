"""
Event Gallery CLI Tool

Command-line interface for running the gallery server, listing events and
keeping blob storage in line with event metadata.

Usage:
    gallery serve               - Start the API server
    gallery events              - List events on a running server
    gallery reconcile           - Report blobs and records that disagree
    gallery reconcile --delete  - Also delete orphaned blobs
"""
import asyncio
import os
import subprocess
import sys

import click
import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from app import __version__

# Load environment variables
load_dotenv()

console = Console()

# API Configuration
API_BASE = os.getenv("API_BASE_URL", "http://localhost:3001")


def start_server(port=3001, reload=False):
    """Start the FastAPI server in the foreground."""
    cmd = [sys.executable, "-m", "uvicorn", "app.main:app", f"--port={port}"]
    if reload:
        cmd.append("--reload")
    subprocess.run(cmd)


@click.group()
@click.version_option(version=__version__, prog_name="Event Gallery")
def main():
    """
    📸 EVENT GALLERY - guest photo uploads and gallery downloads
    """
    pass


@main.command()
@click.option("--port", default=3001, help="Port to run server on")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(port: int, reload: bool):
    """
    Start the gallery API server.

    Example:
        gallery serve --port 3001
    """
    console.print(Panel(
        f"[bold green]Starting Event Gallery Server[/bold green]\n\n"
        f"API: [cyan]http://localhost:{port}/api/events[/cyan]\n"
        f"API Docs: [cyan]http://localhost:{port}/docs[/cyan]\n\n"
        f"[dim]Press Ctrl+C to stop[/dim]",
        border_style="green"
    ))

    try:
        start_server(port=port, reload=reload)
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped.[/yellow]")


@main.command()
def events():
    """
    List events with their upload counts.

    Example:
        gallery events
    """
    try:
        response = httpx.get(f"{API_BASE}/api/events", timeout=10.0)
        response.raise_for_status()
        items = response.json()
    except httpx.HTTPError as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        console.print(f"[dim]Is the server running at {API_BASE}? Start it with:[/dim]")
        console.print("[cyan]gallery serve[/cyan]")
        sys.exit(1)

    if not items:
        console.print("[yellow]No events yet.[/yellow]")
        return

    table = Table(title=f"📸 Events ({len(items)} total)", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Uploads", justify="right")
    table.add_column("Link")

    for item in items:
        table.add_row(
            item.get("id", "")[:8],
            item.get("name", ""),
            str(item.get("upload_count", 0)),
            item.get("link", ""),
        )

    console.print(table)


async def _reconcile(delete: bool):
    from app.config import MetadataBackend, get_settings
    from app.core.reconcile import purge_orphans, reconcile
    from app.database import close_db, init_db
    from app.metadata import create_metadata_store
    from app.storage import create_blob_store

    settings = get_settings()
    if settings.METADATA_BACKEND == MetadataBackend.SQL:
        await init_db()
    metadata = create_metadata_store(settings)
    blobs = create_blob_store(settings.get_storage_config())
    try:
        report = await reconcile(metadata, blobs, settings.STORAGE_PREFIX)
        deleted = await purge_orphans(blobs, report) if delete else []
    finally:
        await metadata.close()
        await blobs.aclose()
        if settings.METADATA_BACKEND == MetadataBackend.SQL:
            await close_db()
    return report, deleted


@main.command("reconcile")
@click.option("--delete", is_flag=True, help="Delete orphaned blobs")
def reconcile_command(delete: bool):
    """
    Compare blob storage with event metadata.

    Orphaned blobs have no upload record; dangling uploads point to a blob
    that no longer exists.

    Example:
        gallery reconcile --delete
    """
    report, deleted = asyncio.run(_reconcile(delete))

    console.print(
        f"Scanned [cyan]{report.blob_count}[/cyan] blobs and "
        f"[cyan]{report.record_count}[/cyan] upload records"
    )

    if report.consistent:
        console.print("[green]✓ Storage and metadata agree[/green]")
        return

    if report.orphaned_keys:
        table = Table(title="Orphaned blobs", show_header=True, header_style="bold yellow")
        table.add_column("Key")
        table.add_column("Deleted", justify="center")
        for key in report.orphaned_keys:
            table.add_row(key, "✓" if key in deleted else "")
        console.print(table)

    if report.dangling_uploads:
        table = Table(title="Dangling uploads", show_header=True, header_style="bold red")
        table.add_column("Event", style="dim")
        table.add_column("Upload", style="dim")
        table.add_column("Key")
        for item in report.dangling_uploads:
            table.add_row(item.event_id[:8], item.upload_id[:8], item.storage_key)
        console.print(table)

    if delete:
        console.print(f"[green]Deleted {len(deleted)}/{len(report.orphaned_keys)} orphaned blob(s)[/green]")
    elif report.orphaned_keys:
        console.print("[dim]Run with --delete to remove orphaned blobs.[/dim]")

    if report.dangling_uploads:
        sys.exit(1)


if __name__ == "__main__":
    main()
