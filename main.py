#!/usr/bin/env python3
"""
Art Scout CLI entrypoint
"""

import asyncio
import json
import sys
from typing import List, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from art_scout import ArtScout
from art_scout.config import config
from art_scout.errors import ArtScoutError
from art_scout.utils import shorten_address

app = typer.Typer(help="Art Scout - for-sale 1/1 art discovery on Base")
console = Console()

logger.remove()
logger.add(sys.stderr, level=config.log_level)


def _warn_if_ephemeral():
    if config.registry_backend != "redis":
        console.print("[yellow]Registry backend is in-memory; changes last only for this command.[/yellow]")


def _run(coro):
    try:
        return asyncio.run(coro)
    except ArtScoutError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=1)


def _entries_table(title: str, entries) -> Table:
    table = Table(title=title)
    table.add_column("Address", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Origin", style="magenta")
    table.add_column("Added", style="dim")
    for entry in entries:
        table.add_row(
            entry.address,
            entry.name or "-",
            entry.origin,
            entry.added_at.strftime("%Y-%m-%d %H:%M"),
        )
    return table


@app.command()
def discover(
    limit: int = typer.Option(config.default_limit, "--limit", "-l", help="Maximum number of artworks"),
    contracts: Optional[str] = typer.Option(None, help="Comma-separated extra contract addresses"),
    refresh: bool = typer.Option(False, "--refresh", help="Bypass the response cache"),
    include_unpriced: bool = typer.Option(False, "--include-unpriced", help="Also list art that is not for sale"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output file (JSON)"),
):
    """Discover for-sale art"""
    extra = [c.strip() for c in contracts.split(",") if c.strip()] if contracts else []

    async def run_discovery():
        async with ArtScout() as scout:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task("Discovering art...", total=None)
                response = await scout.discover(
                    limit=limit,
                    extra_contracts=extra,
                    force_refresh=refresh,
                    include_unpriced=include_unpriced,
                )
                progress.update(task, completed=True)

        if response.source == "fallback":
            console.print(f"\n[bold yellow]{response.message}[/bold yellow]")
        else:
            console.print(f"\n[bold green]Found {response.total} for-sale artworks ({response.source})[/bold green]")

        table = Table(title="For sale")
        table.add_column("Name", style="white")
        table.add_column("Artist", style="magenta")
        table.add_column("Platform", style="cyan")
        table.add_column("Price", style="green")
        table.add_column("Marketplace", style="yellow")
        table.add_column("Contract", style="dim")
        for item in response.items:
            price = f"{item.price.amount} {item.price.currency}"
            if not item.price.is_real:
                price += " (est.)"
            table.add_row(
                item.artwork.name or f"#{item.artwork.token_id}",
                item.artwork.artist or "Unknown",
                item.artwork.platform,
                price,
                item.price.marketplace,
                shorten_address(item.artwork.contract_address),
            )
        console.print(table)

        if response.unpriced:
            console.print(f"\n[dim]{len(response.unpriced)} discovered artworks are not for sale[/dim]")

        if output:
            with open(output, "w") as f:
                json.dump(response.model_dump(mode="json"), f, indent=2)
            console.print(f"\n[green]Saved to {output}[/green]")

    _run(run_discovery())


@app.command()
def add(
    addresses: List[str] = typer.Argument(..., help="Contract address(es)"),
    name: Optional[str] = typer.Option(None, help="Display name"),
    added_by: Optional[str] = typer.Option(None, "--added-by", help="Who added it"),
):
    """Add contracts to the registry"""

    async def run_add():
        async with ArtScout() as scout:
            _warn_if_ephemeral()
            if len(addresses) == 1:
                result = await scout.registry_add(addresses[0], name=name, added_by=added_by)
                if result.is_new:
                    console.print(f"[green]Added {result.address}[/green]")
                else:
                    console.print(f"[yellow]{result.address} is already registered[/yellow]")
                return
            result = await scout.registry_add_many(addresses, name=name, added_by=added_by)
            console.print(f"[green]Added {len(result.added)}[/green], [yellow]already registered {len(result.existing)}[/yellow]")

    _run(run_add())


@app.command()
def remove(address: str = typer.Argument(..., help="Contract address")):
    """Remove a contract from the registry"""

    async def run_remove():
        async with ArtScout() as scout:
            _warn_if_ephemeral()
            if await scout.registry_remove(address):
                console.print(f"[green]Removed {address.lower()}[/green]")
            else:
                console.print(f"[yellow]{address.lower()} was not registered[/yellow]")

    _run(run_remove())


@app.command("list")
def list_contracts():
    """List registry contracts, newest first"""

    async def run_list():
        async with ArtScout() as scout:
            entries = await scout.registry_list()
        console.print(_entries_table(f"Registry ({len(entries)} contracts)", entries))

    _run(run_list())


@app.command()
def search(query: str = typer.Argument(..., help="Name or address fragment")):
    """Search the registry"""

    async def run_search():
        async with ArtScout() as scout:
            entries = await scout.registry_search(query)
        console.print(_entries_table(f"Matches for '{query}'", entries))

    _run(run_search())


@app.command("import-wallet")
def import_wallet(
    wallet: str = typer.Argument(..., help="Wallet address"),
    name: Optional[str] = typer.Option(None, help="Display name for the imported contracts"),
    contract: Optional[List[str]] = typer.Option(
        None, "--contract", "-c", help="Contract to import if the wallet scan finds nothing (repeatable)"
    ),
):
    """Add every contract a wallet holds art from"""

    async def run_import():
        async with ArtScout() as scout:
            _warn_if_ephemeral()
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task(f"Scanning wallet {wallet}...", total=None)
                result = await scout.import_wallet(wallet, name=name, fallback_contracts=contract)
                progress.update(task, completed=True)

        if not result.success:
            console.print(f"[yellow]{result.message}[/yellow]")
            return
        console.print(f"\n[bold green]{result.message}[/bold green]")
        console.print(f"Contracts found: {len(result.contracts_found)} (via {result.method})")
        console.print(f"New: {len(result.added)}  Existing: {len(result.existing)}  Registry total: {result.total_contracts}")

    _run(run_import())


@app.command()
def stats():
    """Registry and cache statistics"""

    async def run_stats():
        async with ArtScout() as scout:
            result = await scout.stats()

        table = Table(title="Art Scout Stats")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Registry contracts", str(result.total_contracts))
        table.add_row("Contracts added", str(result.contracts_added))
        table.add_row("Contracts removed", str(result.contracts_removed))
        table.add_row("Cache entries", str(result.cache_entries))
        console.print(table)

    _run(run_stats())


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run the API server on"),
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
):
    """Start the HTTP API server"""
    import uvicorn
    from art_scout.api import create_app

    console.print(f"[bold green]Starting Art Scout API on {host}:{port}[/bold green]")
    console.print("[dim]Endpoints:[/dim]")
    console.print("  GET    /api/nfts")
    console.print("  GET    /api/registry")
    console.print("  POST   /api/registry")
    console.print("  DELETE /api/registry/{address}")
    console.print("  GET    /api/registry/search")
    console.print("  POST   /api/process-wallet")
    console.print("  GET    /api/validate-address")
    console.print("  GET    /api/platforms")
    console.print("  GET    /api/metadata")
    console.print("  GET    /api/stats")
    console.print("  GET    /health")

    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    app()
