"""CLI interface for redisbox"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from redisbox.cache import CacheBackend, CacheResult, Envelope, get_cache_backend
from redisbox.cache.keys import validate_segment_name
from redisbox.config import load_config

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="redisbox",
    help="Envelope cache on top of Redis",
    no_args_is_help=True,
)
console = Console()

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to .redisbox.yaml")
]
BackendOption = Annotated[
    str | None, typer.Option("--backend", "-b", help="Cache backend (redis, memory)")
]
SegmentOption = Annotated[
    str | None, typer.Option("--segment", "-s", help="Segment to address")
]
PartitionOption = Annotated[
    str | None, typer.Option("--partition", "-p", help="Partition to address")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v")]


def parse_value(raw: str) -> Any:
    """Parse a command line value

    JSON is decoded (objects, arrays, numbers, booleans, null), anything else
    is kept as a string.
    """
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def build_backend(
    config_path: Path | None,
    backend: str | None,
    segment: str | None,
    partition: str | None,
) -> CacheBackend:
    """Create a backend from the config file and command line overrides

    Exits with code 1 when the config file or the backend choice is invalid.
    """
    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        console.print(f"[bold red]✗ Config file error:[/bold red] {e}")
        raise typer.Exit(1) from None
    except ValueError as e:
        console.print(f"[bold red]✗ Configuration error:[/bold red] {e}")
        raise typer.Exit(1) from None

    options = config.store.model_dump()
    if segment:
        options["segment"] = segment
    if partition:
        options["partition"] = partition

    try:
        return get_cache_backend(backend or config.backend, options)
    except ValueError as e:
        console.print(f"[bold red]✗ Backend error:[/bold red] {e}")
        raise typer.Exit(1) from None


def run_operation(
    backend: CacheBackend,
    operation: Callable[[CacheBackend], Awaitable[CacheResult]],
) -> Any:
    """Start the backend, run one operation and close it again

    Exits with code 1 when starting or the operation fails.
    """

    async def _run() -> CacheResult:
        started = await backend.start()
        if not started.success:
            return started
        try:
            return await operation(backend)
        finally:
            await backend.close()

    result = asyncio.run(_run())
    if not result.success:
        console.print(f"[bold red]✗ {type(result.error).__name__}:[/bold red] {result.error}")
        raise typer.Exit(1)
    return result.value


def _format_envelope(envelope: Envelope) -> Table:
    stored = datetime.fromtimestamp(envelope.stored / 1000, tz=timezone.utc)

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("item", json.dumps(envelope.item, indent=2))
    table.add_row("stored", stored.isoformat())
    table.add_row("ttl", str(envelope.ttl))
    table.add_row(
        "expires in",
        "never" if envelope.expires_in is None else f"{envelope.expires_in}s",
    )
    table.add_row("generation", str(envelope.generation))
    return table


@app.command()
def ping(
    config: ConfigOption = None,
    backend: BackendOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Connect to the store and report readiness"""
    configure_logging(verbose)
    cache = build_backend(config, backend, None, None)

    async def check(started: CacheBackend) -> CacheResult:
        return CacheResult.ok(started.is_ready())

    ready = run_operation(cache, check)
    if ready:
        console.print("✓ [green]Store is ready[/green]")
    else:
        console.print("[yellow]Store connection is not ready[/yellow]")
        raise typer.Exit(1)


@app.command()
def get(
    id: Annotated[str, typer.Argument(help="Identifier of the cached item")],
    config: ConfigOption = None,
    backend: BackendOption = None,
    segment: SegmentOption = None,
    partition: PartitionOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show a cached envelope"""
    configure_logging(verbose)
    cache = build_backend(config, backend, segment, partition)

    envelope = run_operation(cache, lambda started: started.get(id))
    if envelope is None:
        console.print(f"[yellow]Not found:[/yellow] {id}")
        raise typer.Exit(1)

    console.print(_format_envelope(envelope))


@app.command(name="set")
def set_item(
    id: Annotated[str, typer.Argument(help="Identifier of the cached item")],
    value: Annotated[str, typer.Argument(help="Value, parsed as JSON when possible")],
    ttl: Annotated[int, typer.Option("--ttl", "-t", help="TTL in seconds")] = 3600,
    config: ConfigOption = None,
    backend: BackendOption = None,
    segment: SegmentOption = None,
    partition: PartitionOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Store a value"""
    configure_logging(verbose)
    cache = build_backend(config, backend, segment, partition)

    run_operation(cache, lambda started: started.set(id, parse_value(value), ttl))
    console.print(f"✓ Stored [green]{id}[/green] (ttl {ttl}s)")


@app.command()
def drop(
    id: Annotated[str, typer.Argument(help="Identifier of the cached item")],
    config: ConfigOption = None,
    backend: BackendOption = None,
    segment: SegmentOption = None,
    partition: PartitionOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Remove a cached item"""
    configure_logging(verbose)
    cache = build_backend(config, backend, segment, partition)

    existed = run_operation(cache, lambda started: started.drop(id))
    if existed:
        console.print(f"✓ Dropped [green]{id}[/green]")
    else:
        console.print(f"[dim]Nothing stored under {id}[/dim]")


@app.command(name="check-segment")
def check_segment(
    name: Annotated[str, typer.Argument(help="Segment name to validate")],
) -> None:
    """Validate a segment name"""
    error = validate_segment_name(name)
    if error is not None:
        console.print(f"[bold red]✗ Invalid segment name:[/bold red] {error}")
        raise typer.Exit(1)

    console.print(f"✓ [green]{name!r} is a valid segment name[/green]")


if __name__ == "__main__":
    app()
