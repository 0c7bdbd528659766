"""Command line access to species classification and the taxonomy caches.

Examples:
    # File species under their display groups
    crittertaxa classify "Chromodoris annae" "Diadema sp.1 - sp.4"

    # Show the currently accepted name
    crittertaxa normalize "Chromodoris annae"

    # Warm the taxon cache ahead of an offline trip
    crittertaxa cache-species species.txt
"""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TextIO, TypeVar

import click
from dependency_injector import providers

from crittertaxa.container import Container
from crittertaxa.species.parser import SpeciesNameError, sanitize_species_name
from crittertaxa.system.structlog_configurator import configure_structlog, get_logger
from crittertaxa.taxonomy.exceptions import TaxonomyError

T = TypeVar("T")

logger = get_logger(__name__)


def create_container(config_path: Path | None = None) -> Container:
    """Build the application container, optionally pointing it at a config file."""
    container = Container()
    if config_path is not None:
        container.config_path.override(providers.Object(config_path))
    return container


def _run(container: Container, work: Callable[[], Awaitable[T]]) -> T:
    """Run ``work`` against an initialized database and release it afterwards."""

    async def runner() -> T:
        database = container.database()
        await database.initialize()
        try:
            return await work()
        finally:
            await database.dispose()

    return asyncio.run(runner())


def _sanitize_all(names: tuple[str, ...] | list[str]) -> tuple[dict[str, str], int]:
    """Map each input name to its sanitized form, reporting the ones that cannot be parsed."""
    sanitized: dict[str, str] = {}
    failures = 0
    for name in names:
        try:
            sanitized[name] = sanitize_species_name(name.strip())
        except SpeciesNameError as e:
            click.echo(click.style(f"✗ {name}: {e}", fg="red"))
            failures += 1
    return sanitized, failures


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file (default: $CRITTERTAXA_CONFIG or the data directory)",
)
@click.option("--offline", is_flag=True, help="Only use cached data; never contact upstream APIs")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug)")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, offline: bool, verbose: int) -> None:
    """Resolve species names and file them under display-friendly groups."""
    ctx.ensure_object(dict)
    container = create_container(config_path)

    try:
        config = container.config()
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    configure_structlog(config, verbose)
    ctx.obj["container"] = container
    ctx.obj["offline"] = offline or config.offline


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Species classified in parallel",
)
@click.pass_context
def classify(ctx: click.Context, names: tuple[str, ...], concurrency: int) -> None:
    """Print the group name of each species."""
    container: Container = ctx.obj["container"]
    offline: bool = ctx.obj["offline"]

    sanitized, failures = _sanitize_all(names)
    classifier = container.classifier()
    results = _run(
        container,
        lambda: classifier.classify_many(
            sanitized.values(), offline=offline, concurrency=concurrency
        ),
    )

    for name, scientific_name in sanitized.items():
        outcome = results[scientific_name]
        if isinstance(outcome, TaxonomyError):
            click.echo(click.style(f"✗ {name}: {outcome}", fg="red"))
            failures += 1
        else:
            click.echo(f"{name}: {outcome}")

    if failures:
        sys.exit(1)


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def normalize(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Print the currently accepted scientific name of each input."""
    container: Container = ctx.obj["container"]
    offline: bool = ctx.obj["offline"]
    verification_cache = container.name_verification_cache()

    async def normalize_all() -> list[tuple[str, str | TaxonomyError]]:
        outcomes: list[tuple[str, str | TaxonomyError]] = []
        for name in names:
            try:
                outcomes.append((name, await verification_cache.normalize(name, offline=offline)))
            except TaxonomyError as e:
                outcomes.append((name, e))
        return outcomes

    failures = 0
    for name, outcome in _run(container, normalize_all):
        if isinstance(outcome, TaxonomyError):
            click.echo(click.style(f"✗ {name}: {outcome}", fg="red"))
            failures += 1
        else:
            click.echo(f"{name}: {outcome}")

    if failures:
        sys.exit(1)


@cli.command("cache-species")
@click.argument("species_file", type=click.File("r"))
@click.pass_context
def cache_species(ctx: click.Context, species_file: TextIO) -> None:
    """Warm the taxon cache for every species in SPECIES_FILE (one name per line)."""
    container: Container = ctx.obj["container"]
    offline: bool = ctx.obj["offline"]

    lines = [line.strip() for line in species_file if line.strip()]
    sanitized, _ = _sanitize_all(lines)
    taxon_cache = container.taxon_cache()

    try:
        cached = _run(
            container,
            lambda: taxon_cache.cache_species(
                list(dict.fromkeys(sanitized.values())), offline=offline
            ),
        )
    except TaxonomyError as e:
        logger.error("Caching species failed", error=str(e))
        raise click.ClickException(str(e)) from e

    click.echo(click.style(f"✓ Cached {len(cached)} species", fg="green"))


def main() -> None:
    """Entry point for the crittertaxa CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
