"""
Ingest Kubernetes API schemas into the catalog.

Examples:
    k8s-schema-ingest v1.33.3 v1.32.7
    k8s-schema-ingest --latest
    k8s-schema-ingest --discover --min-minor 28
"""

import asyncio
import sys
from typing import List, Tuple

import click

from core.config import settings
from core.database import async_session_maker, engine
from core.exceptions import SchemaIngestionException
from core.logging import setup_logging
from ingestion.extractors.version_discovery import VersionDiscovery, parse_stable_tag
from ingestion.loaders.postgres_loader import PostgresCatalogStore
from ingestion.runner import SchemaIngestionPipeline
from schemas.catalog import IngestionSummary


def echo_summary(summary: IngestionSummary):
    for result in summary.succeeded:
        click.echo(
            f"OK      {result.release}: {result.definition_count} definitions, "
            f"{result.schema_rows} schema rows, {result.gvk_rows} GVKs"
        )
    for release in summary.skipped:
        click.echo(f"SKIPPED {release}: already in catalog")
    for release, reason in summary.failed.items():
        click.echo(f"FAILED  {release}: {reason}")
    click.echo(
        f"{len(summary.succeeded)} succeeded, {len(summary.failed)} failed, "
        f"{len(summary.skipped)} skipped"
    )


async def run_discovery(min_minor: int) -> int:
    try:
        releases = await VersionDiscovery().discover(min_minor)
    except SchemaIngestionException as e:
        click.echo(f"Release discovery failed: {e}", err=True)
        return 1

    for release in releases:
        click.echo(release)
    return 0


async def run_ingestion(releases: List[str], latest: bool, skip_existing: bool) -> int:
    if latest:
        try:
            releases = [await VersionDiscovery().latest_stable()]
        except SchemaIngestionException as e:
            click.echo(f"Release discovery failed: {e}", err=True)
            return 1

    try:
        async with async_session_maker() as session:
            pipeline = SchemaIngestionPipeline(PostgresCatalogStore(session))
            summary = await pipeline.ingest_many(releases, skip_existing=skip_existing)
    finally:
        await engine.dispose()

    echo_summary(summary)
    return 0 if summary.ok else 1


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("releases", nargs=-1)
@click.option("--latest", is_flag=True, help="Ingest the latest stable release only")
@click.option("--discover", "discover_only", is_flag=True, help="Print stable releases and ingest nothing")
@click.option(
    "--min-minor",
    type=click.IntRange(min=0),
    default=None,
    help=f"Lowest minor version listed by --discover [default: {settings.MIN_MINOR_VERSION}]",
)
@click.option("--skip-existing", is_flag=True, help="Skip releases already in the catalog")
@click.pass_context
def main(
    ctx: click.Context,
    releases: Tuple[str, ...],
    latest: bool,
    discover_only: bool,
    min_minor: int,
    skip_existing: bool,
):
    """Ingest RELEASES (e.g. v1.33.3) into the Kubernetes schema catalog."""
    modes = sum([bool(releases), latest, discover_only])
    if modes == 0:
        raise click.UsageError("Pass one or more RELEASES, --latest or --discover.")
    if modes > 1:
        raise click.UsageError("RELEASES, --latest and --discover are mutually exclusive.")
    if min_minor is not None and not discover_only:
        raise click.UsageError("--min-minor only applies to --discover.")

    invalid = [release for release in releases if not parse_stable_tag(release)]
    if invalid:
        raise click.BadParameter(
            f"not a stable release tag (vMAJOR.MINOR.PATCH): {', '.join(invalid)}",
            param_hint="RELEASES",
        )

    # Logs go to stderr so stdout carries only results
    setup_logging(stream=sys.stderr)

    if discover_only:
        minimum = settings.MIN_MINOR_VERSION if min_minor is None else min_minor
        exit_code = asyncio.run(run_discovery(minimum))
    else:
        exit_code = asyncio.run(run_ingestion(list(releases), latest, skip_existing))

    ctx.exit(exit_code)


if __name__ == "__main__":
    main()
