"""Sitemapper CLI - export search collections into sitemap files."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from sitemapper import __version__
from sitemapper.config import ExportConfig, select_kinds
from sitemapper.errors import SitemapperError
from sitemapper.queries import KIND_PRESETS

load_dotenv()

console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    # Request-level noise from the search client
    logging.getLogger("opensearch").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


@click.command("sitemapper", context_settings={"auto_envvar_prefix": "SITEMAPPER"})
@click.version_option(version=__version__, prog_name="sitemapper")
@click.option(
    "--db-uri", "-u", default=ExportConfig.DEFAULT_DB_URI, show_default=True,
    help="Search engine URI",
)
@click.option("--base-url", "-b", help="Public site root for every sitemap URL")
@click.option("--location", "-l", help="Output location tag used in sitemap index URLs")
@click.option(
    "--countries", "-c", "countries_path", type=click.Path(path_type=Path),
    help="JSON file mapping country codes to slugs",
)
@click.option("--country", "-d", help="Only export records of this country code")
@click.option(
    "--output-dir", "-o", type=click.Path(file_okay=False, path_type=Path),
    default=ExportConfig.DEFAULT_OUTPUT_DIR, show_default=True,
    help="Directory sitemap files are written to",
)
@click.option(
    "--preset", type=click.Choice(sorted(KIND_PRESETS)), default="default", show_default=True,
    help="Set of record kinds to export",
)
@click.option("--kinds", help="Comma-separated subset of kinds from the preset")
@click.option("--page-size", type=int, help="Hits per cursor page (max 10000)")
@click.option("--scroll-timeout", help="Cursor keep-alive, e.g. 600s")
@click.option("--timeout", "request_timeout", type=float, help="Request timeout in seconds")
@click.option("--max-retries", type=int, help="Connection retries per request")
@click.option("--compression/--no-compression", default=True, help="Gzip requests")
@click.option(
    "--verify-tls/--no-verify-tls", default=False, show_default=True,
    help="Verify the search engine TLS certificate",
)
@click.option("--item-cap", type=int, help="Maximum entries per sitemap file")
@click.option("--static-sitemap", "static_sitemap_url", help="First entry of the sitemap index")
@click.option("--fallback-lastmod", "fallback_last_modified", help="Last-modified for records without one")
@click.option("--test", "-t", "dry_run", is_flag=True, help="Dry run: log filenames, write nothing")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def main(preset: str, kinds: str | None, verbose: bool, **options):
    """
    Export search collections into partitioned sitemap files.

    \b
    Examples:
        sitemapper -b https://example.com -l prod -c countries.json
        sitemapper -b https://example.com -l prod -c countries.json -d mx --test
        sitemapper -b https://example.com -l prod -c countries.json --kinds supplier
    """
    configure_logging(verbose)

    from sitemapper.orchestrator import run_export

    try:
        config = ExportConfig.from_options(kinds=select_kinds(preset, kinds), **options)
        result = run_export(config)
    except SitemapperError as e:
        console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise SystemExit(e.exit_code)

    for run in result.runs:
        console.print(
            f"[green]✓[/green] {run.kind.name}: {run.emitted} URL(s) in {len(run.files)} file(s)"
            f" [dim]({run.skipped} skipped of {run.seen})[/dim]"
        )
    console.print(f"[green]✓[/green] Index: {result.index_file.filename}")
    if config.dry_run:
        console.print("[dim]Dry run - no files were written[/dim]")
