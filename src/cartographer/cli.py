"""
Command line interface.

Usage:
    cartographer crawl https://example.com
    cartographer crawl example.com --max-depth 5 --max-pages 300 --mode http
    cartographer crawl https://example.com --config crawl.yaml --output site.json
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import structlog
import yaml
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.tree import Tree

from . import __version__
from .core.config import CrawlConfig, FetchMode, load_config
from .core.exceptions import FatalError
from .core.site_crawler import crawl as run_site_crawl
from .models import CrawlResult


console = Console()


def configure_logging(verbose: bool = False):
    """Route structlog output to stderr, INFO by default and DEBUG when verbose"""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


@click.group()
@click.version_option(version=__version__, prog_name="Cartographer")
def cli():
    """
    Cartographer - Site Structure Discovery

    Builds a deduplicated, depth-bounded tree of a website's resources.
    """
    pass


@cli.command()
@click.argument("target")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="YAML file with crawl settings")
@click.option("--max-depth", type=int, default=None, help="Maximum path depth (default: 3)")
@click.option("--max-pages", type=int, default=None, help="Maximum pages to fetch (default: 100)")
@click.option("--include-external/--no-include-external", default=None, help="Follow links to other hosts")
@click.option("--check-sensitive/--no-check-sensitive", default=None, help="Flag sensitive paths and probe directories")
@click.option("--mode", type=click.Choice([m.value for m in FetchMode]), default=None, help="Fetch mode (default: browser)")
@click.option("--headless/--no-headless", default=None, help="Run browser in headless mode")
@click.option("--min-delay", type=float, default=None, help="Minimum politeness delay in seconds")
@click.option("--max-delay", type=float, default=None, help="Maximum politeness delay in seconds")
@click.option("--batch-size", type=int, default=None, help="Concurrent fetches per batch in http mode")
@click.option("--batch-pause", type=float, default=None, help="Pause between batches in seconds")
@click.option("--page-timeout", type=float, default=None, help="Page navigation timeout in seconds")
@click.option("--request-timeout", type=float, default=None, help="Plain request timeout in seconds")
@click.option("--identity-file", type=click.Path(exists=True, dir_okay=False), default=None, help="YAML pool of user agents and header sets")
@click.option("--output", type=click.Path(), help="Save the result to a JSON file")
@click.option("--tree/--no-tree", "show_tree", default=True, help="Print the discovered hierarchy")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def crawl(
    target: str,
    config_path: Optional[str],
    max_depth: Optional[int],
    max_pages: Optional[int],
    include_external: Optional[bool],
    check_sensitive: Optional[bool],
    mode: Optional[str],
    headless: Optional[bool],
    min_delay: Optional[float],
    max_delay: Optional[float],
    batch_size: Optional[int],
    batch_pause: Optional[float],
    page_timeout: Optional[float],
    request_timeout: Optional[float],
    identity_file: Optional[str],
    output: Optional[str],
    show_tree: bool,
    verbose: bool,
):
    """
    Map the structure of TARGET.

    Command line options override values from --config.

    Example:
        cartographer crawl https://example.com --max-depth 2
    """
    configure_logging(verbose)

    try:
        config = load_config(
            config_path,
            max_depth=max_depth,
            max_pages=max_pages,
            include_external=include_external,
            check_sensitive_files=check_sensitive,
            fetch_mode=mode,
            headless=headless,
            min_delay=min_delay,
            max_delay=max_delay,
            batch_size=batch_size,
            batch_pause=batch_pause,
            page_timeout=page_timeout,
            request_timeout=request_timeout,
            identity_file=identity_file,
        )
    except (ValueError, yaml.YAMLError) as e:
        raise click.UsageError(str(e))

    # Banner
    console.print("\n" + "=" * 80)
    console.print("Cartographer - Site Structure Discovery")
    console.print("=" * 80 + "\n")

    console.print(f"[green]Target:[/green] {target}")
    console.print(f"[green]Max Depth:[/green] {config.max_depth}")
    console.print(f"[green]Max Pages:[/green] {config.max_pages}")
    console.print(f"[green]Mode:[/green] {config.fetch_mode.value}")
    console.print(f"[green]External Links:[/green] {'Included' if config.include_external else '[dim]Ignored[/dim]'}")
    console.print(f"[green]Security Checks:[/green] {'[bold green]Enabled[/bold green]' if config.check_sensitive_files else '[dim]Disabled[/dim]'}")
    console.print(f"[green]Delay:[/green] {config.min_delay:.1f}-{config.max_delay:.1f} s")
    console.print()

    try:
        asyncio.run(run_crawl(target, config, output, show_tree))
    except KeyboardInterrupt:
        console.print("\n\n[yellow]Crawl interrupted by user[/yellow]")
        sys.exit(1)


async def run_crawl(target: str, config: CrawlConfig, output: Optional[str], show_tree: bool):
    """Run one crawl with a progress spinner and print the report"""
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("[cyan]Crawling...", total=None)
            result = await run_site_crawl(target, config)
            progress.update(task, description="[green]Crawl complete!")

    except FatalError as e:
        console.print(f"\n[bold red]Crawl could not start:[/bold red] {e}")
        sys.exit(1)

    print_report(result, show_tree)

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2)
        console.print(f"\n[green]Results saved to:[/green] {output_path}")

    console.print("\n" + "=" * 80)
    console.print("[bold green]Crawl complete![/bold green]")
    console.print("=" * 80 + "\n")


def build_tree(result: CrawlResult) -> Optional[Tree]:
    """Rich tree of the reconciled hierarchy, or None if nothing was fetched"""
    root = result.root
    if root is None:
        return None

    def label(page) -> str:
        style = "dim" if page.synthesized else ("bold cyan" if page.is_directory else "white")
        title = f" [yellow]{page.title}[/yellow]" if page.title and not page.synthesized else ""
        return f"[{style}]{page.url}[/{style}]{title}"

    tree = Tree(label(root))
    stack = [(root, tree)]
    while stack:
        page, node = stack.pop()
        for child_url in page.children:
            child = result.get_page(child_url)
            if child is not None:
                stack.append((child, node.add(label(child))))
    return tree


def print_report(result: CrawlResult, show_tree: bool = True):
    """Summary, statistics, security and error tables"""
    summary = Table(title="Crawl Summary")
    summary.add_column("Metric", style="cyan", no_wrap=True)
    summary.add_column("Value", style="green")
    summary.add_row("Target", result.target_url)
    summary.add_row("Pages", str(result.total_pages))
    summary.add_row("Directories", str(result.total_directories))
    summary.add_row("Max depth", str(result.max_depth))
    summary.add_row("Forms", str(len(result.forms)))
    summary.add_row("Sitemaps", str(len(result.sitemaps)))
    summary.add_row("Errors", str(len(result.errors)))
    summary.add_row("Duration", f"{result.duration:.1f} s")
    if result.cancelled:
        summary.add_row("Status", "[yellow]Cancelled (partial result)[/yellow]")
    console.print(summary)

    methods = Table(title="Discovery Methods")
    methods.add_column("Method", style="cyan")
    methods.add_column("Count", justify="right")
    for method, count in result.discovery_methods.items():
        methods.add_row(method, str(count))
    console.print(methods)

    if result.statistics.status_codes:
        statuses = Table(title="Status Codes")
        statuses.add_column("Status", style="cyan")
        statuses.add_column("Count", justify="right")
        for status, count in sorted(result.statistics.status_codes.items()):
            statuses.add_row(str(status), str(count))
        console.print(statuses)

    if result.statistics.extensions:
        extensions = Table(title="File Types")
        extensions.add_column("Extension", style="cyan")
        extensions.add_column("Count", justify="right")
        for extension, count in sorted(result.statistics.extensions.items(), key=lambda item: -item[1]):
            extensions.add_row(extension, str(count))
        console.print(extensions)

    findings = result.security.to_dict()
    if result.security.total():
        security = Table(title="Security Findings (heuristic)")
        security.add_column("Category", style="red", no_wrap=True)
        security.add_column("URL", style="yellow")
        for category, urls in findings.items():
            for url in urls:
                security.add_row(category, url)
        console.print(security)
    else:
        console.print("\n  No security findings\n")

    if result.errors:
        errors = Table(title=f"Errors ({len(result.errors)})")
        errors.add_column("Kind", style="red", no_wrap=True)
        errors.add_column("URL", style="yellow")
        errors.add_column("Message")
        for error in result.errors[:20]:
            errors.add_row(error.kind, error.url, error.message)
        console.print(errors)

    if show_tree:
        tree = build_tree(result)
        if tree is not None:
            console.print("\n[bold]Site Structure[/bold]")
            console.print(tree)


@cli.command()
def version():
    """Show version information and capabilities"""
    console.print(f"\n[bold cyan]Cartographer v{__version__}[/bold cyan]")
    console.print("[cyan]Site Structure Discovery[/cyan]\n")

    table = Table(title="Discovery Strategies")
    table.add_column("Strategy", style="cyan", no_wrap=True)
    table.add_column("Notes", style="yellow")

    table.add_row("robots.txt", "Sitemap directives, Disallow paths as seeds")
    table.add_row("Sitemaps", "XML, indexes, gzip, plain text, conventional locations")
    table.add_row("Link following", "Rendered DOM (browser) or raw HTML (http)")
    table.add_row("Directory probing", "Exposed listing detection")

    console.print(table)
    console.print()


if __name__ == "__main__":
    cli()
