"""
Main CLI entry point for App Store version history queries.
"""

import click
from dotenv import load_dotenv

from ..app_store.search import AppSearchClient
from ..app_store.selection import select_version
from ..shared_utilities import configure_logging, get_logger, get_logging_manager
from ..shared_utilities.telemetry import trace_function
from .config import HistoryConfig, SourceConfigManager
from .core import VersionHistoryError, VersionHistoryService
from .identifier import resolve_app_id
from .report_formatter import HistoryFormatter, HistoryReportWriter
from .sources import HISTORY_PRIORITY, NAME_PRIORITY

# Load environment variables from .env file
load_dotenv()


def _load_config(**overrides) -> HistoryConfig:
    try:
        return HistoryConfig.from_env(**overrides)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort() from e


def _show_history(
    service: VersionHistoryService,
    app_input: str,
    output_format: str = "table",
    quiet: bool = False,
):
    """Query one app, print its history and return it."""
    logger = get_logger(__name__)
    formatter = HistoryFormatter()

    try:
        history = service.query(app_input)
    except VersionHistoryError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort() from e

    if history is None:
        click.echo(
            f"Error: Could not extract a valid App ID from {app_input!r}", err=True
        )
        raise click.Abort()

    if output_format == "json":
        click.echo(formatter.format_json_output(history))
    else:
        click.echo(formatter.format_table_output(history))

    if history.failed_sources:
        logger.debug(f"Sources without data: {', '.join(history.failed_sources)}")

    if not quiet and service.last_report_path is not None:
        click.echo(f"History saved to {service.last_report_path}", err=True)
    return history


def _pick_result(results, answer: str):
    """Match a serial number, App ID or storefront URL against search results."""
    if answer.isascii() and answer.isdigit() and 0 < int(answer) <= len(results):
        return results[int(answer) - 1]
    app_id = resolve_app_id(answer) or answer
    return next((app for app in results if app.app_id == app_id), None)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """
    Query the version history of App Store applications.

    Examples:

        # Version history by App ID
        ipa-history query 1160172628

        # Version history by storefront URL, as JSON
        ipa-history query "https://apps.apple.com/us/app/id1160172628" --format json

        # Search the catalog by keyword
        ipa-history search "photo editor" --country jp

        # Pick a search result and show its version history
        ipa-history search "photo editor" --pick
    """
    configure_logging()
    if verbose:
        get_logging_manager().reconfigure("DEBUG")


@main.command()
@click.argument("app_input")
@click.option(
    "--history-dir",
    type=click.Path(file_okay=False),
    help="Directory for history reports (or set IPA_HISTORY_DIR)",
)
@click.option(
    "--timeout",
    type=float,
    help="Per-request timeout in seconds (or set IPA_HISTORY_TIMEOUT)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
    show_default=True,
)
@click.option(
    "--select",
    "select",
    is_flag=True,
    help="Prompt for a version after listing and print its ID",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Do not print the report location",
)
@trace_function("cli_query", include_args=True)
def query(
    app_input: str,
    history_dir: str | None,
    timeout: float | None,
    output_format: str,
    select: bool,
    quiet: bool,
) -> None:
    """Show the version history of APP_INPUT (App ID or App Store URL)."""
    config = _load_config(history_dir=history_dir, timeout_seconds=timeout)
    service = VersionHistoryService(config)
    history = _show_history(service, app_input, output_format, quiet)

    if select and history.versions:
        answer = click.prompt(
            "Version to use (serial, version or ID; Enter for latest)",
            default="",
            show_default=False,
        )
        click.echo(f"Selected version ID: {select_version(history.versions, answer)}")


@main.command()
@click.argument("term")
@click.option(
    "-c",
    "--country",
    default="US",
    help="Storefront country code",
    show_default=True,
)
@click.option(
    "-l",
    "--limit",
    type=click.IntRange(1, 200),
    default=20,
    help="Maximum number of results",
    show_default=True,
)
@click.option(
    "--pick",
    is_flag=True,
    help="Prompt for a result and show its version history",
)
@trace_function("cli_search", include_args=True)
def search(term: str, country: str, limit: int, pick: bool) -> None:
    """Search the App Store catalog for TERM."""
    results = AppSearchClient().search(term, country=country, limit=limit)
    if not results:
        click.echo(f"No apps found for {term!r}")
        return

    click.echo(f"Found {len(results)} apps:")
    for index, app in enumerate(results, start=1):
        line = f"[{index}] {app.name} (ID: {app.app_id})"
        if app.bundle_id:
            line += f" | bundleId: {app.bundle_id}"
        click.echo(line)

    if not pick:
        return

    answer = click.prompt(
        "Serial number or App ID/URL (Enter to finish)",
        default="",
        show_default=False,
    ).strip()
    if not answer:
        return

    selected = _pick_result(results, answer)
    if selected is None:
        click.echo(f"No listed app matches {answer!r}")
        return

    click.echo(f"Querying App ID: {selected.app_id} | Name: {selected.name}")
    _show_history(VersionHistoryService(_load_config()), selected.app_id)


@main.command()
def sources() -> None:
    """List the configured history sources."""
    config_manager = SourceConfigManager()
    click.echo("History sources (merge order):")
    for name in config_manager.get_available_sources():
        config = config_manager.get_config(name)
        roles = []
        if name in HISTORY_PRIORITY:
            roles.append(f"history #{HISTORY_PRIORITY.index(name) + 1}")
        if name in NAME_PRIORITY:
            roles.append(f"name #{NAME_PRIORITY.index(name) + 1}")
        click.echo(f"  {name:<8} [{', '.join(roles)}] {config.description}".rstrip())


@main.command()
@click.argument("app_id", required=False)
@click.option(
    "--history-dir",
    type=click.Path(file_okay=False),
    help="Directory for history reports (or set IPA_HISTORY_DIR)",
)
def reports(app_id: str | None, history_dir: str | None) -> None:
    """List saved history reports, optionally for one APP_ID."""
    config = _load_config(history_dir=history_dir)
    paths = HistoryReportWriter(config.history_dir).list_reports(app_id)
    if not paths:
        click.echo("No history reports found.")
        return
    for path in paths:
        click.echo(str(path))


if __name__ == "__main__":
    main()
