"""CLI entry point for nostrcast."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from nostrcast.config.logging import apply_config_level, setup_logging
from nostrcast.config.manager import ConfigManager, parse_relay_list
from nostrcast.config.schema import GlobalConfig
from nostrcast.endpoint import check_endpoint
from nostrcast.feeds.validator import FeedValidator, find_unclosed_tags, read_feed_file
from nostrcast.pipeline import FeedPipeline
from nostrcast.utils.display import format_size, short_key, truncate_text, truncate_url
from nostrcast.utils.errors import InvalidConfigError, NostrcastError

app = typer.Typer(
    name="nostrcast",
    help="Generate podcast RSS feeds from Nostr episode events",
    no_args_is_help=True,
)
console = Console()


def _print_error(error: NostrcastError, prefix: str = "Error") -> None:
    console.print(f"[red]✗[/red] {prefix}: {escape(str(error))}")
    if error.suggestion:
        console.print(f"[dim]  {escape(error.suggestion)}[/dim]")


def _load_config(config_dir: Path | None = None, **overrides: Any) -> GlobalConfig:
    """Load configuration and apply command-line overrides (None values are skipped)."""
    config = ConfigManager(config_dir).load_config()
    apply_config_level(config.log_level)
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return config

    try:
        return GlobalConfig.model_validate({**config.model_dump(), **updates})
    except ValidationError as e:
        raise InvalidConfigError(f"Invalid command-line option: {e}") from e


def _default_feed_path(config_dir: Path | None) -> Path:
    """Generated feed location; a missing config file means defaults, not a new file."""
    manager = ConfigManager(config_dir)
    config = manager.load_config() if manager.config_file.exists() else GlobalConfig()
    return config.output_dir / config.feed_filename


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose (DEBUG) logging"
    ),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to file"
    ),
) -> None:
    """nostrcast - Turn a creator's Nostr episodes into a podcast feed."""
    setup_logging(verbose=verbose, log_file=log_file)


@app.command("version")
def show_version() -> None:
    """Show version information."""
    from nostrcast import __version__

    console.print(f"[bold cyan]nostrcast[/bold cyan] v{__version__}")


@app.command("generate")
def generate_command(
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Output directory (default: from config)"
    ),
    base_url: str | None = typer.Option(
        None, "--base-url", help="Public site URL used for episode links"
    ),
    relays: list[str] | None = typer.Option(
        None, "--relay", "-r", help="Relay URL (repeatable, replaces configured relays)"
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Relay query timeout in seconds"
    ),
    config_dir: Path | None = typer.Option(
        None, "--config-dir", help="Use this config directory instead of the default"
    ),
) -> None:
    """Fetch episodes from relays and write rss.xml and rss-health.json.

    A feed is always written, even when no relay answers; only configuration
    and file-system errors fail the command.

    Examples:
        nostrcast generate

        nostrcast generate --output public --base-url https://mypodcast.example

        nostrcast generate -r wss://nos.lol -r wss://relay.damus.io
    """

    async def run_generate() -> None:
        try:
            config = _load_config(
                config_dir,
                output_dir=output,
                base_url=base_url,
                relays=relays or None,
                query_timeout=timeout,
            )

            console.print("[bold cyan]nostrcast feed generation[/bold cyan]\n")

            def handle_progress(step_name: str, step_data: dict[str, Any]) -> None:
                if step_name == "fetch_start":
                    console.print(
                        f"[bold]Step 1/3:[/bold] Querying {len(step_data['relays'])} relays..."
                    )
                    for relay in step_data["relays"]:
                        console.print(f"  • {relay}")

                elif step_name == "fetch_complete":
                    if step_data["degraded"]:
                        console.print(
                            "[yellow]⚠[/yellow] Relays unavailable, continuing with an empty feed"
                        )
                    console.print(
                        f"[green]✓[/green] {step_data['episode_count']} episodes "
                        f"from {step_data['event_count']} events"
                    )
                    if step_data["metadata_override"]:
                        console.print("  • Using podcast metadata published on Nostr")

                elif step_name == "render_start":
                    console.print("\n[bold]Step 2/3:[/bold] Rendering RSS...")

                elif step_name == "render_complete":
                    console.print(
                        f"[green]✓[/green] Rendered {format_size(step_data['size_bytes'])}"
                    )

                elif step_name == "output_start":
                    console.print(
                        f"\n[bold]Step 3/3:[/bold] Writing to {step_data['directory']}..."
                    )

                elif step_name == "output_complete":
                    console.print(f"[green]✓[/green] Wrote {step_data['feed_path']}")
                    console.print(f"[green]✓[/green] Wrote {step_data['health_path']}")

            pipeline = FeedPipeline(config)
            result = await pipeline.generate(progress_callback=handle_progress)

            console.print("\n[bold green]✓ Complete![/bold green]")

            table = Table(show_header=False, box=None, padding=(0, 2))
            table.add_column("Key", style="dim")
            table.add_column("Value", style="white")
            table.add_row("Episodes:", str(result.episode_count))
            table.add_row("Feed size:", format_size(result.output.feed_size))
            table.add_row("Creator:", short_key(result.fetch.creator_pubkey))
            table.add_row("Feed URL:", f"{config.base_url}/{config.feed_filename}")
            console.print(table)

        except KeyboardInterrupt:
            console.print("\n[yellow]Cancelled by user[/yellow]")
            sys.exit(130)
        except NostrcastError as e:
            console.print()
            _print_error(e)
            sys.exit(1)

    asyncio.run(run_generate())


@app.command("episodes")
def episodes_command(
    limit: int | None = typer.Option(
        None, "--limit", "-n", help="Show at most this many episodes"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    config_dir: Path | None = typer.Option(
        None, "--config-dir", help="Use this config directory instead of the default"
    ),
) -> None:
    """Show the resolved episode list without writing any files.

    Examples:
        nostrcast episodes

        nostrcast episodes --limit 5 --json
    """

    async def run_episodes() -> None:
        try:
            config = _load_config(config_dir)
            fetch = await FeedPipeline(config).fetch_episodes()
        except NostrcastError as e:
            if json_output:
                print(json.dumps({"error": str(e)}, indent=2))
            else:
                _print_error(e)
            sys.exit(1)

        episodes = fetch.episodes[:limit] if limit is not None else fetch.episodes

        if json_output:
            print(
                json.dumps(
                    [episode.model_dump(mode="json") for episode in episodes],
                    indent=2,
                    ensure_ascii=False,
                )
            )
            return

        if fetch.degraded:
            console.print("[yellow]⚠[/yellow] Relays unavailable, showing no episodes")
        if not episodes:
            console.print("[yellow]No episodes found.[/yellow]")
            return

        table = Table(title=f"[bold]{escape(fetch.podcast.title)}[/bold]")
        table.add_column("Published", style="cyan", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Duration", justify="right", style="yellow")
        table.add_column("Audio", style="blue")
        table.add_column("Event", style="dim", no_wrap=True)

        for episode in episodes:
            table.add_row(
                episode.publish_date.strftime("%Y-%m-%d %H:%M"),
                escape(truncate_text(episode.title, max_length=50)),
                episode.duration_formatted or "—",
                escape(truncate_url(episode.audio_url, max_length=40)),
                short_key(episode.event_id),
            )

        console.print(table)
        console.print(f"\n[dim]Total: {len(fetch.episodes)} episode(s)[/dim]")

    asyncio.run(run_episodes())


@app.command("check-tags")
def check_tags_command(
    file: Path | None = typer.Argument(None, help="Feed file (default: generated rss.xml)"),
    strict: bool = typer.Option(False, "--strict", help="Exit with 1 when issues are found"),
    config_dir: Path | None = typer.Option(
        None, "--config-dir", help="Config directory used to locate the default feed file"
    ),
) -> None:
    """Look for unclosed and unexpected tags in a feed file.

    Examples:
        nostrcast check-tags

        nostrcast check-tags public/rss.xml --strict
    """
    try:
        path = file or _default_feed_path(config_dir)
        content = read_feed_file(path)
    except NostrcastError as e:
        _print_error(e)
        sys.exit(1)

    console.print(f"Checking tags in [cyan]{path}[/cyan]\n")
    report = find_unclosed_tags(content)

    for tag in report.unexpected:
        console.print(
            f"[red]✗[/red] Unexpected closing tag [bold]{escape(f'</{tag.name}>')}[/bold] "
            f"at line {tag.line}"
        )
    if report.unclosed:
        console.print("[red]✗[/red] Unclosed tags found:")
        for index, tag in enumerate(report.unclosed, start=1):
            console.print(f"  {index}. {escape(f'<{tag.name}>')} (line {tag.line})")

    if report.balanced:
        console.print("[green]✓[/green] All tags are properly closed")
    elif strict:
        sys.exit(1)


@app.command("lint")
def lint_command(
    file: Path | None = typer.Argument(None, help="Feed file (default: generated rss.xml)"),
    strict: bool = typer.Option(False, "--strict", help="Exit with 1 when issues are found"),
    config_dir: Path | None = typer.Option(
        None, "--config-dir", help="Config directory used to locate the default feed file"
    ),
) -> None:
    """Check a feed file is well-formed XML and laid out as expected.

    Examples:
        nostrcast lint

        nostrcast lint public/rss.xml --strict
    """
    try:
        path = file or _default_feed_path(config_dir)
        validation = FeedValidator().validate_file(path)
    except NostrcastError as e:
        _print_error(e)
        sys.exit(1)

    console.print(f"Linting [cyan]{path}[/cyan]\n")
    report = validation.lint

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="dim")
    table.add_column("Value", style="white")
    table.add_row("Lines:", str(report.line_count))
    table.add_row("Opening tags:", str(report.opening_tags))
    table.add_row("Closing tags:", str(report.closing_tags))
    table.add_row("Self-closing:", str(report.self_closing_tags))
    table.add_row("Has items:", "Yes" if report.has_items else "No")
    table.add_row("Well-formed:", "Yes" if validation.well_formed else "No")
    console.print(table)
    console.print()

    for error in validation.well_formed_errors:
        console.print(f"[red]✗[/red] Not well-formed: {escape(error)}")
    for error in report.errors:
        console.print(f"[red]✗[/red] {escape(error)}")
    for warning in report.warnings:
        console.print(f"[yellow]⚠[/yellow] {escape(warning)}")

    if validation.well_formed and not report.errors and not report.warnings:
        console.print("[green]✓[/green] Feed structure is valid")
    elif strict:
        sys.exit(1)


@app.command("check-endpoint")
def check_endpoint_command(
    base_url: str | None = typer.Argument(
        None, help="Site root to check (default: configured base_url)"
    ),
    timeout: float = typer.Option(10.0, "--timeout", help="Request timeout in seconds"),
) -> None:
    """Fetch a deployed feed and its health record and check both.

    Examples:
        nostrcast check-endpoint

        nostrcast check-endpoint http://localhost:8080
    """
    try:
        config = _load_config()
    except NostrcastError as e:
        _print_error(e)
        sys.exit(1)

    root = base_url or config.base_url
    report = asyncio.run(
        check_endpoint(
            root,
            feed_path=f"/{config.feed_filename}",
            health_path=f"/{config.health_filename}",
            timeout=timeout,
        )
    )

    console.print(f"[bold]1. Feed[/bold] [dim]{report.feed.url}[/dim]")
    if report.feed.ok:
        console.print(f"   Status: {report.feed.status_code}")
        console.print(f"   Content-Type: {report.feed.content_type or '—'}")
        console.print(f"   Cache-Control: {report.feed.cache_control or '—'}")
        console.print(f"   [green]✓[/green] Retrieved {format_size(report.feed.size)}")
        if report.parse_error:
            console.print(f"   [red]✗[/red] Parse error: {escape(report.parse_error)}")
        else:
            title = escape(report.feed_title or "untitled")
            console.print(f"   [green]✓[/green] {title}: {report.entry_count} episode(s)")
    else:
        console.print(f"   [red]✗[/red] {escape(report.feed.error or 'unavailable')}")

    console.print(f"\n[bold]2. Health[/bold] [dim]{report.health.url}[/dim]")
    if report.health.ok and report.health_data is not None:
        for key in ("status", "generatedAt", "episodeCount", "feedSize", "environment"):
            console.print(f"   {key}: {report.health_data.get(key, '—')}")
    else:
        console.print(f"   [yellow]⚠[/yellow] {escape(report.health.error or 'unreadable')}")

    for warning in report.warnings:
        console.print(f"[yellow]⚠[/yellow] {escape(warning)}")

    if not report.ok:
        sys.exit(1)


@app.command("config")
def config_command(
    action: str = typer.Argument(..., help="Action: show or set <key> <value>"),
    key: str | None = typer.Argument(None, help="Config key (for 'set' action)"),
    value: str | None = typer.Argument(None, help="Config value (for 'set' action)"),
    config_dir: Path | None = typer.Option(
        None, "--config-dir", help="Use this config directory instead of the default"
    ),
) -> None:
    """Manage nostrcast configuration.

    Actions:
        show: Display current configuration
        set:  Set a configuration value (dotted keys reach podcast/rss settings)

    Examples:
        nostrcast config show

        nostrcast config set base_url https://mypodcast.example

        nostrcast config set podcast.title "My Podcast"

        nostrcast config set relays wss://nos.lol,wss://relay.damus.io
    """
    try:
        manager = ConfigManager(config_dir)

        if action == "show":
            config = manager.load_config(apply_env=False)

            console.print("\n[bold]nostrcast Configuration[/bold]\n")

            table = Table(show_header=False, box=None)
            table.add_column("Key", style="cyan")
            table.add_column("Value", style="white")

            table.add_row("Config file", str(manager.config_file))
            table.add_row("", "")
            table.add_row("Creator", config.creator_npub)
            table.add_row("Base URL", config.base_url)
            table.add_row("Relays", "\n".join(config.relays) or "—")
            table.add_row("Episode kind", str(config.episode_kind))
            table.add_row("Query timeout", f"{config.query_timeout:g}s")
            table.add_row("Output", str(config.output_dir / config.feed_filename))
            table.add_row("Log level", config.log_level)
            table.add_row("Podcast", escape(config.podcast.title))

            console.print(table)

        elif action == "set":
            if not key or value is None:
                console.print("[red]✗[/red] Usage: nostrcast config set <key> <value>")
                sys.exit(1)

            config = manager.load_config(apply_env=False)
            data = config.model_dump()

            *parents, field = key.split(".")
            target = data
            for part in parents:
                if not isinstance(target.get(part), dict):
                    target = None
                    break
                target = target[part]

            if target is None or field not in target:
                console.print(f"[red]✗[/red] Unknown config key: {key}")
                console.print("\nAvailable keys:")
                for field_name in GlobalConfig.model_fields:
                    console.print(f"  • {field_name}")
                sys.exit(1)

            target[field] = parse_relay_list(value) if key == "relays" else value

            try:
                updated = GlobalConfig.model_validate(data)
            except ValidationError as e:
                console.print(f"[red]✗[/red] Invalid value for {key}: {escape(str(e))}")
                sys.exit(1)

            manager.save_config(updated)
            console.print(
                f"[green]✓[/green] Set [cyan]{key}[/cyan] = [yellow]{escape(value)}[/yellow]"
            )

        else:
            console.print(f"[red]✗[/red] Unknown action: {action}")
            console.print("Valid actions: show, set")
            sys.exit(1)

    except NostrcastError as e:
        _print_error(e)
        sys.exit(1)


if __name__ == "__main__":
    app()
