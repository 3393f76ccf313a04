"""League stats CLI using Typer."""

import asyncio
import json
import uuid
from typing import Awaitable, Callable, List, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table
from typing_extensions import Annotated

from .app import LeagueApp
from .config import get_settings
from .errors import AppError, NotFoundError
from .league_logging import (
    clear_trace_id,
    configure_logging,
    get_logger,
    set_trace_id,
    start_command_timer,
)
from .models import PlayerAggregate, TeamType, TopPlayers

T = TypeVar("T")

console = Console()
app = typer.Typer(name="league-stats", help="Pickup basketball stats maintenance CLI")


@app.callback()
def main_callback(
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="Override LOG_LEVEL")] = None,
):
    """Configure logging before any command runs."""
    settings = get_settings()
    if log_level:
        settings = settings.model_copy(update={"LOG_LEVEL": log_level.upper()})
    configure_logging(settings)


def _run(operation: Callable[[LeagueApp], Awaitable[T]]) -> T:
    """Run ``operation`` against a started app, turning AppErrors into exit code 1.

    Each invocation logs under its own trace id and reports its elapsed time.
    """
    async def runner() -> T:
        async with LeagueApp() as league:
            return await operation(league)

    set_trace_id(uuid.uuid4().hex[:8])
    start_command_timer()
    try:
        return asyncio.run(runner())
    except AppError as e:
        get_logger(__name__).error("Command failed", error=e.message, status_code=e.status_code)
        console.print(f"❌ [red]{e.message}[/red]")
        raise typer.Exit(1)
    finally:
        clear_trace_id()


@app.command("init-db")
def init_db():
    """Create the collection tables (idempotent)."""
    async def operation(league: LeagueApp) -> bool:
        return await league.store.ping()

    if not _run(operation):
        console.print("❌ [red]Store unreachable[/red]")
        raise typer.Exit(1)
    console.print("✅ [green]Tables ready[/green]")


@app.command("recalc-team-stats")
def recalc_team_stats(
    game_id: Annotated[str, typer.Argument(help="Game to recompute")],
    team: Annotated[Optional[str], typer.Option("--team", help="TEAM_A or TEAM_B (default: both)")] = None,
):
    """Recompute team aggregates for a game from its player stats."""
    teams = [team] if team else [t.value for t in TeamType]

    async def operation(league: LeagueApp) -> List[str]:
        lines = []
        for team_type in teams:
            try:
                stats = await league.team_stats.recalculate(game_id, team_type)
            except NotFoundError as e:
                if team:
                    raise
                lines.append(f"⚠️  {team_type}: {e.message}")
                continue
            lines.append(f"✅ {stats.team_type.value}: {stats.total_points} pts, "
                         f"{stats.total_rebounds} reb, {stats.assists} ast")
        return lines

    for line in _run(operation):
        console.print(line)


def _leader_row(table: Table, label: str, leader: Optional[PlayerAggregate], value: str) -> None:
    if leader is None:
        table.add_row(label, "-", "-", "-")
    else:
        table.add_row(label, leader.player_id, value, str(leader.games_played))


@app.command("top-players")
def top_players(
    days: Annotated[Optional[int], typer.Option("--days", help="Days back from now")] = None,
    end_date: Annotated[Optional[str], typer.Option("--end-date", help="Window end (ISO 8601)")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw payload")] = False,
):
    """Show the leaderboard for a trailing window of games."""
    async def operation(league: LeagueApp) -> TopPlayers:
        return await league.player_stats.get_top_players(days, end_date)

    top = _run(operation)
    if as_json:
        typer.echo(json.dumps(top.to_payload(), indent=2))
        return
    if not top.all_player_aggregates:
        console.print("[yellow]No games in the selected window[/yellow]")
        return

    table = Table(show_header=True, header_style="bold blue", title="Top players")
    table.add_column("Category", style="cyan")
    table.add_column("Player")
    table.add_column("Value", justify="right")
    table.add_column("Games", justify="right")
    _leader_row(table, "Top scorer", top.top_scorer,
                str(top.top_scorer.total_points) if top.top_scorer else "")
    _leader_row(table, "Best shooter", top.best_shooter,
                f"{top.best_shooter.shooting_percentage:.1f}%" if top.best_shooter else "")
    _leader_row(table, "Most rebounds", top.most_rebounds,
                str(top.most_rebounds.total_rebounds) if top.most_rebounds else "")
    _leader_row(table, "Most assists", top.most_assists,
                str(top.most_assists.total_assists) if top.most_assists else "")
    console.print(table)
    console.print(f"📊 Players in window: {len(top.all_player_aggregates)}")


@app.command("cleanup-orphans")
def cleanup_orphans(
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Count orphans without deleting")] = False,
):
    """Remove player and team stats that reference deleted games."""
    async def operation(league: LeagueApp):
        return await league.maintenance.cleanup_orphaned_stats(dry_run=dry_run)

    orphans = _run(operation)
    if dry_run:
        console.print("🔍 DRY RUN MODE - nothing was deleted")
    for collection, count in orphans.items():
        console.print(f"   {collection}: {count} orphaned")


@app.command("clear-cache")
def clear_cache(
    pattern: Annotated[Optional[str], typer.Option("--pattern", help="Only keys containing this text")] = None,
    seasons: Annotated[bool, typer.Option("--seasons", help="Only season entries")] = False,
):
    """Drop cached entries."""
    async def operation(league: LeagueApp) -> Optional[int]:
        if seasons:
            return await league.maintenance.clear_season_cache()
        return await league.maintenance.clear_cache(pattern)

    removed = _run(operation)
    if removed is None:
        console.print("🧹 Cache flushed")
    else:
        console.print(f"🧹 Removed {removed} cache entries")


@app.command()
def health():
    """Report store and cache status."""
    async def operation(league: LeagueApp):
        return await league.health()

    report = _run(operation)
    for key, value in report.items():
        console.print(f"{key}: {value}")
    if report["status"] != "healthy":
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
