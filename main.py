"""Main entry point for the Dynasty Board."""

import time
from pathlib import Path

import click
import pandas as pd

from dynasty_board import DraftSession, ProjectionEngine
from dynasty_board.config.settings import DraftSettings, EngineSettings, current_season
from dynasty_board.data.rtm_data import DataStrategy
from dynasty_board.data.storage import JsonFileStore
from dynasty_board.errors import DynastyBoardError
from dynasty_board.utils.logging_config import setup_logging


def _engine(season):
    settings = EngineSettings(season=season) if season else EngineSettings()
    return ProjectionEngine(settings=settings)


def _emit(table: pd.DataFrame, title: str, output, limit: int = 20) -> None:
    """Print the top rows of a result table and optionally save all of it as CSV."""
    if table.empty:
        click.echo("No results.", err=True)
        return

    click.echo(f"\n{title}:")
    click.echo("=" * 60)
    click.echo(table.head(limit).to_string(index=False))

    if output:
        table.to_csv(output, index=False)
        click.echo(f"\nResults saved to {output}")

    click.echo(f"\n{len(table)} total rows.")


def league_options(func):
    func = click.option('--output', '-o', type=click.Path(),
                        help='Output file path (CSV format)')(func)
    func = click.option('--season', '-y', type=int,
                        help='Season (defaults to current)')(func)
    func = click.option('--league-id', '-l', required=True, help='Sleeper league ID')(func)
    return func


@click.group()
@click.option('--log-level', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Set logging level')
@click.option('--log-file', type=click.Path(), help='Log file path')
def cli(log_level, log_file):
    """Dynasty Board CLI."""
    setup_logging(level=log_level, log_file=log_file)


@cli.command()
@click.option('--draft-id', '-d', required=True, help='Sleeper draft ID')
@click.option('--rankings', '-r', type=click.Path(exists=True, dir_okay=False), required=True,
              help='Ranking CSV with name, tier and pos columns')
@click.option('--interval', default=5.0, type=float, help='Seconds between polls')
@click.option('--rookie-picks', is_flag=True, help='Treat drafted kickers as rookie picks')
@click.option('--league-size', default=12, type=int, help='Teams per round')
@click.option('--rookie-year', type=int, help='Year used in rookie pick names')
@click.option('--once', is_flag=True, help='Sync once and exit instead of polling')
@click.option('--store', default='data/cache/store.json', type=click.Path(),
              help='Where saved rankings and my picks are kept')
@click.option('--limit', default=25, type=int, help='Available players to show')
def board(draft_id, rankings, interval, rookie_picks, league_size, rookie_year, once, store, limit):
    """Track a live draft against a ranking file."""
    try:
        settings = DraftSettings(
            draft_id=draft_id,
            poll_interval_seconds=interval,
            rookie_pick_mode=rookie_picks,
            league_size=league_size,
            **({'rookie_year': rookie_year} if rookie_year else {}),
        )
        session = DraftSession(JsonFileStore(store))
        path = Path(rankings)
        session.load_rankings(path.read_text(), path.name)
    except (ValueError, DynastyBoardError) as e:
        click.echo(f"Error: {e}", err=True)
        return

    def show():
        click.echo(f"\n{session.taken_count} taken, {len(session.available)} available "
                   f"({session.sync_status.picks_count} picks synced)")
        for row in session.available[:limit]:
            click.echo(f"{str(row.tier):>4}  {row.position:5} {row.name}")

    if once:
        session.sync_once(settings)
        show()
        return

    session.start_polling(settings)
    last_sync = None
    try:
        while True:
            time.sleep(1)
            if session.sync_status.last_sync != last_sync:
                last_sync = session.sync_status.last_sync
                show()
    except KeyboardInterrupt:
        session.stop_polling()


@cli.command()
@league_options
def bestball(league_id, season, output):
    """Project best ball season totals and the rookie draft order."""
    click.echo(f"Projecting best ball standings for league {league_id}...")
    try:
        table = _engine(season).get_best_ball_projections(league_id)
    except DynastyBoardError as e:
        click.echo(f"Error generating projections: {e}", err=True)
        return
    _emit(table, "Projected Draft Order", output)


@cli.command()
@league_options
@click.option('--strategy', type=click.Choice([s.value for s in DataStrategy]),
              help='RTM data strategy (default: chosen from the week)')
def pwopr(league_id, season, output, strategy):
    """Rank receivers by the PWOPR composite."""
    click.echo(f"Computing PWOPR for league {league_id}...")
    try:
        table = _engine(season).get_pwopr_projections(
            league_id, DataStrategy(strategy) if strategy else None)
    except DynastyBoardError as e:
        click.echo(f"Error generating projections: {e}", err=True)
        return
    _emit(table, "PWOPR Rankings", output)


@cli.command()
@league_options
def pwrb(league_id, season, output):
    """Rank running backs by the PWRB composite."""
    click.echo(f"Computing PWRB for league {league_id}...")
    try:
        table = _engine(season).get_pwrb_projections(league_id)
    except DynastyBoardError as e:
        click.echo(f"Error generating projections: {e}", err=True)
        return
    _emit(table, "PWRB Rankings", output)


@cli.command('power-rankings')
@league_options
def power_rankings(league_id, season, output):
    """Rank rosters by the dynasty value of their best lineup."""
    click.echo(f"Ranking rosters for league {league_id}...")
    try:
        table = _engine(season).get_power_rankings(league_id)
    except DynastyBoardError as e:
        click.echo(f"Error generating rankings: {e}", err=True)
        return
    _emit(table, "Power Rankings", output, limit=32)


@cli.command()
@league_options
@click.option('--history-weeks', default=4, type=int, help='Completed weeks used for the fit')
def signals(league_id, season, output, history_weeks):
    """Flag provider projections that look too high or too low."""
    click.echo(f"Scoring projection signals for league {league_id} "
               f"(season {season or current_season()})...")
    try:
        table = _engine(season).get_pwopr_signals(league_id, history_weeks)
    except DynastyBoardError as e:
        click.echo(f"Error scoring signals: {e}", err=True)
        return
    _emit(table, "Over/Under Signals", output)


if __name__ == '__main__':
    cli()
