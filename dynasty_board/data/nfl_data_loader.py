"""NFL schedule loader using nflreadpy for accessing nflverse datasets."""

import logging
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

import pandas as pd
import polars as pl
import nflreadpy as nfl

from ..config.settings import current_season

logger = logging.getLogger(__name__)

# nflverse abbreviations that differ from Sleeper's
NFLVERSE_TO_SLEEPER_TEAM: Mapping[str, str] = MappingProxyType({'LA': 'LAR'})

# Published 2025 bye weeks, used when the schedule cannot be loaded
STATIC_BYE_WEEKS_2025: Mapping[str, List[int]] = MappingProxyType({
    'ARI': [8], 'ATL': [5], 'BAL': [7], 'BUF': [7], 'CAR': [14], 'CHI': [5],
    'CIN': [10], 'CLE': [9], 'DAL': [10], 'DEN': [12], 'DET': [8], 'GB': [5],
    'HOU': [6], 'IND': [11], 'JAX': [8], 'KC': [10], 'LV': [8], 'LAC': [12],
    'LAR': [8], 'MIA': [12], 'MIN': [6], 'NE': [14], 'NO': [11], 'NYG': [14],
    'NYJ': [9], 'PHI': [9], 'PIT': [5], 'SF': [14], 'SEA': [8], 'TB': [9],
    'TEN': [10], 'WAS': [12],
})


def bye_weeks_from_schedule(schedule: pd.DataFrame, season_weeks: int = 18) -> Dict[str, List[int]]:
    """Derive each team's bye weeks from a regular-season schedule.

    A team is on bye in any regular-season week where it plays no game.

    Args:
        schedule: nflverse schedule with week, home_team, away_team and
            optionally game_type columns
        season_weeks: Number of regular-season weeks

    Returns:
        Sleeper team abbreviation -> sorted list of bye weeks
    """
    if 'game_type' in schedule.columns:
        schedule = schedule[schedule['game_type'] == 'REG']
    if schedule.empty:
        return {}

    played: Dict[str, set] = {}
    for _, game in schedule.iterrows():
        week = int(game['week'])
        for team in (game['home_team'], game['away_team']):
            team = NFLVERSE_TO_SLEEPER_TEAM.get(team, team)
            played.setdefault(team, set()).add(week)

    all_weeks = set(range(1, season_weeks + 1))
    return {team: sorted(all_weeks - weeks) for team, weeks in sorted(played.items())}


class NFLDataLoader:
    """Loads and caches NFL schedule data from nflverse."""

    def __init__(self, season: Optional[int] = None, season_weeks: int = 18):
        """Initialize the data loader.

        Args:
            season: Season to load. Defaults to the current season
            season_weeks: Number of regular-season weeks
        """
        self.season = season or current_season()
        self.season_weeks = season_weeks
        self._bye_weeks: Optional[Dict[str, List[int]]] = None
        logger.info(f"Initialized NFLDataLoader for season {self.season}")

    def load_schedules(self, seasons: Optional[List[int]] = None) -> pd.DataFrame:
        """Load NFL schedules.

        Args:
            seasons: List of seasons to load. Defaults to the loader's season.

        Returns:
            DataFrame with schedule data
        """
        if seasons is None:
            seasons = [self.season]

        logger.info(f"Loading schedules for seasons: {seasons}")

        df = nfl.load_schedules(seasons=seasons)
        if isinstance(df, pl.DataFrame):
            df = df.to_pandas()

        logger.info(f"Loaded {len(df)} games from schedules")
        return df

    def get_bye_weeks(self) -> Dict[str, List[int]]:
        """Team -> bye weeks for the season, with the static table as fallback."""
        if self._bye_weeks is not None:
            return self._bye_weeks

        try:
            byes = bye_weeks_from_schedule(self.load_schedules(), self.season_weeks)
        except Exception as e:
            logger.warning(f"Error loading schedules, using static bye weeks: {e}")
            byes = {}

        if not byes:
            byes = {team: list(weeks) for team, weeks in STATIC_BYE_WEEKS_2025.items()}

        self._bye_weeks = byes
        return byes

    def is_on_bye(self, team: Optional[str], week: int) -> bool:
        return bool(team) and week in self.get_bye_weeks().get(team, [])
