"""Main projection engine that orchestrates feed loading and the value models."""

import logging
from typing import Callable, Dict, List, Optional, TypeVar

import pandas as pd

from ..config.settings import EngineSettings, PWRBWeights, ScoreOptions
from ..data.ktc_values import KTCValueSource
from ..data.nfl_data_loader import NFLDataLoader
from ..data.rtm_data import DataStrategy, RTMDataManager, create_player_key
from ..data.sleeper_client import SleeperClient
from ..data.storage import JsonFileStore
from ..errors import DataShapeError, TransientFetchError
from .best_ball import project_best_ball
from .injury import DEFAULT_INJURY_MODEL, InjuryModel, get_injury_summary, log_injury_summary
from .positions import DEFAULT_POSITION_TABLES, PositionTables
from .power_rankings import rank_rosters_by_value
from .receivers import RANKED_POSITIONS, build_wopr_rows, compute_pwopr_rows, with_pwopr
from .running_backs import compute_pwrb_rows
from .signal_model import score_with_pwopr

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ProjectionEngine:
    """Main engine for generating league projections and rankings."""

    def __init__(self,
                 client: Optional[SleeperClient] = None,
                 rtm: Optional[RTMDataManager] = None,
                 ktc: Optional[KTCValueSource] = None,
                 nfl_loader: Optional[NFLDataLoader] = None,
                 settings: Optional[EngineSettings] = None,
                 injury_model: InjuryModel = DEFAULT_INJURY_MODEL,
                 pwrb_weights: Optional[PWRBWeights] = None,
                 score_options: Optional[ScoreOptions] = None,
                 tables: PositionTables = DEFAULT_POSITION_TABLES):
        """Initialize the projection engine.

        Args:
            client: Sleeper API client
            rtm: Receiver tracking metrics source
            ktc: Dynasty market value source
            nfl_loader: Schedule source for bye weeks
            settings: Season and lineup parameters
            injury_model: Availability and impact tables
            pwrb_weights: RB composite weights
            score_options: PWOPR signal thresholds
            tables: Position calibration tables
        """
        self.settings = settings or EngineSettings()
        self.client = client or SleeperClient()
        self.rtm = rtm or RTMDataManager(JsonFileStore())
        self.ktc = ktc or KTCValueSource()
        self.nfl_loader = nfl_loader or NFLDataLoader(self.settings.season, self.settings.season_weeks)
        self.injury_model = injury_model
        self.pwrb_weights = pwrb_weights or PWRBWeights()
        self.score_options = score_options or ScoreOptions()
        self.tables = tables

        logger.info(f"ProjectionEngine initialized for season {self.settings.season}")

    def _optional(self, fetch: Callable[[], T], description: str, default: T) -> T:
        """Run an optional sub-fetch; a failure contributes the default."""
        try:
            return fetch()
        except (TransientFetchError, DataShapeError) as e:
            logger.warning(f"Skipping {description}: {e}")
            return default

    def current_week(self) -> int:
        state = self.client.get_nfl_state() or {}
        return int(state.get('week') or 1)

    def _last_completed_week(self) -> int:
        return max(1, self.current_week() - 1)

    def _players_meta(self) -> Dict[str, Dict]:
        meta = self.client.get_players_meta()
        log_injury_summary(get_injury_summary(meta, self.injury_model), source="sleeper")
        return meta

    def _projection_map(self, week: int) -> Dict[str, float]:
        return self._optional(lambda: self.client.get_projection_map(self.settings.season, week),
                              f"projections for week {week}", {})

    def _rtm_by_key(self, week: int, data_strategy: Optional[DataStrategy]) -> Dict[str, Dict]:
        rows = self._optional(lambda: self.rtm.load(week, data_strategy), "RTM data", [])
        return {create_player_key(r['full_nm'], r['tm']): r
                for r in rows if r.get('full_nm') and r.get('tm')}

    def get_best_ball_projections(self, league_id: str) -> pd.DataFrame:
        """Best ball season totals and the resulting rookie draft order.

        Args:
            league_id: Sleeper league id

        Returns:
            DataFrame with roster_id, owner_name, ytd_points, projected_points,
            total_points, rank and draft_order
        """
        league = self.client.get_league(league_id)
        rosters = self.client.get_rosters(league_id)
        users = self.client.get_users(league_id)
        meta = self._players_meta()
        week = self.current_week()

        matchups = {}
        for completed in (w for w in self.settings.weeks if w < week):
            matchups[completed] = self._optional(
                lambda w=completed: self.client.get_week_matchups(league_id, w),
                f"matchups for week {completed}", [])

        projections = {future: self._projection_map(future)
                       for future in self.settings.weeks if future > week}

        return project_best_ball(
            rosters, users, meta, week, matchups, projections,
            self.nfl_loader.get_bye_weeks(),
            roster_positions=league.get('roster_positions'),
            settings=self.settings,
            injury_model=self.injury_model,
            tables=self.tables,
        )

    def get_pwopr_projections(self, league_id: str,
                              data_strategy: Optional[DataStrategy] = None) -> pd.DataFrame:
        """Ranked WR/TE composite from the last completed week.

        Args:
            league_id: League whose scoring is used for prior-year PPG
            data_strategy: RTM loading strategy, chosen from the week when None
        """
        week = self._last_completed_week()
        stats = self.client.get_week_actuals(self.settings.season, week)
        meta = self._players_meta()
        projections = self._projection_map(week + 1)
        rtm_by_key = self._rtm_by_key(week, data_strategy)

        base_rows = build_wopr_rows(stats, meta)
        candidates: List[str] = base_rows.loc[base_rows['pos'].isin(RANKED_POSITIONS),
                                              'player_id'].tolist()
        prior_year_ppg = self._optional(
            lambda: self.client.get_prior_year_ppg(league_id, candidates, self.settings.season - 1),
            "prior-year PPG", {})

        rows = build_wopr_rows(stats, meta, rtm_by_key, prior_year_ppg, projections)
        return compute_pwopr_rows(rows, meta, self.injury_model)

    def get_pwrb_projections(self, league_id: str) -> pd.DataFrame:
        """Ranked RB composite from the last completed week."""
        week = self._last_completed_week()
        logger.info(f"Computing PWRB for league {league_id} from week {week}")
        stats = self.client.get_week_actuals(self.settings.season, week)
        meta = self._players_meta()
        team_stats = self._optional(
            lambda: self.client.get_week_team_stats(self.settings.season, week),
            f"team stats for week {week}", {})
        return compute_pwrb_rows(stats, meta, team_stats, self.pwrb_weights, self.injury_model)

    def get_power_rankings(self, league_id: str) -> pd.DataFrame:
        """Rosters ranked by the market value of their optimal lineup."""
        league = self.client.get_league(league_id)
        rosters = self.client.get_rosters(league_id)
        users = self.client.get_users(league_id)
        meta = self.client.get_players_meta()
        values = self.ktc.get_values(meta)
        return rank_rosters_by_value(rosters, users, meta, values, league.get('roster_positions'))

    def get_pwopr_signals(self, league_id: str, history_weeks: int = 4) -> pd.DataFrame:
        """Score this week's provider projections against the PWOPR-to-points fit.

        The fit is trained on each of the last ``history_weeks`` completed
        weeks: that week's opportunity composite against the points scored.
        The upcoming rows use the last completed week's composite.

        Args:
            league_id: Sleeper league id
            history_weeks: Completed weeks used for training
        """
        week = self.current_week()
        meta = self._players_meta()
        logger.info(f"Scoring PWOPR signals for league {league_id}, week {week}")

        history_frames = []
        for past in range(max(1, week - history_weeks), week):
            stats = self._optional(lambda w=past: self.client.get_week_actuals(self.settings.season, w),
                                   f"stats for week {past}", {})
            if stats:
                history_frames.append(with_pwopr(build_wopr_rows(stats, meta)))
        history = pd.concat(history_frames, ignore_index=True) if history_frames else pd.DataFrame(
            columns=['pos', 'pwopr', 'pts_ppr'])

        latest = self.client.get_week_actuals(self.settings.season, self._last_completed_week())
        upcoming = with_pwopr(build_wopr_rows(latest, meta))
        projections = self._projection_map(week)
        upcoming['fantasy_projection'] = upcoming['player_id'].map(projections)

        return score_with_pwopr(history, upcoming, self.score_options)
