"""Read-only client for the public Sleeper API."""

import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import requests

from ..config.scoring import ScoringSystem
from ..config.settings import SLEEPER_API_BASE
from ..errors import TransientFetchError

logger = logging.getLogger(__name__)

SLEEPER_PROJECTIONS_BASE = "https://api.sleeper.app/projections/nfl"
PROJECTION_POSITIONS = ['QB', 'RB', 'WR', 'TE', 'K', 'DEF', 'DL', 'DB', 'LB']

# Feeds name the same PPR value differently; first defined numeric wins.
PPR_FIELDS = ('pts_ppr', 'fp_ppr', 'ppr', 'fantasy_points_ppr', 'points_ppr', 'proj_ppr', 'pts')
NESTED_CONTAINERS = ('stats', 'projections', 'proj')
NESTED_PPR_FIELDS = ('pts_ppr', 'fp_ppr')


def _first_number(row: Mapping[str, Any], fields: Iterable[str]) -> Optional[float]:
    for field in fields:
        value = row.get(field)
        if value is None:
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def extract_ppr(row: Optional[Mapping[str, Any]]) -> float:
    """PPR points from a projection or stat row, whatever the feed calls them.

    Tries top-level fields first, then the first nested container present.
    Returns 0 when nothing numeric is found.
    """
    if not isinstance(row, Mapping):
        return 0.0
    direct = _first_number(row, PPR_FIELDS)
    if direct is not None:
        return direct
    for container in NESTED_CONTAINERS:
        nested = row.get(container)
        if isinstance(nested, Mapping) and nested:
            return _first_number(nested, NESTED_PPR_FIELDS) or 0.0
    return 0.0


class SleeperClient:
    """Fetches league, player, stat, projection and draft data from Sleeper."""

    def __init__(self, base_url: str = SLEEPER_API_BASE, timeout: float = 20,
                 max_retries: int = 2, backoff_factor: float = 0.5,
                 session: Optional[requests.Session] = None):
        """Initialize the client.

        Args:
            base_url: API root
            timeout: Per-request timeout in seconds
            max_retries: Retries after the first failed attempt
            backoff_factor: Base delay for exponential backoff between retries
            session: Optional requests session to reuse
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.session = session or requests.Session()
        self._players_cache: Optional[Dict[str, Dict]] = None

    def _get_json(self, url: str, feed: str, resource_id: Optional[str] = None,
                  params: Optional[Any] = None, retries: Optional[int] = None) -> Any:
        """GET a JSON document, retrying with backoff.

        Raises:
            TransientFetchError: when every attempt fails
        """
        retries = self.max_retries if retries is None else retries
        last_error = "unknown error"
        for attempt in range(retries + 1):
            try:
                logger.debug(f"Fetching {feed} (attempt {attempt + 1}): {url}")
                response = self.session.get(url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.json()
            except requests.exceptions.HTTPError as e:
                status = e.response.status_code if e.response is not None else '?'
                last_error = f"HTTP {status}"
            except requests.exceptions.RequestException as e:
                last_error = str(e) or e.__class__.__name__
            except ValueError:
                last_error = "malformed JSON"
            logger.warning(f"Attempt {attempt + 1} for {feed} failed: {last_error}")
            if attempt < retries:
                time.sleep(self.backoff_factor * (2 ** attempt))
        raise TransientFetchError(feed, last_error, resource_id)

    # League data

    def get_league(self, league_id: str) -> Dict:
        return self._get_json(f"{self.base_url}/league/{league_id}", "league", league_id)

    def get_rosters(self, league_id: str) -> List[Dict]:
        return self._get_json(f"{self.base_url}/league/{league_id}/rosters", "rosters", league_id) or []

    def get_users(self, league_id: str) -> List[Dict]:
        return self._get_json(f"{self.base_url}/league/{league_id}/users", "users", league_id) or []

    def get_week_matchups(self, league_id: str, week: int) -> List[Dict]:
        return self._get_json(f"{self.base_url}/league/{league_id}/matchups/{week}",
                              "matchups", f"{league_id} week {week}") or []

    def get_league_scoring(self, league_id: str) -> ScoringSystem:
        league = self.get_league(league_id)
        return ScoringSystem.from_league(league.get('scoring_settings'))

    # Players and state

    def get_players_meta(self, refresh: bool = False) -> Dict[str, Dict]:
        """All NFL player metadata keyed by Sleeper id. Cached per client."""
        if self._players_cache is None or refresh:
            data = self._get_json(f"{self.base_url}/players/nfl", "players")
            if not isinstance(data, dict):
                raise TransientFetchError("players", "expected an object keyed by player id")
            self._players_cache = {pid: meta for pid, meta in data.items() if isinstance(meta, dict)}
            logger.info(f"Loaded metadata for {len(self._players_cache)} players")
        return self._players_cache

    def get_nfl_state(self) -> Dict:
        return self._get_json(f"{self.base_url}/state/nfl", "nfl state")

    # Stats and projections

    def get_week_actuals(self, season: int, week: int) -> Dict[str, Dict]:
        """Full stat rows for a week keyed by player id."""
        data = self._get_json(f"{self.base_url}/stats/nfl/regular/{season}/{week}",
                              "weekly stats", f"{season} week {week}")
        return data if isinstance(data, dict) else {}

    def get_week_team_stats(self, season: int, week: int) -> Dict[str, Dict]:
        """Team stat rows (keys like ``TEAM_KC``) for a week."""
        data = self._get_json(f"{self.base_url}/stats/nfl/regular/{season}/{week}",
                              "team stats", f"{season} week {week}",
                              params={'season_type': 'regular', 'position[]': 'T'})
        return data if isinstance(data, dict) else {}

    def get_projections(self, season: int, week: int) -> List[Dict]:
        """Provider projections for a week as a list of ``{player_id, stats}`` rows."""
        params = [('season_type', 'regular')] + [('position[]', pos) for pos in PROJECTION_POSITIONS]
        data = self._get_json(f"{SLEEPER_PROJECTIONS_BASE}/{season}/{week}",
                              "projections", f"{season} week {week}", params=params)
        return data if isinstance(data, list) else []

    def get_projection_map(self, season: int, week: int) -> Dict[str, float]:
        """Player id -> projected PPR points; rows without a positive value are dropped."""
        projections = {}
        for row in self.get_projections(season, week):
            player_id = row.get('player_id')
            points = extract_ppr(row)
            if player_id and points:
                projections[str(player_id)] = points
        return projections

    def get_prior_year_ppg(self, league_id: str, player_ids: Sequence[str], season: int,
                           weeks: Sequence[int] = tuple(range(1, 19))) -> Dict[str, float]:
        """Points per game over a season for the given players, using league scoring.

        Weeks that fail to load are skipped. Players without games map to 0.
        """
        scoring = self.get_league_scoring(league_id)
        targets = set(player_ids)
        totals: Dict[str, float] = {}
        games: Dict[str, int] = {}

        for week in weeks:
            try:
                weekly = self.get_week_actuals(season, week)
            except TransientFetchError as e:
                logger.warning(f"Skipping prior-year week {week}: {e}")
                continue
            for player_id, stats in weekly.items():
                if player_id not in targets or not isinstance(stats, dict):
                    continue
                totals[player_id] = totals.get(player_id, 0.0) + scoring.calculate_fantasy_points(stats)
                games[player_id] = games.get(player_id, 0) + 1

        return {pid: (totals[pid] / games[pid] if games.get(pid) else 0.0) for pid in player_ids}

    # Drafts

    def get_draft_picks(self, draft_id: str) -> List[Dict]:
        """Full current snapshot of picks for a draft. Not retried; polling retries."""
        data = self._get_json(f"{self.base_url}/draft/{draft_id}/picks", "draft picks",
                              draft_id, retries=0)
        if not isinstance(data, list):
            raise TransientFetchError("draft picks", "expected a list of picks", draft_id)
        return data
