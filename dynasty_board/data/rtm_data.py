"""Receiver tracking metrics (RTM) with per-week caching.

RTM rows look like ``{"full_nm": ..., "tm": ..., "overall": ...}``. Downloads
are cached per week in the key-value store together with a timestamp; a
stale cache is still used when a refresh fails.
"""

import logging
import re
import time
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import requests

from ..config.settings import RTMFetcherConfig
from ..errors import DataShapeError, TransientFetchError
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

RTM_DATA_URL = "https://nfl-player-metrics.s3.amazonaws.com/rtm/rtm_data.json"
CACHE_KEY_PREFIX = "rtm_data_week_"
CACHE_TIMESTAMP_KEY = "rtm_cache_timestamp"
REQUIRED_FIELDS = ('full_nm', 'tm', 'overall')
AVERAGED_FIELDS = ('overall', 'open_score', 'catch_score', 'yac_score',
                   'rtm_routes', 'rtm_targets', 'yds')
SEASON_WEEKS = range(1, 19)


class DataStrategy(str, Enum):
    """How RTM rows are chosen for a week."""
    SEASON_AVERAGE = "season-average"
    RECENT_AVERAGE = "recent-average"
    CURRENT_WEEK = "current-week"


def get_data_loading_strategy(current_week: int) -> Tuple[DataStrategy, Optional[int]]:
    """Pick a strategy and averaging window from how far into the season we are."""
    if current_week <= 4:
        return DataStrategy.SEASON_AVERAGE, None
    if current_week <= 12:
        return DataStrategy.RECENT_AVERAGE, 4
    return DataStrategy.CURRENT_WEEK, 1


def create_player_key(name: str, team: str) -> str:
    """Letters-only upper-cased name plus team, e.g. ``JAMARRCHASE|CIN``."""
    return f"{re.sub(r'[^A-Z]', '', (name or '').upper())}|{(team or '').upper()}"


def validate_rtm_data(data) -> bool:
    """True when data is a non-empty list whose first row has the required fields."""
    if not isinstance(data, list):
        logger.error("RTM data must be an array")
        return False
    if not data:
        logger.warning("RTM data is empty")
        return False
    sample = data[0]
    if not isinstance(sample, dict):
        logger.error("RTM rows must be objects")
        return False
    for field in REQUIRED_FIELDS:
        if field not in sample:
            logger.error(f"RTM data missing required field: {field}")
            return False
    return True


class RTMDataManager:
    """Loads RTM data from the remote feed with a week-bucketed cache."""

    def __init__(self, store: KeyValueStore, config: Optional[RTMFetcherConfig] = None,
                 url: str = RTM_DATA_URL, timeout: float = 20,
                 clock: Callable[[], float] = time.time):
        """Initialize the manager.

        Args:
            store: Key-value store used for the cache
            config: Cache behaviour
            url: Remote RTM JSON location
            timeout: Request timeout in seconds
            clock: Returns the current time in seconds
        """
        self.store = store
        self.config = config or RTMFetcherConfig()
        self.url = url
        self.timeout = timeout
        self.clock = clock

    def _is_cache_stale(self, week: int, max_age_hours: float) -> bool:
        timestamp = self.store.get(f"{CACHE_TIMESTAMP_KEY}_{week}")
        if not timestamp:
            return True
        try:
            age_hours = (self.clock() * 1000 - int(timestamp)) / (1000 * 60 * 60)
        except ValueError:
            return True
        return age_hours > max_age_hours

    def get_cached_data(self, week: int) -> Optional[List[Dict]]:
        data = self.store.get_json(f"{CACHE_KEY_PREFIX}{week}")
        return data if isinstance(data, list) else None

    def _save_to_cache(self, data: List[Dict], week: int) -> None:
        self.store.set_json(f"{CACHE_KEY_PREFIX}{week}", data)
        self.store.set(f"{CACHE_TIMESTAMP_KEY}_{week}", str(int(self.clock() * 1000)))
        logger.info(f"Cached RTM data for week {week}")

    def fetch_from_remote(self) -> List[Dict]:
        """Download the RTM feed.

        Raises:
            TransientFetchError: unreachable, non-2xx or malformed JSON
            DataShapeError: payload is not a list
        """
        logger.info(f"Fetching RTM data from remote: {self.url}")
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise TransientFetchError("rtm", str(e)) from e
        except ValueError as e:
            raise TransientFetchError("rtm", "malformed JSON") from e

        if not isinstance(data, list):
            raise DataShapeError("Invalid RTM data format: expected array")

        logger.info(f"Successfully fetched {len(data)} players from remote")
        return data

    def fetch(self, week: int, auto_fetch: Optional[bool] = None) -> List[Dict]:
        """RTM rows for a week: fresh cache, else remote, else stale cache.

        Raises:
            TransientFetchError/DataShapeError: when nothing usable is available
        """
        auto_fetch = self.config.auto_fetch if auto_fetch is None else auto_fetch
        cached = self.get_cached_data(week)
        stale = self._is_cache_stale(week, self.config.max_cache_age_hours)

        if cached and not stale:
            logger.info(f"Using cached RTM data for week {week}")
            return cached

        if not auto_fetch:
            if cached:
                logger.warning("RTM cache is stale but auto-fetch is disabled. Using stale cache.")
                return cached
            raise TransientFetchError("rtm", "no cache and auto-fetch disabled", f"week {week}")

        try:
            data = self.fetch_from_remote()
            if not validate_rtm_data(data):
                raise DataShapeError("Fetched RTM data validation failed")
            if self.config.save_to_cache:
                self._save_to_cache(data, week)
            return data
        except (TransientFetchError, DataShapeError) as e:
            if cached:
                logger.warning(f"RTM fetch failed ({e}), falling back to stale cache")
                return cached
            raise

    def load_weekly(self, week: int) -> List[Dict]:
        """RTM rows for a week, falling back to earlier cached weeks, then a raw download."""
        try:
            data = self.fetch(week)
            if data:
                return data
        except (TransientFetchError, DataShapeError) as e:
            logger.warning(f"Failed to load RTM data for week {week}, trying fallback: {e}")

        for fallback_week in range(week - 1, 0, -1):
            cached = self.get_cached_data(fallback_week)
            if cached:
                logger.info(f"Using week {fallback_week} RTM data as fallback")
                return cached

        try:
            return self.fetch_from_remote()
        except (TransientFetchError, DataShapeError) as e:
            logger.error(f"No RTM data available: {e}")
            return []

    def available_weeks(self) -> List[int]:
        return [week for week in SEASON_WEEKS if self.get_cached_data(week)]

    def load_season_averaged(self, current_week: int, weeks_to_average: Optional[int] = None) -> List[Dict]:
        """Average numeric RTM fields per player across cached weeks.

        Args:
            current_week: Week to load when nothing is cached
            weeks_to_average: Use only the most recent N cached weeks

        Returns:
            One row per player with averaged (rounded) metric fields
        """
        available = self.available_weeks()
        weeks = available[-weeks_to_average:] if weeks_to_average else available

        if not weeks:
            logger.warning("No weekly data available for season averaging")
            return self.load_weekly(current_week)

        logger.info(f"Averaging RTM data across weeks: {', '.join(map(str, weeks))}")

        players: Dict[str, Dict] = {}
        for week in weeks:
            for row in self.get_cached_data(week) or []:
                key = create_player_key(row.get('full_nm', ''), row.get('tm', ''))
                entry = players.setdefault(key, {'row': row, 'values': {f: [] for f in AVERAGED_FIELDS}})
                for field in AVERAGED_FIELDS:
                    entry['values'][field].append(row.get(field) or 0)

        averaged = []
        for entry in players.values():
            row = dict(entry['row'])
            for field, values in entry['values'].items():
                # JS-style rounding: half up
                row[field] = int(sum(values) / len(values) + 0.5) if values else 0
            averaged.append(row)

        logger.info(f"Created season-averaged data for {len(averaged)} players "
                    f"across {len(weeks)} weeks")
        return averaged

    def load(self, week: int, strategy: Optional[DataStrategy] = None,
             weeks_to_average: Optional[int] = None) -> List[Dict]:
        """Load RTM rows with an explicit strategy or the one suited to the week."""
        if strategy is None:
            strategy, weeks_to_average = get_data_loading_strategy(week)
        if strategy in (DataStrategy.SEASON_AVERAGE, DataStrategy.RECENT_AVERAGE):
            return self.load_season_averaged(week, weeks_to_average)
        return self.load_weekly(week)

    def clear_cache(self) -> None:
        for week in SEASON_WEEKS:
            self.store.remove(f"{CACHE_KEY_PREFIX}{week}")
            self.store.remove(f"{CACHE_TIMESTAMP_KEY}_{week}")
        logger.info("RTM cache cleared")
