"""KeepTradeCut dynasty market values, scraped from the rankings page."""

import json
import logging
import re
from typing import Dict, Mapping, Optional

import requests

from ..errors import DataShapeError
from ..utils.names import strip_name_suffix

logger = logging.getLogger(__name__)

KTC_RANKINGS_URL = "https://keeptradecut.com/dynasty-rankings"

# The page embeds its data as: var playersArray = [{...}];
PLAYERS_ARRAY_PATTERN = re.compile(r'var\s+playersArray\s*=\s*(\[[\s\S]*?\]);')


def parse_players_array(html: str) -> Dict[str, float]:
    """Extract lower-cased player name -> superflex value from the page HTML.

    Raises:
        DataShapeError: if the embedded array is missing or not a JSON list
    """
    match = PLAYERS_ARRAY_PATTERN.search(html)
    if not match:
        raise DataShapeError("Could not find playersArray in KTC page")

    try:
        players = json.loads(match.group(1))
    except ValueError as e:
        raise DataShapeError(f"playersArray is not valid JSON: {e}") from e
    if not isinstance(players, list):
        raise DataShapeError("playersArray is not a list")

    values: Dict[str, float] = {}
    for player in players:
        if not isinstance(player, dict):
            continue
        name = player.get('playerName')
        value = (player.get('superflexValues') or {}).get('value')
        if name and value:
            values[name.lower().strip()] = float(value)
    return values


def match_values_to_players(ktc_values: Mapping[str, float],
                            players_meta: Mapping[str, Mapping]) -> Dict[str, float]:
    """Map Sleeper player ids to KTC values by name.

    Exact lower-cased full name first, then the name with any suffix
    (Jr., Sr., II...) removed on both sides. The first KTC name that strips
    to the same key wins.
    """
    stripped_values: Dict[str, float] = {}
    for ktc_name, value in ktc_values.items():
        stripped_values.setdefault(strip_name_suffix(ktc_name), value)

    value_map: Dict[str, float] = {}
    fuzzy_count = 0
    for player_id, player in players_meta.items():
        if not isinstance(player, Mapping):
            continue
        full_name = player.get('full_name')
        if not full_name:
            continue

        exact = ktc_values.get(full_name.lower().strip())
        if exact:
            value_map[player_id] = exact
            continue

        stripped = strip_name_suffix(full_name)
        if stripped and stripped_values.get(stripped):
            value_map[player_id] = stripped_values[stripped]
            fuzzy_count += 1

    logger.info(f"Matched {len(value_map)} players between KTC and Sleeper "
                f"({fuzzy_count} fuzzy matches)")
    return value_map


class KTCValueSource:
    """Fetches the KTC rankings page and matches it onto Sleeper players."""

    def __init__(self, url: str = KTC_RANKINGS_URL, timeout: float = 20,
                 session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_name_values(self) -> Dict[str, float]:
        """Name -> value table; empty when the page is unreachable or changed shape."""
        logger.info("Fetching KeepTradeCut player values...")
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            return parse_players_array(response.text)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Failed to fetch KTC values from {self.url}: {e}")
        except DataShapeError as e:
            logger.warning(f"KTC page format changed, no values loaded: {e}")
        return {}

    def get_values(self, players_meta: Mapping[str, Mapping]) -> Dict[str, float]:
        """Sleeper player id -> KTC value."""
        name_values = self.fetch_name_values()
        if not name_values:
            return {}
        return match_values_to_players(name_values, players_meta)
