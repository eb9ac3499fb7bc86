"""Roster power rankings from dynasty market values."""

import logging
from typing import Mapping, Optional, Sequence

import pandas as pd

from ..config.settings import DEFAULT_ROSTER_POSITIONS
from .positions import LineupCandidate, count_slots, pick_best_lineup, player_position

logger = logging.getLogger(__name__)

POWER_RANKING_COLUMNS = ['rank', 'roster_id', 'owner_name', 'team_name', 'total_value',
                         'qb_value', 'rb_value', 'wr_value', 'te_value']


def rank_rosters_by_value(rosters: Sequence[Mapping],
                          users: Sequence[Mapping],
                          players_meta: Mapping[str, Mapping],
                          values: Mapping[str, float],
                          roster_positions: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Rank rosters by the value of their optimal starting lineup.

    Args:
        rosters: League rosters (roster_id, owner_id, players)
        users: League users (user_id, display_name, metadata.team_name)
        players_meta: Sleeper player metadata keyed by player id
        values: Player id -> market value
        roster_positions: League lineup slots, defaults when empty

    Returns:
        DataFrame with POWER_RANKING_COLUMNS, most valuable roster first.
        Empty when no values are available.
    """
    if not values:
        logger.warning("No player values available, skipping power rankings")
        return pd.DataFrame(columns=POWER_RANKING_COLUMNS)

    slots = count_slots(roster_positions or DEFAULT_ROSTER_POSITIONS)
    users_by_id = {u.get('user_id'): u for u in users}

    rankings = []
    for roster in rosters:
        candidates = []
        for player_id in roster.get('players') or []:
            pos = player_position(players_meta.get(player_id))
            value = values.get(player_id) or 0
            if pos and value:
                candidates.append(LineupCandidate(player_id, pos, value))

        lineup = pick_best_lineup(candidates, slots)
        user = users_by_id.get(roster.get('owner_id')) or {}
        rankings.append({
            'roster_id': roster['roster_id'],
            'owner_name': user.get('display_name') or f"Roster {roster['roster_id']}",
            'team_name': (user.get('metadata') or {}).get('team_name'),
            'total_value': lineup.total,
            'qb_value': lineup.positional_values['QB'],
            'rb_value': lineup.positional_values['RB'],
            'wr_value': lineup.positional_values['WR'],
            'te_value': lineup.positional_values['TE'],
        })

    rankings.sort(key=lambda r: r['total_value'], reverse=True)
    for rank, row in enumerate(rankings, start=1):
        row['rank'] = rank

    return pd.DataFrame(rankings, columns=POWER_RANKING_COLUMNS)
