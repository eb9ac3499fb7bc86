"""Best Ball season projection and rookie draft order.

Completed weeks are scored by running the lineup optimizer over actual
points; future weeks over blended per-player projections. Teams outside the
playoff set pick first, worst projected total first.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

import pandas as pd

from ..config.settings import DEFAULT_ROSTER_POSITIONS, EngineSettings
from ..utils.stats import ewma, regression_to_mean, sample_size_confidence, trend
from .injury import DEFAULT_INJURY_MODEL, InjuryModel
from .positions import (DEFAULT_POSITION_TABLES, LineupCandidate, PositionTables,
                        count_slots, get_position_average, pick_best_ball, player_position)

logger = logging.getLogger(__name__)

BEST_BALL_COLUMNS = ['roster_id', 'owner_name', 'ytd_points', 'projected_points',
                     'total_points', 'rank', 'draft_order']

HISTORY_WEIGHT = 0.35
EXTERNAL_WEIGHT = 0.6
TREND_WEIGHT = 0.05
HISTORY_ONLY_TREND_WEIGHT = 0.2


def owner_names(rosters: Sequence[Mapping], users: Sequence[Mapping]) -> Dict[int, str]:
    """roster_id -> owner display name, ``Roster <id>`` when the owner is unknown."""
    by_user = {u.get('user_id'): u.get('display_name') for u in users}
    return {r['roster_id']: by_user.get(r.get('owner_id')) or f"Roster {r['roster_id']}"
            for r in rosters}


def actual_points_for(roster: Mapping) -> float:
    settings = roster.get('settings') or {}
    return (settings.get('fpts') or 0) + (settings.get('fpts_decimal') or 0) / 100


def blend_weekly_projection(historical_avg: float, player_trend: float, external: Optional[float],
                            confidence: float, weeks_out: int) -> float:
    """Blend history, the provider projection and trend for one future week.

    Args:
        historical_avg: EWMA of the player's non-zero weeks (0 if none)
        player_trend: Slope of the player's non-zero weeks
        external: Provider projection, or None when absent
        confidence: Sample-size confidence in the history
        weeks_out: 1 for the first future week, 2 for the next...

    Returns:
        Unregressed projected points
    """
    if external is not None and historical_avg > 0:
        return (HISTORY_WEIGHT * confidence * historical_avg
                + EXTERNAL_WEIGHT * external
                + TREND_WEIGHT * player_trend * weeks_out)
    if external is not None:
        return external
    if historical_avg > 0:
        return historical_avg + HISTORY_ONLY_TREND_WEIGHT * player_trend * weeks_out
    return 0.0


def project_best_ball(rosters: Sequence[Mapping],
                      users: Sequence[Mapping],
                      players_meta: Mapping[str, Mapping],
                      current_week: int,
                      matchups_by_week: Mapping[int, Sequence[Mapping]],
                      projections_by_week: Mapping[int, Mapping[str, float]],
                      bye_weeks: Mapping[str, Sequence[int]],
                      roster_positions: Optional[Sequence[str]] = None,
                      settings: Optional[EngineSettings] = None,
                      injury_model: InjuryModel = DEFAULT_INJURY_MODEL,
                      tables: PositionTables = DEFAULT_POSITION_TABLES) -> pd.DataFrame:
    """Project each roster's best-ball season total and derive the draft order.

    Args:
        rosters: League rosters (roster_id, owner_id, players, settings)
        users: League users (user_id, display_name)
        players_meta: Sleeper player metadata keyed by player id
        current_week: Current NFL week; earlier weeks are complete
        matchups_by_week: Matchups per completed week; a missing week scores nothing
        projections_by_week: Player id -> provider PPR projection per future week
        bye_weeks: Team -> bye weeks
        roster_positions: League lineup slots, defaults when empty
        settings: Season length and blending parameters
        injury_model: Availability and impact tables
        tables: Position averages used for regression

    Returns:
        DataFrame in draft order with BEST_BALL_COLUMNS
    """
    settings = settings or EngineSettings()
    slots = count_slots(roster_positions or DEFAULT_ROSTER_POSITIONS)
    names = owner_names(rosters, users)

    season_totals = {r['roster_id']: 0.0 for r in rosters}
    projected_totals = dict(season_totals)
    performances: Dict[str, List[float]] = {}

    completed_weeks = [w for w in settings.weeks if w < current_week]
    future_weeks = [w for w in settings.weeks if w > current_week]

    for week in completed_weeks:
        weekly_rosters = {}
        for matchup in matchups_by_week.get(week) or []:
            if matchup.get('roster_id') and matchup.get('players') and matchup.get('players_points'):
                weekly_rosters[matchup['roster_id']] = matchup

        for roster in rosters:
            matchup = weekly_rosters.get(roster['roster_id'])
            if not matchup:
                continue
            candidates = []
            for player_id in matchup['players']:
                pos = player_position(players_meta.get(player_id))
                if not pos:
                    continue
                points = matchup['players_points'].get(str(player_id)) or 0.0
                candidates.append(LineupCandidate(str(player_id), pos, points))
                performances.setdefault(player_id, []).append(points)

            week_total = pick_best_ball(candidates, slots)
            season_totals[roster['roster_id']] += week_total
            projected_totals[roster['roster_id']] += week_total

    averages: Dict[str, float] = {}
    trends: Dict[str, float] = {}
    non_zero_counts: Dict[str, int] = {}
    for player_id, history in performances.items():
        non_zero = [p for p in history if p > 0]
        non_zero_counts[player_id] = len(non_zero)
        averages[player_id] = ewma(non_zero, settings.ewma_alpha) if non_zero else 0.0
        trends[player_id] = trend(non_zero) if non_zero else 0.0

    for weeks_out, week in enumerate(future_weeks, start=1):
        week_projections = projections_by_week.get(week) or {}
        for roster in rosters:
            candidates = []
            for player_id in roster.get('players') or []:
                meta = players_meta.get(player_id)
                if not meta:
                    continue
                pos = player_position(meta)
                if not pos or not meta.get('active'):
                    continue
                team = meta.get('team')
                if team and week in (bye_weeks.get(team) or ()):
                    continue

                external = week_projections.get(player_id) or None
                status = meta.get('injury_status')
                play_probability = injury_model.play_probability(status)
                if play_probability == 0 and external is None:
                    continue

                projected = blend_weekly_projection(
                    averages.get(player_id, 0.0),
                    trends.get(player_id, 0.0),
                    external,
                    sample_size_confidence(non_zero_counts.get(player_id, 0)),
                    weeks_out,
                )
                projected = regression_to_mean(projected, get_position_average(pos, tables.averages),
                                               settings.regression_factor)

                # A positive provider projection already reflects availability
                # for healthy and ruled-out players.
                feed_reflects_status = external is not None and external > 0 and (
                    not status or play_probability == 0)
                if not feed_reflects_status:
                    projected = injury_model.apply_adjustment(projected, status)

                candidates.append(LineupCandidate(str(player_id), pos, max(0.0, projected)))

            projected_totals[roster['roster_id']] += pick_best_ball(candidates, slots)

    records = []
    for roster in rosters:
        roster_id = roster['roster_id']
        records.append({
            'roster_id': roster_id,
            'owner_name': names[roster_id],
            'ytd_points': season_totals[roster_id],
            'projected_points': projected_totals[roster_id] - season_totals[roster_id],
            'total_points': projected_totals[roster_id],
            'actual_pf': actual_points_for(roster),
        })

    by_actual = sorted(records, key=lambda r: r['actual_pf'], reverse=True)
    playoff_ids = {r['roster_id'] for r in by_actual[:settings.playoff_teams]}
    non_playoff = sorted((r for r in records if r['roster_id'] not in playoff_ids),
                         key=lambda r: r['total_points'])
    playoff = sorted((r for r in records if r['roster_id'] in playoff_ids),
                     key=lambda r: r['total_points'])

    rows = []
    for index, record in enumerate(non_playoff + playoff, start=1):
        rows.append({
            'roster_id': record['roster_id'],
            'owner_name': record['owner_name'],
            'ytd_points': round(record['ytd_points'], 2),
            'projected_points': round(record['projected_points'], 2),
            'total_points': round(record['total_points'], 2),
            'rank': index,
            'draft_order': index,
        })

    logger.info(f"Projected best ball totals for {len(rows)} rosters "
                f"({len(completed_weeks)} completed, {len(future_weeks)} future weeks)")
    return pd.DataFrame(rows, columns=BEST_BALL_COLUMNS)
