"""PWOPR: weighted opportunity composite for receivers.

``wopr = 1.5 * target_share + 0.7 * air_yard_share`` is computed from one
week's box score, mapped to a PPG equivalent and blended with whichever
external signals are present (provider projection, RTM overall score,
prior-year PPG).
"""

import logging
from typing import Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from ..data.rtm_data import create_player_key
from ..utils.stats import is_finite_number
from .injury import DEFAULT_INJURY_MODEL, InjuryModel
from .positions import player_position, tier_from_thresholds

logger = logging.getLogger(__name__)

ELIGIBLE_POSITIONS = frozenset({'WR', 'RB', 'TE'})
RANKED_POSITIONS = frozenset({'WR', 'TE'})

# wopr -> PPG: 2 PPG per 0.1 of wopr up to 1.0
WOPR_BREAKPOINTS = np.arange(0.0, 1.01, 0.1)
WOPR_PPG_POINTS = WOPR_BREAKPOINTS * 20
WOPR_TAIL_RATE = 10
WOPR_PPG_CAP = 30

PROJECTION_WEIGHT = 0.4
WOPR_WEIGHT = 0.3
RTM_WEIGHT = 0.2
PRIOR_WEIGHT = 0.1

BAND_WIDTH = 0.2

PWOPR_TIERS = (
    (20, 'Elite'),
    (15, 'WR1'),
    (12, 'WR2/TE1'),
    (9, 'WR3/Flex'),
    (6, 'Deep Flex'),
)

WOPR_ROW_COLUMNS = ['player_id', 'name', 'team', 'pos', 'targets', 'air_yards',
                    'team_targets', 'team_air_yards', 'target_share', 'air_yard_share',
                    'wopr', 'overall', 'prior_year_ppg', 'fantasy_projection', 'pts_ppr']

PWOPR_COLUMNS = ['rank', 'player_id', 'name', 'team', 'pos', 'pwopr', 'floor', 'ceiling',
                 'consistency', 'tier', 'sleeper_proj', 'injury_status']


def _present(value) -> bool:
    """True for a finite, non-zero number."""
    return is_finite_number(value) and value != 0


def map_wopr_to_ppg(wopr: float) -> float:
    """PPG equivalent of a wopr value; beyond 1.0 at half rate, capped at 30."""
    if wopr <= 1.0:
        return float(np.interp(wopr, WOPR_BREAKPOINTS, WOPR_PPG_POINTS, left=wopr * 20))
    return min(20 + (wopr - 1.0) * WOPR_TAIL_RATE, WOPR_PPG_CAP)


def pwopr_tier(pwopr: float) -> str:
    return tier_from_thresholds(pwopr, PWOPR_TIERS)


def consistency_score(wopr: float) -> float:
    if wopr > 0.5:
        return 0.8
    if wopr > 0.3:
        return 0.6
    return 0.4


def blend_pwopr(wopr_ppg: float,
                projection: Optional[float] = None,
                overall: Optional[float] = None,
                prior_year_ppg: Optional[float] = None) -> float:
    """Weighted mean of the present components; wopr PPG alone when none are present.

    Weights are renormalized over the components that are actually present:
    projection 0.4, wopr PPG 0.3 (when positive), RTM overall scaled to PPG
    0.2, prior-year PPG 0.1 (when positive).
    """
    components = []
    if _present(projection):
        components.append((projection, PROJECTION_WEIGHT))
    if wopr_ppg > 0:
        components.append((wopr_ppg, WOPR_WEIGHT))
    if _present(overall):
        components.append((overall / 100 * 20, RTM_WEIGHT))
    if is_finite_number(prior_year_ppg) and prior_year_ppg > 0:
        components.append((prior_year_ppg, PRIOR_WEIGHT))

    if not components:
        return wopr_ppg
    return sum(v * w for v, w in components) / sum(w for _, w in components)


def team_opportunity_totals(stats: Mapping[str, Mapping],
                            players_meta: Mapping[str, Mapping]) -> Dict[str, Dict[str, float]]:
    """Team -> total targets and air yards over active WR/RB/TE."""
    totals: Dict[str, Dict[str, float]] = {}
    for player_id, meta in players_meta.items():
        row = stats.get(player_id)
        if not row or not _eligible(meta):
            continue
        team_total = totals.setdefault(meta['team'], {'targets': 0.0, 'air_yards': 0.0})
        team_total['targets'] += row.get('rec_tgt') or 0
        team_total['air_yards'] += row.get('rec_air_yd') or 0
    return totals


def _eligible(meta: Optional[Mapping]) -> bool:
    if not meta or not meta.get('team') or meta.get('active') is not True:
        return False
    return (player_position(meta) or '').upper() in ELIGIBLE_POSITIONS


def build_wopr_rows(stats: Mapping[str, Mapping],
                    players_meta: Mapping[str, Mapping],
                    rtm_by_key: Optional[Mapping[str, Mapping]] = None,
                    prior_year_ppg: Optional[Mapping[str, float]] = None,
                    projections: Optional[Mapping[str, float]] = None) -> pd.DataFrame:
    """Per-player opportunity rows for one week.

    Args:
        stats: Sleeper weekly stat rows keyed by player id
        players_meta: Sleeper player metadata keyed by player id
        rtm_by_key: RTM rows keyed by create_player_key(name, team)
        prior_year_ppg: Player id -> prior-season PPG
        projections: Player id -> provider projection for the upcoming week

    Returns:
        DataFrame with WOPR_ROW_COLUMNS; missing signals are None
    """
    rtm_by_key = rtm_by_key or {}
    prior_year_ppg = prior_year_ppg or {}
    projections = projections or {}
    totals = team_opportunity_totals(stats, players_meta)

    rows: List[Dict] = []
    for player_id, meta in players_meta.items():
        row = stats.get(player_id)
        if not row or not _eligible(meta):
            continue

        team = meta['team']
        targets = row.get('rec_tgt') or 0
        air_yards = row.get('rec_air_yd') or 0
        team_total = totals.get(team, {'targets': 0.0, 'air_yards': 0.0})
        target_share = targets / team_total['targets'] if team_total['targets'] > 0 else 0.0
        air_yard_share = air_yards / team_total['air_yards'] if team_total['air_yards'] > 0 else 0.0
        rtm = rtm_by_key.get(create_player_key(meta.get('full_name') or '', team)) or {}

        rows.append({
            'player_id': player_id,
            'name': meta.get('full_name') or player_id,
            'team': team,
            'pos': player_position(meta).upper(),
            'targets': targets,
            'air_yards': air_yards,
            'team_targets': team_total['targets'],
            'team_air_yards': team_total['air_yards'],
            'target_share': target_share,
            'air_yard_share': air_yard_share,
            'wopr': 1.5 * target_share + 0.7 * air_yard_share,
            'overall': rtm.get('overall'),
            'prior_year_ppg': prior_year_ppg.get(player_id),
            'fantasy_projection': projections.get(player_id),
            'pts_ppr': row.get('pts_ppr'),
        })

    return pd.DataFrame(rows, columns=WOPR_ROW_COLUMNS)


def _optional(value) -> Optional[float]:
    return None if value is None or pd.isna(value) else float(value)


def composite_pwopr(row: Mapping) -> float:
    """Unadjusted PWOPR for one opportunity row."""
    wopr = _optional(row.get('wopr'))
    wopr_ppg = map_wopr_to_ppg(wopr) if wopr is not None else 0.0
    return blend_pwopr(wopr_ppg,
                       _optional(row.get('fantasy_projection')),
                       _optional(row.get('overall')),
                       _optional(row.get('prior_year_ppg')))


def with_pwopr(rows: pd.DataFrame) -> pd.DataFrame:
    """Copy of opportunity rows with an unadjusted ``pwopr`` column."""
    result = rows.copy()
    result['pwopr'] = [composite_pwopr(row) for _, row in rows.iterrows()] if not rows.empty else []
    return result


def compute_pwopr_rows(rows: pd.DataFrame,
                       players_meta: Mapping[str, Mapping],
                       injury_model: InjuryModel = DEFAULT_INJURY_MODEL) -> pd.DataFrame:
    """Ranked PWOPR table for WR/TE rows.

    Applies the injury adjustment, a +/-20% band, a tier and a consistency
    score. Non-positive composites are dropped.
    """
    ranked = []
    for _, row in rows.iterrows():
        if row['pos'] not in RANKED_POSITIONS:
            continue
        status = (players_meta.get(row['player_id']) or {}).get('injury_status')
        pwopr = injury_model.apply_adjustment(composite_pwopr(row), status)
        band = pwopr * BAND_WIDTH

        ranked.append({
            'player_id': row['player_id'],
            'name': row['name'],
            'team': row['team'],
            'pos': row['pos'],
            'pwopr': round(pwopr, 2),
            'floor': round(pwopr - band, 2),
            'ceiling': round(pwopr + band, 2),
            'consistency': consistency_score(row['wopr']),
            'tier': pwopr_tier(pwopr),
            'sleeper_proj': _optional(row.get('fantasy_projection')),
            'injury_status': status,
        })

    ranked = sorted((r for r in ranked if r['pwopr'] > 0), key=lambda r: r['pwopr'], reverse=True)
    for rank, row in enumerate(ranked, start=1):
        row['rank'] = rank

    logger.info(f"Computed PWOPR for {len(ranked)} receivers")
    return pd.DataFrame(ranked, columns=PWOPR_COLUMNS)
