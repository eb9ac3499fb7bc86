"""PWRB: running back composite of workload, efficiency, receiving and role."""

import logging
from typing import Dict, List, Literal, Mapping, Optional

import pandas as pd
from pydantic import BaseModel

from ..config.settings import PWRBWeights
from ..utils.stats import clamp01, safe_div
from .injury import DEFAULT_INJURY_MODEL, InjuryModel
from .positions import player_position, tier_from_thresholds

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS = PWRBWeights()

# Team totals used when a team row is missing from the feed
DEFAULT_TEAM_RUSH_ATTEMPTS = 100
DEFAULT_TEAM_TARGETS = 50
DEFAULT_TEAM_OFFENSIVE_SNAPS = 100

BREAKAWAY_LENGTH = 15
BAND_WIDTH = 0.25

STABILITY_BY_ROLE = {'lead': 2, 'committee': 1, 'backup': 0}

PWRB_TIERS = (
    (1.5, 'Elite'),
    (0.8, 'RB1'),
    (0.5, 'RB2'),
    (0.35, 'RB3/Flex'),
    (0.2, 'Deep Flex'),
)

PWRB_COLUMNS = ['rank', 'player_id', 'name', 'team', 'pwrb', 'wor', 'cei', 'rwo',
                'floor', 'ceiling', 'tier', 'age', 'role']

Role = Literal['lead', 'committee', 'backup']


class RBInputs(BaseModel):
    """One running back's usage for a week, with team context."""

    team_rush_attempts: float
    player_rush_attempts: float
    team_rb_targets: float
    player_targets: float
    games: float = 1
    yards_created_per_touch: Optional[float] = None
    missed_tackles_per_touch: Optional[float] = None
    touches: float = 0
    breakaway_runs: float = 0
    rush_attempts: Optional[float] = None
    successful_rushes: float = 0
    age: float = 25
    role: Role = 'backup'


class PWRBOutput(BaseModel):
    wor: float
    cei: float
    rwo: float
    stability: float
    age_multiplier: float
    blended: float
    pwrb: float


def compute_wor(inputs: RBInputs, weights: PWRBWeights = DEFAULT_WEIGHTS) -> float:
    """Weighted opportunity: rush share plus target share."""
    rush_share = clamp01(safe_div(inputs.player_rush_attempts, inputs.team_rush_attempts))
    target_share = clamp01(safe_div(inputs.player_targets,
                                    max(inputs.team_rb_targets, inputs.player_targets)))
    return weights.rush_share_weight * rush_share + weights.target_share_weight * target_share


def compute_cei(inputs: RBInputs, weights: PWRBWeights = DEFAULT_WEIGHTS) -> float:
    """Efficiency index from yards created, breakaway rate and success rate.

    Each input is normalized against a typical value (3 yards created per
    touch, 8% breakaway rate, 45% success rate with a 15% spread). Missed
    tackles per touch (typical 0.2) count only when supplied.
    """
    attempts = inputs.player_rush_attempts if inputs.rush_attempts is None else inputs.rush_attempts
    yards_created = inputs.yards_created_per_touch or 0
    breakaway_rate = safe_div(inputs.breakaway_runs, attempts)
    success_rate = safe_div(inputs.successful_rushes, attempts)

    cei = (weights.cei_yards_created * (yards_created / 3)
           + weights.cei_breakaway_rate * (breakaway_rate / 0.08)
           + weights.cei_success_rate * ((success_rate - 0.45) / 0.15))
    if inputs.missed_tackles_per_touch is not None:
        cei += weights.cei_missed_tackles_per_touch * (inputs.missed_tackles_per_touch / 0.2)
    return cei


def compute_rwo(inputs: RBInputs, weights: PWRBWeights = DEFAULT_WEIGHTS) -> float:
    """Receiving work: targets per game."""
    return weights.rwo_per_target * safe_div(inputs.player_targets, inputs.games)


def compute_stability(role: str) -> float:
    return STABILITY_BY_ROLE.get(role, 0)


def age_multiplier(age: float, penalty_per_year: float = 0.05) -> float:
    """No penalty through 25, then linear decay floored at 0.7."""
    if age <= 25:
        return 1.0
    return max(0.7, 1 - penalty_per_year * (age - 25))


def compute_pwrb(inputs: RBInputs, weights: Optional[PWRBWeights] = None) -> PWRBOutput:
    """Blend the four sub-scores and apply the age multiplier."""
    weights = weights or DEFAULT_WEIGHTS
    wor = compute_wor(inputs, weights)
    cei = compute_cei(inputs, weights)
    rwo = compute_rwo(inputs, weights)
    stability = compute_stability(inputs.role)

    blended = (weights.WOR * wor + weights.CEI * cei
               + weights.RWO * rwo + weights.Stability * stability)
    multiplier = age_multiplier(inputs.age, weights.age_penalty_per_year_over_25)

    return PWRBOutput(wor=wor, cei=cei, rwo=rwo, stability=stability,
                      age_multiplier=multiplier, blended=blended, pwrb=blended * multiplier)


def pwrb_tier(pwrb: float) -> str:
    return tier_from_thresholds(pwrb, PWRB_TIERS)


def infer_role(snap_share: float) -> Role:
    if snap_share >= 0.6:
        return 'lead'
    if snap_share >= 0.35:
        return 'committee'
    return 'backup'


def _stat(row: Optional[Mapping], key: str, default: float) -> float:
    value = (row or {}).get(key)
    return default if value is None else value


def build_rb_inputs(stats: Mapping, meta: Mapping, team_row: Optional[Mapping]) -> RBInputs:
    """Turn a player's weekly stat row and their team's row into RBInputs.

    Args:
        stats: Player stat row (rush_att, rec_tgt, gp, rush_yac, rush_lng, off_snp)
        meta: Sleeper player metadata
        team_row: ``TEAM_<abbr>`` stat row, or None
    """
    team_rush = _stat(team_row, 'rush_att', DEFAULT_TEAM_RUSH_ATTEMPTS)
    team_targets = _stat(team_row, 'rec_tgt', DEFAULT_TEAM_TARGETS)
    team_snaps = _stat(team_row, 'tm_off_snp', DEFAULT_TEAM_OFFENSIVE_SNAPS)

    rush_attempts = stats.get('rush_att') or 0
    targets = stats.get('rec_tgt') or 0
    rush_yac = stats.get('rush_yac')
    snap_share = safe_div(stats.get('off_snp') or 0, team_snaps) if team_rush > 0 else 0.0

    return RBInputs(
        team_rush_attempts=max(1, team_rush),
        player_rush_attempts=rush_attempts,
        team_rb_targets=max(1, team_targets),
        player_targets=targets,
        games=_stat(stats, 'gp', 1),
        yards_created_per_touch=rush_yac / max(1, rush_attempts + targets) if rush_yac else None,
        touches=rush_attempts + targets,
        breakaway_runs=1 if (stats.get('rush_lng') or 0) >= BREAKAWAY_LENGTH else 0,
        rush_attempts=rush_attempts,
        # half-up rounding of an assumed 50% success rate
        successful_rushes=int(rush_attempts * 0.5 + 0.5),
        age=_stat(meta, 'age', 25),
        role=infer_role(snap_share),
    )


def compute_pwrb_rows(stats: Mapping[str, Mapping],
                      players_meta: Mapping[str, Mapping],
                      team_stats: Mapping[str, Mapping],
                      weights: Optional[PWRBWeights] = None,
                      injury_model: InjuryModel = DEFAULT_INJURY_MODEL) -> pd.DataFrame:
    """Ranked PWRB table for active running backs with any usage.

    Args:
        stats: Sleeper weekly stat rows keyed by player id
        players_meta: Sleeper player metadata keyed by player id
        team_stats: Team stat rows keyed ``TEAM_<abbr>``
        weights: Composite weights
        injury_model: Availability and impact tables

    Returns:
        DataFrame with PWRB_COLUMNS, positive scores only, best first
    """
    ranked: List[Dict] = []
    for player_id, meta in players_meta.items():
        row = stats.get(player_id)
        if not row or not meta:
            continue
        team = meta.get('team')
        if not team or (player_position(meta) or '').upper() != 'RB' or meta.get('active') is not True:
            continue
        if not row.get('rush_att') and not row.get('rec_tgt'):
            continue

        inputs = build_rb_inputs(row, meta, team_stats.get(f"TEAM_{team}"))
        output = compute_pwrb(inputs, weights)
        pwrb = injury_model.apply_adjustment(output.pwrb, meta.get('injury_status'))
        band = pwrb * BAND_WIDTH

        ranked.append({
            'player_id': player_id,
            'name': meta.get('full_name') or player_id,
            'team': team,
            'pwrb': round(pwrb, 3),
            'wor': round(output.wor, 3),
            'cei': round(output.cei, 3),
            'rwo': round(output.rwo, 3),
            'floor': round(pwrb - band, 3),
            'ceiling': round(pwrb + band, 3),
            'tier': pwrb_tier(pwrb),
            'age': meta.get('age'),
            'role': inputs.role,
        })

    ranked = sorted((r for r in ranked if r['pwrb'] > 0), key=lambda r: r['pwrb'], reverse=True)
    for rank, row in enumerate(ranked, start=1):
        row['rank'] = rank

    logger.info(f"Computed PWRB for {len(ranked)} running backs")
    return pd.DataFrame(ranked, columns=PWRB_COLUMNS)
