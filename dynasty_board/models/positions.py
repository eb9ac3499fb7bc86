"""Position metadata, roster slot counting and the best-ball lineup optimizer."""

from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, NamedTuple, Optional, Sequence

FIXED_SLOT_ORDER = ('QB', 'RB', 'WR', 'TE', 'K', 'DST')

# Narrowest eligibility first. A wider slot must never be filled before a
# narrower one, or it can consume a player the narrower slot needed.
FLEX_SLOT_ORDER = ('WRRB', 'WRRBTE', 'FLEX', 'SUPER_FLEX')

FLEX_MAP: Mapping[str, FrozenSet[str]] = MappingProxyType({
    'WRRB': frozenset({'WR', 'RB'}),
    'WRRBTE': frozenset({'WR', 'RB', 'TE'}),
    'FLEX': frozenset({'WR', 'RB', 'TE'}),
    'SUPER_FLEX': frozenset({'QB', 'WR', 'RB', 'TE'}),
})

NON_STARTING_SLOTS = frozenset({'BN', 'IR', 'TAXI'})

POSITION_AVERAGES: Mapping[str, float] = MappingProxyType({
    'QB': 18, 'RB': 12, 'WR': 11, 'TE': 9, 'K': 8, 'DST': 8,
})

POSITION_VOLATILITY: Mapping[str, float] = MappingProxyType({
    'QB': 0.85, 'RB': 1.0, 'WR': 1.15, 'TE': 1.2, 'K': 1.3, 'DST': 1.25,
})

POSITION_COLORS: Mapping[str, str] = MappingProxyType({
    'QB': '#ff6b9d',
    'RB': '#4ecdc4',
    'WR': '#45b7d1',
    'TE': '#f7dc6f',
    'K': '#bb8fce',
    'DST': '#85c1e9',
})


class LineupCandidate(NamedTuple):
    """A player eligible for a lineup, scored in points or market value."""
    player_id: str
    pos: str
    proj: float


class LineupResult(NamedTuple):
    total: float
    selections: List[tuple]  # (slot, LineupCandidate)
    positional_values: Dict[str, float]


def count_slots(roster_positions: Optional[Iterable[str]]) -> Dict[str, int]:
    """Count starting slots per slot code, ignoring bench, IR and taxi."""
    counts: Dict[str, int] = {}
    for slot in roster_positions or []:
        if slot in NON_STARTING_SLOTS:
            continue
        counts[slot] = counts.get(slot, 0) + 1
    return counts


def pick_best_lineup(candidates: Sequence[LineupCandidate],
                     slots: Mapping[str, int],
                     tracked_positions: Sequence[str] = ('QB', 'RB', 'WR', 'TE')) -> LineupResult:
    """Greedily fill slots from the highest-scoring eligible candidates.

    Fixed slots are filled first in QB, RB, WR, TE, K, DST order, then flex
    slots from narrowest to widest eligibility. Ties keep input order.

    Args:
        candidates: Players with position and score
        slots: Slot code -> count, as returned by count_slots
        tracked_positions: Positions to report in positional_values

    Returns:
        LineupResult with the total, the chosen (slot, candidate) pairs and
        per-position values. Positional values count fixed-slot starters, plus
        quarterbacks started at SUPER_FLEX.
    """
    candidates = [LineupCandidate(*c) for c in candidates]
    used = set()
    selections = []
    positional_values = {pos: 0.0 for pos in tracked_positions}
    total = 0.0

    def take_top(slot: str, eligible: FrozenSet[str], n: int) -> None:
        nonlocal total
        pool = [c for c in candidates if c.player_id not in used and c.pos in eligible]
        pool = sorted(pool, key=lambda c: c.proj, reverse=True)[:n]
        for c in pool:
            used.add(c.player_id)
            total += c.proj
            selections.append((slot, c))
            counts_toward_position = slot == c.pos or (slot == 'SUPER_FLEX' and c.pos == 'QB')
            if counts_toward_position and c.pos in positional_values:
                positional_values[c.pos] += c.proj

    for slot in FIXED_SLOT_ORDER:
        n = slots.get(slot, 0)
        if n:
            take_top(slot, frozenset({slot}), n)

    for slot in FLEX_SLOT_ORDER:
        n = slots.get(slot, 0)
        if n:
            take_top(slot, FLEX_MAP[slot], n)

    return LineupResult(total, selections, positional_values)


def pick_best_ball(candidates: Sequence[LineupCandidate], slots: Mapping[str, int]) -> float:
    """Total of the optimal best-ball lineup for the given slots."""
    return pick_best_lineup(candidates, slots).total


def player_position(meta: Optional[Mapping]) -> Optional[str]:
    """A player's position from Sleeper metadata, falling back to fantasy_positions."""
    if not meta:
        return None
    pos = meta.get('position')
    if not pos:
        fantasy_positions = meta.get('fantasy_positions')
        if isinstance(fantasy_positions, list) and fantasy_positions:
            pos = fantasy_positions[0]
    return pos or None


def get_position_average(position: str, averages: Mapping[str, float] = POSITION_AVERAGES) -> float:
    """Typical PPR points per game for a position, used for regression to mean."""
    return averages.get(position, 10)


def get_position_volatility(position: str, volatility: Mapping[str, float] = POSITION_VOLATILITY) -> float:
    """Game-to-game variance multiplier (1.0 = baseline)."""
    return volatility.get(position, 1.0)


def get_position_color(position: str) -> str:
    return POSITION_COLORS.get(position, '#ffffff')


PWOPR_BASELINES: Mapping[str, float] = MappingProxyType({'WR': 11.5, 'RB': 10.5, 'TE': 8.5})


class PositionTables(NamedTuple):
    """Per-position calibration tables, swappable for a different calibration set."""
    averages: Mapping[str, float] = POSITION_AVERAGES
    volatility: Mapping[str, float] = POSITION_VOLATILITY
    pwopr_baselines: Mapping[str, float] = PWOPR_BASELINES


DEFAULT_POSITION_TABLES = PositionTables()


class TierThresholds(NamedTuple):
    elite: float
    tier1: float
    tier2: float
    tier3: float
    flex: float


def get_position_baseline(position: str, baselines: Mapping[str, float] = PWOPR_BASELINES) -> float:
    """PWOPR baseline for a receiving position."""
    return baselines.get(position, 10)


def apply_position_based_regression(pwopr: float, position: str, confidence: float,
                                    baselines: Mapping[str, float] = PWOPR_BASELINES) -> float:
    """Pull a PWOPR value toward its position baseline; less confident means a stronger pull."""
    baseline = get_position_baseline(position, baselines)
    factor = 0.15 * (1 - confidence)
    return pwopr + factor * (baseline - pwopr)


def tier_label(score: float, position: str, thresholds: TierThresholds) -> str:
    """Label a score as Elite, <POS>1-3, Flex or Bench."""
    if score >= thresholds.elite:
        return 'Elite'
    if score >= thresholds.tier1:
        return f"{position}1"
    if score >= thresholds.tier2:
        return f"{position}2"
    if score >= thresholds.tier3:
        return f"{position}3"
    if score >= thresholds.flex:
        return 'Flex'
    return 'Bench'


def tier_from_thresholds(score: float, tiers: Sequence[tuple], default: str = 'Bench') -> str:
    """First label whose minimum the score reaches; tiers are (minimum, label), highest first."""
    for minimum, label in tiers:
        if score >= minimum:
            return label
    return default
