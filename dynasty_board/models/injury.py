"""Injury adjustment model: play probability and performance impact."""

from types import MappingProxyType
from typing import Dict, Mapping, Optional
import logging

logger = logging.getLogger(__name__)

PLAY_PROBABILITY: Mapping[str, float] = MappingProxyType({
    'IR': 0.0,
    'Out': 0.0,
    'Doubtful': 0.15,
    'Questionable': 0.65,
    'Probable': 0.9,
})

PERFORMANCE_IMPACT: Mapping[str, float] = MappingProxyType({
    'Doubtful': 0.6,
    'Questionable': 0.85,
    'Probable': 0.95,
})


class InjuryModel:
    """Maps an injury designation to an adjustment of a projection.

    Two independent factors: the probability the player plays at all, and a
    performance multiplier if they play while hurt. IR/Out zero the
    projection through the play probability alone.
    """

    def __init__(self,
                 play_probability: Optional[Mapping[str, float]] = None,
                 performance_impact: Optional[Mapping[str, float]] = None):
        """Initialize the model.

        Args:
            play_probability: Designation -> probability of playing
            performance_impact: Designation -> multiplier if playing
        """
        if play_probability is None:
            play_probability = PLAY_PROBABILITY
        if performance_impact is None:
            performance_impact = PERFORMANCE_IMPACT
        self._play_probability = MappingProxyType(dict(play_probability))
        self._performance_impact = MappingProxyType(dict(performance_impact))

    def play_probability(self, status: Optional[str]) -> float:
        """Probability the player plays; unknown or missing status is healthy."""
        return self._play_probability.get(status or '', 1.0)

    def performance_impact(self, status: Optional[str]) -> float:
        """Performance multiplier if the player plays; 1.0 when unaffected."""
        return self._performance_impact.get(status or '', 1.0)

    def apply_adjustment(self, projection: float, status: Optional[str]) -> float:
        """Scale a projection by play probability and performance impact."""
        return projection * self.play_probability(status) * self.performance_impact(status)


DEFAULT_INJURY_MODEL = InjuryModel()


def play_probability(status: Optional[str]) -> float:
    return DEFAULT_INJURY_MODEL.play_probability(status)


def performance_impact(status: Optional[str]) -> float:
    return DEFAULT_INJURY_MODEL.performance_impact(status)


def apply_adjustment(projection: float, status: Optional[str]) -> float:
    return DEFAULT_INJURY_MODEL.apply_adjustment(projection, status)


def get_injury_summary(players_meta: Mapping[str, Mapping],
                       model: InjuryModel = DEFAULT_INJURY_MODEL) -> Dict[str, int]:
    """Get summary statistics for injury designations.

    Args:
        players_meta: Sleeper player metadata keyed by player id

    Returns:
        Dictionary with counts of zeroed, discounted and healthy players
    """
    summary = {
        'zeroed': 0,
        'discounted': 0,
        'healthy': 0,
        'total': len(players_meta)
    }

    for player in players_meta.values():
        status = (player or {}).get('injury_status')
        factor = model.play_probability(status) * model.performance_impact(status)

        if factor == 0:
            summary['zeroed'] += 1
        elif factor < 1:
            summary['discounted'] += 1
        else:
            summary['healthy'] += 1

    return summary


def log_injury_summary(summary: Dict[str, int], source: str = "unknown") -> None:
    """Log injury summary in a single line."""
    logger.info(
        f"InjuryModel: zeroed={summary['zeroed']}, "
        f"discounted={summary['discounted']}, "
        f"healthy={summary['healthy']}, "
        f"source={source}"
    )
