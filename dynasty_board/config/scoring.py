"""Fantasy scoring configurations keyed by Sleeper stat names."""

from enum import Enum
from typing import Dict, Mapping, Optional

from pydantic import BaseModel


class ScoringType(str, Enum):
    """Supported preset scoring systems."""
    STANDARD = "standard"
    PPR = "ppr"
    HALF_PPR = "half_ppr"


class ScoringSystem(BaseModel):
    """Per-stat point multipliers, using Sleeper stat keys (pass_yd, rec, ...)."""

    weights: Dict[str, float] = {
        'pass_yd': 0.04,  # 1 point per 25 yards
        'pass_td': 4.0,
        'pass_int': -2.0,
        'pass_2pt': 2.0,
        'rush_yd': 0.1,  # 1 point per 10 yards
        'rush_td': 6.0,
        'rush_2pt': 2.0,
        'rec_yd': 0.1,
        'rec_td': 6.0,
        'rec_2pt': 2.0,
        'rec': 0.0,  # PPR bonus
        'fum_lost': -2.0,
    }

    @classmethod
    def get_scoring_system(cls, scoring_type: ScoringType) -> "ScoringSystem":
        """Get predefined scoring system."""
        base = cls()
        if scoring_type == ScoringType.STANDARD:
            return base
        elif scoring_type == ScoringType.PPR:
            return cls(weights={**base.weights, 'rec': 1.0})
        elif scoring_type == ScoringType.HALF_PPR:
            return cls(weights={**base.weights, 'rec': 0.5})
        else:
            raise ValueError(f"Unknown scoring type: {scoring_type}")

    @classmethod
    def from_league(cls, scoring_settings: Optional[Mapping[str, float]]) -> "ScoringSystem":
        """Build a scoring system from a league's ``scoring_settings`` block.

        Falls back to PPR when the league carries no settings.
        """
        if not scoring_settings:
            return cls.get_scoring_system(ScoringType.PPR)
        return cls(weights={k: float(v) for k, v in scoring_settings.items()
                            if isinstance(v, (int, float)) and not isinstance(v, bool)})

    def calculate_fantasy_points(self, stats: Mapping[str, float]) -> float:
        """Calculate fantasy points for a stat line; unknown stats score 0."""
        points = 0.0
        for stat, multiplier in self.weights.items():
            value = stats.get(stat, 0)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                points += value * multiplier
        return round(points, 2)
