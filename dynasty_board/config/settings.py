"""Configuration models for polling, projections and scoring weights."""

from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

SLEEPER_API_BASE = "https://api.sleeper.app/v1"

DEFAULT_ROSTER_POSITIONS = ['QB', 'RB', 'RB', 'WR', 'WR', 'WR', 'TE', 'WRRBTE', 'SUPER_FLEX']


def current_season(now: Optional[datetime] = None) -> int:
    """Determine the current NFL season based on date."""
    now = now or datetime.now()
    # NFL season typically starts in September
    if now.month >= 9:
        return now.year
    return now.year - 1


class DraftSettings(BaseModel):
    """Parameters for polling a live draft."""

    draft_id: str
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    rookie_pick_mode: bool = False
    league_size: int = Field(default=12, ge=1)
    rookie_year: int = Field(default_factory=lambda: current_season() + 1)

    @field_validator('draft_id')
    @classmethod
    def _require_draft_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Draft ID is required")
        return value


class EngineSettings(BaseModel):
    """Season and lineup parameters for the projection engine."""

    season: int = Field(default_factory=current_season)
    season_weeks: int = 18
    playoff_teams: int = 6
    default_roster_positions: List[str] = Field(default_factory=lambda: list(DEFAULT_ROSTER_POSITIONS))
    ewma_alpha: float = 0.3
    regression_factor: float = 0.12

    @property
    def weeks(self) -> List[int]:
        return list(range(1, self.season_weeks + 1))


class PWRBWeights(BaseModel):
    """Weights for the RB composite. Defaults are the calibrated set."""

    WOR: float = 0.4
    CEI: float = 0.3
    RWO: float = 0.2
    Stability: float = 0.1
    rush_share_weight: float = 0.8
    target_share_weight: float = 1.2
    cei_yards_created: float = 0.3
    cei_missed_tackles_per_touch: float = 0.3
    cei_breakaway_rate: float = 0.2
    cei_success_rate: float = 0.2
    rwo_per_target: float = 1.5
    age_penalty_per_year_over_25: float = 0.05


class ScoreOptions(BaseModel):
    """Options for scoring upcoming rows against the PWOPR regression."""

    per_position: bool = True
    strong_threshold: float = 4.0
    weak_threshold: float = 1.5
    min_by_pos_samples: int = 12
    cap_expected: Tuple[float, float] = (-5.0, 45.0)
    r2_tolerance: float = 0.03


class RTMFetcherConfig(BaseModel):
    """Caching behaviour for receiver tracking metrics."""

    auto_fetch: bool = True
    max_cache_age_hours: float = 24
    save_to_cache: bool = True
