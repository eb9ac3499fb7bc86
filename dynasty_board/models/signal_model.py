"""Linear PWOPR -> fantasy points model and over/under signal classification."""

import logging
import math
from typing import Dict, NamedTuple, Optional, Sequence

import pandas as pd

from ..config.settings import ScoreOptions

logger = logging.getLogger(__name__)

SIGNAL_OVER_STRONG = 'Over (Strong)'
SIGNAL_OVER = 'Over'
SIGNAL_NEUTRAL = 'Neutral'
SIGNAL_UNDER = 'Under'
SIGNAL_UNDER_STRONG = 'Under (Strong)'

FIT_POSITIONS = ('QB', 'RB', 'WR', 'TE')


class LinearFit(NamedTuple):
    """points = a + b * pwopr"""
    a: float
    b: float
    r2: float
    n: int


def fit_linear(xs: Sequence[float], ys: Sequence[float]) -> Optional[LinearFit]:
    """Ordinary least squares fit of ys on xs.

    Args:
        xs: Predictor values
        ys: Response values, same length as xs

    Returns:
        LinearFit, or None with fewer than 8 finite pairs or no variance in xs
    """
    pairs = [(x, y) for x, y in zip(xs, ys) if math.isfinite(x) and math.isfinite(y)]
    n = len(pairs)
    if n < 8:
        return None

    sum_x = sum_y = sum_xy = sum_xx = sum_yy = 0.0
    for x, y in pairs:
        sum_x += x
        sum_y += y
        sum_xy += x * y
        sum_xx += x * x
        sum_yy += y * y

    denom = n * sum_xx - sum_x * sum_x
    if denom == 0:
        return None

    b = (n * sum_xy - sum_x * sum_y) / denom
    a = (sum_y - b * sum_x) / n

    ss_tot = sum_yy - (sum_y * sum_y) / n
    ss_res = ss_tot - b * (sum_xy - (sum_x * sum_y) / n)
    r2 = min(1.0, max(0.0, 1 - ss_res / ss_tot)) if ss_tot > 1e-9 else 0.0

    return LinearFit(a, b, r2, n)


def _training(history: pd.DataFrame, pos: Optional[str] = None):
    rows = history if pos is None else history[history['pos'] == pos]
    xs = rows['pwopr'].astype(float).tolist()
    ys = rows['pts_ppr'].fillna(0).astype(float).tolist()
    return xs, ys


def classify_signal(expected: float, projection: float, options: ScoreOptions) -> str:
    """Bucket expected-minus-projection into an over/under signal.

    A zero projection or zero expectation means data is missing: Neutral.
    """
    if projection == 0 or expected == 0:
        return SIGNAL_NEUTRAL

    delta = expected - projection
    if delta >= options.strong_threshold:
        return SIGNAL_OVER_STRONG
    if delta >= options.weak_threshold:
        return SIGNAL_OVER
    if delta <= -options.strong_threshold:
        return SIGNAL_UNDER_STRONG
    if delta <= -options.weak_threshold:
        return SIGNAL_UNDER
    return SIGNAL_NEUTRAL


def score_with_pwopr(history: pd.DataFrame,
                     upcoming: pd.DataFrame,
                     options: Optional[ScoreOptions] = None) -> pd.DataFrame:
    """Score upcoming players against the historical PWOPR-to-points relationship.

    Args:
        history: Rows with ``pos``, ``pwopr`` and actual ``pts_ppr``
        upcoming: Rows with ``pos``, ``pwopr`` and ``fantasy_projection``
        options: Thresholds and model selection settings

    Returns:
        Copy of upcoming with expected, delta_exp_vs_proj, signal, model,
        model_n and model_r2 columns
    """
    options = options or ScoreOptions()
    lo, hi = options.cap_expected

    global_fit = fit_linear(*_training(history)) if not history.empty else None

    pos_fits: Dict[str, Optional[LinearFit]] = {}
    if options.per_position and not history.empty:
        for pos in FIT_POSITIONS:
            xs, ys = _training(history, pos)
            pos_fits[pos] = fit_linear(xs, ys) if len(xs) >= options.min_by_pos_samples else None

    global_desc = f"n={global_fit.n} r2={global_fit.r2:.3f}" if global_fit else "none"
    logger.info(f"PWOPR model: global {global_desc}, "
                f"by position {sorted(p for p, f in pos_fits.items() if f)}")

    def choose_fit(pos: str):
        pos_fit = pos_fits.get(pos)
        global_r2 = global_fit.r2 if global_fit else 0.0
        if (pos_fit and pos_fit.n >= options.min_by_pos_samples
                and pos_fit.r2 >= global_r2 - options.r2_tolerance):
            return pos_fit, 'byPos'
        return global_fit, 'global'

    scored = []
    for _, row in upcoming.iterrows():
        projection = row.get('fantasy_projection')
        projection = 0.0 if projection is None or pd.isna(projection) else float(projection)

        fit, tag = choose_fit(row['pos'])
        expected = fit.a + fit.b * float(row['pwopr']) if fit else projection
        expected = min(hi, max(lo, expected))
        delta = expected - projection

        scored.append({
            'expected': round(expected, 2),
            'delta_exp_vs_proj': round(delta, 2),
            'signal': classify_signal(expected, projection, options),
            'model': tag,
            'model_n': fit.n if fit else 0,
            'model_r2': round(fit.r2, 3) if fit else 0.0,
        })

    result = upcoming.reset_index(drop=True).copy()
    extra = pd.DataFrame(scored, columns=['expected', 'delta_exp_vs_proj', 'signal',
                                          'model', 'model_n', 'model_r2'])
    return pd.concat([result, extra], axis=1)
