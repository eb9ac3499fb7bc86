"""Parser for user ranking files.

The header is required and matched case-insensitively. ``name``, ``tier``
and ``pos``/``position`` must be present; ``assetType``/``asset_type`` is
optional. A double quote toggles quoting so commas inside quotes do not
split a field. Doubled quotes ("") are not treated as an escaped quote.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence

from ..draft.models import RankingRow
from ..errors import ValidationError
from ..utils.names import normalize_name
from .aliases import apply_alias

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS_MESSAGE = "CSV must contain columns: name, tier, and pos/position"


def parse_csv_line(line: str) -> List[str]:
    """Split one line on commas outside quotes; trims values and surrounding quotes."""
    values = []
    current = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            values.append(''.join(current))
            current = []
        else:
            current.append(char)
    values.append(''.join(current))

    return [re.sub(r'^"|"$', '', value.strip()) for value in values]


def _find_column(header_map: Dict[str, int], names: Sequence[str]) -> Optional[int]:
    for name in names:
        if name in header_map:
            return header_map[name]
    return None


def parse_rankings_csv(content: str, source: Optional[str] = None) -> List[RankingRow]:
    """Parse ranking file content into board rows.

    Args:
        content: Raw file text
        source: File name, used in error messages

    Returns:
        RankingRows in file order; rows with an empty name are dropped

    Raises:
        ValidationError: if a required column is missing
    """
    lines = [line for line in re.split(r'\r?\n', content or '') if line.strip()]
    if not lines:
        return []

    header_map = {header.lower().strip(): i for i, header in enumerate(parse_csv_line(lines[0]))}
    name_idx = _find_column(header_map, ['name'])
    tier_idx = _find_column(header_map, ['tier'])
    pos_idx = _find_column(header_map, ['pos', 'position'])
    asset_idx = _find_column(header_map, ['assettype', 'asset_type'])

    if name_idx is None or tier_idx is None or pos_idx is None:
        raise ValidationError(REQUIRED_COLUMNS_MESSAGE, source)

    rows = []
    min_length = max(name_idx, tier_idx, pos_idx) + 1
    for line in lines[1:]:
        values = parse_csv_line(line.strip())
        if len(values) < min_length:
            continue

        name = values[name_idx].strip()
        if not name:
            continue

        asset_type = None
        if asset_idx is not None and asset_idx < len(values):
            asset_type = values[asset_idx].strip()

        rows.append(RankingRow(
            name=name,
            tier=values[tier_idx].strip(),
            position=values[pos_idx].strip(),
            asset_type=asset_type,
            normalized_name=apply_alias(normalize_name(name)),
        ))

    logger.info(f"Parsed {len(rows)} ranking rows from {source or 'CSV content'}")
    return rows
