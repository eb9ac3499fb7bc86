"""Ranking board rows and draft picks."""

from typing import Optional, Union

from pydantic import BaseModel


class RankingRow(BaseModel):
    """One row of a user's ranking board.

    ``normalized_name`` is the matching key, fixed when the row is parsed.
    Once ``manual_override`` is set the draft feed no longer changes ``taken``.
    """

    name: str
    tier: Union[str, int]
    position: str
    asset_type: Optional[str] = None
    taken: bool = False
    manual_override: bool = False
    normalized_name: str


class DraftPick(BaseModel):
    """A pick as shown on the draft timeline."""

    pick_no: int
    pick_display: str  # round.pick, e.g. "2.09"
    player_name: str
    position: str = ''
    team: str = ''
    picked_by: str = ''
    is_my_pick: bool = False
