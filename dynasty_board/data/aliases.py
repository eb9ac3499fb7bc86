"""Directed alias table for player name variants.

Keys and values are normalized names. The table is applied once, in one
direction: it is not an equivalence relation and some pairs point at each
other (e.g. "dk metcalf" and "d k metcalf"). Changing a pair changes which
rankings unify with which draft picks, so edit deliberately.
"""

from types import MappingProxyType
from typing import Mapping, Optional

NAME_ALIASES: Mapping[str, str] = MappingProxyType({
    'd k metcalf': 'dk metcalf',
    'dak metcalf': 'dk metcalf',
    'gabe davis': 'gabriel davis',
    'ken walker': 'kenneth walker',
    'kenny walker': 'kenneth walker',
    'aj brown': 'a j brown',
    'a j brown': 'aj brown',
    'cj stroud': 'c j stroud',
    'c j stroud': 'cj stroud',
    'dk metcalf': 'd k metcalf',
    'brian robinson': 'brian robinson',
    'brob': 'brian robinson',
    'bijan': 'bijan robinson',
    'breece': 'breece hall',
    'amon ra st brown': 'amonra st brown',
    'amon ra stbrown': 'amonra st brown',
    'devonta smith': 'devonta smith',
    'de vonta smith': 'devonta smith',
    'devon achane': 'de von achane',
    'deandre hopkins': 'de andre hopkins',
    'deandre swift': 'de andre swift',
    'deebo samuel': 'deebo samuel',
    'dj moore': 'd j moore',
    'd j moore': 'dj moore',
    'jk dobbins': 'j k dobbins',
    'j k dobbins': 'jk dobbins',
    'tj hockenson': 't j hockenson',
    't j hockenson': 'tj hockenson',
})


def apply_alias(normalized_name: str, aliases: Optional[Mapping[str, str]] = None) -> str:
    """Map a normalized name through the alias table.

    Args:
        normalized_name: Output of normalize_name
        aliases: Alternate alias table (defaults to NAME_ALIASES)

    Returns:
        The aliased name, or the input unchanged when no alias exists
    """
    table = NAME_ALIASES if aliases is None else aliases
    return table.get(normalized_name) or normalized_name
