"""Player name normalization used for matching rankings against draft picks."""

import re
from typing import Optional

NAME_SUFFIXES = frozenset({'jr', 'sr', 'ii', 'iii', 'iv', 'v'})

_APOSTROPHES = re.compile(r"['’`]")
_NON_ALNUM = re.compile(r'[^a-z0-9\s]')
_WHITESPACE = re.compile(r'\s+')


def normalize_name(name: Optional[str]) -> str:
    """Normalize a player name into its canonical matching key.

    Lowercases, removes apostrophes, replaces other punctuation with spaces,
    collapses whitespace and drops a trailing generational suffix
    (jr, sr, ii, iii, iv, v).

    Args:
        name: Free-text player name (may be None or empty)

    Returns:
        Canonical key, or "" for empty input
    """
    if not name:
        return ''

    normalized = _APOSTROPHES.sub('', name.lower().strip())
    normalized = _NON_ALNUM.sub(' ', normalized)
    normalized = _WHITESPACE.sub(' ', normalized).strip()

    words = normalized.split(' ')
    if words[-1] in NAME_SUFFIXES:
        words.pop()
        normalized = ' '.join(words).strip()

    return normalized


def strip_name_suffix(name: str) -> str:
    """Lowercase a display name and drop a trailing suffix such as "Jr."."""
    return re.sub(r'\s+(jr\.?|sr\.?|ii|iii|iv|v)$', '', name.strip(), flags=re.IGNORECASE).lower().strip()
