"""Deterministic event identifiers."""
import re

MAX_SLUG_LENGTH = 48

_LETTER_MAP = str.maketrans({'å': 'a', 'ä': 'a', 'ö': 'o'})
_NON_ALNUM = re.compile(r'[^a-z0-9]+')


def slugify(text: str) -> str:
    """
    Turn free text into a URL-safe slug.

    Lowercases, folds å/ä/ö to a/o, collapses every run of other
    characters into one hyphen and caps the result at 48 characters.

    Args:
        text: Any string

    Returns:
        Slug matching [a-z0-9-]* without leading or trailing hyphens
    """
    slug = _NON_ALNUM.sub('-', str(text).lower().translate(_LETTER_MAP))
    # Truncation can expose a hyphen at the cut point
    return slug.strip('-')[:MAX_SLUG_LENGTH].strip('-')


def derive_event_id(title: str, date: str, start: str) -> str:
    """
    Build the immutable event id from title, date and start time.

    Args:
        title: Event title
        date: Event date (YYYY-MM-DD)
        start: Start time (HH:MM)

    Returns:
        Id of the form "<slug>-<date>-<HHMM>"
    """
    return f"{slugify(title)}-{date}-{start.replace(':', '', 1)}"
