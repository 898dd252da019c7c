"""Resolution of the camp currently considered active."""
import logging
from datetime import date
from typing import List, Optional

from processor.models import Camp

logger = logging.getLogger(__name__)

PRODUCTION = 'production'
QA = 'qa'


class NoCampsError(Exception):
    """Raised when there is no camp left to resolve from."""


def resolve_active_camp(
    camps: List[Camp],
    today: Optional[str] = None,
    environment: Optional[str] = None
) -> Camp:
    """
    Pick the active camp for a given day.

    Priority:
      1. a camp whose [start_date, end_date] contains today
         (earliest start_date wins when several overlap)
      2. the camp with the nearest future start_date
      3. the camp with the latest end_date, archived camps included

    In production, qa camps are dropped before resolving. In qa, a qa camp
    on dates beats every other camp.

    Args:
        camps: Camp registry
        today: Day to resolve for (YYYY-MM-DD), defaults to the current date
        environment: 'production', 'qa' or None

    Returns:
        The resolved Camp

    Raises:
        NoCampsError: If the registry (after filtering) is empty
    """
    if not camps:
        raise NoCampsError('No camps found in camp registry')

    today = today or date.today().isoformat()
    pool = list(camps)

    if environment == PRODUCTION:
        pool = [camp for camp in camps if not camp.qa]
        if not pool:
            raise NoCampsError('No non-qa camps found in camp registry')
    elif environment == QA:
        qa_on_dates = [camp for camp in camps if camp.qa and camp.contains(today)]
        if qa_on_dates:
            logger.debug(f"QA camp on dates: {qa_on_dates[0].id}")
            return qa_on_dates[0]

    on_dates = sorted(
        (camp for camp in pool if camp.contains(today)),
        key=lambda camp: camp.start_date
    )
    if on_dates:
        return on_dates[0]

    upcoming = sorted(
        (camp for camp in pool if camp.start_date > today),
        key=lambda camp: camp.start_date
    )
    if upcoming:
        return upcoming[0]

    return max(pool, key=lambda camp: camp.end_date)
