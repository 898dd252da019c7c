"""Field-level patching of an event inside a record file."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from storage.record_format import dump_record, load_record

logger = logging.getLogger(__name__)

# Falsy new value keeps the existing one
FALLBACK_FIELDS = ['title', 'date', 'start', 'location', 'responsible']
# Falsy new value clears the field
NULLABLE_FIELDS = ['end', 'description', 'link']

FIELD_ORDER = [
    'id', 'title', 'date', 'start', 'end', 'location', 'responsible',
    'description', 'link', 'owner', 'meta'
]


def utc_minute_stamp(now: Optional[datetime] = None) -> str:
    """Current UTC time as YYYY-MM-DD HH:MM."""
    now = now or datetime.now(timezone.utc)
    return now.strftime('%Y-%m-%d %H:%M')


def patch_event(
    content: str,
    event_id: str,
    updates: Dict[str, Any],
    now: Optional[datetime] = None
) -> Optional[str]:
    """
    Apply updates to the event with id event_id.

    id and owner are carried over verbatim, meta.created_at is kept and
    meta.updated_at is refreshed. Fields absent from updates are left as
    they are.

    Args:
        content: Record file text
        event_id: Id of the event to patch
        updates: Submitted field values
        now: Override for the modification time

    Returns:
        New record file text, or None if no event has that id

    Raises:
        yaml.YAMLError: If content is not valid YAML
    """
    data = load_record(content)
    if not isinstance(data, dict) or not isinstance(data.get('events'), list):
        return None

    events = data['events']
    idx = next(
        (i for i, event in enumerate(events)
         if isinstance(event, dict) and event.get('id') == event_id),
        None
    )
    if idx is None:
        logger.info(f"Event not found in record: {event_id}")
        return None

    event = events[idx]
    patched = {}
    for field in FIELD_ORDER:
        if field in FALLBACK_FIELDS and field in updates:
            patched[field] = updates[field] or event.get(field)
        elif field in NULLABLE_FIELDS and field in updates:
            patched[field] = updates[field] or None
        else:
            patched[field] = event.get(field)

    meta = event.get('meta') if isinstance(event.get('meta'), dict) else {}
    patched['meta'] = {
        'created_at': meta.get('created_at'),
        'updated_at': utc_minute_stamp(now)
    }

    events[idx] = patched
    return dump_record(data)
