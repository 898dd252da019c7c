"""Schema validation for record files, camp registries and submissions."""
import re
from datetime import date, datetime
from typing import Any, Dict, Optional

import yaml

from processor.models import Camp, ValidationResult, as_text
from storage.record_format import load_record


DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_RE = re.compile(r'^\d{2}:\d{2}$')

CAMP_HEADER_REQUIRED = ['id', 'name', 'location', 'start_date', 'end_date']
EVENT_REQUIRED = ['id', 'title', 'date', 'start', 'end', 'location', 'responsible']
REGISTRY_REQUIRED = [
    'id', 'name', 'start_date', 'end_date', 'opens_for_editing',
    'location', 'file', 'archived'
]

MAX_LENGTHS = {
    'title': 200,
    'location': 200,
    'responsible': 200,
    'description': 2000,
    'link': 500,
}


def is_valid_date(value: str) -> bool:
    """YYYY-MM-DD that names a real calendar day."""
    if not DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        return False
    return True


def is_valid_time(value: str) -> bool:
    """HH:MM on a 24-hour clock."""
    if not TIME_RE.match(value):
        return False
    try:
        datetime.strptime(value, '%H:%M')
    except ValueError:
        return False
    return True


def is_event_past(date_str: str, today: Optional[str] = None) -> bool:
    """True if date_str is strictly before today. Today itself is not past."""
    return date_str < (today or date.today().isoformat())


def _missing(value: Any) -> bool:
    return value is None or value == ''


def validate_record(content: str) -> ValidationResult:
    """
    Validate a per-camp record file against the data contract.

    Checks the camp header, required event fields, date/time format and
    calendar validity, end after start, event dates inside the camp range,
    and uniqueness of ids and of (title, date, start).

    Args:
        content: Record file text

    Returns:
        ValidationResult listing every problem found
    """
    try:
        data = load_record(content)
    except yaml.YAMLError as e:
        return ValidationResult.from_findings([f"YAML parse error: {e}"])

    return validate_record_data(data)


def validate_record_data(data: Any) -> ValidationResult:
    """Validate an already parsed record file. The input is not modified."""
    if not isinstance(data, dict):
        return ValidationResult.from_findings(['File does not contain a YAML mapping'])

    camp = data.get('camp')
    if not isinstance(camp, dict):
        return ValidationResult.from_findings(['Missing top-level "camp" key'])

    errors = []
    for field in CAMP_HEADER_REQUIRED:
        if _missing(camp.get(field)):
            errors.append(f"camp.{field} is required")

    camp_start = as_text(camp.get('start_date'))
    camp_end = as_text(camp.get('end_date'))
    for name, value in (('start_date', camp_start), ('end_date', camp_end)):
        if value and not is_valid_date(value):
            errors.append(f"camp.{name} must be a valid YYYY-MM-DD date, got: {value}")
    range_known = is_valid_date(camp_start) and is_valid_date(camp_end)
    if range_known and camp_end < camp_start:
        errors.append('camp.end_date must be on or after camp.start_date')

    for flag in ('archived', 'qa'):
        if flag in camp and camp[flag] is not None and not isinstance(camp[flag], bool):
            errors.append(f"camp.{flag} must be a boolean")

    events = data.get('events')
    if not isinstance(events, list):
        errors.append('Missing or invalid "events" list')
        return ValidationResult.from_findings(errors)

    seen_ids = set()
    seen_combos = set()

    for idx, event in enumerate(events):
        if not isinstance(event, dict):
            errors.append(f"events[{idx}]: entry is not a mapping")
            continue

        ref = f"events[{idx}] (id: {event.get('id') or 'MISSING'})"

        for field in EVENT_REQUIRED:
            if _missing(event.get(field)):
                errors.append(f'{ref}: required field "{field}" is missing or empty')

        event_id = event.get('id')
        if event_id:
            if event_id in seen_ids:
                errors.append(f'{ref}: duplicate id "{event_id}"')
            seen_ids.add(event_id)

        day = as_text(event.get('date'))
        start = as_text(event.get('start'))
        end = as_text(event.get('end'))

        if event.get('title') and day and start:
            combo = (str(event['title']).strip(), day, start)
            if combo in seen_combos:
                errors.append(
                    f'{ref}: duplicate (title, date, start) "{combo[0]}" / {day} / {start}'
                )
            seen_combos.add(combo)

        if day:
            if not is_valid_date(day):
                errors.append(f'{ref}: date must be a valid YYYY-MM-DD date, got "{day}"')
            elif range_known and not camp_start <= day <= camp_end:
                errors.append(
                    f'{ref}: date "{day}" is outside camp range {camp_start} - {camp_end}'
                )

        if start and not is_valid_time(start):
            errors.append(f'{ref}: start must be HH:MM, got "{start}"')
        if end and not is_valid_time(end):
            errors.append(f'{ref}: end must be HH:MM, got "{end}"')
        if is_valid_time(start) and is_valid_time(end) and end <= start:
            errors.append(f'{ref}: end "{end}" must be strictly after start "{start}"')

        for field in ('description', 'link'):
            value = event.get(field)
            if value is not None and not isinstance(value, str):
                errors.append(f"{ref}: {field} must be a string or null")

    return ValidationResult.from_findings(errors)


def validate_camps(camps: Any) -> ValidationResult:
    """
    Validate the camp registry.

    Args:
        camps: Parsed list of registry entries

    Returns:
        ValidationResult listing every problem found
    """
    if not isinstance(camps, list):
        return ValidationResult.from_findings(['camps must be a list'])

    errors = []
    seen_ids = set()
    seen_files = set()

    for camp in camps:
        if not isinstance(camp, dict):
            errors.append('camp entry is not a mapping')
            continue

        ref = f'camp "{camp.get("id") or "UNKNOWN"}"'

        for field in REGISTRY_REQUIRED:
            if _missing(camp.get(field)):
                errors.append(f'{ref}: required field "{field}" is missing or empty')

        for field in ('start_date', 'end_date', 'opens_for_editing'):
            value = as_text(camp.get(field))
            if value and not is_valid_date(value):
                errors.append(f'{ref}: {field} must be YYYY-MM-DD, got "{value}"')

        start = as_text(camp.get('start_date'))
        end = as_text(camp.get('end_date'))
        if is_valid_date(start) and is_valid_date(end) and end < start:
            errors.append(f"{ref}: end_date ({end}) must be on or after start_date ({start})")

        for flag in ('archived', 'qa'):
            value = camp.get(flag)
            if value is not None and value != '' and not isinstance(value, bool):
                errors.append(f"{ref}: {flag} must be a boolean, got {type(value).__name__}")

        if camp.get('id'):
            if camp['id'] in seen_ids:
                errors.append(f'{ref}: duplicate id "{camp["id"]}"')
            seen_ids.add(camp['id'])

        if camp.get('file'):
            if camp['file'] in seen_files:
                errors.append(f'{ref}: duplicate file "{camp["file"]}"')
            seen_files.add(camp['file'])

    return ValidationResult.from_findings(errors)


def _field(fields: Dict[str, Any], name: str) -> str:
    value = fields.get(name)
    return value.strip() if isinstance(value, str) else ''


def _validate_fields(
    fields: Any,
    require_id: bool,
    camp: Optional[Camp],
    today: Optional[str]
) -> ValidationResult:
    if not isinstance(fields, dict):
        return ValidationResult.from_findings(['Invalid request body'])

    title = _field(fields, 'title')
    day = _field(fields, 'date')
    start = _field(fields, 'start')
    end = _field(fields, 'end')

    if require_id and not _field(fields, 'id'):
        return ValidationResult.from_findings(['id is required'])
    if not title:
        return ValidationResult.from_findings(['title is required'])
    if not day:
        return ValidationResult.from_findings(['date is required'])
    if not DATE_RE.match(day):
        return ValidationResult.from_findings(['date must be YYYY-MM-DD'])
    if not is_valid_date(day):
        return ValidationResult.from_findings(['date is not a valid calendar date'])
    if is_event_past(day, today):
        return ValidationResult.from_findings(['date cannot be in the past'])
    if camp and camp.start_date and camp.end_date and not camp.contains(day):
        return ValidationResult.from_findings([
            f"date {day} is outside the camp date range "
            f"({camp.start_date} - {camp.end_date})"
        ])
    if not start:
        return ValidationResult.from_findings(['start is required'])
    if not is_valid_time(start):
        return ValidationResult.from_findings(['start must be HH:MM'])
    if not end:
        return ValidationResult.from_findings(['end is required'])
    if not is_valid_time(end):
        return ValidationResult.from_findings(['end must be HH:MM'])
    if end <= start:
        return ValidationResult.from_findings(['end must be after start'])
    if not _field(fields, 'location'):
        return ValidationResult.from_findings(['location is required'])
    if not _field(fields, 'responsible'):
        return ValidationResult.from_findings(['responsible is required'])

    for name in ('title', 'location', 'responsible'):
        if len(_field(fields, name)) > MAX_LENGTHS[name]:
            return ValidationResult.from_findings(
                [f"{name} exceeds max length of {MAX_LENGTHS[name]} characters"]
            )

    for name in ('description', 'link', 'ownerName'):
        value = fields.get(name)
        if value is not None and not isinstance(value, str):
            return ValidationResult.from_findings([f"{name} must be a string"])
        if name in MAX_LENGTHS and value and len(value) > MAX_LENGTHS[name]:
            return ValidationResult.from_findings(
                [f"{name} exceeds max length of {MAX_LENGTHS[name]} characters"]
            )

    return ValidationResult(ok=True)


def validate_event_request(
    fields: Any,
    camp: Optional[Camp] = None,
    today: Optional[str] = None
) -> ValidationResult:
    """
    Validate the fields of an add submission.

    Stops at the first problem, mirroring what the form shows the visitor.

    Args:
        fields: Submitted fields
        camp: Active camp whose date range bounds the event date
        today: Override for the current day (YYYY-MM-DD)

    Returns:
        ValidationResult with at most one finding
    """
    return _validate_fields(fields, False, camp, today)


def validate_edit_request(
    fields: Any,
    camp: Optional[Camp] = None,
    today: Optional[str] = None
) -> ValidationResult:
    """Validate the fields of an edit submission; id is required."""
    return _validate_fields(fields, True, camp, today)
