"""YAML record file format for camp registries and per-camp event files."""
import re
from typing import Any, Dict

import yaml

from processor.models import Event

# Scalars that must stay strings on reload
_DATE_OR_TIME_RE = re.compile(r'^(\d{4}-\d{2}-\d{2}( \d{2}:\d{2})?|\d{2}:\d{2})$')
_NEEDS_QUOTES_RE = re.compile(r'[:#{}\[\],&*?|<>=!%@`]')
_LEADING_RE = re.compile(r'^[\s"\'0-9]')
_EMPTY_EVENTS_RE = re.compile(r'^events:[ \t]*\[\][ \t]*$', re.MULTILINE)
# Every character the YAML loader treats as a line break
_LINE_BREAK_RE = re.compile(r"\r\n|[\r\n\x85\u2028\u2029]")


class RecordDumper(yaml.SafeDumper):
    """SafeDumper that always quotes date/time shaped strings."""


def _represent_str(dumper: yaml.SafeDumper, value: str) -> yaml.ScalarNode:
    if _DATE_OR_TIME_RE.match(value):
        return dumper.represent_scalar('tag:yaml.org,2002:str', value, style="'")
    if '\n' in value:
        return dumper.represent_scalar('tag:yaml.org,2002:str', value, style='|')
    return dumper.represent_str(value)


RecordDumper.add_representer(str, _represent_str)


def load_record(content: str) -> Any:
    """
    Parse a record file.

    Raises:
        yaml.YAMLError: If the content is not valid YAML
    """
    return yaml.safe_load(content)


def dump_record(data: Dict[str, Any]) -> str:
    """Serialise a full record file, keeping key order."""
    return yaml.dump(
        data,
        Dumper=RecordDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float('inf')
    )


def yaml_scalar(value: Any) -> str:
    """
    Render a scalar, single-quoting it only when necessary.

    Quoting happens when the text contains delimiter-like characters,
    starts with whitespace, a quote or a digit, or has surrounding
    whitespace. Embedded single quotes are doubled.
    """
    if value is None:
        return 'null'
    text = _single_line(str(value))
    if not text:
        return "''"
    if _NEEDS_QUOTES_RE.search(text) or _LEADING_RE.match(text) or text != text.strip():
        return _quoted(text)
    return text


def _quoted(text: str) -> str:
    return "'" + _single_line(text).replace("'", "''") + "'"


def _single_line(text: str) -> str:
    """Flatten line breaks so a one-line field cannot open new YAML structure."""
    return _LINE_BREAK_RE.sub(' ', text)


def normalize_line_breaks(text: str) -> str:
    """Map every YAML line-break character to a plain newline."""
    return _LINE_BREAK_RE.sub('\n', text)


def build_event_yaml(event: Event) -> str:
    """
    Serialise one event as a block-sequence item ready to append.

    Args:
        event: Fully built Event

    Returns:
        YAML text without a trailing newline
    """
    lines = [
        f"- id: {yaml_scalar(event.id)}",
        f"  title: {yaml_scalar(event.title)}",
        f"  date: {_quoted(event.date)}",
        f"  start: {_quoted(event.start)}",
        f"  end: {_quoted(event.end) if event.end else 'null'}",
        f"  location: {yaml_scalar(event.location)}",
        f"  responsible: {yaml_scalar(event.responsible)}",
    ]

    if event.description:
        # Explicit indentation so a leading space cannot shift the block
        lines.append('  description: |2')
        lines.extend(f"    {line}" for line in normalize_line_breaks(event.description).split('\n'))
    else:
        lines.append('  description: null')

    lines.append(f"  link: {yaml_scalar(event.link) if event.link else 'null'}")
    lines.append('  owner:')
    lines.append(f"    name: {_quoted(event.owner.name or '')}")
    lines.append("    email: ''")
    lines.append('  meta:')
    lines.append(f"    created_at: {yaml_scalar_stamp(event.meta.created_at)}")
    lines.append(f"    updated_at: {yaml_scalar_stamp(event.meta.updated_at)}")

    return '\n'.join(lines)


def yaml_scalar_stamp(value: Any) -> str:
    """Render a meta timestamp, quoted unless null."""
    return _quoted(str(value)) if value else 'null'


def append_event(content: str, event: Event) -> str:
    """
    Append an event block to the end of a record file.

    An empty flow sequence (``events: []``) is opened into a block
    sequence first so the appended item belongs to it.
    """
    base = _EMPTY_EVENTS_RE.sub('events:', content.rstrip())
    return base + '\n' + build_event_yaml(event) + '\n'
