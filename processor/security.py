"""Security scan for record files.

Looks for content that would be dangerous once rendered into public HTML.
Owner fields are never rendered, so they are not scanned.
"""
import logging
import re
from typing import Any

import yaml

from processor.models import ValidationResult
from processor.validator import MAX_LENGTHS
from storage.record_format import load_record

logger = logging.getLogger(__name__)

TEXT_FIELDS = ['title', 'location', 'responsible', 'description']

INJECTION_PATTERNS = [
    (re.compile(r'<script', re.IGNORECASE), '<script> tag'),
    (re.compile(r'javascript:', re.IGNORECASE), 'javascript: URI'),
    (re.compile(r'on\w+\s*=', re.IGNORECASE), 'event handler attribute (on*=)'),
    (re.compile(r'<iframe', re.IGNORECASE), '<iframe> tag'),
    (re.compile(r'<object', re.IGNORECASE), '<object> tag'),
    (re.compile(r'<embed', re.IGNORECASE), '<embed> tag'),
    (re.compile(r'data:text/html', re.IGNORECASE), 'data:text/html URI'),
]

LINK_SCHEME_RE = re.compile(r'^https?://', re.IGNORECASE)


def scan_record(content: str) -> ValidationResult:
    """
    Scan record file text for injection patterns and oversized fields.

    Args:
        content: Record file text

    Returns:
        ValidationResult naming the event and field of every finding
    """
    try:
        data = load_record(content)
    except yaml.YAMLError as e:
        return ValidationResult.from_findings([f"YAML parse error: {e}"])

    return scan_record_data(data)


def scan_record_data(data: Any) -> ValidationResult:
    """Scan an already parsed record file. The input is not modified."""
    events = data.get('events') if isinstance(data, dict) else None
    if not isinstance(events, list):
        events = []

    findings = []
    for event in events:
        if not isinstance(event, dict):
            continue

        ref = f'event id="{event.get("id") or "MISSING"}"'

        for field in TEXT_FIELDS:
            value = event.get(field)
            if value is None:
                continue
            text = str(value)

            limit = MAX_LENGTHS[field]
            if len(text) > limit:
                findings.append(
                    f'{ref}: field "{field}" exceeds max length of {limit} (got {len(text)})'
                )

            for pattern, label in INJECTION_PATTERNS:
                if pattern.search(text):
                    findings.append(f'{ref}: field "{field}" contains suspicious pattern: {label}')

        link = event.get('link')
        if link is not None:
            link = str(link).strip()
            if link:
                if len(link) > MAX_LENGTHS['link']:
                    findings.append(
                        f"{ref}: link exceeds max length of {MAX_LENGTHS['link']} (got {len(link)})"
                    )
                if not LINK_SCHEME_RE.match(link):
                    findings.append(
                        f'{ref}: link must use http:// or https://, got: "{link[:80]}"'
                    )

    if findings:
        logger.warning(f"Security scan produced {len(findings)} finding(s)")
    return ValidationResult.from_findings(findings)
