"""Shared fixtures: a camp registry and a per-camp record file."""
import pytest

RECORD_TEXT = """\
camp:
  id: sommar-2026
  name: SB Sommar 2026
  location: Sysslebäck
  start_date: '2026-06-20'
  end_date: '2026-06-27'
events:
- id: frukost-2026-06-21-0800
  title: Frukost
  date: '2026-06-21'
  start: '08:00'
  end: '09:00'
  location: Matsalen
  responsible: Köket
  description: null
  link: null
  owner:
    name: 'Anna'
    email: ''
  meta:
    created_at: '2026-06-01 10:00'
    updated_at: '2026-06-01 10:00'
- id: kvallsmys-2026-06-22-2030
  title: Kvällsmys
  date: '2026-06-22'
  start: '20:30'
  end: '21:30'
  location: Eldstaden
  responsible: Ledarna
  description: |
    Vi grillar korv.
    Ta med varma kläder.
  link: https://example.com/kvallsmys
  owner:
    name: 'Bo'
    email: ''
  meta:
    created_at: '2026-06-02 18:15'
    updated_at: '2026-06-02 18:15'
"""

REGISTRY_TEXT = """\
camps:
- id: sommar-2025
  name: SB Sommar 2025
  location: Sysslebäck
  start_date: '2025-06-21'
  end_date: '2025-06-28'
  opens_for_editing: '2025-06-01'
  archived: true
  file: 2025-06-sommar.yaml
- id: sommar-2026
  name: SB Sommar 2026
  location: Sysslebäck
  start_date: '2026-06-20'
  end_date: '2026-06-27'
  opens_for_editing: '2026-06-01'
  archived: false
  file: 2026-06-sommar.yaml
"""


@pytest.fixture
def record_text():
    """Record file with two valid events."""
    return RECORD_TEXT


@pytest.fixture
def registry_text():
    """Camp registry with one past and one upcoming camp."""
    return REGISTRY_TEXT
