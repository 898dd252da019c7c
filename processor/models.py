"""Data models for camp records and submission results."""
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass
class Camp:
    """One entry of the camp registry."""
    id: str
    name: str
    location: str
    start_date: str
    end_date: str
    opens_for_editing: str
    file: str
    archived: bool = False
    qa: bool = False
    active: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Camp':
        """Build a Camp from a parsed registry entry."""
        return cls(
            id=str(data.get('id') or ''),
            name=str(data.get('name') or ''),
            location=str(data.get('location') or ''),
            start_date=as_text(data.get('start_date')),
            end_date=as_text(data.get('end_date')),
            opens_for_editing=as_text(data.get('opens_for_editing')),
            file=str(data.get('file') or ''),
            archived=data.get('archived') is True,
            qa=data.get('qa') is True,
            active=data.get('active')
        )

    def contains(self, day: str) -> bool:
        """True when day falls within [start_date, end_date]."""
        return self.start_date <= day <= self.end_date


@dataclass
class Owner:
    """Submitter identity. Stored, never rendered."""
    name: str = ''
    email: str = ''


@dataclass
class EventMeta:
    """Creation and modification stamps (YYYY-MM-DD HH:MM, UTC)."""
    created_at: Optional[str]
    updated_at: Optional[str]


@dataclass
class Event:
    """A scheduled activity inside a camp record file."""
    id: str
    title: str
    date: str
    start: str
    end: Optional[str]
    location: str
    responsible: str
    description: Optional[str]
    link: Optional[str]
    owner: Owner
    meta: EventMeta

    def to_dict(self) -> Dict[str, Any]:
        """Return the event in record-file field order."""
        return {
            'id': self.id,
            'title': self.title,
            'date': self.date,
            'start': self.start,
            'end': self.end,
            'location': self.location,
            'responsible': self.responsible,
            'description': self.description,
            'link': self.link,
            'owner': {'name': self.owner.name, 'email': self.owner.email},
            'meta': {
                'created_at': self.meta.created_at,
                'updated_at': self.meta.updated_at
            }
        }


@dataclass
class ValidationResult:
    """Outcome of a schema or security pass."""
    ok: bool
    findings: List[str] = field(default_factory=list)

    @classmethod
    def from_findings(cls, findings: List[str]) -> 'ValidationResult':
        return cls(ok=not findings, findings=list(findings))


class ErrorKind(Enum):
    """Failure classes reported to callers and to the background log."""
    VALIDATION = 'validation'
    CLOSED = 'closed'
    FORBIDDEN = 'forbidden'
    AMBIGUOUS_CAMP = 'ambiguous_camp'
    NOT_FOUND = 'not_found'
    REMOTE_FAILURE = 'remote_failure'


@dataclass
class SubmitError:
    """Tagged failure: what went wrong and a human-readable detail."""
    kind: ErrorKind
    detail: str


@dataclass
class CommitOutcome:
    """Result of one run of the remote content update pipeline."""
    ok: bool
    event_id: Optional[str] = None
    error: Optional[SubmitError] = None
    branch: Optional[str] = None
    pull_request: Optional[int] = None

    @classmethod
    def failure(cls, kind: ErrorKind, detail: str,
                event_id: Optional[str] = None) -> 'CommitOutcome':
        return cls(ok=False, event_id=event_id,
                   error=SubmitError(kind=kind, detail=detail))


@dataclass
class SubmitResult:
    """Synchronous answer to a caller-facing submission."""
    ok: bool
    event_id: Optional[str] = None
    error: Optional[SubmitError] = None
    set_cookie: Optional[str] = None
    future: Optional['Future[CommitOutcome]'] = None

    @classmethod
    def rejected(cls, kind: ErrorKind, detail: str) -> 'SubmitResult':
        return cls(ok=False, error=SubmitError(kind=kind, detail=detail))


def as_text(value: Any) -> str:
    """Render a YAML scalar as text; dates parsed by the loader become ISO."""
    if value is None:
        return ''
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return str(value)
