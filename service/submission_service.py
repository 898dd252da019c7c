"""Caller-facing submission operations.

Local checks (editing window, field validation, security scan, ownership)
run synchronously and decide the answer to the visitor. Accepted work is
then handed to an executor and the remote pipeline runs in the background;
its outcome is only logged.
"""
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from processor.active_camp import NoCampsError, resolve_active_camp
from processor.models import (
    Camp, CommitOutcome, ErrorKind, Event, EventMeta, Owner, SubmitResult
)
from processor.patcher import FALLBACK_FIELDS, NULLABLE_FIELDS, utc_minute_stamp
from processor.security import scan_record_data
from processor.session import build_set_cookie_header, is_owned, merge_ids, parse_session_ids
from processor.slug import derive_event_id
from processor.time_gate import is_outside_editing_period
from processor.validator import is_event_past, validate_edit_request, validate_event_request
from storage.content_pipeline import ContentUpdatePipeline

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = FALLBACK_FIELDS + NULLABLE_FIELDS


class SynchronousExecutor(Executor):
    """Executor that runs each task immediately in the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


def _clean(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _optional_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


class SubmissionService:
    """Entry point for add and edit submissions."""

    def __init__(
        self,
        pipeline: ContentUpdatePipeline,
        camps: List[Camp],
        environment: Optional[str] = None,
        executor: Optional[Executor] = None,
        cookie_domain: Optional[str] = None,
        today: Optional[Callable[[], str]] = None,
        now: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the service.

        Args:
            pipeline: Remote write pipeline
            camps: Local copy of the camp registry, used for time-gating
                and date-range checks
            environment: Resolver environment tag
            executor: Runs the pipeline; defaults to a single worker thread,
                since the pipeline's requests.Session is not thread-safe
            cookie_domain: Optional Domain attribute for the session cookie
            today: Override for the current day (YYYY-MM-DD)
            now: Override for the current UTC time
        """
        self.pipeline = pipeline
        self.camps = camps
        self.environment = environment
        self.executor = executor or ThreadPoolExecutor(max_workers=1)
        self.cookie_domain = cookie_domain
        self._today = today or (lambda: date.today().isoformat())
        self._now = now or (lambda: datetime.now(timezone.utc))

    def active_camp(self) -> Optional[Camp]:
        """Resolve the active camp from the local registry, if any."""
        try:
            return resolve_active_camp(self.camps, self._today(), self.environment)
        except NoCampsError:
            logger.warning("No camps in local registry, skipping time gate")
            return None

    def submit_new_event(self, fields: Dict[str, Any], cookie_header: Optional[str] = None) -> SubmitResult:
        """
        Accept a new event and schedule its commit.

        Args:
            fields: Submitted form fields
            cookie_header: Raw Cookie header of the request

        Returns:
            SubmitResult with the derived event id, or a tagged rejection
        """
        today = self._today()
        camp = self.active_camp()

        if camp and is_outside_editing_period(today, camp.opens_for_editing, camp.end_date):
            return SubmitResult.rejected(
                ErrorKind.CLOSED, 'Adding activities is not possible right now. The form is closed.'
            )

        result = validate_event_request(fields, camp, today)
        if not result.ok:
            return SubmitResult.rejected(ErrorKind.VALIDATION, result.findings[0])

        event = self.build_event(fields)

        scan = scan_record_data({'events': [event.to_dict()]})
        if not scan.ok:
            return SubmitResult.rejected(ErrorKind.VALIDATION, scan.findings[0])

        set_cookie = None
        if fields.get('cookieConsent') is True:
            owned = merge_ids(parse_session_ids(cookie_header), event.id)
            set_cookie = build_set_cookie_header(owned, self.cookie_domain)

        logger.info(f"Accepted new event {event.id}")
        future = self._schedule(self.pipeline.add_event, event)
        return SubmitResult(ok=True, event_id=event.id, set_cookie=set_cookie, future=future)

    def submit_edit(
        self,
        event_id: str,
        fields: Dict[str, Any],
        cookie_header: Optional[str] = None
    ) -> SubmitResult:
        """
        Accept an edit to an owned event and schedule its commit.

        Ownership means the id is present in the visitor's session cookie.
        That check happens before anything touches the remote store.

        Args:
            event_id: Id of the event to edit
            fields: Submitted form fields
            cookie_header: Raw Cookie header of the request

        Returns:
            SubmitResult, or a tagged rejection
        """
        if not isinstance(fields, dict):
            return SubmitResult.rejected(ErrorKind.VALIDATION, 'Invalid request body')

        event_id = (event_id or '').strip()
        today = self._today()
        camp = self.active_camp()

        if camp and is_outside_editing_period(today, camp.opens_for_editing, camp.end_date):
            return SubmitResult.rejected(
                ErrorKind.CLOSED, 'Editing activities is not possible right now. The form is closed.'
            )

        result = validate_edit_request({**fields, 'id': event_id}, camp, today)
        if not result.ok:
            return SubmitResult.rejected(ErrorKind.VALIDATION, result.findings[0])

        if not is_owned(parse_session_ids(cookie_header), event_id):
            logger.info(f"Rejected edit of {event_id}: not in session")
            return SubmitResult.rejected(
                ErrorKind.FORBIDDEN, 'Not allowed to edit this activity.'
            )

        if is_event_past(fields['date'].strip(), today):
            return SubmitResult.rejected(
                ErrorKind.VALIDATION, 'The activity has already taken place and cannot be edited.'
            )

        updates = {name: _clean(fields[name]) for name in MUTABLE_FIELDS if name in fields}

        scan = scan_record_data({'events': [{'id': event_id, **updates}]})
        if not scan.ok:
            return SubmitResult.rejected(ErrorKind.VALIDATION, scan.findings[0])

        logger.info(f"Accepted edit of event {event_id}")
        future = self._schedule(self.pipeline.edit_event, event_id, updates)
        return SubmitResult(ok=True, event_id=event_id, future=future)

    def build_event(self, fields: Dict[str, Any]) -> Event:
        """Build the stored event from validated fields."""
        title = fields['title'].strip()
        day = fields['date'].strip()
        start = fields['start'].strip()
        stamp = utc_minute_stamp(self._now())
        owner_name = fields.get('ownerName')

        return Event(
            id=derive_event_id(title, day, start),
            title=title,
            date=day,
            start=start,
            end=fields['end'].strip(),
            location=fields['location'].strip(),
            responsible=fields['responsible'].strip(),
            description=_optional_text(fields.get('description')),
            link=_optional_text(fields.get('link')),
            owner=Owner(name=owner_name.strip() if isinstance(owner_name, str) else ''),
            meta=EventMeta(created_at=stamp, updated_at=stamp)
        )

    def _schedule(self, fn: Callable[..., CommitOutcome], *args) -> 'Future[CommitOutcome]':
        future = self.executor.submit(fn, *args)
        future.add_done_callback(_log_outcome)
        return future


def _log_outcome(future: 'Future[CommitOutcome]') -> None:
    """Completion callback: background failures are logged, never raised."""
    error = future.exception()
    if error is not None:
        logger.error(f"Background pipeline crashed: {error}", exc_info=error)
        return

    outcome = future.result()
    if outcome.ok:
        logger.info(
            f"Pipeline completed for {outcome.event_id}",
            extra={'branch': outcome.branch, 'pull_request': outcome.pull_request}
        )
    else:
        logger.error(
            f"Pipeline failed for {outcome.event_id}: {outcome.error.detail}",
            extra={'error_kind': outcome.error.kind.value}
        )
