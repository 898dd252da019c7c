"""Branch-isolated write pipeline for camp record files.

Every accepted submission becomes its own short-lived branch, one commit,
one pull request and an auto-merge request:

    1. read the camp registry from the stable branch, resolve one camp
    2. read the camp's record file and its blob sha
    3. build and validate the new file content in memory
    4. fork a uniquely named branch from the stable branch head
    5. commit the new content there, using the sha from step 2
    6. open a pull request into the stable branch
    7. enable squash auto-merge on it

The branch is only ever touched by this run, so the sha precondition in
step 5 cannot conflict and there is no retry loop. A failing step aborts
the run; branches created before the failure are left in place.
"""
import logging
import time
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import yaml

from processor.active_camp import NoCampsError, resolve_active_camp
from processor.models import Camp, CommitOutcome, ErrorKind, Event
from processor.patcher import patch_event
from processor.security import scan_record
from processor.slug import slugify
from processor.validator import validate_record
from storage.github_client import GitHubClient, RemoteStoreError
from storage.record_format import append_event, load_record

logger = logging.getLogger(__name__)

DEFAULT_CAMPS_PATH = 'source/data/camps.yaml'
DEFAULT_DATA_DIR = 'source/data'


class AmbiguousCampError(Exception):
    """Raised when the registry does not name exactly one target camp."""


class RecordRejectedError(Exception):
    """Raised when the transformed record fails validation or the scan."""


def _default_nonce() -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


class ContentUpdatePipeline:
    """Turns one accepted add or edit into an auto-merged pull request."""

    def __init__(
        self,
        client: GitHubClient,
        camps_path: str = DEFAULT_CAMPS_PATH,
        data_dir: str = DEFAULT_DATA_DIR,
        environment: Optional[str] = None,
        today: Optional[Callable[[], str]] = None,
        now: Optional[Callable[[], datetime]] = None,
        nonce: Optional[Callable[[], str]] = None
    ):
        """
        Initialize the pipeline.

        Args:
            client: GitHub client bound to the target repository
            camps_path: Registry path inside the repository
            data_dir: Directory of the per-camp record files
            environment: Resolver environment tag ('production', 'qa' or None)
            today: Override for the current day (YYYY-MM-DD)
            now: Override for the current UTC time
            nonce: Override for the branch name suffix
        """
        self.client = client
        self.camps_path = camps_path
        self.data_dir = data_dir.rstrip('/')
        self.environment = environment
        self._today = today or (lambda: date.today().isoformat())
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._nonce = nonce or _default_nonce

    def add_event(self, event: Event) -> CommitOutcome:
        """
        Append a new event to the active camp's record file.

        Args:
            event: Fully built event, id already derived

        Returns:
            CommitOutcome, never raises for expected failures
        """
        def transform(content: str, camp: Camp) -> str:
            return append_event(content, event)

        return self._run(
            event_id=event.id,
            transform=transform,
            branch=f"event/{event.date}-{slugify(event.title)}-{self._nonce()}",
            message=lambda camp: f"Add event to {camp.name}: {event.title} ({event.date})",
            body='Automatically created by the camp events add-event API.'
        )

    def edit_event(self, event_id: str, updates: Dict[str, Any]) -> CommitOutcome:
        """
        Patch an existing event in the active camp's record file.

        Args:
            event_id: Id of the event to change
            updates: Submitted field values

        Returns:
            CommitOutcome; NOT_FOUND when the id is not in the file
        """
        def transform(content: str, camp: Camp) -> Optional[str]:
            return patch_event(content, event_id, updates, now=self._now())

        return self._run(
            event_id=event_id,
            transform=transform,
            branch=f"event-edit/{event_id}-{self._nonce()}",
            message=lambda camp: f"Edit event in {camp.name}: {event_id}",
            body='Automatically created by the camp events edit-event API.'
        )

    def _run(
        self,
        event_id: str,
        transform: Callable[[str, Camp], Optional[str]],
        branch: str,
        message: Callable[[Camp], str],
        body: str
    ) -> CommitOutcome:
        try:
            camp = self.resolve_camp()
            path = f"{self.data_dir}/{camp.file}"

            logger.info(f"Reading record file {path}")
            content, sha = self.client.get_file(path)

            new_content = transform(content, camp)
            if new_content is None:
                return CommitOutcome.failure(
                    ErrorKind.NOT_FOUND, f"Event not found: {event_id}", event_id
                )
            self._check_record(new_content)

            head_sha = self.client.get_branch_sha()
            logger.info(f"Creating branch {branch} at {head_sha}")
            self.client.create_branch(branch, head_sha)

            title = message(camp)
            logger.info(f"Committing {path} on {branch}")
            self.client.put_file(path, new_content, sha, title, branch)

            number, node_id = self.client.create_pull_request(title, branch, body)
            logger.info(f"Opened pull request #{number} from {branch}")

            self.client.enable_auto_merge(node_id)
            logger.info(f"Enabled auto-merge for pull request #{number}")

            return CommitOutcome(ok=True, event_id=event_id, branch=branch, pull_request=number)

        except AmbiguousCampError as e:
            return CommitOutcome.failure(ErrorKind.AMBIGUOUS_CAMP, str(e), event_id)
        except (RecordRejectedError, yaml.YAMLError) as e:
            return CommitOutcome.failure(ErrorKind.VALIDATION, str(e), event_id)
        except RemoteStoreError as e:
            return CommitOutcome.failure(ErrorKind.REMOTE_FAILURE, str(e), event_id)

    def resolve_camp(self) -> Camp:
        """
        Read the registry from the stable branch and pick the target camp.

        An explicit ``active`` flag in the registry takes precedence and
        must be set on exactly one camp; otherwise the date-based resolver
        decides.

        Raises:
            AmbiguousCampError: If zero or several camps qualify
            RemoteStoreError: If the registry cannot be read
        """
        logger.info(f"Reading camp registry {self.camps_path}")
        content, _ = self.client.get_file(self.camps_path)
        camps = parse_camp_registry(content)

        if any(camp.active is not None for camp in camps):
            active = [camp for camp in camps if camp.active is True]
            if len(active) != 1:
                raise AmbiguousCampError(
                    f"Expected exactly one active camp, found {len(active)}"
                )
            return active[0]

        try:
            return resolve_active_camp(camps, self._today(), self.environment)
        except NoCampsError as e:
            raise AmbiguousCampError(str(e)) from e

    def _check_record(self, content: str) -> None:
        for result in (validate_record(content), scan_record(content)):
            if not result.ok:
                raise RecordRejectedError('; '.join(result.findings))


def parse_camp_registry(content: str) -> List[Camp]:
    """
    Parse registry text into camps.

    Raises:
        AmbiguousCampError: If the registry holds no usable camp list
    """
    try:
        data = load_record(content)
    except yaml.YAMLError as e:
        raise AmbiguousCampError(f"Camp registry is not valid YAML: {e}") from e

    entries = data.get('camps') if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise AmbiguousCampError('Camp registry has no camps list')

    return [Camp.from_dict(entry) for entry in entries if isinstance(entry, dict)]
