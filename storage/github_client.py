"""GitHub REST and GraphQL client for the remote content store."""
import base64
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import requests

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when required configuration is missing."""


class RemoteStoreError(Exception):
    """Raised when a GitHub API call fails."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class GitHubConfig:
    """Coordinates and credentials of the repository holding the records."""
    owner: str
    repo: str
    branch: str
    token: str
    timeout: int = 30
    api_url: str = 'https://api.github.com'

    @classmethod
    def from_env(cls) -> 'GitHubConfig':
        """
        Read configuration from environment variables.

        Raises:
            ConfigError: Naming the first missing variable
        """
        return cls(
            owner=_require_env('GITHUB_OWNER'),
            repo=_require_env('GITHUB_REPO'),
            branch=_require_env('GITHUB_BRANCH'),
            token=_require_env('GITHUB_TOKEN'),
            timeout=int(os.environ.get('TIMEOUT_SECONDS', '30'))
        )


def _require_env(name: str) -> str:
    value = os.environ.get(name, '')
    if not value:
        raise ConfigError(f"Missing environment variable: {name}")
    return value


class GitHubClient:
    """Thin wrapper over the GitHub endpoints the write pipeline needs."""

    AUTO_MERGE_MUTATION = """
        mutation($id: ID!) {
            enablePullRequestAutoMerge(input: { pullRequestId: $id, mergeMethod: SQUASH }) {
                pullRequest { number }
            }
        }
    """

    def __init__(self, config: GitHubConfig, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            config: Repository coordinates and token
            session: Optional pre-built requests session
        """
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f"Bearer {config.token}",
            'Accept': 'application/vnd.github+json',
            'User-Agent': 'camp-events-api/1.0',
            'X-GitHub-Api-Version': '2022-11-28'
        })
        self._repo_path = f"/repos/{config.owner}/{config.repo}"
        logger.info(f"Initialized GitHubClient for {config.owner}/{config.repo}@{config.branch}")

    def get_file(self, path: str, ref: Optional[str] = None) -> Tuple[str, str]:
        """
        Fetch a file and its blob sha.

        Args:
            path: Path inside the repository
            ref: Branch to read from, defaults to the stable branch

        Returns:
            Tuple of (decoded content, sha)
        """
        data = self._request(
            'GET',
            f"{self._repo_path}/contents/{path}",
            params={'ref': ref or self.config.branch}
        )
        try:
            return base64.b64decode(data['content']).decode('utf-8'), data['sha']
        except (KeyError, TypeError, ValueError) as e:
            # Directories come back as a listing; binascii and decode errors are ValueErrors
            raise RemoteStoreError(f"Unreadable contents response for {path}: {e!r}") from e

    def put_file(self, path: str, content: str, sha: str, message: str, branch: str) -> Dict[str, Any]:
        """
        Commit new content for path on branch.

        The sha of the version read earlier is the write precondition.
        """
        return self._request('PUT', f"{self._repo_path}/contents/{path}", json={
            'message': message,
            'content': base64.b64encode(content.encode('utf-8')).decode('ascii'),
            'sha': sha,
            'branch': branch
        })

    def get_branch_sha(self, branch: Optional[str] = None) -> str:
        """Return the commit sha a branch currently points at."""
        data = self._request(
            'GET',
            f"{self._repo_path}/git/refs/heads/{branch or self.config.branch}"
        )
        try:
            return data['object']['sha']
        except (KeyError, TypeError) as e:
            raise RemoteStoreError(f"Unexpected ref response for {branch or self.config.branch}") from e

    def create_branch(self, name: str, sha: str) -> None:
        """Create refs/heads/<name> at sha."""
        self._request('POST', f"{self._repo_path}/git/refs", json={
            'ref': f"refs/heads/{name}",
            'sha': sha
        })

    def create_pull_request(self, title: str, head: str, body: str) -> Tuple[int, str]:
        """
        Open a pull request from head into the stable branch.

        Returns:
            Tuple of (pull request number, GraphQL node id)
        """
        data = self._request('POST', f"{self._repo_path}/pulls", json={
            'title': title,
            'head': head,
            'base': self.config.branch,
            'body': body
        })
        try:
            return data['number'], data['node_id']
        except KeyError as e:
            raise RemoteStoreError(f"Unexpected pull request response: missing {e}") from e

    def enable_auto_merge(self, node_id: str) -> None:
        """
        Turn on squash auto-merge for a pull request.

        GraphQL reports failures as HTTP 200 with an errors array, so the
        body is inspected as well as the status.

        Raises:
            RemoteStoreError: If the mutation failed
        """
        data = self._request('POST', '/graphql', json={
            'query': self.AUTO_MERGE_MUTATION,
            'variables': {'id': node_id}
        })
        errors = data.get('errors')
        if errors:
            message = errors[0].get('message', 'unknown error') if isinstance(errors[0], dict) else errors[0]
            raise RemoteStoreError(f"GraphQL error enabling auto-merge: {message}")

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """
        Make a single request. No retries.

        Raises:
            RemoteStoreError: On transport failure or HTTP status >= 400
        """
        url = f"{self.config.api_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.config.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"GitHub API request failed: {method} {path}: {e}")
            raise RemoteStoreError(f"GitHub API request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code >= 400:
            message = data.get('message') or response.text
            raise RemoteStoreError(f"GitHub API {response.status_code}: {message}",
                                   status=response.status_code)

        return data
