"""AWS Lambda handler for camp event submissions."""
import json
import logging
import os
from typing import Dict, Any, Optional

from processor.models import Camp, ErrorKind, SubmitResult
from processor.validator import validate_camps
from service.submission_service import SubmissionService, SynchronousExecutor
from storage.content_pipeline import ContentUpdatePipeline, DEFAULT_CAMPS_PATH, DEFAULT_DATA_DIR
from storage.github_client import GitHubClient, GitHubConfig
from storage.record_format import load_record

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.CLOSED: 403,
    ErrorKind.FORBIDDEN: 403,
}

_service: Optional[SubmissionService] = None


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def load_local_camps(path: str) -> list:
    """
    Load and validate the bundled camp registry.

    Raises:
        ValueError: If the registry fails validation
    """
    with open(path, 'r', encoding='utf-8') as f:
        data = load_record(f.read()) or {}

    entries = data.get('camps', [])
    result = validate_camps(entries)
    if not result.ok:
        raise ValueError(f"Invalid camp registry {path}: {'; '.join(result.findings)}")

    return [Camp.from_dict(entry) for entry in entries]


def build_service() -> SubmissionService:
    """Wire the service from environment variables. Fails fast on missing config."""
    environment = os.environ.get('BUILD_ENV') or None
    config = GitHubConfig.from_env()
    pipeline = ContentUpdatePipeline(
        GitHubClient(config),
        camps_path=os.environ.get('CAMPS_PATH', DEFAULT_CAMPS_PATH),
        data_dir=os.environ.get('DATA_DIR', DEFAULT_DATA_DIR),
        environment=environment
    )
    camps = load_local_camps(os.environ.get('LOCAL_CAMPS_FILE', DEFAULT_CAMPS_PATH))
    # Lambda freezes the sandbox after returning, so background threads
    # cannot outlive the invocation there
    default_mode = 'sync' if os.environ.get('AWS_LAMBDA_FUNCTION_NAME') else 'thread'
    mode = os.environ.get('PIPELINE_MODE') or default_mode
    executor = SynchronousExecutor() if mode == 'sync' else None

    return SubmissionService(
        pipeline,
        camps,
        environment=environment,
        executor=executor,
        cookie_domain=os.environ.get('COOKIE_DOMAIN') or None
    )


def get_service() -> SubmissionService:
    """Return the service, building it on first use."""
    global _service
    if _service is None:
        _service = build_service()
    return _service


def _response(status: int, body: Dict[str, Any], set_cookie: Optional[str] = None) -> Dict[str, Any]:
    headers = {'Content-Type': 'application/json'}
    if set_cookie:
        headers['Set-Cookie'] = set_cookie
    return {'statusCode': status, 'headers': headers, 'body': json.dumps(body)}


def _to_response(result: SubmitResult) -> Dict[str, Any]:
    if not result.ok:
        return _response(
            STATUS_BY_KIND[result.error.kind],
            {'success': False, 'error': result.error.detail}
        )

    body = {'success': True}
    if result.event_id:
        body['eventId'] = result.event_id
    return _response(200, body, result.set_cookie)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Route an API Gateway proxy request to the submission service.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        API Gateway proxy response
    """
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    logger = logging.getLogger(__name__)

    method = event.get('httpMethod', 'GET')
    path = event.get('path', '/')
    headers = {k.lower(): v for k, v in (event.get('headers') or {}).items()}
    cookie_header = headers.get('cookie', '')

    if method == 'GET' and path == '/':
        return _response(200, {'status': 'API running'})

    if method != 'POST' or path not in ('/add-event', '/edit-event'):
        return _response(404, {'success': False, 'error': 'Not found'})

    try:
        fields = json.loads(event.get('body') or '{}')
    except ValueError:
        return _response(400, {'success': False, 'error': 'Invalid JSON body'})

    try:
        service = get_service()
        if path == '/add-event':
            result = service.submit_new_event(fields, cookie_header)
        else:
            event_id = fields.get('id') if isinstance(fields, dict) else None
            result = service.submit_edit(event_id if isinstance(event_id, str) else '', fields, cookie_header)
    except Exception as e:
        logger.error(
            f"Request failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {'success': False, 'error': 'Internal error'})

    logger.info(
        f"{path} handled",
        extra={'ok': result.ok, 'event_id': result.event_id}
    )
    return _to_response(result)
