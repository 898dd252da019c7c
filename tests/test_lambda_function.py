"""Integration tests for the Lambda handler."""
import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock, patch

import pytest

import lambda_function
from lambda_function import lambda_handler, load_local_camps, setup_logging
from processor.models import ErrorKind, SubmitResult
from service.submission_service import SynchronousExecutor


@pytest.fixture
def mock_env():
    """Set up environment variables for testing."""
    env_vars = {
        'GITHUB_OWNER': 'camp',
        'GITHUB_REPO': 'site',
        'GITHUB_BRANCH': 'main',
        'GITHUB_TOKEN': 't0ken',
        'LOG_LEVEL': 'INFO',
    }
    with patch.dict(os.environ, env_vars, clear=True):
        yield env_vars


@pytest.fixture
def mock_context():
    """Create a mock Lambda context."""
    context = Mock()
    context.function_name = 'test-function'
    context.aws_request_id = 'test-request-id'
    return context


@pytest.fixture(autouse=True)
def reset_service():
    """Drop the cached service between tests."""
    lambda_function._service = None
    yield
    lambda_function._service = None


def api_event(path, body=None, cookie=None, method='POST'):
    """Build an API Gateway proxy event."""
    event = {'httpMethod': method, 'path': path, 'headers': {}}
    if body is not None:
        event['body'] = json.dumps(body)
    if cookie:
        event['headers']['Cookie'] = cookie
    return event


class TestLambdaHandler:
    """Test cases for request routing."""

    def test_health_check(self, mock_env, mock_context):
        """Test GET / reports the API is up."""
        response = lambda_handler(api_event('/', method='GET'), mock_context)
        assert response['statusCode'] == 200
        assert json.loads(response['body']) == {'status': 'API running'}

    def test_unknown_route(self, mock_env, mock_context):
        """Test unknown paths are 404."""
        response = lambda_handler(api_event('/delete-event', {}), mock_context)
        assert response['statusCode'] == 404

    @patch('lambda_function.get_service')
    def test_add_event_success(self, mock_get_service, mock_env, mock_context):
        """Test an accepted add returns the id and cookie."""
        service = Mock()
        service.submit_new_event.return_value = SubmitResult(
            ok=True, event_id='frukost-2026-06-21-0800', set_cookie='sb_session=x; Path=/'
        )
        mock_get_service.return_value = service

        response = lambda_handler(
            api_event('/add-event', {'title': 'Frukost'}, cookie='sb_session=y'), mock_context
        )

        assert response['statusCode'] == 200
        assert json.loads(response['body']) == {'success': True, 'eventId': 'frukost-2026-06-21-0800'}
        assert response['headers']['Set-Cookie'] == 'sb_session=x; Path=/'
        service.submit_new_event.assert_called_once_with({'title': 'Frukost'}, 'sb_session=y')

    @patch('lambda_function.get_service')
    def test_edit_event_routes_id(self, mock_get_service, mock_env, mock_context):
        """Test the edit id comes from the body."""
        service = Mock()
        service.submit_edit.return_value = SubmitResult(ok=True, event_id='a')
        mock_get_service.return_value = service

        response = lambda_handler(api_event('/edit-event', {'id': 'a', 'title': 'B'}), mock_context)

        assert response['statusCode'] == 200
        assert 'Set-Cookie' not in response['headers']
        service.submit_edit.assert_called_once_with('a', {'id': 'a', 'title': 'B'}, '')

    @pytest.mark.parametrize("kind,status", [
        (ErrorKind.VALIDATION, 400),
        (ErrorKind.CLOSED, 403),
        (ErrorKind.FORBIDDEN, 403),
    ])
    @patch('lambda_function.get_service')
    def test_rejections_map_to_status(self, mock_get_service, kind, status, mock_env, mock_context):
        """Test each synchronous rejection kind has its status code."""
        service = Mock()
        service.submit_edit.return_value = SubmitResult.rejected(kind, 'nope')
        mock_get_service.return_value = service

        response = lambda_handler(api_event('/edit-event', {'id': 'a'}), mock_context)

        assert response['statusCode'] == status
        assert json.loads(response['body']) == {'success': False, 'error': 'nope'}

    def test_invalid_json_body(self, mock_env, mock_context):
        """Test a body that is not JSON is a 400."""
        event = {'httpMethod': 'POST', 'path': '/add-event', 'body': '{not json'}
        assert lambda_handler(event, mock_context)['statusCode'] == 400

    def test_missing_configuration_is_500(self, mock_context, caplog):
        """Test missing GitHub settings fail the request by name in the log."""
        with patch.dict(os.environ, {}, clear=True):
            with patch('lambda_function.setup_logging'):
                with caplog.at_level(logging.ERROR, logger='lambda_function'):
                    response = lambda_handler(api_event('/add-event', {}), mock_context)

        assert response['statusCode'] == 500
        assert json.loads(response['body']) == {'success': False, 'error': 'Internal error'}
        assert any('GITHUB_OWNER' in r.getMessage() for r in caplog.records)


class TestBuildService:
    """Test cases for wiring the service from configuration."""

    def test_build_service_from_env(self, mock_env, tmp_path, registry_text):
        """Test the service is wired from environment variables."""
        camps_file = tmp_path / 'camps.yaml'
        camps_file.write_text(registry_text, encoding='utf-8')
        os.environ['LOCAL_CAMPS_FILE'] = str(camps_file)
        os.environ['BUILD_ENV'] = 'production'
        os.environ['PIPELINE_MODE'] = 'sync'

        service = lambda_function.get_service()

        assert [camp.id for camp in service.camps] == ['sommar-2025', 'sommar-2026']
        assert service.environment == 'production'
        assert service.pipeline.client.config.repo == 'site'
        assert isinstance(service.executor, SynchronousExecutor)
        assert lambda_function.get_service() is service

    @pytest.mark.parametrize("extra_env,synchronous", [
        ({}, False),
        ({'AWS_LAMBDA_FUNCTION_NAME': 'camp-events'}, True),
        ({'AWS_LAMBDA_FUNCTION_NAME': 'camp-events', 'PIPELINE_MODE': 'thread'}, False),
        ({'PIPELINE_MODE': 'sync'}, True),
    ])
    def test_pipeline_mode(self, mock_env, tmp_path, registry_text, extra_env, synchronous):
        """Test pipeline work runs inline by default inside Lambda."""
        camps_file = tmp_path / 'camps.yaml'
        camps_file.write_text(registry_text, encoding='utf-8')
        os.environ['LOCAL_CAMPS_FILE'] = str(camps_file)
        os.environ.update(extra_env)

        service = lambda_function.build_service()

        assert isinstance(service.executor, SynchronousExecutor) is synchronous
        if not synchronous:
            assert isinstance(service.executor, ThreadPoolExecutor)
            assert service.executor._max_workers == 1
            service.executor.shutdown()

    def test_invalid_local_registry(self, tmp_path, registry_text):
        """Test an invalid registry is refused at load time."""
        camps_file = tmp_path / 'camps.yaml'
        camps_file.write_text(registry_text.replace("end_date: '2026-06-27'", "end_date: '2026-06-01'"),
                              encoding='utf-8')

        with pytest.raises(ValueError, match='end_date'):
            load_local_camps(str(camps_file))


class TestSetupLogging:
    """Test cases for logging setup."""

    def test_setup_logging_default_level(self):
        """Test logging setup with default INFO level."""
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self):
        """Test logging setup with DEBUG level."""
        setup_logging('DEBUG')
        assert logging.getLogger().level == logging.DEBUG

    def test_json_formatter(self):
        """Test records are rendered as JSON."""
        record = logging.LogRecord('camp', logging.INFO, __file__, 1, 'hello %s', ('world',), None)
        data = json.loads(lambda_function.JsonFormatter().format(record))
        assert data['message'] == 'hello world'
        assert data['level'] == 'INFO'
        assert data['logger'] == 'camp'
