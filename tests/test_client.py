"""Tests for the instrumented ApiClient."""

import pytest
import requests
from unittest.mock import Mock, MagicMock, patch
from sqlalchemy.exc import OperationalError

from api_test_harness.client import ApiClient
from persistence.models import RequestRecord, ResponseRecord

BASE_URL = "https://dummyjson.com"


@pytest.fixture
def mock_session():
    """Create a mock requests.Session."""
    return Mock(spec=requests.Session)


@pytest.fixture
def mock_repository():
    """Create a mock ApiLogRepository handing out request ids."""
    repository = MagicMock()
    repository.log_request.return_value = 7
    repository.log_response.return_value = 11
    return repository


@pytest.fixture
def client(mock_session, mock_repository):
    """ApiClient with mocked session and repository."""
    return ApiClient(
        session=mock_session, base_url=BASE_URL, log_repository=mock_repository, timeout=5
    )


class TestBuildUrl:
    """Tests for URL resolution."""

    def test_relative_endpoint_gets_base_url(self, client):
        assert client.build_url("/users/1") == "https://dummyjson.com/users/1"

    def test_absolute_endpoint_kept(self, client):
        assert client.build_url("https://other.example.com/x") == "https://other.example.com/x"

    def test_params_appended_as_query_string(self, client):
        url = client.build_url("/users", {"limit": "10", "skip": "0"})
        assert url == "https://dummyjson.com/users?limit=10&skip=0"

    def test_trailing_slash_on_base_url_is_dropped(self, mock_session):
        client = ApiClient(session=mock_session, base_url="https://dummyjson.com/", timeout=5)
        assert client.build_url("/users") == "https://dummyjson.com/users"


class TestSuccessfulCalls:
    """Tests for logging around successful calls."""

    def test_get_logs_request_then_response(
        self, client, mock_session, mock_repository, make_response
    ):
        """Request and response rows are written and linked by the request id."""
        response = make_response(200, b'{"id": 1, "firstName": "Emily"}')
        mock_session.request.return_value = response

        result = client.get("/users/1", params={"select": "firstName"})

        assert result is response
        mock_session.request.assert_called_once_with(
            "GET",
            "https://dummyjson.com/users/1?select=firstName",
            json=None,
            headers=None,
            timeout=5,
        )
        logged_request = mock_repository.log_request.call_args[0][0]
        assert isinstance(logged_request, RequestRecord)
        assert logged_request.method == "GET"
        assert logged_request.endpoint == "https://dummyjson.com/users/1?select=firstName"

        logged_response = mock_repository.log_response.call_args[0][0]
        assert isinstance(logged_response, ResponseRecord)
        assert logged_response.request_id == 7
        assert logged_response.status_code == 200
        assert logged_response.body == {"id": 1, "firstName": "Emily"}
        assert logged_response.headers == {"Content-Type": "application/json"}
        assert logged_response.response_time_ms >= 0

    @pytest.mark.parametrize("verb", ["post", "put", "patch"])
    def test_body_verbs_send_json_with_content_type(
        self, client, mock_session, mock_repository, make_response, verb
    ):
        mock_session.request.return_value = make_response(201)

        getattr(client, verb)("/users/add", data={"firstName": "Ada"}, headers={"X-Trace": "1"})

        args, kwargs = mock_session.request.call_args
        assert args == (verb.upper(), "https://dummyjson.com/users/add")
        assert kwargs["json"] == {"firstName": "Ada"}
        assert kwargs["headers"] == {"Content-Type": "application/json", "X-Trace": "1"}

        logged_request = mock_repository.log_request.call_args[0][0]
        assert logged_request.body == {"firstName": "Ada"}
        assert logged_request.headers["Content-Type"] == "application/json"

    def test_caller_content_type_wins(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(200)

        client.post("/users/add", data={}, headers={"Content-Type": "application/vnd+json"})

        assert mock_session.request.call_args[1]["headers"]["Content-Type"] == "application/vnd+json"

    def test_delete_sends_no_body(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(200)

        client.delete("/users/1")

        args, kwargs = mock_session.request.call_args
        assert args == ("DELETE", "https://dummyjson.com/users/1")
        assert kwargs["json"] is None

    def test_non_json_body_logged_as_text(
        self, client, mock_session, mock_repository, make_response
    ):
        mock_session.request.return_value = make_response(
            404, b"Not Found", {"Content-Type": "text/plain"}
        )

        client.get("/nope")

        assert mock_repository.log_response.call_args[0][0].body == "Not Found"

    def test_empty_body_logged_as_null(self, client, mock_session, mock_repository, make_response):
        mock_session.request.return_value = make_response(204, b"", {})

        client.delete("/users/1")

        assert mock_repository.log_response.call_args[0][0].body is None

    def test_nan_body_logged_as_text(self, client, mock_session, mock_repository, make_response):
        """NaN parses in Python but jsonb rejects it."""
        mock_session.request.return_value = make_response(200, b'{"score": NaN}')

        client.get("/scores/1")

        mock_repository.log_response.assert_called_once()
        assert mock_repository.log_response.call_args[0][0].body == '{"score": NaN}'

    def test_nul_in_json_string_logged_as_stripped_text(
        self, client, mock_session, mock_repository, make_response
    ):
        mock_session.request.return_value = make_response(200, b'{"name": "a\\u0000b"}')

        client.get("/users/1")

        assert mock_repository.log_response.call_args[0][0].body == '{"name": "a\\u0000b"}'

    def test_raw_nul_bytes_stripped_from_text(
        self, client, mock_session, mock_repository, make_response
    ):
        mock_session.request.return_value = make_response(
            200, b"bin\x00ary", {"Content-Type": "application/octet-stream"}
        )

        client.get("/download")

        assert mock_repository.log_response.call_args[0][0].body == "binary"

    def test_unreadable_headers_still_log_response(
        self, client, mock_session, mock_repository, make_response, caplog
    ):
        response = make_response(200, b'{"id": 1}')
        response.headers = None
        mock_session.request.return_value = response

        result = client.get("/users/1")

        assert result is response
        logged = mock_repository.log_response.call_args[0][0]
        assert logged.headers == {}
        assert logged.body == {"id": 1}
        assert "Could not read headers for request 7" in caplog.text

    def test_non_2xx_status_returned_unchanged(self, client, mock_session, make_response):
        """HTTP error statuses are results, not transport errors."""
        response = make_response(400, b'{"message": "bad"}')
        mock_session.request.return_value = response

        assert client.post("/users/add", data={}) is response

    @patch("api_test_harness.client.time")
    def test_response_time_measured_around_call(
        self, mock_time, client, mock_session, mock_repository, make_response
    ):
        mock_time.perf_counter.side_effect = [10.0, 10.25]
        mock_session.request.return_value = make_response(200)

        client.get("/users")

        assert mock_repository.log_response.call_args[0][0].response_time_ms == 250


class TestFailureIsolation:
    """Logging failures must never change what the caller sees."""

    def test_request_log_failure_is_suppressed(
        self, client, mock_session, mock_repository, make_response, caplog
    ):
        """The call still happens, unlogged, when the request row cannot be written."""
        mock_repository.log_request.side_effect = OperationalError("INSERT", {}, Exception("down"))
        response = make_response(200)
        mock_session.request.return_value = response

        assert client.get("/users") is response
        mock_repository.log_response.assert_not_called()
        assert "Failed to log request" in caplog.text

    def test_response_log_failure_is_suppressed(
        self, client, mock_session, mock_repository, make_response, caplog
    ):
        mock_repository.log_response.side_effect = OperationalError(
            "INSERT", {}, Exception("connection lost")
        )
        response = make_response(201)
        mock_session.request.return_value = response

        assert client.post("/users/add", data={"firstName": "Ada"}) is response
        assert "Failed to log response for request 7" in caplog.text

    def test_transport_error_logged_and_reraised(self, client, mock_session, mock_repository):
        error = requests.ConnectionError("connection refused")
        mock_session.request.side_effect = error

        with pytest.raises(requests.ConnectionError) as exc_info:
            client.delete("/users/1")

        assert exc_info.value is error
        logged = mock_repository.log_response.call_args[0][0]
        assert logged.request_id == 7
        assert logged.status_code == 500
        assert logged.body == {"error": "connection refused"}

    def test_transport_error_status_taken_from_error_response(
        self, client, mock_session, mock_repository, make_response
    ):
        error = requests.HTTPError("gateway timeout", response=make_response(504, b""))
        mock_session.request.side_effect = error

        with pytest.raises(requests.HTTPError):
            client.get("/users")

        assert mock_repository.log_response.call_args[0][0].status_code == 504

    def test_error_log_failure_still_reraises_transport_error(
        self, client, mock_session, mock_repository, caplog
    ):
        mock_session.request.side_effect = requests.Timeout("read timed out")
        mock_repository.log_response.side_effect = RuntimeError("Database not initialized")

        with pytest.raises(requests.Timeout, match="read timed out"):
            client.get("/users")
        assert "Failed to log error response for request 7" in caplog.text

    def test_transport_error_without_request_id_skips_logging(
        self, client, mock_session, mock_repository
    ):
        mock_repository.log_request.side_effect = RuntimeError("down")
        mock_session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(requests.ConnectionError):
            client.get("/users")
        mock_repository.log_response.assert_not_called()


class TestLoggingDisabled:
    """Tests for clients without a log repository."""

    def test_no_repository_means_no_logging(self, mock_session, make_response):
        client = ApiClient(session=mock_session, base_url=BASE_URL, timeout=5)
        response = make_response(200)
        mock_session.request.return_value = response

        assert client.logging_enabled is False
        assert client.get("/users") is response

    @patch("api_test_harness.client.DatabaseService")
    def test_enable_db_logging_requires_initialized_database(self, mock_db_class, mock_session):
        mock_db_class.get_instance.return_value.is_initialized.return_value = False

        client = ApiClient(
            session=mock_session, enable_db_logging=True, base_url=BASE_URL, timeout=5
        )

        assert client.logging_enabled is False

    @patch("api_test_harness.client.ApiLogRepository")
    @patch("api_test_harness.client.DatabaseService")
    def test_enable_db_logging_with_initialized_database(
        self, mock_db_class, mock_repo_class, mock_session
    ):
        mock_db_class.get_instance.return_value.is_initialized.return_value = True

        client = ApiClient(
            session=mock_session, enable_db_logging=True, base_url=BASE_URL, timeout=5
        )

        assert client.log_repository is mock_repo_class.return_value


class TestSessionLifecycle:
    """Tests for session ownership."""

    def test_context_manager_closes_owned_session(self):
        with patch("api_test_harness.client.requests.Session") as mock_session_class:
            with ApiClient(base_url=BASE_URL, timeout=5):
                pass
            mock_session_class.return_value.close.assert_called_once()

    def test_injected_session_left_open(self, mock_session):
        with ApiClient(session=mock_session, base_url=BASE_URL, timeout=5):
            pass
        mock_session.close.assert_not_called()
