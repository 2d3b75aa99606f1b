"""Tests for the interpreter HTTP client, result parsing and rendering."""

import pytest
import requests
from unittest.mock import Mock, patch

from functions.code_eval.tools.eval_client import (
    ConnectionFailedError,
    EvalClient,
    RequestFailedError,
    STARTUP_SCRIPT_ID,
)
from functions.code_eval.tools.models import (
    Anonymous,
    EvalResult,
    KnownUser,
    SnippetStatus,
)
from functions.code_eval.tools.renderer import ResultRenderer


def make_response(status_code=200, json_data=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.content = b"x" if json_data is not None else b""
    response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def client(session):
    return EvalClient("http://interp:8080/jshell", timeout=3, session=session)


class TestRequests:
    """Test how endpoints are called."""

    def test_eval_once(self, client, session):
        session.request.return_value = make_response(json_data={"status": "VALID", "result": "2"})

        result = client.eval_once("1 + 1")

        session.request.assert_called_once_with(
            "POST",
            "http://interp:8080/jshell/single-eval",
            params=None,
            data=b"1 + 1",
            headers={"Content-Type": "text/plain; charset=utf-8"},
            timeout=3
        )
        assert result.status is SnippetStatus.VALID
        assert result.result == "2"

    def test_eval_session_with_startup_script(self, client, session):
        session.request.return_value = make_response(json_data={"status": "VALID"})

        client.eval_session("int x = 1;", "U1", startup_script=True)

        args, kwargs = session.request.call_args
        assert args == ("POST", "http://interp:8080/jshell/eval/U1")
        assert kwargs["params"] == {"startupScriptId": STARTUP_SCRIPT_ID}

    def test_session_snippets(self, client, session):
        session.request.return_value = make_response(json_data=["int x = 1;", "x + 1"])

        assert client.session_snippets("U1") == ["int x = 1;", "x + 1"]

    def test_close_session(self, client, session):
        session.request.return_value = make_response()

        client.close_session("U1")

        args, _ = session.request.call_args
        assert args == ("DELETE", "http://interp:8080/jshell/U1")

    def test_close_unknown_session_ignored(self, client, session):
        session.request.return_value = make_response(404, text="not found")

        client.close_session("U1")


class TestErrors:
    """Test error mapping."""

    def test_http_error(self, client, session):
        session.request.return_value = make_response(500, json_data={"message": "kaputt"})

        with pytest.raises(RequestFailedError) as exc_info:
            client.eval_once("1")

        assert exc_info.value.status_code == 500
        assert "kaputt" in str(exc_info.value)

    @patch("functions.code_eval.tools.eval_client.time.sleep")
    def test_connection_error_retried_then_raised(self, sleep, client, session):
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ConnectionFailedError):
            client.eval_once("1")

        assert session.request.call_count == 2

    @patch("functions.code_eval.tools.eval_client.time.sleep")
    def test_connect_timeout_then_success(self, sleep, client, session):
        session.request.side_effect = [
            requests.ConnectTimeout("slow"),
            make_response(json_data={"status": "VALID"}),
        ]

        assert client.eval_once("1").status is SnippetStatus.VALID
        assert session.request.call_count == 2

    @patch("functions.code_eval.tools.eval_client.time.sleep")
    def test_read_timeout_not_retried(self, sleep, client, session):
        """Test that a snippet which may have run is not sent twice."""
        session.request.side_effect = [
            requests.ReadTimeout("slow"),
            make_response(json_data={"status": "VALID"}),
        ]

        with pytest.raises(ConnectionFailedError):
            client.eval_session("counter++", "U1")

        assert session.request.call_count == 1
        sleep.assert_not_called()

    def test_invalid_json(self, client, session):
        response = make_response(json_data={})
        response.json.side_effect = ValueError("no json")
        session.request.return_value = response

        with pytest.raises(RequestFailedError):
            client.eval_once("1")


class TestResultParsing:
    """Test EvalResult.from_dict."""

    def test_full_result(self):
        result = EvalResult.from_dict({
            "status": "VALID",
            "type": "ADDITION",
            "id": "1",
            "source": "System.out.println(1)",
            "result": "",
            "stdout": "1\n",
            "stdoutOverflow": True,
            "errors": [],
        })

        assert result.succeeded
        assert result.stdout == "1\n"
        assert result.stdout_overflow is True
        assert result.snippet_type == "ADDITION"

    def test_exception(self):
        result = EvalResult.from_dict({
            "status": "VALID",
            "exception": {"exceptionClass": "java.lang.ArithmeticException", "exceptionMessage": "/ by zero"},
        })

        assert not result.succeeded
        assert result.exception.exception_class == "java.lang.ArithmeticException"

    def test_unknown_status(self):
        assert EvalResult.from_dict({"status": "WEIRD"}).status is SnippetStatus.UNKNOWN

    def test_compile_errors(self):
        result = EvalResult.from_dict({"status": "REJECTED", "errors": ["cannot find symbol"]})

        assert result.compile_errors == ["cannot find symbol"]
        assert not result.succeeded


class TestRenderer:
    """Test message text."""

    def test_known_user_header(self):
        text = ResultRenderer().render(KnownUser("U1"), "1", EvalResult(SnippetStatus.VALID, result="1"))

        assert text.startswith("*<@U1>'s result*")
        assert "Evaluated in your session" in text

    def test_anonymous_without_code(self):
        text = ResultRenderer().render(Anonymous(), None, EvalResult(SnippetStatus.VALID, result="1"))

        assert "<@" not in text
        assert "*Code:*" not in text

    def test_code_fence_in_output_escaped(self):
        text = ResultRenderer().render(
            Anonymous(), None, EvalResult(SnippetStatus.VALID, stdout="```boom```")
        )

        assert text.count("```") == 2

    def test_long_output_truncated(self):
        text = ResultRenderer().render(
            Anonymous(), None, EvalResult(SnippetStatus.VALID, stdout="x" * 5000)
        )

        assert "(truncated)" in text
        assert len(text) < 2000

    def test_exception_rendered(self):
        result = EvalResult.from_dict({
            "status": "VALID",
            "exception": {"exceptionClass": "RuntimeException", "exceptionMessage": "bad"},
        })

        text = ResultRenderer().render(Anonymous(), None, result)

        assert "`RuntimeException` bad" in text
