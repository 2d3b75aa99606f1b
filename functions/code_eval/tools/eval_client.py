"""
HTTP client for the remote code interpreter.
"""

import time
import logging
import requests
from typing import Optional

from .models import EvalResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
MAX_RETRIES = 2
RETRY_DELAY = 0.5
STARTUP_SCRIPT_ID = "CUSTOM_DEFAULT"


class EvalError(Exception):
    """Base exception for interpreter errors."""
    pass


class ConnectionFailedError(EvalError):
    """The interpreter could not be reached at all."""
    pass


class RequestFailedError(EvalError):
    """The interpreter answered with an error status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class EvalClient:
    """Thin wrapper around the interpreter's REST endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self.session = session or requests.Session()

    def eval_once(self, code: str, startup_script: bool = False) -> EvalResult:
        """Evaluate code in a throwaway session."""
        data = self._request("POST", "single-eval", code, startup_script)
        return EvalResult.from_dict(data)

    def eval_session(
        self,
        code: str,
        session_id: str,
        startup_script: bool = False
    ) -> EvalResult:
        """Evaluate code in the persistent session of session_id."""
        data = self._request("POST", f"eval/{session_id}", code, startup_script)
        return EvalResult.from_dict(data)

    def session_snippets(self, session_id: str) -> list[str]:
        """List the snippets evaluated so far in a session."""
        data = self._request("GET", f"snippets/{session_id}")
        return [str(snippet) for snippet in (data or [])]

    def close_session(self, session_id: str) -> None:
        """Close a session. Closing an unknown session is not an error."""
        try:
            self._request("DELETE", session_id)
        except RequestFailedError as e:
            if e.status_code != 404:
                raise

    def close(self) -> None:
        self.session.close()

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[str] = None,
        startup_script: bool = False
    ):
        """
        Perform a request and decode its JSON body.

        Raises:
            ConnectionFailedError: If the interpreter cannot be reached
            RequestFailedError: If the interpreter answers with an error status
        """
        url = self.base_url + path
        params = {"startupScriptId": STARTUP_SCRIPT_ID} if startup_script else None
        headers = {"Content-Type": "text/plain; charset=utf-8"} if body is not None else None

        last_error = None
        for attempt in range(MAX_RETRIES):
            try:
                response = self.session.request(
                    method,
                    url,
                    params=params,
                    data=body.encode("utf-8") if body is not None else None,
                    headers=headers,
                    timeout=self.timeout
                )
            except requests.ReadTimeout as e:
                # Not retried, the server may already have evaluated the snippet
                raise ConnectionFailedError(f"Interpreter did not answer in time: {e}") from e
            except requests.ConnectionError as e:
                last_error = ConnectionFailedError(f"Interpreter unreachable: {e}")
                if attempt < MAX_RETRIES - 1:
                    logger.warning(
                        f"Interpreter request failed, retrying ({attempt + 1}/{MAX_RETRIES})..."
                    )
                    time.sleep(RETRY_DELAY)
                    continue
                break
            except requests.RequestException as e:
                raise ConnectionFailedError(f"Request failed: {e}") from e

            if response.status_code >= 400:
                error_msg = response.text
                try:
                    error_msg = response.json().get("message", response.text)
                except (ValueError, AttributeError):
                    pass
                raise RequestFailedError(
                    f"Interpreter error ({response.status_code}): {error_msg}",
                    response.status_code
                )

            if not response.content:
                return None

            try:
                return response.json()
            except ValueError as e:
                raise RequestFailedError(
                    f"Interpreter returned invalid JSON: {e}",
                    response.status_code
                ) from e

        raise last_error or ConnectionFailedError("Unknown error")
