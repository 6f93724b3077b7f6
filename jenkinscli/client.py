"""HTTP client core: authentication, retries, CSRF crumbs and error classification."""

from __future__ import annotations

import base64
import sys
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

import requests

from jenkinscli.errors import (
    AuthenticationError,
    JenkinsConnectionError,
    JenkinsError,
    JenkinsPermissionError,
    NotFoundError,
    is_connection_refused,
    is_dns_error,
    is_timeout_error,
    is_tls_error,
)

__all__ = [
    "FAST_TIMEOUT",
    "STANDARD_TIMEOUT",
    "SLOW_TIMEOUT",
    "AuthMethod",
    "BasicAuth",
    "BearerTokenAuth",
    "Crumb",
    "Client",
    "HTTPStatusError",
    "OperationError",
    "strip_job_path",
    "is_transient_error",
    "retry_with_backoff",
    "new_client",
]

# Per-operation timeouts, in seconds.
FAST_TIMEOUT = 5.0
STANDARD_TIMEOUT = 30.0
SLOW_TIMEOUT = 60.0

_TRANSIENT_STATUSES = frozenset({502, 503, 504})
_NETWORK_ERRORS = (requests.RequestException, OSError)


class HTTPStatusError(JenkinsError):
    """An HTTP response with a status code that has no dedicated error type."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(body)
        self.status_code = status_code
        self.body = body

    def _headline(self) -> str:
        return f"HTTP {self.status_code}"


class OperationError(JenkinsError):
    """An error raised while performing a named operation, wrapping its cause."""

    def __init__(self, message: str, err: object = None, suggestions: Any = None) -> None:
        super().__init__(err, suggestions)
        self.message = message

    def _headline(self) -> str:
        return self.message


class AuthMethod(ABC):
    """Applies authentication to the headers of an outgoing request."""

    name: ClassVar[str] = "unknown"

    @abstractmethod
    def apply(self, headers: MutableMapping[str, str]) -> None:
        """Add authentication to ``headers`` in place."""

    def __str__(self) -> str:
        return self.name


@dataclass
class BasicAuth(AuthMethod):
    """HTTP Basic authentication with a username and API token."""

    user: str = ""
    token: str = field(default="", repr=False)
    name: ClassVar[str] = "basic"

    def apply(self, headers: MutableMapping[str, str]) -> None:
        if self.user and self.token:
            encoded = base64.b64encode(f"{self.user}:{self.token}".encode()).decode("ascii")
            headers["Authorization"] = f"Basic {encoded}"


@dataclass
class BearerTokenAuth(AuthMethod):
    """Authentication through an ``Authorization: Bearer`` header."""

    token: str = field(default="", repr=False)
    name: ClassVar[str] = "bearer"

    def apply(self, headers: MutableMapping[str, str]) -> None:
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"


@dataclass(frozen=True)
class Crumb:
    """A CSRF crumb issued by Jenkins."""

    crumb: str = ""
    crumb_request_field: str = ""

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Crumb:
        return cls(
            crumb=data.get("crumb") or "",
            crumb_request_field=data.get("crumbRequestField") or "",
        )


def strip_job_path(url: str) -> str:
    """Drop any ``/job/...`` suffix so the URL points at the Jenkins root."""
    index = url.find("/job/")
    return url[:index] if index != -1 else url


def is_transient_error(err: object, status_code: int) -> bool:
    """Tell whether a failure is worth retrying."""
    if err is not None and isinstance(err, _NETWORK_ERRORS):
        return True
    return status_code in _TRANSIENT_STATUSES


def retry_with_backoff(max_retries: int, operation: Callable[[], Any]) -> Any:
    """Run ``operation`` and retry transient failures with exponential backoff.

    Waits 1s, 2s, 4s, ... between attempts. Returns the last response, or
    raises the last error when every attempt failed with an exception.
    """
    response = None
    last_error: Exception | None = None

    for attempt in range(max_retries + 1):
        try:
            response = operation()
            last_error = None
        except Exception as exc:
            response = None
            last_error = exc

        if last_error is None and response is not None and response.status_code < 500:
            return response

        status_code = response.status_code if response is not None else 0
        if not is_transient_error(last_error, status_code):
            if last_error is not None:
                raise last_error
            return response

        if attempt < max_retries:
            delay = 1 << attempt
            if last_error is not None:
                print(
                    f"Request failed (attempt {attempt + 1}/{max_retries + 1}): {last_error}. "
                    f"Retrying in {delay}s...",
                    file=sys.stderr,
                )
            elif status_code >= 500:
                print(
                    f"Request failed with HTTP {status_code} "
                    f"(attempt {attempt + 1}/{max_retries + 1}). Retrying in {delay}s...",
                    file=sys.stderr,
                )
            if response is not None:
                response.close()
            time.sleep(delay)

    if last_error is not None:
        raise last_error
    return response


def _connection_suggestions(err: object, base_url: str) -> list[str]:
    if is_connection_refused(err):
        return [
            f"Check that Jenkins is running and accessible at {base_url}",
            "Verify the URL is correct (e.g., http://localhost:8080)",
        ]
    if is_dns_error(err):
        return ["Check that the hostname is correct", "Verify your network connection"]
    if is_timeout_error(err):
        return [
            "Check your network connection",
            "Increase the timeout if Jenkins is slow to respond",
        ]
    if is_tls_error(err):
        return [
            "Try using --insecure if the certificate is self-signed",
            "Verify the Jenkins URL scheme (http:// vs https://)",
        ]
    return ["Check your network connection", f"Verify the Jenkins URL is correct: {base_url}"]


class Client:
    """Authenticated client for the Jenkins HTTP API."""

    def __init__(
        self,
        base_url: str,
        auth: AuthMethod | None = None,
        insecure: bool = False,
        timeout: float = STANDARD_TIMEOUT,
        max_retries: int = 3,
    ) -> None:
        self.base_url = strip_job_path(base_url.rstrip("/"))
        self.auth = auth
        self.insecure = insecure
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = requests.Session()
        self.session.verify = not insecure

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self.session.close()

    @property
    def auth_method(self) -> str:
        return str(self.auth) if self.auth is not None else "unknown"

    def build_url(self, path: str) -> str:
        """Join ``path`` onto the Jenkins root URL."""
        return self.base_url + path

    def _effective_timeout(self, timeout: float | None) -> float | None:
        if timeout is not None:
            return timeout
        return self.timeout or None

    def _send(
        self,
        method: str,
        path: str,
        *,
        data: Any = None,
        headers: dict[str, str] | None = None,
        crumb: Crumb | None = None,
        timeout: float | None = None,
        stream: bool = False,
    ) -> requests.Response:
        """Send a request with authentication and retries; network errors propagate."""
        url = self.build_url(path)
        merged = dict(headers or {})
        if self.auth is not None:
            self.auth.apply(merged)
        if crumb is not None and crumb.crumb_request_field:
            merged[crumb.crumb_request_field] = crumb.crumb
        effective = self._effective_timeout(timeout)
        return retry_with_backoff(
            self.max_retries,
            lambda: self.session.request(
                method, url, data=data, headers=merged, timeout=effective, stream=stream
            ),
        )

    def _do_request(
        self,
        method: str,
        path: str,
        data: Any = None,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        stream: bool = False,
    ) -> requests.Response:
        """Send a request, turning network failures into a connection error."""
        try:
            return self._send(
                method, path, data=data, headers=headers, timeout=timeout, stream=stream
            )
        except _NETWORK_ERRORS as exc:
            raise JenkinsConnectionError(
                url=self.build_url(path),
                err=exc,
                suggestions=_connection_suggestions(exc, self.base_url),
            ) from exc

    def _do_request_with_crumb(
        self,
        method: str,
        path: str,
        data: Any = None,
        crumb: Crumb | None = None,
        *,
        timeout: float | None = None,
    ) -> requests.Response:
        try:
            return self._send(method, path, data=data, crumb=crumb, timeout=timeout)
        except _NETWORK_ERRORS as exc:
            raise OperationError("making request", exc) from exc

    def _classify_http_error(self, status_code: int, url: str, body: str) -> JenkinsError:
        """Turn an HTTP failure into a structured error with suggestions."""
        auth_method = self.auth_method
        lowered = body.lower()

        if status_code == 401:
            suggestions = [
                "Check that your API token is valid and not expired",
                "Verify that your username is correct",
            ]
            if auth_method == "basic":
                suggestions.append(
                    "Generate a new API token in Jenkins under User > Configure > API Token"
                )
            elif auth_method == "bearer":
                suggestions.append("Verify that your bearer token is valid")
            return AuthenticationError(
                url=url,
                auth_method=auth_method,
                status_code=status_code,
                err=body,
                suggestions=suggestions,
            )

        if status_code == 403:
            if "permission" in lowered or "anonymous" in lowered:
                suggestions = [
                    "Check that your user has the required permissions in Jenkins",
                    "Contact your Jenkins administrator to grant necessary permissions",
                ]
                if "anonymous" in lowered:
                    suggestions.append(
                        "Anonymous access may be disabled - provide authentication credentials"
                    )
                return JenkinsPermissionError(
                    url=url, auth_method=auth_method, err=body, suggestions=suggestions
                )
            return AuthenticationError(
                url=url,
                auth_method=auth_method,
                status_code=status_code,
                err=body,
                suggestions=[
                    "Check that your credentials are correct",
                    "Verify that your user account is enabled",
                ],
            )

        if status_code == 404:
            return NotFoundError(
                url=url,
                err=body,
                suggestions=[
                    "Verify that the resource exists in Jenkins",
                    f"Check that the URL is correct: {url}",
                ],
            )

        return HTTPStatusError(status_code, body)

    def _get(self, path: str, timeout: float | None = None) -> Any:
        """GET a JSON document, raising a classified error on a non-200 status."""
        response = self._do_request("GET", path, timeout=timeout)
        with response:
            if response.status_code != 200:
                raise self._classify_http_error(
                    response.status_code, self.build_url(path), response.text
                )
            return response.json()

    def _get_crumb(self, timeout: float | None = FAST_TIMEOUT) -> Crumb | None:
        """Fetch a CSRF crumb, or None when the server does not issue one."""
        try:
            return Crumb.from_json(self._get("/crumbIssuer/api/json", timeout=timeout))
        except (JenkinsError, requests.RequestException, ValueError, AttributeError):
            return None

    def _post_with_crumb(
        self, path: str, data: Any = None, timeout: float | None = None
    ) -> None:
        crumb = self._get_crumb()
        if crumb is not None:
            response = self._do_request_with_crumb("POST", path, data, crumb, timeout=timeout)
        else:
            response = self._do_request("POST", path, data, timeout=timeout)
        with response:
            if response.status_code >= 400:
                raise self._classify_http_error(
                    response.status_code, self.build_url(path), response.text
                )

    def _post_form_with_crumb(
        self, path: str, data: Any = None, timeout: float | None = None
    ) -> None:
        crumb = self._get_crumb()
        response = self._send(
            "POST",
            path,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            crumb=crumb,
            timeout=timeout,
        )
        with response:
            if response.status_code >= 400:
                raise self._classify_http_error(
                    response.status_code, self.build_url(path), response.text
                )

    def _get_stream(self, path: str, timeout: float | None = None) -> requests.Response:
        """GET a streaming response; the caller must close it."""
        response = self._do_request("GET", path, timeout=timeout, stream=True)
        if response.status_code != 200:
            with response:
                body = response.text
            raise self._classify_http_error(response.status_code, self.build_url(path), body)
        return response

    def raw_request(self, method: str, path: str, body: Any = None) -> requests.Response:
        """Send an authenticated request to any endpoint.

        Mutating methods carry a CSRF crumb when the server issues one.
        The caller must close the returned response.
        """
        if method in ("GET", "HEAD"):
            return self._do_request(method, path, body)
        crumb = self._get_crumb()
        if crumb is not None:
            return self._do_request_with_crumb(method, path, body, crumb)
        return self._do_request(method, path, body)

    def test_connection(self) -> None:
        """Check that the Jenkins server is reachable and accepts the credentials."""
        response = self._do_request("HEAD", "/", timeout=FAST_TIMEOUT)
        with response:
            if response.status_code >= 400:
                raise self._classify_http_error(
                    response.status_code, self.base_url, response.text
                )


def new_client(
    base_url: str,
    user: str,
    token: str,
    insecure: bool = False,
    timeout: float = STANDARD_TIMEOUT,
    max_retries: int = 3,
) -> Client:
    """Create a client that uses HTTP Basic authentication."""
    return Client(base_url, BasicAuth(user=user, token=token), insecure, timeout, max_retries)