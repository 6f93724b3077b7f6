"""Structured Jenkins errors and helpers for classifying failures."""

from __future__ import annotations

import errno
import socket
import ssl
from collections.abc import Iterable, Iterator
from typing import TypeVar

__all__ = [
    "JenkinsError",
    "JenkinsConnectionError",
    "AuthenticationError",
    "JenkinsPermissionError",
    "NotFoundError",
    "as_connection_error",
    "as_authentication_error",
    "as_permission_error",
    "as_not_found_error",
    "is_anonymous_permission_error",
    "is_connection_refused",
    "is_authentication_failure",
    "is_not_found",
    "is_timeout_error",
    "is_dns_error",
    "is_tls_error",
]


class JenkinsError(Exception):
    """Base class for errors carrying an underlying cause and suggestions."""

    suggestions_title = "Suggestions:"

    def __init__(self, err: object = None, suggestions: Iterable[str] | None = None) -> None:
        super().__init__()
        self.err = err
        self.suggestions: list[str] = list(suggestions or [])
        if isinstance(err, BaseException):
            self.__cause__ = err

    def _headline(self) -> str:
        return "Jenkins error"

    def __str__(self) -> str:
        parts = [self._headline()]
        if self.err is not None:
            parts.append(f": {self.err}")
        if self.suggestions:
            parts.append(f"\n\n{self.suggestions_title}")
            parts.extend(f"\n  - {s}" for s in self.suggestions)
        return "".join(parts)


class JenkinsConnectionError(JenkinsError):
    """Failure to connect to the Jenkins server."""

    def __init__(
        self,
        url: str = "",
        err: object = None,
        suggestions: Iterable[str] | None = None,
    ) -> None:
        super().__init__(err, suggestions)
        self.url = url

    def _headline(self) -> str:
        return f"Failed to connect to Jenkins at {self.url}"


class AuthenticationError(JenkinsError):
    """Authentication was rejected by the server."""

    def __init__(
        self,
        url: str = "",
        auth_method: str = "",
        status_code: int = 0,
        err: object = None,
        suggestions: Iterable[str] | None = None,
    ) -> None:
        super().__init__(err, suggestions)
        self.url = url
        self.auth_method = auth_method
        self.status_code = status_code

    def _headline(self) -> str:
        text = f"Authentication failed using {self.auth_method} method"
        if self.status_code > 0:
            text += f" (HTTP {self.status_code})"
        if self.url:
            text += f" at {self.url}"
        return text


class JenkinsPermissionError(JenkinsError):
    """The user lacks a permission required for the operation."""

    def __init__(
        self,
        url: str = "",
        permission: str = "",
        user: str = "",
        auth_method: str = "",
        err: object = None,
        suggestions: Iterable[str] | None = None,
    ) -> None:
        super().__init__(err, suggestions)
        self.url = url
        self.permission = permission
        self.user = user
        self.auth_method = auth_method

    def _headline(self) -> str:
        text = f"User '{self.user}' is missing" if self.user else "Missing"
        if self.permission:
            text += f" {self.permission} permission"
        else:
            text += " required permission"
        if self.url:
            text += f" for {self.url}"
        return text


class NotFoundError(JenkinsError):
    """A requested resource does not exist."""

    suggestions_title = "Did you mean:"

    def __init__(
        self,
        resource_type: str = "",
        resource_name: str = "",
        url: str = "",
        err: object = None,
        suggestions: Iterable[str] | None = None,
    ) -> None:
        super().__init__(err, suggestions)
        self.resource_type = resource_type
        self.resource_name = resource_name
        self.url = url

    def _headline(self) -> str:
        if self.resource_type and self.resource_name:
            text = f"{self.resource_type} '{self.resource_name}' not found"
        elif self.resource_name:
            text = f"'{self.resource_name}' not found"
        else:
            text = "Resource not found"
        if self.url:
            text += f" at {self.url}"
        return text


_E = TypeVar("_E", bound=BaseException)


def _chain(err: object) -> Iterator[object]:
    """Yield the error and every error it wraps, outermost first."""
    seen: set[int] = set()
    current = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if isinstance(current, JenkinsError):
            current = current.err
        elif isinstance(current, BaseException):
            if current.__cause__ is not None:
                current = current.__cause__
            elif not current.__suppress_context__:
                current = current.__context__
            else:
                current = None
        else:
            current = None


def _find(err: object, kind: type[_E]) -> _E | None:
    for item in _chain(err):
        if isinstance(item, kind):
            return item
    return None


def as_connection_error(err: object) -> JenkinsConnectionError | None:
    """Return the connection error in the chain of ``err``, if any."""
    return _find(err, JenkinsConnectionError)


def as_authentication_error(err: object) -> AuthenticationError | None:
    """Return the authentication error in the chain of ``err``, if any."""
    return _find(err, AuthenticationError)


def as_permission_error(err: object) -> JenkinsPermissionError | None:
    """Return the permission error in the chain of ``err``, if any."""
    return _find(err, JenkinsPermissionError)


def as_not_found_error(err: object) -> NotFoundError | None:
    """Return the not-found error in the chain of ``err``, if any."""
    return _find(err, NotFoundError)


def _message(err: object) -> str:
    return str(err).lower()


def is_anonymous_permission_error(err: object) -> bool:
    """Tell whether the anonymous user lacks Overall/Read permission."""
    if err is None:
        return False
    text = _message(err)
    return "anonymous" in text and "overall/read" in text and "permission" in text


def is_connection_refused(err: object) -> bool:
    """Tell whether the error is a refused connection."""
    if err is None:
        return False
    for item in _chain(err):
        if isinstance(item, ConnectionRefusedError):
            return True
        if isinstance(item, OSError) and item.errno == errno.ECONNREFUSED:
            return True
    return "connection refused" in _message(err)


def is_authentication_failure(err: object) -> bool:
    """Tell whether the error indicates a 401/403 or rejected credentials."""
    if err is None:
        return False
    if as_authentication_error(err) is not None:
        return True
    text = _message(err)
    if "http 401" in text or "http 403" in text:
        return True
    if ("401" in text or "403" in text) and ("unauthorized" in text or "forbidden" in text):
        return True
    keywords = ("unauthorized", "authentication failed", "invalid credentials", "access denied")
    return any(keyword in text for keyword in keywords)


def is_not_found(err: object) -> bool:
    """Tell whether the error indicates a missing resource."""
    if err is None:
        return False
    if as_not_found_error(err) is not None:
        return True
    text = _message(err)
    return "404" in text or "not found" in text


def is_timeout_error(err: object) -> bool:
    """Tell whether the error is a timeout."""
    if err is None:
        return False
    if any(isinstance(item, TimeoutError) for item in _chain(err)):
        return True
    text = _message(err)
    return "timeout" in text or "timed out" in text or "deadline exceeded" in text


def is_dns_error(err: object) -> bool:
    """Tell whether the error is a name resolution failure."""
    if err is None:
        return False
    if any(isinstance(item, socket.gaierror) for item in _chain(err)):
        return True
    text = _message(err)
    return "no such host" in text or "dns" in text or "name resolution" in text


def is_tls_error(err: object) -> bool:
    """Tell whether the error is related to TLS/SSL."""
    if err is None:
        return False
    if any(isinstance(item, ssl.SSLError) for item in _chain(err)):
        return True
    text = _message(err)
    return any(word in text for word in ("tls", "ssl", "certificate", "x509"))