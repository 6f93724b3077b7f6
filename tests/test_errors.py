import errno
import socket

import pytest

from jenkinscli.errors import (
    AuthenticationError,
    JenkinsConnectionError,
    JenkinsError,
    JenkinsPermissionError,
    NotFoundError,
    as_authentication_error,
    as_connection_error,
    as_not_found_error,
    as_permission_error,
    is_anonymous_permission_error,
    is_authentication_failure,
    is_connection_refused,
    is_dns_error,
    is_not_found,
    is_timeout_error,
    is_tls_error,
)


def _wrap(message, cause):
    outer = RuntimeError(message)
    outer.__cause__ = cause
    return outer


@pytest.mark.parametrize(
    "err, expected",
    [
        (
            JenkinsConnectionError(url="http://localhost:8080", err=Exception("connection refused")),
            ["Failed to connect to Jenkins at http://localhost:8080", "connection refused"],
        ),
        (
            JenkinsConnectionError(
                url="http://localhost:8080",
                err=Exception("timeout"),
                suggestions=["Check if Jenkins is running", "Verify the URL is correct"],
            ),
            ["Failed to connect", "timeout", "Suggestions:", "Check if Jenkins is running", "Verify the URL is correct"],
        ),
        (
            JenkinsConnectionError(url="http://localhost:8080", suggestions=["Check network connectivity"]),
            ["Failed to connect to Jenkins at http://localhost:8080", "Check network connectivity"],
        ),
    ],
)
def test_connection_error_message(err, expected):
    text = str(err)
    for part in expected:
        assert part in text


def test_connection_error_exact_format():
    err = JenkinsConnectionError(url="http://h", err=Exception("boom"), suggestions=["a", "b"])
    assert str(err) == "Failed to connect to Jenkins at http://h: boom\n\nSuggestions:\n  - a\n  - b"


def test_connection_error_unwrap():
    inner = Exception("connection refused")
    err = JenkinsConnectionError(url="http://localhost:8080", err=inner)
    assert err.err is inner
    assert err.__cause__ is inner
    assert isinstance(err, JenkinsError)


@pytest.mark.parametrize(
    "err, expected",
    [
        (
            AuthenticationError(url="http://localhost:8080", auth_method="basic", status_code=401),
            ["Authentication failed using basic method", "HTTP 401", "http://localhost:8080"],
        ),
        (
            AuthenticationError(
                url="http://localhost:8080",
                auth_method="bearer",
                status_code=403,
                suggestions=["Check your token", "Verify permissions"],
            ),
            ["Authentication failed using bearer method", "HTTP 403", "Suggestions:", "Check your token"],
        ),
        (
            AuthenticationError(auth_method="basic", err=Exception("invalid credentials")),
            ["Authentication failed using basic method", "invalid credentials"],
        ),
        (
            AuthenticationError(auth_method="basic", status_code=401),
            ["Authentication failed using basic method", "HTTP 401"],
        ),
    ],
)
def test_authentication_error_message(err, expected):
    text = str(err)
    for part in expected:
        assert part in text


def test_authentication_error_omits_missing_parts():
    err = AuthenticationError(auth_method="basic")
    assert str(err) == "Authentication failed using basic method"


def test_authentication_error_unwrap():
    inner = Exception("invalid token")
    err = AuthenticationError(auth_method="bearer", err=inner)
    assert err.err is inner


@pytest.mark.parametrize(
    "err, expected",
    [
        (
            JenkinsPermissionError(url="http://localhost:8080/job/test", permission="Job/Build", user="admin"),
            ["User 'admin' is missing", "Job/Build permission", "http://localhost:8080/job/test"],
        ),
        (
            JenkinsPermissionError(url="http://localhost:8080", permission="Overall/Read"),
            ["Missing", "Overall/Read permission"],
        ),
        (
            JenkinsPermissionError(user="john"),
            ["User 'john' is missing", "required permission"],
        ),
        (
            JenkinsPermissionError(
                user="bob",
                permission="Job/Build",
                suggestions=["Contact your Jenkins administrator", "Check permission matrix"],
            ),
            ["User 'bob'", "Job/Build permission", "Suggestions:", "Contact your Jenkins administrator"],
        ),
    ],
)
def test_permission_error_message(err, expected):
    text = str(err)
    for part in expected:
        assert part in text


def test_permission_error_unwrap():
    inner = Exception("access denied")
    err = JenkinsPermissionError(permission="Job/Build", err=inner)
    assert err.err is inner


@pytest.mark.parametrize(
    "err, expected",
    [
        (
            NotFoundError(resource_type="Job", resource_name="my-project", url="http://localhost:8080/job/my-project"),
            ["Job 'my-project' not found", "http://localhost:8080/job/my-project"],
        ),
        (NotFoundError(resource_name="my-project"), ["'my-project' not found"]),
        (NotFoundError(url="http://localhost:8080"), ["Resource not found", "http://localhost:8080"]),
        (
            NotFoundError(resource_type="Job", resource_name="my-projct", suggestions=["my-project", "my-proj"]),
            ["Job 'my-projct' not found", "Did you mean:", "my-project", "my-proj"],
        ),
    ],
)
def test_not_found_error_message(err, expected):
    text = str(err)
    for part in expected:
        assert part in text


def test_not_found_error_suggestions_added_later_appear():
    err = NotFoundError(resource_type="Job", resource_name="x")
    err.suggestions = ["y"]
    assert str(err) == "Job 'x' not found\n\nDid you mean:\n  - y"


def test_not_found_error_unwrap():
    inner = Exception("HTTP 404")
    err = NotFoundError(resource_type="Job", resource_name="test", err=inner)
    assert err.err is inner


def test_as_connection_error():
    conn = JenkinsConnectionError(url="http://localhost:8080")
    assert as_connection_error(conn).url == "http://localhost:8080"
    assert as_connection_error(_wrap("wrapped", conn)).url == "http://localhost:8080"
    assert as_connection_error(Exception("not a connection error")) is None


def test_as_authentication_error():
    auth = AuthenticationError(auth_method="basic")
    assert as_authentication_error(auth).auth_method == "basic"
    assert as_authentication_error(_wrap("wrapped", auth)).auth_method == "basic"
    assert as_authentication_error(Exception("not an auth error")) is None


def test_as_permission_error():
    perm = JenkinsPermissionError(permission="Job/Build")
    assert as_permission_error(perm).permission == "Job/Build"
    assert as_permission_error(_wrap("wrapped", perm)).permission == "Job/Build"
    assert as_permission_error(Exception("not a permission error")) is None


def test_as_not_found_error():
    nf = NotFoundError(resource_name="test")
    assert as_not_found_error(nf).resource_name == "test"
    assert as_not_found_error(_wrap("wrapped", nf)).resource_name == "test"
    assert as_not_found_error(Exception("not a not found error")) is None


def test_as_error_through_jenkins_error_err():
    nf = NotFoundError(resource_name="inner")
    outer = JenkinsConnectionError(url="http://h", err=nf)
    assert as_not_found_error(outer) is nf


@pytest.mark.parametrize(
    "err, want",
    [
        (Exception("Anonymous is missing the Overall/Read permission"), True),
        (Exception("ANONYMOUS is missing the OVERALL/READ PERMISSION"), True),
        (Exception("User is missing the Job/Build permission"), False),
        (None, False),
        (Exception("something else"), False),
    ],
)
def test_is_anonymous_permission_error(err, want):
    assert is_anonymous_permission_error(err) is want


@pytest.mark.parametrize(
    "err, want",
    [
        (ConnectionRefusedError(errno.ECONNREFUSED, "refused"), True),
        (_wrap("dial", ConnectionRefusedError(errno.ECONNREFUSED, "refused")), True),
        (Exception("dial tcp: connection refused"), True),
        (None, False),
        (Exception("something else"), False),
    ],
)
def test_is_connection_refused(err, want):
    assert is_connection_refused(err) is want


@pytest.mark.parametrize(
    "err, want",
    [
        (AuthenticationError(auth_method="basic"), True),
        (Exception("HTTP 401 Unauthorized"), True),
        (Exception("HTTP 403 Forbidden"), True),
        (Exception("401 unauthorized"), True),
        (Exception("403 forbidden"), True),
        (Exception("authentication failed"), True),
        (Exception("invalid credentials"), True),
        (Exception("access denied"), True),
        (None, False),
        (Exception("something else"), False),
    ],
)
def test_is_authentication_failure(err, want):
    assert is_authentication_failure(err) is want


@pytest.mark.parametrize(
    "err, want",
    [
        (NotFoundError(resource_name="test"), True),
        (Exception("HTTP 404 Not Found"), True),
        (Exception("received 404"), True),
        (Exception("resource not found"), True),
        (None, False),
        (Exception("something else"), False),
    ],
)
def test_is_not_found(err, want):
    assert is_not_found(err) is want


@pytest.mark.parametrize(
    "err, want",
    [
        (TimeoutError(), True),
        (Exception("connection timeout"), True),
        (Exception("request timed out"), True),
        (Exception("context deadline exceeded"), True),
        (None, False),
        (Exception("something else"), False),
    ],
)
def test_is_timeout_error(err, want):
    assert is_timeout_error(err) is want


@pytest.mark.parametrize(
    "err, want",
    [
        (socket.gaierror(-2, "Name or service not known"), True),
        (_wrap("dial", socket.gaierror(-2, "Name or service not known")), True),
        (_wrap("lookup", socket.gaierror(-2, "Name or service not known")), True),
        (Exception("no such host"), True),
        (Exception("dns lookup failed"), True),
        (Exception("name resolution failed"), True),
        (None, False),
        (Exception("something else"), False),
    ],
)
def test_is_dns_error(err, want):
    assert is_dns_error(err) is want


@pytest.mark.parametrize(
    "err, want",
    [
        (Exception("tls: bad certificate"), True),
        (Exception("ssl handshake failed"), True),
        (Exception("certificate verify failed"), True),
        (Exception("x509: certificate has expired"), True),
        (None, False),
        (Exception("something else"), False),
    ],
)
def test_is_tls_error(err, want):
    assert is_tls_error(err) is want


def test_specific_errors_share_jenkins_base():
    err = NotFoundError(resource_type="Job", resource_name="demo")
    assert isinstance(err, JenkinsError)
    assert err.resource_type == "Job"
    assert err.resource_name == "demo"
    assert str(err) == "Job 'demo' not found"