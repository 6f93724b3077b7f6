"""Jobs, multibranch pipelines and views."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, quote_plus, urlencode

import requests

from jenkinscli.client import (
    SLOW_TIMEOUT,
    STANDARD_TIMEOUT,
    Client,
    OperationError,
)
from jenkinscli.errors import JenkinsError, NotFoundError, as_not_found_error, is_not_found

__all__ = [
    "Job",
    "JobDetail",
    "BuildRef",
    "Health",
    "View",
    "ViewDetail",
    "JobsClient",
    "encode_job_path",
    "levenshtein_distance",
    "color_to_status",
]

_JOB_TREE = "tree=jobs[name,url,color,_class,fullName,description,buildable]"
_NETWORK_ERRORS = (requests.RequestException, OSError)


def _path_escape(segment: str) -> str:
    """Escape a single URL path segment."""
    return quote(segment, safe="$&+,;=:@")


@dataclass
class Job:
    """A Jenkins job as listed by the API."""

    name: str = ""
    url: str = ""
    color: str = ""
    job_class: str = ""
    description: str = ""
    buildable: bool = False
    full_name: str = ""

    @classmethod
    def _fields(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": data.get("name") or "",
            "url": data.get("url") or "",
            "color": data.get("color") or "",
            "job_class": data.get("_class") or "",
            "description": data.get("description") or "",
            "buildable": bool(data.get("buildable", False)),
            "full_name": data.get("fullName") or "",
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Job:
        return cls(**cls._fields(data))


@dataclass
class BuildRef:
    """A reference to a build by number and URL."""

    number: int = 0
    url: str = ""

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> BuildRef | None:
        if data is None:
            return None
        return cls(number=int(data.get("number") or 0), url=data.get("url") or "")


@dataclass
class Health:
    """One entry of a job's health report."""

    description: str = ""
    score: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Health:
        return cls(description=data.get("description") or "", score=int(data.get("score") or 0))


@dataclass
class JobDetail(Job):
    """Detailed information about a single job."""

    last_build: BuildRef | None = None
    last_successful_build: BuildRef | None = None
    last_failed_build: BuildRef | None = None
    health_report: list[Health] = field(default_factory=list)
    in_queue: bool = False
    next_build_number: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> JobDetail:
        return cls(
            **cls._fields(data),
            last_build=BuildRef.from_json(data.get("lastBuild")),
            last_successful_build=BuildRef.from_json(data.get("lastSuccessfulBuild")),
            last_failed_build=BuildRef.from_json(data.get("lastFailedBuild")),
            health_report=[Health.from_json(h) for h in data.get("healthReport") or []],
            in_queue=bool(data.get("inQueue", False)),
            next_build_number=int(data.get("nextBuildNumber") or 0),
        )


@dataclass
class View:
    """A Jenkins view."""

    name: str = ""
    url: str = ""
    description: str = ""
    view_class: str = ""
    jobs: list[Job] = field(default_factory=list)

    @classmethod
    def _fields(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": data.get("name") or "",
            "url": data.get("url") or "",
            "description": data.get("description") or "",
            "view_class": data.get("_class") or "",
            "jobs": [Job.from_json(j) for j in data.get("jobs") or []],
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> View:
        return cls(**cls._fields(data))


@dataclass
class ViewDetail(View):
    """A view with its jobs and properties."""

    property: list[Any] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ViewDetail:
        return cls(**cls._fields(data), property=list(data.get("property") or []))


def encode_job_path(name: str) -> str:
    """Turn ``a/b/c`` into ``a/job/b/job/c`` with each segment escaped."""
    return "/job/".join(_path_escape(part) for part in name.split("/"))


def levenshtein_distance(s1: str, s2: str) -> int:
    """Case-insensitive edit distance between two strings."""
    a, b = s1.lower(), s2.lower()
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def color_to_status(color: str) -> str:
    """Map a Jenkins ball color to a status name."""
    if color.endswith("_anime"):
        return "BUILDING"
    prefixes = (
        ("blue", "SUCCESS"),
        ("red", "FAILURE"),
        ("yellow", "UNSTABLE"),
        ("grey", "DISABLED"),
        ("disabled", "DISABLED"),
        ("aborted", "ABORTED"),
        ("notbuilt", "NOT_BUILT"),
    )
    for prefix, status in prefixes:
        if color.startswith(prefix):
            return status
    return color


class JobsClient(Client):
    """Client operations on jobs, multibranch pipelines and views."""

    def list_jobs(self, folder: str = "") -> list[Job]:
        """List the jobs at the root or inside ``folder``."""
        path = f"/api/json?{_JOB_TREE}"
        if folder:
            path = f"/job/{encode_job_path(folder)}/api/json?{_JOB_TREE}"
        try:
            data = self._get(path)
        except (JenkinsError, ValueError) as exc:
            raise OperationError("listing jobs", exc) from exc
        return [Job.from_json(j) for j in data.get("jobs") or []]

    def get_job(self, name: str) -> JobDetail:
        """Fetch details of a job."""
        try:
            data = self._get(f"/job/{encode_job_path(name)}/api/json")
        except JenkinsError as exc:
            raise self._wrap_not_found_error(exc, name)
        return JobDetail.from_json(data)

    def build_job(self, name: str, params: dict[str, str] | None = None) -> None:
        """Trigger a build, with parameters when given."""
        if params:
            query = urlencode(sorted(params.items()))
            path = f"/job/{encode_job_path(name)}/buildWithParameters?{query}"
        else:
            path = f"/job/{encode_job_path(name)}/build"
        self._post_wrapped(path, name)

    def disable_job(self, name: str) -> None:
        """Disable a job."""
        self._post_wrapped(f"/job/{encode_job_path(name)}/disable", name)

    def enable_job(self, name: str) -> None:
        """Enable a job."""
        self._post_wrapped(f"/job/{encode_job_path(name)}/enable", name)

    def delete_job(self, name: str) -> None:
        """Delete a job."""
        self._post_wrapped(f"/job/{encode_job_path(name)}/doDelete", name)

    def find_similar_job_names(self, target_name: str, max_suggestions: int = 5) -> list[str]:
        """Return up to ``max_suggestions`` job names close to ``target_name``."""
        try:
            jobs = self.list_jobs("")
        except JenkinsError:
            return []
        max_distance = len(target_name) // 2
        candidates = [
            (distance, job.name)
            for job in jobs
            if 0 < (distance := levenshtein_distance(target_name, job.name)) <= max_distance
        ]
        candidates.sort(key=lambda item: item[0])
        return [name for _, name in candidates[:max_suggestions]]

    def _wrap_not_found_error(self, err: Exception, job_name: str) -> Exception:
        """Enrich a not-found error with similar job names."""
        found = as_not_found_error(err)
        if found is not None:
            if found.suggestions:
                return err
            suggestions = self.find_similar_job_names(job_name, 5)
            if suggestions:
                found.suggestions = suggestions
            return found
        if is_not_found(err):
            return NotFoundError(
                resource_type="Job",
                resource_name=job_name,
                err=err,
                suggestions=self.find_similar_job_names(job_name, 5),
            )
        return err

    def _post_wrapped(self, path: str, name: str) -> None:
        try:
            self._post_with_crumb(path)
        except JenkinsError as exc:
            raise self._wrap_not_found_error(exc, name)

    def _read_text(self, path: str, what: str, name: str, timeout: float) -> str:
        try:
            response = self._get_stream(path, timeout=timeout)
        except JenkinsError as exc:
            raise self._wrap_not_found_error(OperationError(f"getting {what}", exc), name)
        with response:
            try:
                return response.text
            except _NETWORK_ERRORS as exc:
                raise OperationError(f"reading {what}", exc) from exc

    def get_job_config(self, name: str) -> str:
        """Return the XML configuration of a job."""
        path = f"/job/{encode_job_path(name)}/config.xml"
        return self._read_text(path, "job config", name, STANDARD_TIMEOUT)

    def _post_xml(self, path: str, config_xml: str) -> requests.Response:
        crumb = self._get_crumb()
        return self._send(
            "POST",
            path,
            data=config_xml.encode("utf-8"),
            headers={"Content-Type": "application/xml"},
            crumb=crumb,
            timeout=STANDARD_TIMEOUT,
        )

    def _check_status(self, response: requests.Response, path: str) -> None:
        with response:
            if response.status_code >= 400:
                raise self._classify_http_error(
                    response.status_code, self.build_url(path), response.text
                )

    def update_job_config(self, name: str, config_xml: str) -> None:
        """Replace the XML configuration of a job."""
        path = f"/job/{encode_job_path(name)}/config.xml"
        try:
            response = self._post_xml(path, config_xml)
        except _NETWORK_ERRORS as exc:
            raise self._wrap_not_found_error(OperationError("updating job config", exc), name)
        self._check_status(response, path)

    def create_job(self, name: str, config_xml: str) -> None:
        """Create a job from an XML configuration."""
        path = f"/createItem?name={quote_plus(name, safe='')}"
        try:
            response = self._post_xml(path, config_xml)
        except _NETWORK_ERRORS as exc:
            raise OperationError("creating job", exc) from exc
        self._check_status(response, path)

    def scan_multibranch_pipeline(self, name: str) -> None:
        """Trigger branch indexing of a multibranch pipeline."""
        self._post_wrapped(f"/job/{encode_job_path(name)}/build", name)

    def get_scan_log(self, name: str) -> str:
        """Return the branch indexing log of a multibranch pipeline."""
        path = f"/job/{encode_job_path(name)}/indexing/consoleText"
        return self._read_text(path, "scan log", name, SLOW_TIMEOUT)

    def list_views(self) -> list[View]:
        """List all views."""
        try:
            data = self._get("/api/json?tree=views[name,url,description,_class,jobs[name]]")
        except (JenkinsError, ValueError) as exc:
            raise OperationError("listing views", exc) from exc
        return [View.from_json(v) for v in data.get("views") or []]

    def get_view(self, name: str) -> ViewDetail:
        """Fetch details of a view."""
        try:
            data = self._get(f"/view/{_path_escape(name)}/api/json")
        except JenkinsError as exc:
            raise self._wrap_not_found_error(exc, name)
        return ViewDetail.from_json(data)

    def create_view(self, name: str, config_xml: str) -> None:
        """Create a view from an XML configuration."""
        path = f"/createView?name={quote_plus(name, safe='')}"
        self._post_with_crumb(path, config_xml.encode("utf-8"))

    def delete_view(self, name: str) -> None:
        """Delete a view."""
        self._post_wrapped(f"/view/{_path_escape(name)}/doDelete", name)

    def add_job_to_view(self, view_name: str, job_name: str) -> None:
        """Add a job to a view."""
        path = (
            f"/view/{_path_escape(view_name)}/addJobToView"
            f"?name={quote_plus(job_name, safe='')}"
        )
        self._post_wrapped(path, view_name)

    def remove_job_from_view(self, view_name: str, job_name: str) -> None:
        """Remove a job from a view."""
        path = (
            f"/view/{_path_escape(view_name)}/removeJobFromView"
            f"?name={quote_plus(job_name, safe='')}"
        )
        self._post_wrapped(path, view_name)