# jenkinscli

A Python client for the Jenkins REST API, built on `requests`. It covers:

- jobs: list (at the root or inside a folder), inspect, trigger with or
  without parameters, enable, disable, delete, read and replace `config.xml`,
  create from XML
- multibranch pipelines: trigger a branch scan and read the scan log
- views: list, inspect, create, delete, add and remove jobs
- raw authenticated requests to any endpoint

CSRF crumbs are fetched from `/crumbIssuer/api/json` and sent with requests
that change state; when the server issues none, the request goes out without
one. Connection failures and HTTP 502, 503 and 504 are retried with
exponential backoff (1s, 2s, 4s, ...), with a note on standard error before
each retry.

## Installation

```
pip install jenkinscli
```

For running the test suite:

```
pip install "jenkinscli[test]"
pytest
```

## Connecting

`jenkinscli.client.new_client` builds a `Client` that authenticates with HTTP
Basic, using a user name and an API token:

```python
from jenkinscli.client import new_client

client = new_client("https://jenkins.example.com", "admin", "token", False, 30, 3)
client.test_connection()
```

The arguments are the server URL, the user, the API token, whether to skip TLS
certificate checks, the request timeout in seconds and the number of retries
for transient failures. A trailing slash is removed, and if the URL points at
a job page (anything from `/job/` on), that part is dropped so the client
always talks to the Jenkins root.

To authenticate with a bearer token, pass an auth method to the client class
directly. `Client` and `JobsClient` take
`(base_url, auth=None, insecure=False, timeout=30.0, max_retries=3)` and can be
used as context managers, which closes the HTTP session on exit:

```python
from jenkinscli.client import BearerTokenAuth, Client

with Client("https://jenkins.example.com", BearerTokenAuth("token")) as client:
    response = client.raw_request("GET", "/api/json", None)
    with response:
        print(response.json())
```

`raw_request` returns the `requests.Response`; the caller closes it. For
methods other than `GET` and `HEAD` a crumb is attached when available.

## Jobs, multibranch pipelines and views

```python
from jenkinscli.client import BearerTokenAuth
from jenkinscli.jobs import JobsClient, color_to_status

jobs = JobsClient("https://jenkins.example.com", BearerTokenAuth("token"))

for job in jobs.list_jobs(""):
    print(job.name, color_to_status(job.color))

detail = jobs.get_job("my-folder/my-job")
print(detail.next_build_number, detail.last_build)

jobs.build_job("my-folder/my-job", {"BRANCH": "main"})
config = jobs.get_job_config("my-folder/my-job")
jobs.update_job_config("my-folder/my-job", config)

jobs.scan_multibranch_pipeline("my-multibranch")
print(jobs.get_scan_log("my-multibranch"))

for view in jobs.list_views():
    print(view.name, [j.name for j in view.jobs])
jobs.add_job_to_view("My View", "my-job")
```

Job names with slashes are folder paths: `encode_job_path("a/b/c")` gives
`a/job/b/job/c`. When a job or view cannot be found, the raised
`NotFoundError` lists up to five names of jobs on the server that are close to
the one asked for (by case-insensitive edit distance, see
`levenshtein_distance` and `JobsClient.find_similar_job_names`).

The results are dataclasses: `Job`, `JobDetail`, `BuildRef`, `Health`, `View`
and `ViewDetail`.

## Errors

Failures are raised as exceptions from `jenkinscli.errors`, all derived from
`JenkinsError`:

- `JenkinsConnectionError`: the server could not be reached
- `AuthenticationError`: HTTP 401, or 403 without a permission message
- `JenkinsPermissionError`: HTTP 403 caused by missing permissions
- `NotFoundError`: HTTP 404

Other HTTP failures raise `jenkinscli.client.HTTPStatusError`, and some
operations wrap their cause in `jenkinscli.client.OperationError` (for
example "listing jobs"). Each error keeps its cause in `err` and its
suggestions in `suggestions`, both shown in its message.

`as_connection_error`, `as_authentication_error`, `as_permission_error` and
`as_not_found_error` find such an error in the chain of causes of any
exception. `is_connection_refused`, `is_authentication_failure`,
`is_not_found`, `is_timeout_error`, `is_dns_error`, `is_tls_error` and
`is_anonymous_permission_error` classify arbitrary exceptions by type and
message.

## What this package does not do

- It has no operations on builds: no listing, build logs, log streaming,
  artifact downloads, stopping, deleting or replaying builds, and no pipeline
  stage data. These can be reached only through `Client.raw_request`.
- It has no operations on credentials, nodes, plugins, the build queue,
  system information, Groovy scripts, pipeline validation, restart or
  quiet-down, other than through `Client.raw_request`.
- It is a library only; it installs no command-line program.