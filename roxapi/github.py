"""Provider backed by the GitHub REST API."""

from __future__ import annotations

import contextlib
import json
from urllib.parse import quote

import requests

from roxapi.provider import (
    Action,
    ActionCommit,
    ActionJob,
    ActionJobStatus,
    ActionRun,
    ActionTargetKind,
    ApiRepo,
    ApiUpstream,
    Provider,
    ProviderError,
    ProviderInfo,
)

API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"

_JOB_STATUS = {
    "queued": ActionJobStatus.PENDING,
    "waiting": ActionJobStatus.PENDING,
    "in_progress": ActionJobStatus.RUNNING,
    "completed": None,
}

_JOB_CONCLUSION = {
    "success": ActionJobStatus.SUCCESS,
    "failure": ActionJobStatus.FAILED,
    "neutral": ActionJobStatus.FAILED,
    "cancelled": ActionJobStatus.CANCELED,
    "skipped": ActionJobStatus.SKIPPED,
    "timed_out": ActionJobStatus.FAILED,
    "action_required": ActionJobStatus.WAITING_FOR_CONFIRM,
}


@contextlib.contextmanager
def _decoding():
    try:
        yield
    except (KeyError, TypeError, ValueError) as exc:
        raise ProviderError(f"decode GitHub response data: {exc!r}") from exc


def _encode(value):
    return quote(value, safe="")


def _job_status(job):
    status = job["status"]
    conclusion = job.get("conclusion")
    if status not in _JOB_STATUS:
        raise ValueError(f"unknown job status {status!r}")
    if conclusion is not None and conclusion not in _JOB_CONCLUSION:
        raise ValueError(f"unknown job conclusion {conclusion!r}")

    converted = _JOB_STATUS[status]
    if converted is not None:
        return converted
    if conclusion is None:
        return ActionJobStatus.FAILED
    return _JOB_CONCLUSION[conclusion]


def _api_repo(repo):
    source = repo.get("source")
    upstream = None
    if source is not None:
        upstream = ApiUpstream(
            owner=source["owner"]["login"],
            name=source["name"],
            default_branch=source["default_branch"],
        )
    return ApiRepo(
        default_branch=repo["default_branch"],
        upstream=upstream,
        web_url=repo["html_url"],
    )


def _pull_request_target(merge):
    """Return (owner, name, head, head_search, base) for a merge."""
    head_search = f"{merge.owner}/{merge.name}:{merge.source}"
    if merge.upstream is not None:
        head = f"{merge.owner}:{merge.source}"
        return merge.upstream.owner, merge.upstream.name, head, head_search, merge.target
    return merge.owner, merge.name, merge.source, head_search, merge.target


class GitHub(Provider):
    """Talks to the GitHub REST API."""

    API_VERSION = API_VERSION

    def __init__(self, token=None, per_page=30, timeout=20.0):
        self._token = token
        self._per_page = per_page
        self._timeout = timeout
        self._session = requests.Session()

    @classmethod
    def from_remote(cls, remote):
        return cls(token=remote.token, per_page=remote.list_limit, timeout=remote.api_timeout)

    def _headers(self):
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "roxide-client",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if self._token is not None:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _request(self, method, path, body=None, stream=False):
        url = f"{API_URL}/{path}"
        try:
            resp = self._session.request(
                method,
                url,
                headers=self._headers(),
                data=body,
                timeout=self._timeout,
                stream=stream,
            )
        except requests.RequestException as exc:
            raise ProviderError(f"GitHub http request: {exc}") from exc

        if 200 <= resp.status_code < 300:
            return resp

        data = resp.content
        message = None
        try:
            message = json.loads(data)["message"]
        except (ValueError, KeyError, TypeError):
            pass
        if isinstance(message, str):
            raise ProviderError(f"GitHub api error: {message}")
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProviderError("decode GitHub response to UTF-8 string") from exc
        raise ProviderError(f"unknown GitHub api error: {text}")

    def _get(self, path):
        return self._decode(self._request("GET", path))

    def _post(self, path, body):
        payload = json.dumps(body).encode("utf-8")
        return self._decode(self._request("POST", path, body=payload))

    @staticmethod
    def _decode(resp):
        try:
            return json.loads(resp.content)
        except ValueError as exc:
            raise ProviderError(f"decode GitHub response data: {exc}") from exc

    def info(self):
        try:
            self._request("GET", "")
            ping = True
        except ProviderError:
            ping = False
        return ProviderInfo(
            name=f"GitHub API {API_VERSION}",
            auth=self._token is not None,
            ping=ping,
        )

    def list_repos(self, owner):
        repos = self._get(f"users/{owner}/repos?per_page={self._per_page}")
        with _decoding():
            return [repo["name"] for repo in repos]

    def get_repo(self, owner, name):
        repo = self._get(f"repos/{owner}/{name}")
        with _decoding():
            return _api_repo(repo)

    def get_merge(self, merge):
        owner, name, _, head_search, base = _pull_request_target(merge)
        path = (
            f"repos/{owner}/{name}/pulls?state=open"
            f"&head={_encode(head_search)}&base={_encode(base)}"
        )
        prs = self._get(path)
        with _decoding():
            if not prs:
                return None
            return prs[0]["html_url"]

    def create_merge(self, merge, title, body):
        owner, name, head, _, base = _pull_request_target(merge)
        pr = self._post(
            f"repos/{owner}/{name}/pulls",
            {"head": head, "base": base, "title": title, "body": body},
        )
        with _decoding():
            return pr["html_url"]

    def search_repos(self, query):
        result = self._get(f"search/repositories?q={query}")
        with _decoding():
            return [item["full_name"] for item in result["items"]]

    def get_action(self, opts):
        if opts.target.kind is ActionTargetKind.COMMIT:
            target = f"head_sha={opts.target.value}"
        else:
            target = f"branch={opts.target.value}"
        result = self._get(f"repos/{opts.owner}/{opts.name}/actions/runs?{target}&per_page=100")
        with _decoding():
            workflow_runs = result["workflow_runs"]
        if not workflow_runs:
            return None

        commit = None
        runs = []
        for workflow_run in workflow_runs:
            with _decoding():
                head_commit = workflow_run.get("head_commit")
                if head_commit is None:
                    continue
                if commit is None:
                    commit = ActionCommit(
                        id=head_commit["id"],
                        message=head_commit["message"],
                        author_name=head_commit["author"]["name"],
                        author_email=head_commit["author"]["email"],
                    )
                elif commit.id != head_commit["id"]:
                    continue
                run_id = workflow_run["id"]

            path = f"repos/{opts.owner}/{opts.name}/actions/runs/{run_id}/jobs"
            try:
                jobs_result = self._get(path)
            except ProviderError as exc:
                raise ProviderError(f"list jobs for workflow run {run_id}: {exc}") from exc

            with _decoding():
                jobs = [
                    ActionJob(
                        id=job["id"],
                        name=job["name"],
                        status=_job_status(job),
                        url=job["html_url"],
                    )
                    for job in jobs_result["jobs"]
                ]
                if not jobs:
                    continue
                runs.append(
                    ActionRun(
                        name=workflow_run["name"],
                        url=workflow_run["html_url"],
                        jobs=jobs,
                    )
                )

        if commit is None:
            raise ProviderError("commit info from GitHub workflow runs is empty")

        runs.sort(key=lambda run: run.name)
        return Action(url=None, commit=commit, runs=runs)

    def logs_job(self, owner, name, job_id, dst):
        resp = self._request(
            "GET", f"repos/{owner}/{name}/actions/jobs/{job_id}/logs", stream=True
        )
        try:
            for chunk in resp.iter_content(chunk_size=8192):
                dst.write(chunk)
        except requests.RequestException as exc:
            raise ProviderError(f"read GitHub job logs response body: {exc}") from exc
        finally:
            resp.close()

    def get_job(self, owner, name, job_id):
        job = self._get(f"repos/{owner}/{name}/actions/jobs/{job_id}")
        with _decoding():
            return ActionJob(
                id=job_id,
                name=job["name"],
                status=_job_status(job),
                url=job["html_url"],
            )

    def get_latest_tag(self, owner, name):
        """Return the tag name of the latest release of a repository."""
        release = self._get(f"repos/{owner}/{name}/releases/latest")
        with _decoding():
            return release["tag_name"]