"""Data model and abstract interface for remote repository providers."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from roxapi.style import style


class ProviderError(Exception):
    """Raised when a provider operation fails."""


class ProviderType(enum.Enum):
    GITHUB = "github"
    GITLAB = "gitlab"


@dataclass
class RemoteConfig:
    """Settings for one remote that a provider is built from."""

    name: str
    provider: ProviderType | None = None
    token: str | None = None
    api_domain: str | None = None
    list_limit: int = 200
    api_timeout: int = 10
    cache_hours: int = 24
    owner_alias: dict[str, str] = field(default_factory=dict)
    repo_alias: dict[str, dict[str, str]] = field(default_factory=dict)

    def has_alias(self):
        return bool(self.owner_alias) or bool(self.repo_alias)

    def get_alias_map(self):
        """Return copies of the owner and repository alias maps."""
        owners = dict(self.owner_alias)
        repos = {owner: dict(names) for owner, names in self.repo_alias.items()}
        return owners, repos


@dataclass
class ProviderInfo:
    name: str
    auth: bool
    ping: bool

    def __str__(self):
        auth = "with auth" if self.auth else "no auth"
        if self.ping:
            ping = f"ping {style('ok', fg='green')}"
        else:
            ping = f"ping {style('failed', fg='red')}"
        return f"{self.name}, {auth}, {ping}"


@dataclass
class ApiUpstream:
    """The fork source of a repository."""

    owner: str
    name: str
    default_branch: str

    def __str__(self):
        return f"{self.owner}/{self.name}"


@dataclass
class ApiRepo:
    """Repository information obtained from a provider."""

    default_branch: str
    upstream: ApiUpstream | None
    web_url: str


@dataclass
class MergeOptions:
    """What is needed to find or create a merge (pull) request."""

    owner: str
    name: str
    upstream: ApiUpstream | None
    source: str
    target: str

    def __str__(self):
        return f"{self.owner}/{self.name}"

    def pretty_display(self):
        """Describe the merge with terminal colours."""
        if self.upstream is not None:
            return "{}:{} => {}:{}".format(
                style(str(self), fg="yellow"),
                style(self.source, fg="magenta"),
                style(str(self.upstream), fg="yellow"),
                style(self.target, fg="magenta"),
            )
        return "{} => {}".format(
            style(self.source, fg="magenta"),
            style(self.target, fg="magenta"),
        )


class ActionTargetKind(enum.Enum):
    COMMIT = "commit"
    BRANCH = "branch"


@dataclass(frozen=True)
class ActionTarget:
    """Locates an action by commit SHA or by branch name."""

    kind: ActionTargetKind
    value: str

    @classmethod
    def commit(cls, sha):
        return cls(ActionTargetKind.COMMIT, sha)

    @classmethod
    def branch(cls, name):
        return cls(ActionTargetKind.BRANCH, name)


@dataclass
class ActionOptions:
    owner: str
    name: str
    target: ActionTarget


@dataclass
class ActionCommit:
    id: str
    message: str
    author_name: str
    author_email: str


class ActionJobStatus(enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"
    WAITING_FOR_CONFIRM = "waiting_for_confirm"

    def is_completed(self):
        return self not in (
            ActionJobStatus.PENDING,
            ActionJobStatus.RUNNING,
            ActionJobStatus.WAITING_FOR_CONFIRM,
        )

    def __str__(self):
        return style(self.value, fg=_STATUS_COLORS[self])


_STATUS_COLORS = {
    ActionJobStatus.PENDING: "yellow",
    ActionJobStatus.RUNNING: "cyan",
    ActionJobStatus.SUCCESS: "green",
    ActionJobStatus.FAILED: "red",
    ActionJobStatus.CANCELED: "yellow",
    ActionJobStatus.SKIPPED: "yellow",
    ActionJobStatus.WAITING_FOR_CONFIRM: "magenta",
}


@dataclass
class ActionJob:
    """A single CI/CD job."""

    id: int
    name: str
    status: ActionJobStatus
    url: str


@dataclass
class ActionRun:
    """A group of jobs: a workflow run or a pipeline stage."""

    name: str
    url: str | None
    jobs: list[ActionJob] = field(default_factory=list)


@dataclass
class Action:
    """All CI/CD work for one commit."""

    url: str | None
    commit: ActionCommit
    runs: list[ActionRun] = field(default_factory=list)

    def __str__(self):
        short_id = self.commit.id[:8]
        message = self.commit.message.strip()
        author = f"{self.commit.author_name} <{self.commit.author_email}>"
        return (
            f"Commit [{short_id}] {style(message, fg='yellow')}\n"
            f"Author {style(author, fg='blue')}"
        )


class Provider(ABC):
    """API abstraction over a remote hosting repositories."""

    @abstractmethod
    def info(self):
        """Return a ProviderInfo describing this provider."""

    @abstractmethod
    def list_repos(self, owner):
        """Return the names of all repositories under ``owner``."""

    @abstractmethod
    def get_repo(self, owner, name):
        """Return the ApiRepo for one repository."""

    @abstractmethod
    def get_merge(self, merge):
        """Return the URL of an open merge request, or None."""

    @abstractmethod
    def create_merge(self, merge, title, body):
        """Create a merge request and return its URL."""

    @abstractmethod
    def search_repos(self, query):
        """Return full names of repositories matching ``query``."""

    @abstractmethod
    def get_action(self, opts):
        """Return the Action for the target, or None."""

    @abstractmethod
    def logs_job(self, owner, name, job_id, dst):
        """Write the logs of a job to the binary stream ``dst``."""

    @abstractmethod
    def get_job(self, owner, name, job_id):
        """Return the ActionJob with the given id."""