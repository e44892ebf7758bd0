# roxapi

`roxapi` is a library for working with repositories hosted on GitHub. It
puts the GitHub REST API behind a general `Provider` interface, defined in
`roxapi.provider`. With it you can:

* list and search repositories
* look up a repository's default branch and fork source
* find or open pull requests
* check CI/CD workflow runs and jobs, and download job logs

Two optional layers can wrap any `Provider`:

* **`roxapi.alias.Alias`** maps short owner and repository names to the real
  ones. Listings come back under the short names.
* **`roxapi.cache.Cache`** stores repository listings, lookups and search
  results on disk for a set number of hours. A file lock keeps the cache to
  one user at a time.

The package also has a concurrent batch runner (`roxapi.batch`) that shows
progress in the terminal, and a helper that works out version strings from
the state of a Git checkout (`roxapi.version`).

## GitHub

```python
from roxapi.github import GitHub

github = GitHub(token="token", per_page=100, timeout=20)
print(github.info())            # "GitHub API 2022-11-28, with auth, ping ok"
print(github.list_repos("octo-org"))
print(github.search_repos("widgets"))

repo = github.get_repo("octo-org", "widgets")
print(repo.default_branch, repo.web_url, repo.upstream)

print(github.get_latest_tag("octo-org", "widgets"))
```

`GitHub.from_remote(remote)` builds a client from a
`roxapi.provider.RemoteConfig`. It takes the remote's `token`, its
`list_limit` as the page size and its `api_timeout`.

Failed requests raise `roxapi.provider.ProviderError`. So do API error
responses and responses that cannot be decoded.

## Pull requests

```python
from roxapi.provider import MergeOptions

merge = MergeOptions(owner="octo-org", name="widgets", upstream=None,
                     source="feature", target="main")
url = github.get_merge(merge)
if url is None:
    url = github.create_merge(merge, "Add feature", "Details of the change")
print(url)
print(merge.pretty_display())
```

If `upstream` is an `ApiUpstream`, the pull request is opened against the
fork source, with `owner:source` as the head branch.

## CI/CD

```python
import sys
from roxapi.provider import ActionOptions, ActionTarget

action = github.get_action(
    ActionOptions(owner="octo-org", name="widgets", target=ActionTarget.branch("main"))
)
if action is not None:
    print(action)
    for run in action.runs:
        for job in run.jobs:
            print(run.name, job.name, job.status, job.status.is_completed())
    github.logs_job("octo-org", "widgets", action.runs[0].jobs[0].id, sys.stdout.buffer)
```

You can also build the target with `ActionTarget.commit(sha)`.
`get_action` follows the head commit of the first workflow run and keeps
only runs for that same commit. The runs are sorted by name.

## Aliases and caching

```python
import time
from roxapi.alias import Alias
from roxapi.cache import Cache

with Cache(github, "/tmp/roxapi-cache", expire_hours=24, force=False, now=int(time.time())) as cached:
    provider = Alias(cached, {"me": "octo-org"}, {"octo-org": {"w": "widgets"}})
    print(provider.list_repos("me"))   # "widgets" is reported as "w"
```

`Cache` caches `list_repos`, `get_repo` and `search_repos`. Every other
call goes straight to the wrapped provider. Each cache file holds the time
it was written, followed by the data as JSON. An entry older than
`expire_hours` is deleted when it is next read. With `force=True` the
cache is not read and is refreshed from the wrapped provider instead.

If another process holds the lock, or a file cannot be read or written,
`roxapi.cache.CacheError` is raised.

## Batch runner

```python
from roxapi.batch import Task, run, must_run, is_ok

class Fetch(Task):
    def __init__(self, name):
        self.name = name

    def run(self):
        return github.get_repo("octo-org", self.name).default_branch

tasks = [(name, Fetch(name)) for name in ["widgets", "gadgets"]]
results = run("Fetch", tasks, True)   # in task order; a failed task gives its exception
print(is_ok(results))
branches = must_run("Fetch", tasks)   # raises BatchError if any task fails
```

A task can be a `Task` or any callable that takes no arguments.

The runner starts one worker thread per CPU core. On stderr it draws a
progress bar that fits the terminal width. When every task is done it
prints a summary with the elapsed time. If `show_fail` is true, the
summary also lists the error message of each failed task.

`format_elapsed` and `render_bar` are available on their own.

## Version information

`roxapi.version.compute_version(pkg_version, describe, short_sha, uncommitted)`
returns a `(version, build_type)` pair. The build type is one of "stable",
"alpha", "beta", "pre-release", "dev" or "dev-uncommitted".

`roxapi.version.build_info(pkg_version)` runs `git` in the current
directory to get these inputs. It returns a `BuildInfo` holding the
version, build type, commit SHA and platform.

## Terminal styling

`roxapi.style` provides three helpers:

* `style` wraps text in ANSI colour, bold and underline codes.
* `strip_ansi` removes those codes.
* `measure_width` returns how many terminal cells the text takes up.

## What this package does not do

* **Only GitHub is supported.** `ProviderType.GITLAB` exists in
  `roxapi.provider`, but the package has no provider that talks to GitLab.
* **Nothing assembles providers from a `RemoteConfig`.** The fields
  `cache_hours`, `owner_alias` and `repo_alias` are not used to build a
  provider for you. Wrap a `GitHub` client in `Cache` and `Alias` yourself,
  as shown above.
* **There is no command-line program.** `roxapi` is a library only.