"""A provider layer that caches listing and lookup results on disk."""

from __future__ import annotations

import json
import struct
import time
from pathlib import Path

from filelock import FileLock, Timeout

from roxapi.provider import ApiRepo, ApiUpstream, Provider, ProviderError

_TIMESTAMP = struct.Struct("<Q")
_MISSING = object()


class CacheError(ProviderError):
    """Raised when the cache cannot be locked, read or written."""


def _repo_to_dict(repo):
    upstream = None
    if repo.upstream is not None:
        upstream = {
            "owner": repo.upstream.owner,
            "name": repo.upstream.name,
            "default_branch": repo.upstream.default_branch,
        }
    return {
        "default_branch": repo.default_branch,
        "upstream": upstream,
        "web_url": repo.web_url,
    }


def _repo_from_dict(data):
    upstream = data["upstream"]
    return ApiRepo(
        default_branch=data["default_branch"],
        upstream=None if upstream is None else ApiUpstream(**upstream),
        web_url=data["web_url"],
    )


class Cache(Provider):
    """Wraps a provider and keeps its results in files under ``cache_dir``.

    Each cache file holds the write time as a little-endian unsigned 64-bit
    integer followed by the JSON-encoded value. Entries older than
    ``expire_hours`` are discarded. With ``force`` set, cached entries are
    ignored and refreshed from the upstream provider.
    """

    def __init__(self, upstream, cache_dir, expire_hours=24, force=False, now=None):
        self.upstream = upstream
        self.dir = Path(cache_dir)
        self.expire = int(expire_hours) * 3600
        self.force = force
        self.now = int(time.time()) if now is None else int(now)

        try:
            self.dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheError(f"create cache dir {self.dir}: {exc}") from exc
        self._lock = FileLock(str(self.dir / ".lock"))
        try:
            self._lock.acquire(timeout=0)
        except Timeout:
            raise CacheError(
                f"cache {self.dir} is locked by another process"
            ) from None

    def close(self):
        """Release the cache lock."""
        if self._lock.is_locked:
            self._lock.release()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
        return False

    def _list_repos_path(self, owner):
        return self.dir / f"list.{owner.replace('/', '.')}"

    def _get_repo_path(self, owner, name):
        return self.dir / f"repo.{owner.replace('/', '.')}.{name.replace('/', '.')}"

    def _search_repo_path(self, query):
        return self.dir / f"search.{query.replace('/', '.')}"

    def _read(self, path):
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return _MISSING
        except OSError as exc:
            raise CacheError(f"read cache file {path}: {exc}") from exc

        if len(data) < _TIMESTAMP.size:
            raise CacheError(f"corrupted cache data in {path}")
        (update_time,) = _TIMESTAMP.unpack_from(data)
        if self.now >= update_time + self.expire:
            try:
                path.unlink()
            except OSError as exc:
                raise CacheError(f"remove cache file {path}: {exc}") from exc
            return _MISSING

        try:
            return json.loads(data[_TIMESTAMP.size:].decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise CacheError(f"decode cache data: {exc}") from exc

    def _write(self, path, value):
        payload = json.dumps(value).encode("utf-8")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(_TIMESTAMP.pack(self.now) + payload)
        except OSError as exc:
            raise CacheError(f"write cache file {path}: {exc}") from exc

    def _cached(self, path, fetch, decode=list, encode=list):
        if not self.force:
            data = self._read(path)
            if data is not _MISSING:
                try:
                    return decode(data)
                except (KeyError, TypeError, ValueError) as exc:
                    raise CacheError(f"decode cache data: {exc}") from exc
        value = fetch()
        self._write(path, encode(value))
        return value

    def info(self):
        return self.upstream.info()

    def list_repos(self, owner):
        return self._cached(
            self._list_repos_path(owner), lambda: self.upstream.list_repos(owner)
        )

    def get_repo(self, owner, name):
        return self._cached(
            self._get_repo_path(owner, name),
            lambda: self.upstream.get_repo(owner, name),
            decode=_repo_from_dict,
            encode=_repo_to_dict,
        )

    def get_merge(self, merge):
        return self.upstream.get_merge(merge)

    def create_merge(self, merge, title, body):
        return self.upstream.create_merge(merge, title, body)

    def search_repos(self, query):
        return self._cached(
            self._search_repo_path(query), lambda: self.upstream.search_repos(query)
        )

    def get_action(self, opts):
        return self.upstream.get_action(opts)

    def logs_job(self, owner, name, job_id, dst):
        return self.upstream.logs_job(owner, name, job_id, dst)

    def get_job(self, owner, name, job_id):
        return self.upstream.get_job(owner, name, job_id)