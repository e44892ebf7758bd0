import struct

import pytest

from roxapi.cache import Cache, CacheError
from roxapi.provider import (
    ApiRepo,
    ApiUpstream,
    MergeOptions,
    Provider,
    ProviderError,
)

NOW = 1_700_000_000


class StaticProvider(Provider):
    def __init__(self, repos):
        self.repos = {owner: list(names) for owner, names in repos.items()}
        self.merges = set()
        self.calls = 0

    @classmethod
    def mock(cls):
        return cls(
            {
                "octo": ["toolbox", "spacenvim", "dotfiles", "octo"],
                "kubernetes": ["kubernetes", "kube-proxy", "kubelet", "kubectl"],
            }
        )

    def info(self):
        raise ProviderError("no info")

    def list_repos(self, owner):
        self.calls += 1
        if owner not in self.repos:
            raise ProviderError(f"could not find owner {owner}")
        return list(self.repos[owner])

    def get_repo(self, owner, name):
        self.calls += 1
        if name not in self.repos.get(owner, []):
            raise ProviderError(f"could not find repo {name} under {owner}")
        upstream = ApiUpstream("upstream", name, "master") if name == "toolbox" else None
        return ApiRepo(default_branch="main", upstream=upstream, web_url="")

    def get_merge(self, merge):
        return str(merge) if str(merge) in self.merges else None

    def create_merge(self, merge, title, body):
        self.merges.add(str(merge))
        return str(merge)

    def search_repos(self, query):
        self.calls += 1
        return [f"{owner}/{name}" for owner, names in self.repos.items() for name in names if query in name]

    def get_action(self, opts):
        return None

    def logs_job(self, owner, name, job_id, dst):
        dst.write(b"logs")

    def get_job(self, owner, name, job_id):
        raise ProviderError("no job")


def test_cache_normal(tmp_path):
    upstream = StaticProvider.mock()
    expect_repos = upstream.list_repos("octo")
    with Cache(upstream, tmp_path / "cache", 24, force=True, now=NOW) as cache:
        assert cache.list_repos("octo") == expect_repos

        cache.upstream = StaticProvider({"octo": ["hello0", "hello1", "hello2"]})
        cache.force = False

        assert cache.list_repos("octo") == expect_repos


def test_cache_expire(tmp_path):
    upstream = StaticProvider.mock()
    expect_repos = upstream.list_repos("kubernetes")
    with Cache(upstream, tmp_path / "cache", 24, force=True, now=NOW) as cache:
        cache.expire = 100
        assert cache.list_repos("kubernetes") == expect_repos

        cache.now = NOW + 200
        new_repos = ["hello0", "hello1", "hello2"]
        cache.upstream = StaticProvider({"kubernetes": new_repos})
        cache.force = False

        assert cache.list_repos("kubernetes") == new_repos


def test_cache_file_starts_with_timestamp(tmp_path):
    with Cache(StaticProvider.mock(), tmp_path, 1, now=NOW) as cache:
        cache.list_repos("octo")
    data = (tmp_path / "list.octo").read_bytes()
    assert struct.unpack("<Q", data[:8])[0] == NOW


def test_cached_value_served_without_upstream_call(tmp_path):
    upstream = StaticProvider.mock()
    with Cache(upstream, tmp_path, 1, now=NOW) as cache:
        first = cache.list_repos("octo")
        second = cache.list_repos("octo")
    assert first == second
    assert upstream.calls == 1


def test_get_repo_round_trip(tmp_path):
    upstream = StaticProvider.mock()
    expected = upstream.get_repo("octo", "toolbox")
    with Cache(upstream, tmp_path, 1, now=NOW) as cache:
        assert cache.get_repo("octo", "toolbox") == expected
        cache.upstream = StaticProvider({})
        assert cache.get_repo("octo", "toolbox") == expected


def test_get_repo_without_upstream_round_trip(tmp_path):
    upstream = StaticProvider.mock()
    with Cache(upstream, tmp_path, 1, now=NOW) as cache:
        cache.get_repo("kubernetes", "kubelet")
        cache.upstream = StaticProvider({})
        repo = cache.get_repo("kubernetes", "kubelet")
    assert repo.upstream is None
    assert repo.default_branch == "main"


def test_search_repos_cached(tmp_path):
    upstream = StaticProvider.mock()
    expected = upstream.search_repos("kube")
    with Cache(upstream, tmp_path, 1, now=NOW) as cache:
        assert cache.search_repos("kube") == expected
        cache.upstream = StaticProvider({})
        assert cache.search_repos("kube") == expected


def test_slash_in_owner_goes_to_dotted_file(tmp_path):
    upstream = StaticProvider({"group/sub": ["a"]})
    with Cache(upstream, tmp_path, 1, now=NOW) as cache:
        assert cache.list_repos("group/sub") == ["a"]
    assert (tmp_path / "list.group.sub").exists()


def test_expired_file_is_removed_and_refreshed(tmp_path):
    with Cache(StaticProvider.mock(), tmp_path, 1, now=NOW) as cache:
        cache.list_repos("octo")
        cache.now = NOW + 3600
        cache.upstream = StaticProvider({"octo": ["x"]})
        assert cache.list_repos("octo") == ["x"]
    data = (tmp_path / "list.octo").read_bytes()
    assert struct.unpack("<Q", data[:8])[0] == NOW + 3600


def test_corrupted_short_file(tmp_path):
    (tmp_path / "list.octo").write_bytes(b"abc")
    with Cache(StaticProvider.mock(), tmp_path, 1, now=NOW) as cache:
        with pytest.raises(CacheError, match="corrupted"):
            cache.list_repos("octo")


def test_corrupted_payload(tmp_path):
    (tmp_path / "list.octo").write_bytes(struct.pack("<Q", NOW) + b"{not json")
    with Cache(StaticProvider.mock(), tmp_path, 1, now=NOW) as cache:
        with pytest.raises(CacheError, match="decode"):
            cache.list_repos("octo")


def test_force_ignores_corrupted_file(tmp_path):
    (tmp_path / "list.octo").write_bytes(b"abc")
    upstream = StaticProvider.mock()
    with Cache(upstream, tmp_path, 1, force=True, now=NOW) as cache:
        assert cache.list_repos("octo") == upstream.repos["octo"]


def test_upstream_error_propagates_and_nothing_written(tmp_path):
    with Cache(StaticProvider.mock(), tmp_path, 1, now=NOW) as cache:
        with pytest.raises(ProviderError, match="could not find owner"):
            cache.list_repos("nobody")
    assert not (tmp_path / "list.nobody").exists()


def test_merges_pass_through(tmp_path):
    merge = MergeOptions("octo", "toolbox", None, "test", "main")
    with Cache(StaticProvider.mock(), tmp_path, 1, now=NOW) as cache:
        assert cache.get_merge(merge) is None
        assert cache.create_merge(merge, "", "") == "octo/toolbox"
        assert cache.get_merge(merge) == "octo/toolbox"


def test_close_releases_lock(tmp_path):
    cache = Cache(StaticProvider.mock(), tmp_path, 1, now=NOW)
    cache.close()
    with Cache(StaticProvider.mock(), tmp_path, 1, now=NOW) as other:
        assert other.list_repos("kubernetes")[0] == "kubernetes"