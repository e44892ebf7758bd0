"""A provider layer that maps repository alias names to real names."""

from __future__ import annotations

import dataclasses

from roxapi.provider import Provider


class Alias(Provider):
    """Wraps a provider, translating owner and repository aliases."""

    def __init__(self, upstream, owner_map, repo_map):
        self._upstream = upstream
        self._owner_map = dict(owner_map)
        self._repo_map = {owner: dict(names) for owner, names in repo_map.items()}
        self._repo_map_revert = {
            owner: {real: raw for raw, real in names.items()}
            for owner, names in self._repo_map.items()
        }

    def _alias_owner(self, raw):
        return self._owner_map.get(raw, raw)

    def _alias_repo(self, owner, name):
        return self._repo_map.get(owner, {}).get(name, name)

    def _raw_repo(self, owner, name):
        return self._repo_map_revert.get(owner, {}).get(name, name)

    def _alias_merge(self, merge):
        owner = self._alias_owner(merge.owner)
        name = self._alias_repo(owner, merge.name)
        return dataclasses.replace(merge, owner=owner, name=name)

    def info(self):
        return self._upstream.info()

    def list_repos(self, owner):
        owner = self._alias_owner(owner)
        return [self._raw_repo(owner, name) for name in self._upstream.list_repos(owner)]

    def get_repo(self, owner, name):
        owner = self._alias_owner(owner)
        return self._upstream.get_repo(owner, self._alias_repo(owner, name))

    def get_merge(self, merge):
        return self._upstream.get_merge(self._alias_merge(merge))

    def create_merge(self, merge, title, body):
        return self._upstream.create_merge(self._alias_merge(merge), title, body)

    def search_repos(self, query):
        return self._upstream.search_repos(query)

    def get_action(self, opts):
        return self._upstream.get_action(opts)

    def logs_job(self, owner, name, job_id, dst):
        return self._upstream.logs_job(owner, name, job_id, dst)

    def get_job(self, owner, name, job_id):
        return self._upstream.get_job(owner, name, job_id)