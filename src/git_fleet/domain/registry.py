"""Repository registry and group resolution in the domain layer."""

from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .errors import GroupNotFoundError, NoTargetsError, RepositoryNotFoundError
from .models import Group, Repository


class RepositoryRegistry:
    """Read-only lookup of repository paths and group members.

    Insertion order of both mappings is kept; it is the order used when
    every repository is targeted.
    """

    def __init__(
        self,
        repositories: Mapping[str, str],
        groups: Mapping[str, Sequence[str]],
    ):
        self._paths: Dict[str, str] = dict(repositories)
        self._groups: Dict[str, Group] = {
            name: Group(name=name, repositories=tuple(members))
            for name, members in groups.items()
        }

    @property
    def repository_names(self) -> List[str]:
        return list(self._paths)

    @property
    def group_names(self) -> List[str]:
        return list(self._groups)

    def has_group(self, name: str) -> bool:
        return name in self._groups

    def has_repository(self, name: str) -> bool:
        return name in self._paths

    def group(self, name: str) -> Group:
        try:
            return self._groups[name]
        except KeyError:
            raise GroupNotFoundError(name) from None

    def group_members(self, name: str) -> List[str]:
        return list(self.group(name).repositories)

    def repository_path(self, name: str) -> str:
        try:
            return self._paths[name]
        except KeyError:
            raise RepositoryNotFoundError(name) from None

    def repository(self, name: str) -> Repository:
        """Build a fresh, not yet probed Repository entity."""
        return Repository(name=name, path=self.repository_path(name))

    def dangling_members(self) -> List[Tuple[str, str]]:
        """Return ``(group, repo)`` pairs naming repositories that do not exist."""
        return [
            (group.name, repo_name)
            for group in self._groups.values()
            for repo_name in group.repositories
            if not self.has_repository(repo_name)
        ]


def dedupe_preserving_order(names: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for name in names:
        if name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


def resolve_targets(registry: RepositoryRegistry, group_names: Sequence[str]) -> List[Repository]:
    """Expand group names into the deduplicated target list.

    Members are taken in request order, then member order; the first
    occurrence of a repository wins. Any unknown group or member aborts the
    whole resolution.
    """
    if not group_names:
        raise NoTargetsError()

    member_names: List[str] = []
    for group_name in group_names:
        for repo_name in registry.group_members(group_name):
            if not registry.has_repository(repo_name):
                raise RepositoryNotFoundError(repo_name, group_name)
            member_names.append(repo_name)

    targets = [registry.repository(name) for name in dedupe_preserving_order(member_names)]
    if not targets:
        raise NoTargetsError(dedupe_preserving_order(group_names))
    return targets


def resolve_all(registry: RepositoryRegistry) -> List[Repository]:
    """Target every configured repository in registry order."""
    targets = [registry.repository(name) for name in registry.repository_names]
    if not targets:
        raise NoTargetsError()
    return targets


__all__ = [
    "RepositoryRegistry",
    "dedupe_preserving_order",
    "resolve_targets",
    "resolve_all",
]
