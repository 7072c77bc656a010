"""Load the repository registry from its JSON configuration document."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..domain.errors import ConfigFileError
from ..domain.registry import RepositoryRegistry
from ..infra.logger import log_debug, log_warning
from ..infra.paths import expand_path, get_default_config_path


def resolve_config_path(config_file: Optional[Union[str, Path]] = None) -> Path:
    """Return the explicit path if given, else the default location."""
    if config_file:
        return Path(expand_path(str(config_file)))
    return get_default_config_path()


def read_config_document(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        raise ConfigFileError(f"configuration file does not exist: {config_path}")
    if not config_path.is_file():
        raise ConfigFileError(f"not a regular file: {config_path}")

    try:
        # utf-8-sig also accepts files without a BOM
        text = config_path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigFileError(f"failed to read configuration file {config_path}: {exc}") from exc

    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigFileError(f"failed to parse configuration file {config_path}: {exc}") from exc

    if not isinstance(document, dict):
        raise ConfigFileError(f"configuration root must be an object: {config_path}")
    return document


def parse_registry(document: Dict[str, Any]) -> RepositoryRegistry:
    """Build a registry from an already decoded configuration document."""
    raw_repos = document.get("repositories") or {}
    raw_groups = document.get("groups") or {}
    if not isinstance(raw_repos, dict):
        raise ConfigFileError("'repositories' must be an object of name -> {path}")
    if not isinstance(raw_groups, dict):
        raise ConfigFileError("'groups' must be an object of name -> [repository, ...]")

    repositories: Dict[str, str] = {}
    for name, entry in raw_repos.items():
        if isinstance(entry, dict):
            raw_path = entry.get("path")
        else:
            raw_path = entry
        if not isinstance(raw_path, str) or not raw_path.strip():
            raise ConfigFileError(f"repository '{name}' has no path")
        repositories[name] = expand_path(raw_path.strip())

    groups: Dict[str, List[str]] = {}
    for name, members in raw_groups.items():
        if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
            raise ConfigFileError(f"group '{name}' must be a list of repository names")
        groups[name] = list(members)

    return RepositoryRegistry(repositories, groups)


def validate_registry(registry: RepositoryRegistry) -> List[str]:
    """Return human-readable warnings; none of them are fatal."""
    warnings = [
        f"group '{group}' references non-existent repository '{repo}'"
        for group, repo in registry.dangling_members()
    ]
    for name in registry.repository_names:
        if not Path(registry.repository_path(name)).is_absolute():
            warnings.append(f"repository '{name}' path is not absolute: {registry.repository_path(name)}")
    return warnings


def load_registry(config_file: Optional[Union[str, Path]] = None) -> RepositoryRegistry:
    """Read, parse and sanity-check the configuration file."""
    config_path = resolve_config_path(config_file)
    log_debug(f"loading configuration: {config_path}")

    registry = parse_registry(read_config_document(config_path))
    for warning in validate_registry(registry):
        log_warning(warning)

    log_debug(
        f"configuration loaded: {len(registry.repository_names)} repositories, "
        f"{len(registry.group_names)} groups"
    )
    return registry


__all__ = [
    "resolve_config_path",
    "read_config_document",
    "parse_registry",
    "validate_registry",
    "load_registry",
]
