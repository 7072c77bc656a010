from pathlib import Path
import sys

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for path in (SRC, ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))


@pytest.fixture(autouse=True)
def _reset_verbose():
    from git_fleet.infra.logger import set_verbose

    set_verbose(False)
    yield
    set_verbose(False)


@pytest.fixture
def make_repo(tmp_path):
    """Create a directory that looks like a git checkout and return a Repository for it."""
    from git_fleet.domain.models import Repository

    def _make(name: str) -> Repository:
        repo_dir = tmp_path / name
        (repo_dir / ".git").mkdir(parents=True)
        return Repository(name=name, path=str(repo_dir))

    return _make


@pytest.fixture
def write_config(tmp_path):
    """Write a configuration document and return its path."""
    import json

    def _write(document, name: str = ".gfconfig.json") -> Path:
        config_path = tmp_path / name
        config_path.write_text(json.dumps(document), encoding="utf-8")
        return config_path

    return _write
