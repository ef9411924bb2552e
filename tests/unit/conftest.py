"""
Shared fixtures for unit tests.

Provides an in-memory RepositoryGateway so pipeline components can be
tested without a git repository.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from git_content_server.server.services.exceptions import (
    ContentNotFoundError,
    RepositoryError,
)
from git_content_server.server.services.git_gateway import RepositoryGateway


class FakeGateway(RepositoryGateway):
    """
    In-memory gateway.

    committed maps absolute paths to their HEAD content; checkout writes
    that content back to disk.
    """

    def __init__(self, committed: Optional[Dict[Path, bytes]] = None):
        super().__init__()
        self.committed: Dict[Path, bytes] = dict(committed or {})
        self.staged: List[Path] = []
        self.commits: List[Tuple[str, Optional[str], Optional[str], List[Path]]] = []
        self.checked_out: List[List[Path]] = []
        self.fail_stage = False
        self.fail_commit = False
        self.fail_unstage = False

    def stage(self, paths: Sequence[Path]) -> None:
        if self.fail_stage:
            raise RepositoryError("index.lock exists")
        self.staged.extend(Path(p) for p in paths)

    def unstage(self, paths: Sequence[Path]) -> None:
        if self.fail_unstage:
            raise RepositoryError("index.lock exists")
        remove = {Path(p) for p in paths}
        self.staged = [p for p in self.staged if p not in remove]

    def commit(
        self,
        message: str,
        author_name: Optional[str] = None,
        author_email: Optional[str] = None,
        paths: Optional[Sequence[Path]] = None,
    ) -> str:
        if self.fail_commit:
            raise RepositoryError("commit rejected")
        selected = [Path(p) for p in paths] if paths else list(self.staged)
        committed = [p for p in self.staged if p in selected]
        if not committed:
            raise RepositoryError("Nothing staged to commit")
        self.commits.append((message, author_name, author_email, committed))
        self.staged = [p for p in self.staged if p not in committed]
        return self.head_commit()

    def checkout(self, paths: Sequence[Path]) -> None:
        paths = [Path(p) for p in paths]
        for path in paths:
            if path not in self.committed:
                raise RepositoryError(f"pathspec '{path}' did not match any file(s) known to git")
        for path in paths:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(self.committed[path])
        self.checked_out.append(paths)

    def read_blob(self, path: Path) -> bytes:
        if Path(path) not in self.committed:
            raise ContentNotFoundError(f"File not found at HEAD: {path}")
        return self.committed[Path(path)]

    def head_commit(self) -> Optional[str]:
        if not self.commits:
            return None
        return f"{len(self.commits):040x}"


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """Content root directory inside a (non-git) repository directory."""
    root = tmp_path / "repo" / "content"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def gateway_factory():
    """Build a FakeGateway with pre-committed content."""
    return FakeGateway
