"""
Pytest fixtures for the git-backed content pipeline integration tests.

Provides shared test fixtures for:
- A fresh local git repository per test (no network access required)
- Content server configuration scoped to the repository's content/ directory
- GitContentService and a FastAPI TestClient bound to that repository

All fixtures use REAL git operations - NO Python mocks for git commands.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from git_content_server.server.app import create_app
from git_content_server.server.services.content_service import GitContentService
from git_content_server.server.services.git_gateway import GitRepositoryGateway
from git_content_server.server.utils.config_manager import ContentServerConfig

logger = logging.getLogger(__name__)

TEST_USER_NAME = "Test User"
TEST_USER_EMAIL = "test@example.com"


def _git(repo_path: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=repo_path, check=True, capture_output=True)


@pytest.fixture(autouse=True)
def require_git():
    if shutil.which("git") is None:
        pytest.skip("git executable not available")


@pytest.fixture(scope="function")
def local_test_repo(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Create a local test repository with one initial commit.

    Layout:
        README.md
        content/index.md
        content/docs/a.md

    Yields:
        Path to the repository root
    """
    repo_path = tmp_path / "site"
    repo_path.mkdir(parents=True)

    _git(repo_path, "init")
    _git(repo_path, "config", "user.email", TEST_USER_EMAIL)
    _git(repo_path, "config", "user.name", TEST_USER_NAME)
    _git(repo_path, "config", "commit.gpgsign", "false")

    (repo_path / "README.md").write_text("# Test Site\n")
    (repo_path / "content" / "docs").mkdir(parents=True)
    (repo_path / "content" / "index.md").write_text("# Home\n")
    (repo_path / "content" / "docs" / "a.md").write_text("original a\n")

    _git(repo_path, "add", ".")
    _git(repo_path, "commit", "-m", "Initial commit")
    _git(repo_path, "branch", "-M", "main")

    logger.info(f"Created local test repository at {repo_path}")
    yield repo_path


@pytest.fixture
def content_root(local_test_repo: Path) -> Path:
    return local_test_repo / "content"


@pytest.fixture
def content_config(local_test_repo: Path) -> ContentServerConfig:
    return ContentServerConfig(
        repo_path=str(local_test_repo),
        content_path="content",
        default_commit_message="Update from content editor",
    )


@pytest.fixture
def gateway(local_test_repo: Path) -> GitRepositoryGateway:
    return GitRepositoryGateway(local_test_repo, timeout=30)


@pytest.fixture
def service(content_config: ContentServerConfig) -> GitContentService:
    service = GitContentService(content_config)
    service.prepare()
    return service


@pytest.fixture
def client(content_config: ContentServerConfig) -> TestClient:
    """Create TestClient for making HTTP requests."""
    return TestClient(create_app(content_config))
