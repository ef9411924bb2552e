"""
End-to-end tests of the content pipeline over HTTP and the CLI, backed by
a real git repository.
"""

import json
import threading
from pathlib import Path

from click.testing import CliRunner

from git_content_server.cli import cli

from .git_helpers import (
    commit_count,
    head_author,
    head_files,
    head_message,
    install_failing_pre_commit_hook,
    run_git,
    staged_files,
    status_porcelain,
)


class TestDeleteScenario:
    def test_delete_removes_file_and_commits(self, client, local_test_repo, content_root):
        response = client.delete("/docs/a.md")

        assert response.status_code == 200
        assert response.json() == {"status": "success"}
        assert not (content_root / "docs" / "a.md").exists()
        assert commit_count(local_test_repo) == 2
        assert "delete docs/a.md" in head_message(local_test_repo)
        assert head_files(local_test_repo) == ["content/docs/a.md"]
        assert status_porcelain(local_test_repo) == ""

    def test_delete_with_author(self, client, local_test_repo):
        response = client.request(
            "DELETE", "/docs/a.md", json={"name": "Jo Editor", "email": "jo@example.com"}
        )

        assert response.status_code == 200
        assert head_author(local_test_repo) == "Jo Editor <jo@example.com>"

    def test_delete_missing_creates_no_commit(self, client, local_test_repo):
        response = client.delete("/docs/missing.md")

        assert response.status_code == 404
        assert commit_count(local_test_repo) == 1

    def test_delete_uncommitted_file_leaves_tree_dirty(self, client, local_test_repo, content_root):
        """The filesystem delete is not rolled back when the commit fails."""
        draft = content_root / "draft.md"
        draft.write_text("never committed\n")

        response = client.delete("/draft.md")

        assert response.status_code == 500
        assert response.json()["status"] == "error"
        assert not draft.exists()
        assert commit_count(local_test_repo) == 1


class TestCreateAndCommitScenario:
    def test_put_writes_without_commit(self, client, local_test_repo, content_root):
        response = client.put("/docs/b.md", json={"content": "hello"})

        assert response.status_code == 200
        assert response.json() == {"content": "hello"}
        assert (content_root / "docs" / "b.md").read_text() == "hello"
        assert commit_count(local_test_repo) == 1

    def test_put_then_commit_new_file(self, client, local_test_repo):
        client.put("/docs/b.md", json={"content": "hello"})

        response = client.post("/commit", json={"files": ["docs/b.md"], "message": "add b"})

        assert response.status_code == 200
        assert response.json()["commit"] == run_git(local_test_repo, "rev-parse", "HEAD")
        assert head_message(local_test_repo) == "add b"
        assert head_files(local_test_repo) == ["content/docs/b.md"]

    def test_commit_modified_file(self, client, local_test_repo, content_root):
        (content_root / "docs" / "a.md").write_text("edited a\n")

        response = client.post("/commit", json={"files": ["docs/a.md"], "message": "edit"})

        assert response.status_code == 200
        assert response.json()["status"] == "success"
        assert commit_count(local_test_repo) == 2
        assert head_message(local_test_repo) == "edit"
        assert head_author(local_test_repo) == "Test User <test@example.com>"

    def test_commit_several_files_is_one_commit(self, client, local_test_repo, content_root):
        (content_root / "docs" / "a.md").write_text("edited a\n")
        (content_root / "index.md").write_text("edited index\n")

        response = client.post(
            "/commit", json={"files": ["docs/a.md", "index.md"], "message": "both"}
        )

        assert response.status_code == 200
        assert commit_count(local_test_repo) == 2
        assert sorted(head_files(local_test_repo)) == ["content/docs/a.md", "content/index.md"]

    def test_commit_default_message(self, client, local_test_repo, content_root):
        (content_root / "docs" / "a.md").write_text("edited a\n")

        client.post("/commit", json={"files": ["docs/a.md"]})

        assert head_message(local_test_repo) == "Update from content editor"

    def test_commit_unchanged_file_is_412(self, client, local_test_repo):
        response = client.post("/commit", json={"files": ["docs/a.md"], "message": "noop"})

        assert response.status_code == 412
        assert response.json()["status"] == "failure"
        assert commit_count(local_test_repo) == 1

    def test_commit_unknown_file_is_412(self, client, local_test_repo):
        response = client.post("/commit", json={"files": ["docs/ghost.md"], "message": "ghost"})

        assert response.status_code == 412
        assert commit_count(local_test_repo) == 1


class TestRefusedCommitScenario:
    """A refused commit must not leave staged changes for a later commit to pick up."""

    def test_failed_commit_leaves_index_clean(self, client, local_test_repo, content_root):
        hook = install_failing_pre_commit_hook(local_test_repo)
        (content_root / "index.md").write_text("rejected edit\n")

        response = client.post("/commit", json={"files": ["index.md"], "message": "rejected"})

        assert response.status_code == 412
        assert commit_count(local_test_repo) == 1
        assert staged_files(local_test_repo) == []
        assert (content_root / "index.md").read_text() == "rejected edit\n"

        hook.unlink()
        response = client.delete("/docs/a.md")

        assert response.status_code == 200
        assert commit_count(local_test_repo) == 2
        assert head_files(local_test_repo) == ["content/docs/a.md"]
        assert status_porcelain(local_test_repo) == "M content/index.md"

    def test_invalid_author_stages_nothing(self, client, local_test_repo, content_root):
        (content_root / "index.md").write_text("edited index\n")

        response = client.post(
            "/commit",
            json={"files": ["index.md"], "name": "Jo", "email": "jo<x>@example.com"},
        )

        assert response.status_code == 412
        assert commit_count(local_test_repo) == 1
        assert staged_files(local_test_repo) == []

        client.delete("/docs/a.md")

        assert head_files(local_test_repo) == ["content/docs/a.md"]

    def test_name_without_email_commits_with_configured_identity(
        self, client, local_test_repo, content_root
    ):
        (content_root / "index.md").write_text("edited index\n")

        response = client.post("/commit", json={"files": ["index.md"], "name": "Alice"})

        assert response.status_code == 200
        assert commit_count(local_test_repo) == 2
        assert head_author(local_test_repo) == "Test User <test@example.com>"
        assert staged_files(local_test_repo) == []

    def test_email_without_name_uses_email_as_name(self, client, local_test_repo, content_root):
        (content_root / "index.md").write_text("edited index\n")

        response = client.post(
            "/commit", json={"files": ["index.md"], "email": "alice@example.com"}
        )

        assert response.status_code == 200
        assert head_author(local_test_repo) == "alice@example.com <alice@example.com>"

    def test_commit_ignores_unrelated_staged_change(self, client, local_test_repo, content_root):
        (content_root / "index.md").write_text("staged elsewhere\n")
        run_git(local_test_repo, "add", "content/index.md")
        (content_root / "docs" / "a.md").write_text("edited a\n")

        response = client.post("/commit", json={"files": ["docs/a.md"], "message": "edit a"})

        assert response.status_code == 200
        assert head_files(local_test_repo) == ["content/docs/a.md"]
        assert staged_files(local_test_repo) == ["content/index.md"]


class TestResetScenario:
    def test_reset_round_trip(self, client, local_test_repo, content_root):
        client.put("/docs/a.md", json={"content": "scratch"})

        response = client.post("/reset", json={"files": ["docs/a.md"]})

        assert response.status_code == 200
        assert (content_root / "docs" / "a.md").read_text() == "original a\n"
        assert status_porcelain(local_test_repo) == ""

    def test_reset_only_discards_first_file(self, client, content_root):
        client.put("/docs/a.md", json={"content": "scratch a"})
        client.put("/index.md", json={"content": "scratch index"})

        response = client.post("/reset", json={"files": ["docs/a.md", "index.md"]})

        assert response.status_code == 200
        assert response.json()["ignored"] == ["index.md"]
        assert (content_root / "docs" / "a.md").read_text() == "original a\n"
        assert (content_root / "index.md").read_text() == "scratch index"

    def test_reset_all_discards_every_file(self, client, local_test_repo, content_root):
        client.put("/docs/a.md", json={"content": "scratch a"})
        client.put("/index.md", json={"content": "scratch index"})

        response = client.post("/reset-all", json={"files": ["docs/a.md", "index.md"]})

        assert response.status_code == 200
        assert (content_root / "index.md").read_text() == "# Home\n"
        assert status_porcelain(local_test_repo) == ""

    def test_reset_restores_deleted_uncommitted(self, client, content_root):
        (content_root / "docs" / "a.md").unlink()

        response = client.post("/reset", json={"files": ["docs/a.md"]})

        assert response.status_code == 200
        assert (content_root / "docs" / "a.md").read_text() == "original a\n"

    def test_reset_untracked_is_412(self, client):
        client.put("/docs/new.md", json={"content": "new"})

        response = client.post("/reset", json={"files": ["docs/new.md"]})

        assert response.status_code == 412


class TestShowScenario:
    def test_show_ignores_uncommitted_changes(self, client, content_root):
        client.put("/docs/a.md", json={"content": "scratch"})

        response = client.get("/show/docs/a.md")

        assert response.status_code == 200
        assert response.json() == {
            "fileRelativePath": "docs/a.md",
            "content": "original a\n",
            "status": "success",
        }

    def test_show_after_commit(self, client):
        client.put("/docs/a.md", json={"content": "v2"})
        client.post("/commit", json={"files": ["docs/a.md"], "message": "v2"})

        assert client.get("/show/docs/a.md").json()["content"] == "v2"

    def test_show_missing_is_501(self, client):
        response = client.get("/show/missing.md")

        assert response.status_code == 501
        assert response.json()["status"] == "failure"
        assert "not found" in response.json()["message"].lower()

    def test_show_uncommitted_file_is_501(self, client):
        client.put("/draft.md", json={"content": "draft"})

        assert client.get("/show/draft.md").status_code == 501


class TestUploadScenario:
    def test_upload_then_commit(self, client, local_test_repo, content_root):
        response = client.post(
            "/upload",
            files={"file": ("logo.png", b"\x89PNG\r\n", "image/png")},
            data={"directory": "assets"},
        )

        assert response.status_code == 200
        assert response.json()["relocated"] is True
        assert (content_root / "assets" / "logo.png").read_bytes() == b"\x89PNG\r\n"
        assert commit_count(local_test_repo) == 1

        commit = client.post("/commit", json={"files": ["assets/logo.png"], "message": "logo"})

        assert commit.status_code == 200
        assert head_files(local_test_repo) == ["content/assets/logo.png"]


class TestConcurrentCommits:
    def test_parallel_commits_each_land(self, service, local_test_repo, content_root):
        """Stage+commit sequences on one gateway never interleave."""
        names = [f"page{i}.md" for i in range(5)]
        for name in names:
            (content_root / name).write_text(f"{name}\n")

        errors = []

        def commit_one(name: str):
            try:
                service.commit([name], message=f"add {name}")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=commit_one, args=(name,)) for name in names]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert commit_count(local_test_repo) == 1 + len(names)
        log = run_git(local_test_repo, "log", "--format=%s", "-n", str(len(names)))
        assert sorted(log.splitlines()) == sorted(f"add {name}" for name in names)


class TestCliShow:
    def _write_config(self, tmp_path: Path, repo: Path) -> Path:
        config_dir = tmp_path / "server"
        config_dir.mkdir()
        (config_dir / "config.json").write_text(
            json.dumps({"repo_path": str(repo), "content_path": "content"})
        )
        return config_dir

    def test_show_prints_committed_content(self, tmp_path, local_test_repo, monkeypatch):
        monkeypatch.delenv("GIT_CONTENT_REPO_PATH", raising=False)
        monkeypatch.delenv("GIT_CONTENT_CONTENT_PATH", raising=False)
        config_dir = self._write_config(tmp_path, local_test_repo)
        (local_test_repo / "content" / "docs" / "a.md").write_text("uncommitted\n")

        result = CliRunner().invoke(cli, ["show", "--config-dir", str(config_dir), "docs/a.md"])

        assert result.exit_code == 0, result.output
        assert result.output == "original a\n"

    def test_show_missing_exits_nonzero(self, tmp_path, local_test_repo, monkeypatch):
        monkeypatch.delenv("GIT_CONTENT_REPO_PATH", raising=False)
        monkeypatch.delenv("GIT_CONTENT_CONTENT_PATH", raising=False)
        config_dir = self._write_config(tmp_path, local_test_repo)

        result = CliRunner().invoke(cli, ["show", "--config-dir", str(config_dir), "missing.md"])

        assert result.exit_code == 1
        assert "Not found" in result.output
