"""Tests for shipline.git.repository module."""

from __future__ import annotations

from pathlib import Path

from shipline.core.result import Err, Ok
from shipline.git.repository import GitIdentity, Repository, _parse_log
from shipline.test._gitutil import commit_file, git, init_remote_repo, init_repo, requires_git


class TestParseLog:
    def test_multiline_messages(self) -> None:
        output = "aaa\x1ffeat: one\n\nbody line\n\x1e\nbbb\x1ffix: two\n\x1e\n"

        entries = _parse_log(output)

        assert [e.sha for e in entries] == ["aaa", "bbb"]
        assert entries[0].message == "feat: one\n\nbody line"
        assert entries[1].message == "fix: two"

    def test_empty(self) -> None:
        assert _parse_log("") == []


def test_identity_args() -> None:
    identity = GitIdentity(name="Bot", email="bot@example.com")
    assert identity.as_args() == ["-c", "user.name=Bot", "-c", "user.email=bot@example.com"]


@requires_git
class TestHistory:
    def test_log_since_is_oldest_first(self, tmp_path: Path) -> None:
        repo_dir = init_repo(tmp_path / "repo")
        commit_file(repo_dir, "a.txt", "a", "chore: init")
        git(repo_dir, "tag", "v1.0.0")
        first = commit_file(repo_dir, "b.txt", "b", "feat: add b")
        second = commit_file(repo_dir, "c.txt", "c", "fix: fix c\n\nBREAKING CHANGE: gone")

        result = Repository(repo_dir).log_since("v1.0.0")

        assert isinstance(result, Ok)
        assert [e.sha for e in result.value] == [first, second]
        assert result.value[1].message == "fix: fix c\n\nBREAKING CHANGE: gone"

    def test_log_without_tag_reads_whole_history(self, tmp_path: Path) -> None:
        repo_dir = init_repo(tmp_path / "repo")
        commit_file(repo_dir, "a.txt", "a", "one")
        commit_file(repo_dir, "b.txt", "b", "two")

        result = Repository(repo_dir).log_since(None)

        assert isinstance(result, Ok)
        assert [e.message for e in result.value] == ["one", "two"]

    def test_tags_merged_only_reachable(self, tmp_path: Path) -> None:
        repo_dir = init_repo(tmp_path / "repo")
        commit_file(repo_dir, "a.txt", "a", "one")
        git(repo_dir, "tag", "v1.0.0")
        git(repo_dir, "checkout", "-b", "side")
        commit_file(repo_dir, "b.txt", "b", "two")
        git(repo_dir, "tag", "v2.0.0")
        git(repo_dir, "checkout", "main")

        result = Repository(repo_dir).tags_merged("v*")

        assert result == Ok(["v1.0.0"])

    def test_create_tag(self, tmp_path: Path) -> None:
        repo_dir = init_repo(tmp_path / "repo")
        commit_file(repo_dir, "a.txt", "a", "one")
        repo = Repository(repo_dir)

        assert not repo.tag_exists("v1.0.0")
        assert repo.create_tag("v1.0.0") == Ok(None)
        assert repo.tag_exists("v1.0.0")

    def test_not_a_repository(self, tmp_path: Path) -> None:
        repo = Repository(tmp_path)

        assert isinstance(repo.tags_merged("v*"), Err)
        assert isinstance(repo.log_since(None), Err)


@requires_git
class TestRemote:
    def test_clone_commit_push(self, tmp_path: Path) -> None:
        url, _seed = init_remote_repo(tmp_path, "tap", {"Formula/tool.rb": "old\n"})

        cloned = Repository.clone(url, tmp_path / "work" / "tap", branch="main")
        assert isinstance(cloned, Ok)
        repo = cloned.value

        assert repo.changed_paths("Formula/tool.rb") == Ok([])
        (repo.path / "Formula" / "tool.rb").write_text("new\n", encoding="utf-8")
        assert repo.changed_paths("Formula/tool.rb") == Ok(["Formula/tool.rb"])

        identity = GitIdentity(name="Bot", email="bot@example.com")
        assert repo.add("Formula/tool.rb") == Ok(None)
        assert repo.commit("update", identity=identity) == Ok(None)
        assert repo.push("HEAD:main") == Ok(None)

        author = git(tmp_path / "tap.git", "log", "-1", "--format=%an <%ae>", "main")
        assert author == "Bot <bot@example.com>"

    def test_remote_tag_exists(self, tmp_path: Path) -> None:
        _url, seed = init_remote_repo(tmp_path, "proj", {"README.md": "x\n"})
        repo = Repository(seed)

        assert repo.remote_tag_exists("v1.0.0") == Ok(False)
        git(seed, "tag", "v1.0.0")
        git(seed, "push", "origin", "refs/tags/v1.0.0")
        assert repo.remote_tag_exists("v1.0.0") == Ok(True)

    def test_clone_missing_branch_fails(self, tmp_path: Path) -> None:
        url, _seed = init_remote_repo(tmp_path, "tap", {"a": "a\n"})

        result = Repository.clone(url, tmp_path / "work" / "tap", branch="does-not-exist")

        assert isinstance(result, Err)
        assert result.error.command == "clone"
