"""Git repository abstraction.

This module provides the Repository class for the git operations the
pipeline needs: reading commit history and tags of the project checkout,
tagging a release, and clone/commit/push of downstream repositories.
All operations return Result types.

Usage:
    repo = Repository(Path("/path/to/checkout"))

    match repo.log_since("v1.4.7"):
        case Ok(commits):
            for commit in commits:
                print(commit.sha, commit.message.splitlines()[0])
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from shipline.core.result import Err, Ok, Result
from shipline.platform.process import ProcessError
from shipline.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"clone", "fetch", "pull", "push", "ls-remote"})

# ASCII unit/record separators never appear in commit messages.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"

__all__ = [
    "GitError",
    "GitIdentity",
    "LogEntry",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class GitIdentity:
    """Committer identity applied per command, never written to git config."""

    name: str
    email: str

    def as_args(self) -> list[str]:
        return ["-c", f"user.name={self.name}", "-c", f"user.email={self.email}"]


@dataclass(frozen=True, slots=True)
class LogEntry:
    """A raw commit from `git log`: full sha and full message."""

    sha: str
    message: str


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    @classmethod
    def clone(
        cls,
        url: str,
        dest: Path,
        *,
        branch: str,
        depth: int | None = 1,
    ) -> Result[Repository, GitError]:
        """Clone a single branch of url into dest (which must not exist yet)."""
        args = ["clone", "--branch", branch, "--single-branch"]
        if depth is not None:
            args.extend(["--depth", str(depth)])
        args.extend([url, str(dest)])

        dest.parent.mkdir(parents=True, exist_ok=True)
        result = run_process(
            ["git", *args],
            cwd=dest.parent,
            timeout=_GIT_NETWORK_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return Err(_git_error("clone", result.error, "clone failed"))
        return Ok(cls(dest))

    def tags_merged(self, pattern: str = "v*") -> Result[list[str], GitError]:
        """List tags matching pattern that are reachable from HEAD."""
        result = self._run(["tag", "--list", pattern, "--merged", "HEAD"])
        match result:
            case Err(e):
                return Err(_git_error("tag", e, "cannot list tags"))
            case Ok(stdout):
                return Ok([ln.strip() for ln in stdout.splitlines() if ln.strip()])

    def log_since(self, since: str | None) -> Result[list[LogEntry], GitError]:
        """Commits in `since..HEAD`, oldest first (whole history if since is None)."""
        rev = f"{since}..HEAD" if since else "HEAD"
        fmt = f"--format=%H{_FIELD_SEP}%B{_RECORD_SEP}"
        result = self._run(["log", "--reverse", "--no-color", fmt, rev])
        match result:
            case Err(e):
                return Err(_git_error("log", e, f"cannot read history for {rev}"))
            case Ok(stdout):
                return Ok(_parse_log(stdout))

    def tag_exists(self, tag: str) -> bool:
        result = self._run(["rev-parse", "-q", "--verify", f"refs/tags/{tag}"])
        return isinstance(result, Ok)

    def remote_tag_exists(self, tag: str, remote: str = "origin") -> Result[bool, GitError]:
        result = self._run(["ls-remote", "--tags", remote, f"refs/tags/{tag}"])
        match result:
            case Err(e):
                return Err(_git_error("ls-remote", e, f"cannot query tags on {remote}"))
            case Ok(stdout):
                return Ok(bool(stdout.strip()))

    def create_tag(self, tag: str, ref: str = "HEAD") -> Result[None, GitError]:
        result = self._run(["tag", tag, ref])
        if isinstance(result, Err):
            return Err(_git_error("tag", result.error, f"cannot create tag {tag}"))
        return Ok(None)

    def changed_paths(self, *paths: str) -> Result[list[str], GitError]:
        """Paths (limited to `paths` when given) that differ from HEAD."""
        args = ["status", "--porcelain"]
        if paths:
            args.extend(["--", *paths])
        result = self._run(args)
        match result:
            case Err(e):
                return Err(_git_error("status", e, "git status failed"))
            case Ok(stdout):
                return Ok([ln[3:] for ln in stdout.splitlines() if len(ln) > 3])

    def add(self, *paths: str) -> Result[None, GitError]:
        result = self._run(["add", "--", *paths])
        if isinstance(result, Err):
            return Err(_git_error("add", result.error, "git add failed"))
        return Ok(None)

    def commit(self, message: str, *, identity: GitIdentity | None = None) -> Result[None, GitError]:
        prefix = identity.as_args() if identity else []
        result = self._run(["commit", "-m", message], prefix=prefix)
        if isinstance(result, Err):
            return Err(_git_error("commit", result.error, "git commit failed"))
        return Ok(None)

    def push(self, refspec: str, remote: str = "origin") -> Result[None, GitError]:
        result = self._run(["push", remote, refspec])
        if isinstance(result, Err):
            return Err(_git_error("push", result.error, f"git push {refspec} failed"))
        return Ok(None)

    def _run(self, args: list[str], *, prefix: list[str] | None = None) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        cmd = ["git", "-C", str(self.path), *(prefix or []), *args]
        return run_process(cmd, cwd=self.path, timeout=timeout)


def _git_error(command: str, error: ProcessError, fallback: str) -> GitError:
    return GitError(
        command=command,
        message=error.stderr.strip() or error.stdout.strip() or fallback,
        returncode=error.returncode,
    )


def _parse_log(output: str) -> list[LogEntry]:
    entries: list[LogEntry] = []
    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record.strip():
            continue
        sha, _, message = record.partition(_FIELD_SEP)
        sha = sha.strip()
        if not sha:
            continue
        entries.append(LogEntry(sha=sha, message=message.strip()))
    return entries
