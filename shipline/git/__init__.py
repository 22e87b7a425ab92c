"""Git operations module.

Usage:
    from shipline.git import Repository

    repo = Repository(Path("/path/to/checkout"))
    repo.tags_merged("v*")
"""

from .repository import GitError, GitIdentity, LogEntry, Repository

__all__ = [
    "GitError",
    "GitIdentity",
    "LogEntry",
    "Repository",
]
