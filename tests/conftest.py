"""
Shared pytest fixtures for headwatch tests.

Provides on-disk .git layouts built by hand (HEAD, packed-refs, loose
refs) so resolution can be tested without a git binary.
"""

import time
from pathlib import Path
from typing import Callable

import pytest



class GitDirBuilder:
    """Writes git metadata files into a working tree's .git directory."""

    def __init__(self, work_tree: Path):
        self.work_tree = work_tree
        self.git_dir = work_tree / ".git"
        (self.git_dir / "refs" / "heads").mkdir(parents=True, exist_ok=True)
        (self.git_dir / "refs" / "tags").mkdir(parents=True, exist_ok=True)

    def set_head(self, content: str) -> "GitDirBuilder":
        (self.git_dir / "HEAD").write_text(content)
        return self

    def checkout_branch(self, branch: str) -> "GitDirBuilder":
        return self.set_head(f"ref: refs/heads/{branch}\n")

    def detach(self, commit_hash: str) -> "GitDirBuilder":
        return self.set_head(f"{commit_hash}\n")

    def add_loose_ref(self, ref_path: str, commit_hash: str) -> "GitDirBuilder":
        ref_file = self.git_dir / ref_path
        ref_file.parent.mkdir(parents=True, exist_ok=True)
        ref_file.write_text(f"{commit_hash}\n")
        return self

    def write_packed_refs(self, *lines: str) -> "GitDirBuilder":
        content = "# pack-refs with: peeled fully-peeled sorted \n"
        content += "\n".join(lines) + "\n"
        (self.git_dir / "packed-refs").write_text(content)
        return self


@pytest.fixture
def git_repo(tmp_path) -> GitDirBuilder:
    """A working tree with a .git directory on branch main."""
    work_tree = tmp_path / "repo"
    work_tree.mkdir()
    return GitDirBuilder(work_tree).checkout_branch("main")


def _wait_for(
    condition: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02
) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(interval)
    return condition()


@pytest.fixture
def wait_for() -> Callable[..., bool]:
    """Poll a condition until it holds or the timeout expires."""
    return _wait_for
