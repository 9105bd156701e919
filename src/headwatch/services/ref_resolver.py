"""
Git reference resolution from on-disk repository metadata.

Reads HEAD, packed-refs and the loose refs/ tree directly (no git
subprocess) and turns the current checkout into a short display name:
the branch name for a symbolic HEAD, a bracketed ref name for a detached
HEAD that some ref points at, or a bracketed short hash otherwise.
"""

import logging
import os
import re
import time
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

HASH_LENGTH = 40
SHORT_HASH_LENGTH = 10

# refspec for a local or remote branch; anything under refs/ counts
SYMBOLIC_REF_PATTERN = re.compile(r"refs/(?:heads/|remotes/)?(?P<name>.+)$", re.DOTALL)

# packed-refs preference order; unlisted namespaces rank last
PACKED_REF_PRIORITY = ("refs/heads/", "refs/remotes/", "refs/tags/")


def find_repository_root(start_directory: Optional[PathLike]) -> Optional[Path]:
    """Find the .git directory for start_directory or any of its parents.

    Args:
        start_directory: Directory to start searching from

    Returns:
        Path to the .git directory containing HEAD, or None if not found
    """
    if not start_directory:
        return None

    directory = Path(start_directory).absolute()
    if not directory.is_dir():
        return None

    for candidate in [directory] + list(directory.parents):
        try:
            # every .git directory has a HEAD
            if (candidate / ".git" / "HEAD").is_file():
                return candidate / ".git"
        except (PermissionError, OSError) as e:
            logger.debug(f"Skipping {candidate} during repository discovery: {e}")
            continue

    return None


def read_git_file(
    path: PathLike, retries: int = 5, retry_delay: float = 0.01
) -> Optional[str]:
    """Read and trim a git metadata file, retrying while git rewrites it.

    Returns:
        Trimmed file content, or None if every attempt failed
    """
    for attempt in range(retries):
        try:
            return Path(path).read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Read attempt {attempt + 1} of {path} failed: {e}")
            if attempt + 1 < retries:
                time.sleep(retry_delay)

    logger.warning(f"Giving up reading {path} after {retries} attempts")
    return None


def parse_packed_refs(content: str) -> Iterator[Tuple[str, str]]:
    """Yield (hash, ref_path) pairs from packed-refs content.

    Comments, peeled tag lines and anything too short to hold a hash,
    a space and a ref name are skipped.
    """
    for line in content.splitlines():
        if not line.strip():
            continue
        if line[0] in ("^", "#"):
            continue
        if len(line) <= HASH_LENGTH + 2 or " " not in line:
            continue

        commit_hash, ref_path = line.split(" ", 1)
        yield commit_hash, ref_path


def _packed_ref_rank(ref_path: str) -> Tuple[int, int]:
    for rank, prefix in enumerate(PACKED_REF_PRIORITY):
        if ref_path.startswith(prefix):
            return rank, len(ref_path)
    return len(PACKED_REF_PRIORITY), len(ref_path)


def pick_packed_ref(candidates: Iterable[str]) -> str:
    """Pick the preferred ref: heads, then remotes, then tags; shortest first.

    Ties keep the first candidate encountered.
    """
    # min() returns the first minimal element, which gives the stable tie-break
    return min(candidates, key=_packed_ref_rank)


def format_packed_ref(ref_path: str) -> str:
    name = ref_path[len("refs/"):] if ref_path.startswith("refs/") else ref_path
    if name.startswith("heads/"):
        return name[len("heads/"):]

    # not a local branch, so HEAD is detached at this ref
    if name.startswith("remotes/"):
        name = name[len("remotes/"):]
    return f"({name})"


def format_loose_ref(relative_path: str) -> str:
    refspec = relative_path.replace("\\", "/").lstrip("/")
    # drop the heads/ and remotes/ namespaces, keep the remote name and tags/
    if refspec.startswith("heads/"):
        refspec = refspec[len("heads/"):]
    if refspec.startswith("remotes/"):
        refspec = refspec[len("remotes/"):]
    return f"({refspec})"


def format_short_hash(head: str) -> str:
    return f"({head[:SHORT_HASH_LENGTH]}...)"


def _resolve_packed_ref(git_dir: Path, head: str) -> Optional[str]:
    packed_refs_file = git_dir / "packed-refs"
    if not packed_refs_file.is_file():
        return None

    try:
        content = packed_refs_file.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug(f"Could not read {packed_refs_file}: {e}")
        return None

    matching_refs: List[str] = [
        ref_path
        for commit_hash, ref_path in parse_packed_refs(content)
        if commit_hash == head
    ]
    if not matching_refs:
        return None

    return format_packed_ref(pick_packed_ref(matching_refs))


def _resolve_loose_ref(
    git_dir: Path, head: str, retries: int, retry_delay: float
) -> Optional[str]:
    refs_dir = git_dir / "refs"
    if not refs_dir.is_dir():
        return None

    for root, _dirs, files in os.walk(refs_dir):
        for file_name in files:
            ref_file = Path(root) / file_name
            ref_hash = read_git_file(ref_file, retries=retries, retry_delay=retry_delay)
            if ref_hash is not None and ref_hash.lower() == head.lower():
                return format_loose_ref(ref_file.relative_to(refs_dir).as_posix())

    return None


def resolve_display_name(
    git_dir: PathLike, retries: int = 5, retry_delay: float = 0.01
) -> Optional[str]:
    """Resolve the current checkout of a repository to a display name.

    Args:
        git_dir: The .git directory (as returned by find_repository_root)
        retries: Attempts at reading HEAD before giving up
        retry_delay: Seconds to sleep between attempts

    Returns:
        Branch name, "(ref)" for a detached ref, "(0123456789...)" for an
        unknown commit, or None if HEAD could not be read
    """
    git_dir = Path(git_dir)
    head = read_git_file(git_dir / "HEAD", retries=retries, retry_delay=retry_delay)
    if head is None:
        return None

    match = SYMBOLIC_REF_PATTERN.search(head)
    if match:
        return match.group("name")

    if len(head) == HASH_LENGTH:
        # packed-refs first when present, loose refs last
        display_name = _resolve_packed_ref(git_dir, head)
        if display_name is None:
            display_name = _resolve_loose_ref(git_dir, head, retries, retry_delay)
        if display_name is not None:
            return display_name

    return format_short_hash(head)
