"""Branch resolution, watching and title services."""

from .git_watcher import GitWatcher
from .ref_resolver import find_repository_root, resolve_display_name
from .solution_session import SolutionSession
from .watcher_factory import WatcherFactory

__all__ = [
    "GitWatcher",
    "find_repository_root",
    "resolve_display_name",
    "SolutionSession",
    "WatcherFactory",
]
