"""Factory for creating source control watchers for a solution."""

import logging
import os
from pathlib import Path
from typing import Callable, NamedTuple, Optional, Sequence

from ..config import WatchConfig
from .git_watcher import GitWatcher, is_git_directory
from .source_control_watcher import SourceControlWatcher

logger = logging.getLogger(__name__)


class WatcherProvider(NamedTuple):
    """A source control backend: a validity probe and a watcher constructor."""

    name: str
    probe: Callable[[Path], bool]
    create: Callable[[Path, Optional[WatchConfig]], SourceControlWatcher]


# Probed in order; the first provider accepting the directory wins.
WATCHER_PROVIDERS: Sequence[WatcherProvider] = (
    WatcherProvider(name="git", probe=is_git_directory, create=GitWatcher),
)


class WatcherFactory:
    """Factory for creating source control watchers."""

    @staticmethod
    def solution_directory(solution_file_path: str) -> Path:
        """Absolute directory holding a solution file."""
        return Path(os.path.abspath(os.path.dirname(solution_file_path)))

    @staticmethod
    def create(
        solution_file_path: Optional[str],
        config: Optional[WatchConfig] = None,
        providers: Optional[Sequence[WatcherProvider]] = None,
    ) -> Optional[SourceControlWatcher]:
        """Create a watcher for the repository containing a solution file.

        Args:
            solution_file_path: Path to the solution file
            config: Watch settings passed to the created watcher
            providers: Providers to probe, defaults to WATCHER_PROVIDERS

        Returns:
            The first valid watcher, or None when no provider recognises
            the solution directory
        """
        if not solution_file_path:
            return None

        solution_directory = WatcherFactory.solution_directory(solution_file_path)
        if not solution_directory.is_dir():
            return None

        if providers is None:
            providers = WATCHER_PROVIDERS

        for provider in providers:
            if not provider.probe(solution_directory):
                continue

            watcher = provider.create(solution_directory, config)
            if watcher.is_valid:
                logger.info(f"Using {provider.name} watcher for {solution_directory}")
                return watcher
            watcher.dispose()

        logger.debug(f"No source control watcher for {solution_directory}")
        return None
