"""
Solution session that keeps a title display in sync with the current branch.

The session owns at most one source control watcher, bound to the open
solution. Opening a different solution replaces the watcher (the old one
is disposed first); closing the solution disposes it and restores the
original title.
"""

import logging
import threading
from typing import Callable, Optional

from ..config import WatchConfig
from .source_control_watcher import SourceControlWatcher
from .title_formatter import TitleFormatter
from .watcher_factory import WatcherFactory

logger = logging.getLogger(__name__)

WatcherFactoryCallable = Callable[
    [Optional[str], Optional[WatchConfig]], Optional[SourceControlWatcher]
]


class SolutionSession:
    """Binds a watcher's branch name to a title sink."""

    def __init__(
        self,
        title_sink: Callable[[str], None],
        original_title: str = "",
        formatter: Optional[TitleFormatter] = None,
        watcher_factory: Optional[WatcherFactoryCallable] = None,
        config: Optional[WatchConfig] = None,
    ):
        """Initialize solution session.

        Args:
            title_sink: Receives every new title
            original_title: Title to decorate with the branch name
            formatter: Title formatter, defaults to "<branch> - <title>"
            watcher_factory: Creates a watcher for a solution file path
            config: Watch settings handed to the watcher factory
        """
        self.title_sink = title_sink
        self.original_title = original_title
        self.formatter = formatter or TitleFormatter()
        self.watcher_factory = watcher_factory or WatcherFactory.create
        self.config = config
        self.branch_name: Optional[str] = None

        self._watcher: Optional[SourceControlWatcher] = None
        self._lock = threading.RLock()

    @property
    def watcher(self) -> Optional[SourceControlWatcher]:
        return self._watcher

    @property
    def current_title(self) -> str:
        return self.formatter.format(self.original_title, self.branch_name)

    def solution_opened(self, solution_file_path: Optional[str]) -> None:
        """Handle a solution being opened (or re-reported as loaded)."""
        if not solution_file_path:
            self.solution_closed()
            return

        old_watcher = None
        with self._lock:
            solution_directory = WatcherFactory.solution_directory(solution_file_path)
            if self._watcher is not None and not _same_directory(
                self._watcher.solution_directory, solution_directory
            ):
                logger.info(f"Solution changed to {solution_directory}, replacing watcher")
                old_watcher = self._detach_watcher()

        # the old watcher goes away before the new one is created
        self._dispose_watcher(old_watcher)

        with self._lock:
            if self._watcher is None:
                self._attach_watcher(
                    self.watcher_factory(solution_file_path, self.config)
                )

            # no watcher most likely means no supported source control here
            self.branch_name = self._watcher.branch_name if self._watcher else None
            self._update_title()

    def solution_closed(self) -> None:
        """Handle the solution being closed: no solution, no source control."""
        with self._lock:
            old_watcher = self._detach_watcher()
            self.branch_name = None
            self._update_title()
        self._dispose_watcher(old_watcher)

    def dispose(self) -> None:
        with self._lock:
            old_watcher = self._detach_watcher()
        self._dispose_watcher(old_watcher)

    def _attach_watcher(self, watcher: Optional[SourceControlWatcher]) -> None:
        self._watcher = watcher
        if watcher is not None:
            watcher.subscribe(self._on_branch_name_changed)

    def _detach_watcher(self) -> Optional[SourceControlWatcher]:
        old_watcher = self._watcher
        self._watcher = None
        if old_watcher is not None:
            old_watcher.unsubscribe(self._on_branch_name_changed)
        return old_watcher

    @staticmethod
    def _dispose_watcher(watcher: Optional[SourceControlWatcher]) -> None:
        # must run outside self._lock, see _on_branch_name_changed
        if watcher is not None:
            watcher.dispose()

    def _on_branch_name_changed(self, watcher: SourceControlWatcher) -> None:
        with self._lock:
            if watcher is not self._watcher:
                return
            self.branch_name = watcher.branch_name
            self._update_title()

    def _update_title(self) -> None:
        title = self.current_title
        logger.debug(f"Updating title: {title}")
        self.title_sink(title)


def _same_directory(left, right) -> bool:
    return str(left).lower() == str(right).lower()
