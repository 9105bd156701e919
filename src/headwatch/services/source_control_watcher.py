"""
Source control watcher base class.

A watcher tracks the branch name of the repository a solution lives in
and notifies subscribers when it changes. Subclasses supply validity and
release their own resources in _dispose().
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

BranchNameCallback = Callable[["SourceControlWatcher"], None]


class SourceControlWatcher(ABC):
    """Base class holding branch-name state and subscriber notification."""

    def __init__(self, solution_directory: Path):
        self.solution_directory = solution_directory
        self._branch_name: Optional[str] = None
        self._subscribers: List[BranchNameCallback] = []
        self._state_lock = threading.Lock()
        self._disposed = False

    @property
    @abstractmethod
    def is_valid(self) -> bool:
        """Whether this watcher recognises the solution directory."""
        pass

    @property
    def branch_name(self) -> Optional[str]:
        return self._branch_name

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def subscribe(self, callback: BranchNameCallback) -> None:
        """Register callback for branch name changes."""
        with self._state_lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: BranchNameCallback) -> None:
        with self._state_lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def update_branch_name(self, new_branch_name: Optional[str]) -> bool:
        """Store a new branch name and notify subscribers if it changed.

        Returns:
            True if the name changed and subscribers were notified
        """
        with self._state_lock:
            if self._branch_name == new_branch_name:
                return False
            old_branch_name = self._branch_name
            self._branch_name = new_branch_name
            subscribers = list(self._subscribers)

        logger.info(f"Branch name changed: {old_branch_name} → {new_branch_name}")

        for callback in subscribers:
            try:
                callback(self)
            except Exception as e:
                logger.warning(f"Branch name callback failed: {e}")

        return True

    def _dispose(self) -> None:
        """Release watcher-specific resources. Called once."""

    def dispose(self) -> None:
        """Stop watching and drop subscribers. Safe to call repeatedly."""
        with self._state_lock:
            if self._disposed:
                return
            self._disposed = True

        self._dispose()

        with self._state_lock:
            self._subscribers.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
