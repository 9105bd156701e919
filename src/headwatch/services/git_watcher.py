"""
Git branch watcher that follows HEAD through filesystem notifications.

A watchdog observer watches the .git directory for changes to HEAD and
raises a single pending "re-check" flag. One worker thread consumes the
flag and re-resolves the branch name, so bursts of writes collapse into
as few passes as needed and late passes never overwrite newer ones.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..config import WatchConfig
from ..utils.watch_failure_log import WatchFailureLog
from .ref_resolver import find_repository_root, resolve_display_name
from .source_control_watcher import SourceControlWatcher

logger = logging.getLogger(__name__)

HEAD_FILE_NAME = "HEAD"


def is_git_directory(solution_directory: Union[str, Path]) -> bool:
    """Check whether a solution directory lives inside a git repository."""
    return find_repository_root(solution_directory) is not None


class HeadEventHandler(FileSystemEventHandler):
    """Forwards changes to the HEAD file, ignoring every other file."""

    def __init__(self, on_head_changed: Callable[[], None]):
        super().__init__()
        self.on_head_changed = on_head_changed

    def on_created(self, event: FileSystemEvent):
        self._dispatch_path(event, event.src_path)

    def on_modified(self, event: FileSystemEvent):
        self._dispatch_path(event, event.src_path)

    def on_moved(self, event: FileSystemEvent):
        # git writes HEAD.lock and renames it over HEAD
        self._dispatch_path(event, event.dest_path)

    def _dispatch_path(self, event: FileSystemEvent, path) -> None:
        if event.is_directory:
            return
        if isinstance(path, bytes):
            path = path.decode("utf-8", errors="replace")
        if Path(path).name == HEAD_FILE_NAME:
            self.on_head_changed()


class GitWatcher(SourceControlWatcher):
    """Tracks the display name of a git repository's current checkout."""

    def __init__(
        self,
        solution_directory: Union[str, Path],
        config: Optional[WatchConfig] = None,
    ):
        """Initialize git watcher.

        Args:
            solution_directory: Directory inside the repository to watch
            config: Watch settings, defaults to WatchConfig()
        """
        super().__init__(Path(solution_directory))
        self.config = config or WatchConfig()
        self.git_dir: Optional[Path] = find_repository_root(solution_directory)
        self._valid = self.git_dir is not None and self.git_dir.is_dir()
        self.failure_log: Optional[WatchFailureLog] = (
            WatchFailureLog(self.git_dir) if self._valid else None
        )

        self.observer: Optional[Any] = None
        self._observer_lock = threading.RLock()
        self._sync_lock = threading.Lock()

        # single-slot pending signal consumed by the worker thread
        self._signal = threading.Condition()
        self._head_changed = False
        self._stop_requested = False
        self.worker_thread: Optional[threading.Thread] = None

        # Statistics
        self.sync_count = 0
        self.observer_resets = 0
        self.failure_count = 0

        if not self._valid:
            logger.debug(f"No git repository found for {solution_directory}")
            return

        self._reset_observer()
        self.sync_branch_name()

        self.worker_thread = threading.Thread(
            target=self._monitor_head_changes,
            name=f"GitWatcher-{self.git_dir}",
            daemon=True,
        )
        self.worker_thread.start()
        logger.info(f"Watching {self.git_dir / HEAD_FILE_NAME} (branch: {self.branch_name})")

    @property
    def is_valid(self) -> bool:
        return self._valid

    def notify_head_changed(self) -> None:
        """Schedule a re-check of HEAD; pending requests collapse into one."""
        with self._signal:
            self._head_changed = True
            self._signal.notify()
        logger.debug(f"HEAD change signalled for {self.git_dir}")

    def handle_watch_error(self, error: Optional[BaseException] = None) -> None:
        """Rebuild the filesystem watch after it failed and re-check HEAD.

        A change may have been missed while the watch was broken, so a
        re-check is always scheduled.
        """
        logger.warning(f"Filesystem watch for {self.git_dir} failed, rebuilding: {error}")
        self._reset_observer()
        self.notify_head_changed()

    def sync_branch_name(self) -> Optional[str]:
        """Resolve HEAD now and publish the result if it changed."""
        with self._sync_lock:
            if self.git_dir is None or self.is_disposed:
                return self.branch_name

            self.sync_count += 1
            display_name = resolve_display_name(
                self.git_dir,
                retries=self.config.read_retries,
                retry_delay=self.config.read_retry_delay,
            )
            if display_name is None:
                # unreadable HEAD counts as no change
                return self.branch_name

            self.update_branch_name(display_name)
            return display_name

    def _monitor_head_changes(self) -> None:
        """Worker loop: wait for a signal, re-check, repeat until disposed."""
        while True:
            with self._signal:
                while not self._head_changed and not self._stop_requested:
                    if not self._signal.wait(timeout=self.config.health_check_interval):
                        break
                if self._stop_requested:
                    return
                pending = self._head_changed
                self._head_changed = False

            try:
                if pending:
                    self.sync_branch_name()
                elif not self._observer_healthy():
                    self.handle_watch_error(
                        RuntimeError("filesystem observer stopped unexpectedly")
                    )
            except Exception as e:
                logger.error(f"Error in HEAD monitoring loop: {e}")
                self._record_failure(e)

    def _record_failure(self, error: Exception) -> None:
        if self.failure_log is not None:
            self.failure_log.record(
                error,
                branch_name=self.branch_name,
                observer_resets=self.observer_resets,
                sync_count=self.sync_count,
            )
        self.failure_count += 1

    def _observer_healthy(self) -> bool:
        with self._observer_lock:
            if self.is_disposed:
                return True
            observer = self.observer
            if observer is None or not observer.is_alive():
                return False
            return all(emitter.is_alive() for emitter in observer.emitters)

    def _reset_observer(self) -> None:
        """Tear down the current observer, if any, and start a fresh one."""
        with self._observer_lock:
            if self.is_disposed or self.git_dir is None:
                return

            old_observer = self.observer
            self.observer = None
            if old_observer is not None:
                self._stop_observer(old_observer)
                self.observer_resets += 1

            observer = Observer()
            observer.schedule(
                HeadEventHandler(self.notify_head_changed),
                str(self.git_dir),
                recursive=False,
            )
            try:
                observer.start()
            except OSError as e:
                # retried by the health check on the next interval
                logger.warning(f"Could not start filesystem observer for {self.git_dir}: {e}")
                return

            self.observer = observer
            logger.debug(f"Filesystem observer started for {self.git_dir}")

    def _stop_observer(self, observer) -> None:
        try:
            observer.unschedule_all()
            observer.stop()
            if observer.is_alive() and observer is not threading.current_thread():
                observer.join(timeout=self.config.observer_stop_timeout)
        except Exception as e:
            logger.warning(f"Failed to stop filesystem observer cleanly: {e}")

    def _dispose(self) -> None:
        with self._signal:
            self._stop_requested = True
            self._signal.notify_all()

        with self._observer_lock:
            if self.observer is not None:
                self._stop_observer(self.observer)
                self.observer = None

        worker = self.worker_thread
        if (
            worker is not None
            and worker.is_alive()
            and worker is not threading.current_thread()
        ):
            worker.join(timeout=self.config.observer_stop_timeout)

        logger.info(f"Stopped watching {self.git_dir}")

    def is_watching(self) -> bool:
        """Check if the worker thread is alive and running."""
        return self.worker_thread is not None and self.worker_thread.is_alive()

    def get_stats(self) -> Dict[str, Any]:
        """Get watcher statistics."""
        return {
            "git_dir": str(self.git_dir) if self.git_dir else None,
            "branch_name": self.branch_name,
            "sync_count": self.sync_count,
            "observer_resets": self.observer_resets,
            "failure_count": self.failure_count,
            "watching": self.is_watching(),
        }
