"""Failure log for a watched repository.

Failures on a watcher's worker thread are appended as JSON lines to
<git_dir>/headwatch-errors.log, next to the HEAD file being followed,
together with the watcher state at the time of the failure.
"""

import json
import logging
import threading
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "headwatch-errors.log"


class WatchFailureLog:
    """Append-only record of worker failures for one .git directory."""

    def __init__(self, git_dir: Union[str, Path]):
        self.git_dir = Path(git_dir)
        self.log_file_path = self.git_dir / LOG_FILE_NAME
        self._write_lock = threading.Lock()

    def record(
        self,
        exception: BaseException,
        branch_name: Optional[str] = None,
        observer_resets: int = 0,
        sync_count: int = 0,
    ) -> Dict[str, Any]:
        """Append a failure with the watcher state it happened in.

        Returns:
            The entry that was written (or would have been, if the log is
            not writable)
        """
        entry = {
            "timestamp": datetime.now().isoformat(),
            "thread": threading.current_thread().name,
            "git_dir": str(self.git_dir),
            "branch_name": branch_name,
            "observer_resets": observer_resets,
            "sync_count": sync_count,
            "exception_type": type(exception).__name__,
            "exception_message": str(exception),
            "stack_trace": "".join(
                traceback.format_exception(
                    type(exception), exception, exception.__traceback__
                )
            ),
        }

        try:
            with self._write_lock:
                with open(self.log_file_path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(entry) + "\n")
        except OSError as e:
            logger.warning(f"Could not write failure log {self.log_file_path}: {e}")

        return entry

