"""
Start a project's output without a debugger attached.

Builds the command line from a project's run configuration (an explicit
start program, or the build output path) and starts it as a detached
child process.
"""

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional

logger = logging.getLogger(__name__)


class ProjectLaunchError(Exception):
    """Raised when a project's executable cannot be started."""


class NoProjectSelectedError(ProjectLaunchError):
    """Raised when there is no project (or run configuration) to start."""


@dataclass(frozen=True)
class RunConfig:
    """What to start, with which arguments, from where."""

    executable_path: str
    arguments: str = ""
    working_directory: Optional[str] = None

    @classmethod
    def from_project_properties(
        cls,
        project_properties: Mapping[str, Any],
        configuration_properties: Mapping[str, Any],
    ) -> "RunConfig":
        """Build a run configuration from project and active-configuration properties.

        An external StartProgram takes precedence (common for class
        libraries); otherwise the build output of the active
        configuration is used.
        """
        executable_path = configuration_properties.get("StartProgram") or ""
        if not executable_path.strip():
            executable_path = os.path.join(
                project_properties.get("FullPath") or "",
                configuration_properties.get("OutputPath") or "",
                project_properties.get("OutputFileName") or "",
            )

        working_directory = configuration_properties.get("StartWorkingDirectory") or ""
        if not working_directory.strip():
            working_directory = os.path.dirname(executable_path)

        return cls(
            executable_path=executable_path,
            arguments=configuration_properties.get("StartArguments") or "",
            working_directory=working_directory or None,
        )

    def command_line(self) -> List[str]:
        return [self.executable_path] + shlex.split(self.arguments)


def launch_process(run_config: Optional[RunConfig]) -> subprocess.Popen:
    """Start the configured executable without waiting for it.

    Raises:
        NoProjectSelectedError: If there is no run configuration
        ProjectLaunchError: If the executable does not exist, its arguments
            cannot be parsed, or it fails to start
    """
    if run_config is None:
        raise NoProjectSelectedError(
            "You did not select a project, or something else failed. Sorry about that."
        )

    if not Path(run_config.executable_path).is_file():
        raise ProjectLaunchError(
            "Could not run this project, most likely there were build errors."
        )

    try:
        command = run_config.command_line()
    except ValueError as e:
        raise ProjectLaunchError(
            f"Could not parse arguments {run_config.arguments!r}: {e}"
        ) from e

    logger.info(f"Starting {command} in {run_config.working_directory}")
    try:
        return subprocess.Popen(
            command,
            cwd=run_config.working_directory,
            start_new_session=True,
        )
    except OSError as e:
        raise ProjectLaunchError(f"Could not start {run_config.executable_path}: {e}") from e
