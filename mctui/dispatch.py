from __future__ import annotations

import logging
import os
from pathlib import Path
import subprocess
import sys
from typing import Any, Sequence

from .exceptions import DispatchError
from .models import InstanceRecord

logger = logging.getLogger(__name__)


def default_open_command() -> list[str]:
    if os.name == "nt":
        return ["explorer"]
    if sys.platform == "darwin":
        return ["open"]
    return ["xdg-open"]


def detached_popen_kwargs() -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
        "close_fds": True,
    }
    if os.name == "nt":
        kwargs["creationflags"] = (
            getattr(subprocess, "DETACHED_PROCESS", 0x00000008)
            | getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0x00000200)
        )
    else:
        kwargs["start_new_session"] = True
    return kwargs


class LaunchDispatcher:
    """Starts external commands for an instance without waiting on them.

    Success means the OS accepted the process. Whether the game itself comes
    up is not observable from here.
    """

    def __init__(
        self,
        launch_command: Sequence[str],
        open_command: Sequence[str] | None = None,
    ) -> None:
        self.launch_command = list(launch_command)
        self.open_command = list(open_command) if open_command else default_open_command()

    def launch(self, record: InstanceRecord) -> None:
        self._spawn(self.launch_command, record.id, action="launch")
        logger.info("Dispatched launch of %s (%s)", record.id, record.display_name)

    def open_folder(self, path: str | Path) -> None:
        self._spawn(self.open_command, str(path), action="open folder")
        logger.info("Opened folder %s", path)

    @staticmethod
    def _spawn(command: Sequence[str], argument: str, action: str) -> None:
        if not command:
            raise DispatchError(f"No command configured to {action}.")
        argv = [*command, argument]
        try:
            subprocess.Popen(argv, **detached_popen_kwargs())
        except OSError as exc:
            logger.warning("Could not %s with %s: %s", action, command[0], exc)
            raise DispatchError(f"Could not {action}: {command[0]}: {exc.strerror or exc}") from exc
