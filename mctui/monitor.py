from __future__ import annotations

import logging
import os
from typing import Iterable, Sequence

import psutil

from .models import InstanceRecord

logger = logging.getLogger(__name__)

LAUNCH_FLAGS = ("--launch", "-l")


class ProcessMonitor:
    """Answers whether instances are running by reading the live process list.

    Nothing is cached: every call walks ``psutil.process_iter`` again so a
    closed game disappears from the list on the next frame.
    """

    def is_running(self, record: InstanceRecord) -> bool:
        return record.id in self.running_ids([record])

    def running_ids(self, records: Iterable[InstanceRecord]) -> set[str]:
        pending = {record.id: record for record in records}
        running: set[str] = set()
        if not pending:
            return running
        own_pid = os.getpid()
        for proc in psutil.process_iter(["pid", "cmdline"]):
            try:
                if proc.info["pid"] == own_pid:
                    continue
                cmdline = proc.info["cmdline"]
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
            if not cmdline:
                continue
            for instance_id, record in list(pending.items()):
                if cmdline_matches(cmdline, record):
                    running.add(instance_id)
                    del pending[instance_id]
            if not pending:
                break
        logger.debug("Process scan found %d running instance(s)", len(running))
        return running


def cmdline_matches(cmdline: Sequence[str], record: InstanceRecord) -> bool:
    instance_path = str(record.path)
    for idx, arg in enumerate(cmdline):
        if arg in LAUNCH_FLAGS and idx + 1 < len(cmdline) and cmdline[idx + 1] == record.id:
            return True
        if arg.startswith("--launch=") and arg.split("=", 1)[1] == record.id:
            return True
        if mentions_path(arg, instance_path):
            return True
    return False


def mentions_path(arg: str, path: str) -> bool:
    """True when ``path`` occurs in ``arg`` as a whole path, not as a prefix of a sibling."""
    if not path:
        return False
    start = arg.find(path)
    while start != -1:
        end = start + len(path)
        if end == len(arg) or arg[end] in ("/", os.sep, os.pathsep, '"', "'"):
            return True
        start = arg.find(path, start + 1)
    return False
