from __future__ import annotations

import logging
from pathlib import Path

from .exceptions import RepositoryError
from .metadata import parse_instance
from .models import InstanceRecord

logger = logging.getLogger(__name__)


def scan(root: str | Path) -> list[InstanceRecord]:
    """Parse every instance directory directly under ``root``.

    The result follows directory enumeration order (sorted by name); display
    order is decided by the view. Hidden directories such as the launcher's
    ``.LAUNCHER_TEMP`` and plain files are skipped.
    """
    root = Path(root)
    try:
        if not root.is_dir():
            raise RepositoryError(f"Instances directory does not exist: {root}")
        entries = sorted(root.iterdir(), key=lambda entry: entry.name)
        instance_dirs = [
            entry for entry in entries if not entry.name.startswith(".") and entry.is_dir()
        ]
    except OSError as exc:
        raise RepositoryError(f"Could not list instances directory {root}: {exc}") from exc

    records = [parse_instance(entry) for entry in instance_dirs]
    logger.info("Scanned %d instance(s) under %s", len(records), root)
    return records


class InstanceRepository:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._records: tuple[InstanceRecord, ...] = ()
        self._by_id: dict[str, InstanceRecord] = {}

    @classmethod
    def load(cls, root: str | Path) -> InstanceRepository:
        repository = cls(root)
        repository.refresh()
        return repository

    @property
    def records(self) -> tuple[InstanceRecord, ...]:
        return self._records

    def refresh(self) -> None:
        """Re-scan the root and replace the snapshot; keep the old one on failure."""
        records = tuple(scan(self.root))
        self._records = records
        self._by_id = {record.id: record for record in records}

    def get(self, instance_id: str) -> InstanceRecord | None:
        return self._by_id.get(instance_id)

    def __len__(self) -> int:
        return len(self._records)
