from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


class ModLoader(Enum):
    VANILLA = "Vanilla"
    FABRIC = "Fabric"
    FORGE = "Forge"
    QUILT = "Quilt"
    NEOFORGE = "NeoForge"
    UNKNOWN = "Unknown"


class Mode(Enum):
    BROWSE = "browse"
    SEARCH = "search"
    DETAILS = "details"


class SortKey(Enum):
    NAME = "name"
    LAST_PLAYED = "last_played"
    PLAYTIME = "playtime"

    @property
    def label(self) -> str:
        return _SORT_LABELS[self]

    def next(self) -> SortKey:
        members = list(SortKey)
        return members[(members.index(self) + 1) % len(members)]


_SORT_LABELS = {
    SortKey.NAME: "Name",
    SortKey.LAST_PLAYED: "Last played",
    SortKey.PLAYTIME: "Playtime",
}


@dataclass(frozen=True, slots=True)
class InstanceRecord:
    id: str
    display_name: str
    path: Path
    game_version: str | None = None
    mod_loader: ModLoader = ModLoader.UNKNOWN
    loader_version: str | None = None
    mod_count: int = 0
    total_playtime: int = 0
    last_played: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "path": str(self.path),
            "game_version": self.game_version,
            "mod_loader": self.mod_loader.value,
            "loader_version": self.loader_version,
            "mod_count": self.mod_count,
            "total_playtime": self.total_playtime,
            "last_played": self.last_played.isoformat() if self.last_played else None,
        }


@dataclass(slots=True)
class ViewState:
    mode: Mode = Mode.BROWSE
    sort_key: SortKey = SortKey.NAME
    filter_text: str = ""
    selected_index: int | None = None
    notice: str | None = None
    quit_requested: bool = False
