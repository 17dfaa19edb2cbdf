"""Per-instance metadata parsing.

An instance directory written by PrismLauncher (or MultiMC before it) looks
like this::

    <instance id>/
        instance.cfg        name, playtime and last launch time
        mmc-pack.json       component list: game version and mod loader
        .minecraft/         game directory (``minecraft/`` on newer installs)
            mods/*.jar
            .fabric/, .quilt/, config/forge-client.toml, ...

Every source is optional. A source that cannot be read is logged and its
fields fall back to defaults, so a damaged instance still shows up in the
list instead of aborting the scan.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .exceptions import MetadataError
from .loaders import MINECRAFT_UID, detect_from_components, detect_from_markers
from .models import InstanceRecord, ModLoader
from .utils import millis_to_datetime, parse_int, read_cfg_file, read_json_file

logger = logging.getLogger(__name__)

INSTANCE_CFG = "instance.cfg"
PACK_FILE = "mmc-pack.json"
GAME_DIR_NAMES = (".minecraft", "minecraft")
MODS_DIR = "mods"
MOD_SUFFIX = ".jar"


def parse_instance(instance_dir: str | Path) -> InstanceRecord:
    instance_dir = Path(instance_dir)
    instance_id = instance_dir.name

    cfg = _load_cfg(instance_dir)
    components, pack_present = _load_components(instance_dir)
    game_dir = find_game_dir(instance_dir)

    loader, loader_version = _resolve_loader(
        components=components,
        game_dir=game_dir,
        cfg_loaded=cfg is not None,
        pack_present=pack_present,
    )
    cfg = cfg or {}
    components = components or {}

    game_version = components.get(MINECRAFT_UID) or cfg.get("IntendedVersion") or None
    playtime = parse_int(cfg.get("totalTimePlayed"))

    return InstanceRecord(
        id=instance_id,
        display_name=cfg.get("name", "").strip() or instance_id,
        path=instance_dir,
        game_version=game_version,
        mod_loader=loader,
        loader_version=loader_version,
        mod_count=count_mods(game_dir),
        total_playtime=playtime if playtime is not None and playtime > 0 else 0,
        last_played=millis_to_datetime(cfg.get("lastLaunchTime")),
    )


def find_game_dir(instance_dir: Path) -> Path | None:
    for name in GAME_DIR_NAMES:
        candidate = instance_dir / name
        try:
            if candidate.is_dir():
                return candidate
        except OSError as exc:
            logger.debug("Cannot inspect %s: %s", candidate, exc)
    return None


def count_mods(game_dir: Path | None) -> int:
    if game_dir is None:
        return 0
    try:
        return sum(
            1
            for entry in (game_dir / MODS_DIR).iterdir()
            if entry.suffix.lower() == MOD_SUFFIX and entry.is_file()
        )
    except OSError:
        return 0


def parse_components(data: Any) -> dict[str, str | None]:
    """Map component uid to version from decoded ``mmc-pack.json`` content."""
    if not isinstance(data, dict) or not isinstance(data.get("components"), list):
        raise MetadataError(f"{PACK_FILE} has no component list.")
    components: dict[str, str | None] = {}
    for item in data["components"]:
        if not isinstance(item, dict):
            continue
        uid = item.get("uid")
        if not isinstance(uid, str) or not uid:
            continue
        version = item.get("version") or item.get("cachedVersion")
        components[uid] = str(version) if isinstance(version, (str, int, float)) else None
    return components


def _load_cfg(instance_dir: Path) -> dict[str, str] | None:
    path = instance_dir / INSTANCE_CFG
    try:
        if not path.is_file():
            return None
        return read_cfg_file(path)
    except (OSError, MetadataError) as exc:
        logger.debug("Ignoring %s for %s: %s", INSTANCE_CFG, instance_dir.name, exc)
        return None


def _load_components(instance_dir: Path) -> tuple[dict[str, str | None] | None, bool]:
    """Return the parsed components and whether ``mmc-pack.json`` is there at all.

    A pack file that exists but cannot be stat'd, read or decoded yields
    ``(None, True)``.
    """
    path = instance_dir / PACK_FILE
    try:
        if not path.is_file():
            return None, False
        return parse_components(read_json_file(path)), True
    except (OSError, MetadataError) as exc:
        logger.debug("Ignoring %s for %s: %s", PACK_FILE, instance_dir.name, exc)
        return None, True


def _resolve_loader(
    components: dict[str, str | None] | None,
    game_dir: Path | None,
    cfg_loaded: bool,
    pack_present: bool,
) -> tuple[ModLoader, str | None]:
    if components:
        declared = detect_from_components(components)
        if declared is not None:
            return declared
    marked = detect_from_markers(game_dir)
    if marked is not None:
        return marked, None
    if components is not None:
        return ModLoader.VANILLA, None
    if cfg_loaded and not pack_present:
        return ModLoader.VANILLA, None
    return ModLoader.UNKNOWN, None
