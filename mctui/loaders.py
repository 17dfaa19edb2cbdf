from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from .models import ModLoader

MINECRAFT_UID = "net.minecraft"


@dataclass(frozen=True, slots=True)
class LoaderSignature:
    loader: ModLoader
    component_uid: str
    markers: tuple[str, ...]


# Order is the detection priority when an instance carries several signals.
LOADER_SIGNATURES: tuple[LoaderSignature, ...] = (
    LoaderSignature(
        loader=ModLoader.NEOFORGE,
        component_uid="net.neoforged",
        markers=("config/neoforge-client.toml", "config/neoforge-common.toml"),
    ),
    LoaderSignature(
        loader=ModLoader.FORGE,
        component_uid="net.minecraftforge",
        markers=("config/forge-client.toml", "config/forge-common.toml"),
    ),
    LoaderSignature(
        loader=ModLoader.QUILT,
        component_uid="org.quiltmc.quilt-loader",
        markers=(".quilt",),
    ),
    LoaderSignature(
        loader=ModLoader.FABRIC,
        component_uid="net.fabricmc.fabric-loader",
        markers=(".fabric",),
    ),
)


def detect_from_components(
    components: Mapping[str, str | None],
) -> tuple[ModLoader, str | None] | None:
    """Return the declared loader and its version from a uid->version mapping."""
    for signature in LOADER_SIGNATURES:
        if signature.component_uid in components:
            return signature.loader, components[signature.component_uid]
    return None


def detect_from_markers(game_dir: Path | None) -> ModLoader | None:
    if game_dir is None:
        return None
    for signature in LOADER_SIGNATURES:
        if _any_exists(game_dir, signature.markers):
            return signature.loader
    return None


def _any_exists(base: Path, relative_paths: Iterable[str]) -> bool:
    for relative in relative_paths:
        try:
            if (base / relative).exists():
                return True
        except OSError:
            continue
    return False
