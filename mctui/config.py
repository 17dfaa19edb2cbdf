from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import shlex
from typing import Mapping

from .dispatch import default_open_command

PRISM_FLATPAK_INSTANCES = Path(
    ".var/app/org.prismlauncher.PrismLauncher/data/PrismLauncher/instances"
)
PRISM_NATIVE_INSTANCES = Path(".local/share/PrismLauncher/instances")
DEFAULT_LAUNCH_SCRIPT = Path("scripts/launch-minecraft.sh")

ENV_INSTANCES_DIR = "MCTUI_INSTANCES_DIR"
ENV_LAUNCH_COMMAND = "MCTUI_LAUNCH_COMMAND"
ENV_OPEN_COMMAND = "MCTUI_OPEN_COMMAND"
ENV_QUIT_AFTER_LAUNCH = "MCTUI_QUIT_AFTER_LAUNCH"
ENV_LOG_FILE = "MCTUI_LOG_FILE"

TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    instances_dir: Path
    launch_command: list[str]
    open_command: list[str] = field(default_factory=default_open_command)
    quit_after_launch: bool = False
    log_file: Path | None = None

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        home: Path | None = None,
    ) -> Settings:
        env = os.environ if environ is None else environ
        home = home or Path.home()

        instances_dir = env.get(ENV_INSTANCES_DIR, "").strip()
        launch_command = env.get(ENV_LAUNCH_COMMAND, "").strip()
        open_command = env.get(ENV_OPEN_COMMAND, "").strip()
        log_file = env.get(ENV_LOG_FILE, "").strip()

        return cls(
            instances_dir=Path(instances_dir).expanduser()
            if instances_dir
            else default_instances_dir(home),
            launch_command=shlex.split(launch_command)
            if launch_command
            else [str(home / DEFAULT_LAUNCH_SCRIPT)],
            open_command=shlex.split(open_command) if open_command else default_open_command(),
            quit_after_launch=env.get(ENV_QUIT_AFTER_LAUNCH, "").strip().lower() in TRUE_VALUES,
            log_file=Path(log_file).expanduser() if log_file else None,
        )


def default_instances_dir(home: Path) -> Path:
    candidates = [home / PRISM_FLATPAK_INSTANCES, home / PRISM_NATIVE_INSTANCES]
    for candidate in candidates:
        if candidate.is_dir():
            return candidate
    return candidates[0]
