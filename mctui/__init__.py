from .dispatch import LaunchDispatcher
from .metadata import parse_instance
from .models import InstanceRecord, Mode, ModLoader, SortKey, ViewState
from .monitor import ProcessMonitor
from .repository import InstanceRepository, scan
from .view import InstanceBrowser

__all__ = [
    "InstanceBrowser",
    "InstanceRecord",
    "InstanceRepository",
    "LaunchDispatcher",
    "ModLoader",
    "Mode",
    "ProcessMonitor",
    "SortKey",
    "ViewState",
    "parse_instance",
    "scan",
]
