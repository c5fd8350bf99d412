# camtickler/devices/registry.py
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

from ..net.transport import Endpoint
from ..utils.logger import EventLog
from .base import Device, DeviceFamily
from .maygion_mips import MaygionMips

DeviceFactory = Callable[[Endpoint, Optional[EventLog]], Device]

# add a DeviceFamily member and an entry here to support a new family
DEVICE_REGISTRY: Dict[DeviceFamily, DeviceFactory] = {
    DeviceFamily.MAYGION_MIPS: MaygionMips,
}

DESCRIPTIONS: Dict[DeviceFamily, str] = {
    DeviceFamily.MAYGION_MIPS: "MayGion MIPS camera",
}


def open_device(type_id: str, endpoint: Endpoint, log: Optional[EventLog] = None) -> Device:
    # KeyError for ids with no registered family
    try:
        family = DeviceFamily(type_id)
    except ValueError:
        raise KeyError(type_id)
    return DEVICE_REGISTRY[family](endpoint, log)


def list_types() -> List[Tuple[str, str]]:
    return [(f.value, DESCRIPTIONS.get(f, "")) for f in DEVICE_REGISTRY]
