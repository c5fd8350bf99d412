# camtickler/devices/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import BinaryIO, Dict, NamedTuple, Optional, Tuple

from ..net.progress import ProgressCallback
from ..net.transport import Endpoint
from ..utils.logger import EventLog, component_log

USB_CLASS_VIDEO = 0x0E


class DeviceFamily(Enum):
    MAYGION_MIPS = "maygion-mips"


class CameraInfo(NamedTuple):
    vendor_id: int
    product_id: int
    interface_class: int


class ModelInfo(NamedTuple):
    model: str
    fwid: str
    known: bool


class Device(ABC):
    """Capabilities every supported device family provides.

    Each call opens the sessions it needs and closes them before it returns.
    Failures raise a CamTicklerError whose message is fit for the user.
    """

    family: DeviceFamily
    # (flash size, USB vendor, USB product) -> hardware revision
    KNOWN_MODELS: Dict[Tuple[int, int, int], str] = {}

    def __init__(self, endpoint: Endpoint, log: Optional[EventLog] = None):
        self.endpoint = endpoint
        self._log = log
        self.log = component_log(log, self.family.value)

    @property
    def type_id(self) -> str:
        return self.family.value

    @abstractmethod
    def get_firmware(self, target: BinaryIO, on_progress: ProgressCallback) -> None:
        """Write the whole flash image to ``target``."""

    @abstractmethod
    def get_flash_info(self) -> int:
        """Return the flash size in bytes."""

    @abstractmethod
    def get_camera_info(self) -> CameraInfo:
        """Return the USB IDs of the image sensor."""

    def describe(self, flash_len: int, info: CameraInfo) -> ModelInfo:
        revision = self.KNOWN_MODELS.get((flash_len, info.vendor_id, info.product_id))
        model = f"{self.type_id}-{revision or 'ver_unknown'}"
        sensor = "uvc" if info.interface_class == USB_CLASS_VIDEO else "unknown_image_sensor"
        fwid = f"{self.type_id}-{flash_len >> 20}mb-{sensor}"
        return ModelInfo(model, fwid, revision is not None)
