"""
DEVICE CATALOG

Enumerates the compute devices exposed by the inference backend.

CRITICAL RULES:
- Pure query, no mutation of backend state
- Order is backend-defined and stable within a process run
- Index 0 is the default device
- Backend MUST be loaded first (BackendUnavailable otherwise)
"""

from typing import List, Optional

from loguru import logger

from .backend import InferenceBackend
from .errors import BackendUnavailable
from .types import Device


def list_devices(backend: InferenceBackend) -> List[Device]:
    """
    Enumerate devices in backend order.

    Raises:
        BackendUnavailable: If the backend is not loaded
    """
    if not backend.is_loaded:
        raise BackendUnavailable(f"Backend {backend.name!r} is not loaded")

    devices = []
    for index in range(backend.device_count()):
        devices.append(Device(index=index, name=str(backend.device_name(index))))
    return devices


class DeviceCatalog:
    """
    Device list captured once and held for the process lifetime.
    """

    def __init__(self, backend: InferenceBackend):
        self._backend = backend
        self._devices: Optional[List[Device]] = None

    def refresh(self) -> List[Device]:
        """Query the backend and replace the cached list."""
        self._devices = list_devices(self._backend)

        logger.info("Available devices:")
        for device in self._devices:
            logger.info(f"  [{device.index}] {device.name}")

        return self._devices

    @property
    def devices(self) -> List[Device]:
        if self._devices is None:
            return self.refresh()
        return self._devices

    def get(self, index: int) -> Optional[Device]:
        """Device at `index`, or None if out of range."""
        if 0 <= index < len(self.devices):
            return self.devices[index]
        return None

    def default(self) -> Optional[Device]:
        return self.get(0)
