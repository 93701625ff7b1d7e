"""
HOST CAPABILITY PROBE

Computes the Capability Flag that gates whether inference is ever attempted.

CRITICAL RULES:
- Probe happens ONCE at startup
- Result is immutable for the process lifetime (no hot-plug detection)
- Result is passed explicitly into the controller, never read from a global

WHAT THIS IS:
- CPU / GPU name collection
- Vendor substring match

WHAT THIS IS NOT:
- Device enumeration (see device_catalog.py)
- Driver or runtime validation
"""

import os
import platform
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from loguru import logger

# Optional override listing graphics adapter names, separated by ';'
GPU_NAME_ENV_VAR = "INFERENCE_BRIDGE_GPU_NAME"

CPUINFO_PATH = "/proc/cpuinfo"


@dataclass(frozen=True)
class HostInfo:
    """Hardware identifiers of the host."""

    processor_type: str
    graphics_device_names: List[str] = field(default_factory=list)

    @classmethod
    def probe(cls, cpuinfo_path: str = CPUINFO_PATH) -> "HostInfo":
        """
        Collect hardware identifiers from the running host.

        processor_type comes from /proc/cpuinfo when readable (Linux), else
        platform.processor(). Graphics adapters are not enumerated; their names
        come only from $INFERENCE_BRIDGE_GPU_NAME.
        """
        processor_type = _read_cpu_model_name(cpuinfo_path) or platform.processor() or ""

        gpu_env = os.environ.get(GPU_NAME_ENV_VAR, "")
        graphics_device_names = [name.strip() for name in gpu_env.split(";") if name.strip()]

        return cls(processor_type=processor_type, graphics_device_names=graphics_device_names)


def _read_cpu_model_name(cpuinfo_path: str) -> Optional[str]:
    try:
        with open(cpuinfo_path, "r") as f:
            for line in f:
                key, _, value = line.partition(":")
                if key.strip() == "model name":
                    return value.strip()
    except OSError:
        return None
    return None


def has_compatible_hardware(host: HostInfo, vendors: Iterable[str] = ("Intel",)) -> bool:
    """
    True if any vendor substring appears in the CPU or any GPU name.

    Matching is case-sensitive, as vendor names are reported verbatim.
    """
    vendors = list(vendors)
    names = [host.processor_type] + list(host.graphics_device_names)

    for vendor in vendors:
        for name in names:
            if vendor and vendor in name:
                logger.info(f"Compatible hardware detected: {name!r} matches vendor {vendor!r}")
                return True

    logger.info(
        f"No compatible hardware: processor={host.processor_type!r}, "
        f"graphics={host.graphics_device_names}, vendors={vendors}"
    )
    return False
