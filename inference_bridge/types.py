"""
Core types for the frame inference bridge.

This module defines:
- SessionState enum (binding lifecycle)
- Device, ModelDescriptor, SessionBinding (immutable records)
- DiagnosticRecord (one entry per degrade event)

No execution logic, no backend access.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import numpy as np

# Bytes per pixel of every Frame Buffer (RGBA8)
BYTES_PER_PIXEL = 4

# A Frame Buffer is a contiguous 1-D uint8 array of width * height * 4 bytes
FrameBuffer = np.ndarray


class SessionState(Enum):
    """
    Inference session lifecycle states.

    IDLE: No binding exists, run() is illegal
    BOUND: Model compiled for a fixed resolution on one device

    State transitions:
    - IDLE -> BOUND (via successful initialize())
    - BOUND -> IDLE (via release() or failed initialize())
    """
    IDLE = "idle"
    BOUND = "bound"


@dataclass(frozen=True)
class Device:
    """Compute device exposed by the inference backend. Immutable once enumerated."""

    index: int
    name: str


@dataclass(frozen=True)
class ModelDescriptor:
    """
    One discovered model artifact pair.

    description_file_path is checked to be a readable regular file at
    discovery time. weights_file_path is informational only; the
    description file references its weights internally.
    """

    display_name: str
    description_file_path: str
    weights_file_path: Optional[str] = None


@dataclass(frozen=True)
class SessionBinding:
    """The single active (model, device, resolution) binding."""

    model: ModelDescriptor
    device: Device
    width: int
    height: int

    @property
    def buffer_size(self) -> int:
        return self.width * self.height * BYTES_PER_PIXEL


@dataclass(frozen=True)
class DiagnosticRecord:
    """A degrade event recorded by the pipeline controller."""

    kind: str
    message: str
    frame_index: Optional[int] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def buffer_size(width: int, height: int) -> int:
    """Number of bytes in a Frame Buffer of the given dimensions."""
    return width * height * BYTES_PER_PIXEL
