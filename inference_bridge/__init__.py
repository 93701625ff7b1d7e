"""
FRAME INFERENCE BRIDGE PACKAGE

This package sits between a renderer and a neural inference engine: it takes
a rendered frame, shrinks it to the model's input resolution, hands the raw
pixel buffer to the engine for an in-place transform, and writes the result
back into the frame that is presented.

DELIVERABLES:
- Backend capability interface + OpenVINO implementation (backend.py)
- Device enumeration (device_catalog.py)
- Filesystem model discovery (model_catalog.py)
- Model/device/resolution binding (session.py)
- Frame capture and write-back (frame_adapter.py)
- Per-frame orchestration with passthrough fallback (controller.py)
- Settings (config.py) and host capability probe (hardware.py)

WHAT THIS IS:
- Resolution negotiation and buffer lifetime discipline
- Graceful degradation when no compatible hardware or model exists

WHAT THIS IS NOT:
- A neural network implementation
- A rendering pipeline
- A host plugin/component lifecycle
"""

from .backend import InferenceBackend, OpenVINOBackend
from .config import BridgeSettings, load_settings
from .controller import PipelineController
from .device_catalog import DeviceCatalog, list_devices
from .errors import (
    BackendUnavailable,
    BridgeError,
    ConfigurationError,
    DimensionMismatch,
    InferenceFailed,
    ModelDirectoryUnavailable,
    NoModelAvailable,
    SessionInitFailed,
)
from .frame_adapter import FrameAdapter, compute_target_resolution
from .hardware import HostInfo, has_compatible_hardware
from .model_catalog import ModelCatalog, discover_models
from .session import InferenceSession
from .types import Device, DiagnosticRecord, ModelDescriptor, SessionBinding, SessionState

__all__ = [
    "InferenceBackend",
    "OpenVINOBackend",
    "BridgeSettings",
    "load_settings",
    "PipelineController",
    "DeviceCatalog",
    "list_devices",
    "BridgeError",
    "BackendUnavailable",
    "ConfigurationError",
    "DimensionMismatch",
    "InferenceFailed",
    "ModelDirectoryUnavailable",
    "NoModelAvailable",
    "SessionInitFailed",
    "FrameAdapter",
    "compute_target_resolution",
    "HostInfo",
    "has_compatible_hardware",
    "ModelCatalog",
    "discover_models",
    "InferenceSession",
    "Device",
    "DiagnosticRecord",
    "ModelDescriptor",
    "SessionBinding",
    "SessionState",
]

__version__ = "0.1.0"
