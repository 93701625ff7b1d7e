"""
Error kinds raised across the frame inference bridge.

FAILURE SEMANTICS:
- Setup-time errors degrade the controller to passthrough
- Steady-state errors permanently disable inference (fail-static)
- DimensionMismatch is a contract violation, not an environmental condition
- No error is ever allowed to escape the per-frame boundary
"""


class BridgeError(Exception):
    """Base class for every error raised by the bridge."""


class ConfigurationError(BridgeError):
    """Settings file is missing, unparsable or fails validation."""


class BackendUnavailable(BridgeError):
    """The native inference backend is not loaded or cannot be reached."""


class ModelDirectoryUnavailable(BridgeError):
    """The model directory does not exist or cannot be listed."""


class NoModelAvailable(BridgeError):
    """Discovery succeeded but found no usable model."""


class SessionInitFailed(BridgeError):
    """The backend rejected the (model, width, height, device) binding."""


class InferenceFailed(BridgeError):
    """run() was called without a binding, with a bad buffer, or the backend failed."""


class DimensionMismatch(BridgeError, AssertionError):
    """
    Buffer handed to reintegrate() does not match the last capture.

    Capture and reintegrate are always paired within one frame, so this
    indicates a logic error in the caller.
    """
