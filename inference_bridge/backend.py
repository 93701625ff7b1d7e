"""
NATIVE INFERENCE BACKEND BOUNDARY

This module defines the capability interface the bridge consumes, plus the
OpenVINO implementation of it.

BUFFER CONTRACT (CRITICAL):
- run() receives an exclusively owned, contiguous uint8 RGBA buffer
- The backend transforms the buffer IN PLACE (same size, same layout)
- The backend MUST NOT retain a reference to the buffer after run() returns
- Input and output share the same memory; no per-frame output allocation

WHAT THIS IS:
- Backend capability interface (enumerate, initialize, run, release)
- OpenVINO runtime adapter
- Backend string → Python str conversion

WHAT THIS IS NOT:
- Network execution (owned by the inference engine)
- Session state tracking (see session.py)
- Retry or timeout logic (run() has no interruption path)
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np
from loguru import logger

from .errors import BackendUnavailable, InferenceFailed, SessionInitFailed
from .types import BYTES_PER_PIXEL


class InferenceBackend(ABC):
    """
    Abstract inference backend.

    Implementations are injected into the pipeline controller so the real
    engine and a test double are interchangeable.
    """

    name = "abstract"

    @abstractmethod
    def load(self) -> None:
        """
        Load the native runtime.

        Raises:
            BackendUnavailable: If the runtime cannot be loaded
        """

    @property
    @abstractmethod
    def is_loaded(self) -> bool:
        """True once load() has succeeded."""

    @abstractmethod
    def device_count(self) -> int:
        """Number of compute devices available to the backend."""

    @abstractmethod
    def device_name(self, index: int) -> str:
        """Display name of the device at `index`."""

    @abstractmethod
    def initialize(self, model_path: str, width: int, height: int, device_index: int) -> str:
        """
        Compile `model_path` for a fixed (width, height) input on a device.

        Returns:
            Name of the device the model was actually bound to

        Raises:
            SessionInitFailed: If the backend rejects any parameter
        """

    @abstractmethod
    def run(self, buffer: np.ndarray) -> None:
        """
        Transform `buffer` in place.

        Raises:
            InferenceFailed: If inference fails
        """

    @abstractmethod
    def release(self) -> None:
        """Free all resources bound by initialize(). Idempotent."""


class OpenVINOBackend(InferenceBackend):
    """
    Inference backend built on the OpenVINO Python runtime.

    Models are OpenVINO IR pairs (.xml topology + .bin weights) taking one
    NCHW float input of RGB values in [0, 255] and producing one output of
    the same shape (style transfer / image-to-image networks). Alpha is
    preserved from the input.
    """

    name = "openvino"

    def __init__(self):
        self._core = None
        self._devices: List[str] = []
        self._request = None
        self._width = 0
        self._height = 0
        self._bound_device: Optional[str] = None

    def load(self) -> None:
        if self._core is not None:
            return

        try:
            import openvino as ov
        except ImportError as e:
            raise BackendUnavailable("OpenVINO runtime not available. Install with: pip install openvino") from e

        try:
            core = ov.Core()
            devices = [str(device) for device in core.available_devices]
        except Exception as e:
            raise BackendUnavailable(f"Failed to start OpenVINO runtime: {e}") from e

        self._core = core
        self._devices = devices
        logger.info(f"OpenVINO runtime loaded, {len(devices)} device(s) available")

    @property
    def is_loaded(self) -> bool:
        return self._core is not None

    def _require_loaded(self) -> None:
        if self._core is None:
            raise BackendUnavailable("OpenVINO backend is not loaded; call load() first")

    def device_count(self) -> int:
        self._require_loaded()
        return len(self._devices)

    def device_name(self, index: int) -> str:
        self._require_loaded()
        if not 0 <= index < len(self._devices):
            raise IndexError(f"Device index {index} out of range (0..{len(self._devices) - 1})")
        return self._devices[index]

    def initialize(self, model_path: str, width: int, height: int, device_index: int) -> str:
        self._require_loaded()

        if not 0 <= device_index < len(self._devices):
            raise SessionInitFailed(
                f"Device index {device_index} out of range ({len(self._devices)} device(s) available)"
            )
        device = self._devices[device_index]

        # Drop any previous compiled model before building a new one
        self.release()

        try:
            model = self._core.read_model(model_path)
            if len(model.inputs) != 1 or len(model.outputs) != 1:
                raise SessionInitFailed(
                    f"Model {model_path} must have exactly one input and one output, "
                    f"found {len(model.inputs)}/{len(model.outputs)}"
                )

            model.reshape([1, 3, height, width])
            compiled = self._core.compile_model(model, device)

            output_shape = tuple(int(dim) for dim in compiled.output(0).shape)
            if output_shape != (1, 3, height, width):
                raise SessionInitFailed(
                    f"Model output shape {output_shape} does not match input (1, 3, {height}, {width})"
                )

            request = compiled.create_infer_request()

        except SessionInitFailed:
            raise
        except Exception as e:
            raise SessionInitFailed(f"OpenVINO rejected {model_path} at {width}x{height} on {device}: {e}") from e

        self._request = request
        self._width = width
        self._height = height
        self._bound_device = device
        return device

    def run(self, buffer: np.ndarray) -> None:
        if self._request is None:
            raise InferenceFailed("No model compiled; call initialize() first")

        expected = self._width * self._height * BYTES_PER_PIXEL
        if buffer.size != expected:
            raise InferenceFailed(f"Buffer holds {buffer.size} bytes, expected {expected}")

        # View over the caller's buffer; dropped when run() returns
        pixels = buffer.reshape(self._height, self._width, BYTES_PER_PIXEL)

        # HWC RGBA uint8 -> NCHW RGB float32
        input_tensor = np.ascontiguousarray(pixels[:, :, :3].transpose(2, 0, 1), dtype=np.float32)[np.newaxis]

        try:
            self._request.infer({0: input_tensor})
            output = self._request.get_output_tensor(0).data
        except Exception as e:
            raise InferenceFailed(f"OpenVINO inference failed: {e}") from e

        rgb = np.clip(output[0], 0, 255).transpose(1, 2, 0)
        pixels[:, :, :3] = rgb.astype(np.uint8)

    def release(self) -> None:
        if self._request is not None:
            logger.debug(f"Releasing OpenVINO model compiled for {self._bound_device}")
        self._request = None
        self._bound_device = None
        self._width = 0
        self._height = 0
