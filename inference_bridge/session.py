"""
INFERENCE SESSION

Owns the lifetime of the single active (model, device, resolution) binding.

STATE MACHINE:
- IDLE → BOUND via successful initialize()
- BOUND → IDLE via release() or failed initialize()
- run() is only legal in BOUND

CRITICAL CONSTRAINTS:
- initialize() is atomic: either every parameter is accepted or no binding exists
- run() validates the buffer BEFORE the backend sees it (no partial mutation)
- run() blocks until the backend returns; there is no cancellation or timeout
- Backend MUST NOT retain the buffer beyond run()
- release() is idempotent and MUST precede any model/device/resolution change

THREAD SAFETY:
- A single lock serializes initialize/run/release so hosts whose frame thread
  differs from their administrative thread cannot overlap a transition with run()
"""

import threading
import time
from typing import Any, Dict, Optional

import numpy as np
from loguru import logger

from .backend import InferenceBackend
from .errors import InferenceFailed, SessionInitFailed
from .types import Device, ModelDescriptor, SessionBinding, SessionState


class InferenceSession:
    """
    Binding of one model to one device at one fixed input resolution.
    """

    def __init__(self, backend: InferenceBackend):
        self._backend = backend
        self._binding: Optional[SessionBinding] = None
        self._lock = threading.Lock()

        # Run counters exposed via get_metrics()
        self._total_runs = 0
        self._total_errors = 0
        self._total_latency_ms = 0.0

    @property
    def state(self) -> SessionState:
        return SessionState.BOUND if self._binding is not None else SessionState.IDLE

    @property
    def binding(self) -> Optional[SessionBinding]:
        return self._binding

    @property
    def is_bound(self) -> bool:
        return self._binding is not None

    def initialize(self, model: ModelDescriptor, width: int, height: int, device_index: int) -> Device:
        """
        Compile `model` for a fixed (width, height) input on `device_index`.

        Any existing binding is released first.

        Returns:
            Device the backend actually bound (its name may differ from the
            catalog entry if the backend resolves the index differently)

        Raises:
            SessionInitFailed: On bad dimensions, an unloaded backend, or
                any backend rejection. The session is IDLE afterwards.
        """
        with self._lock:
            self._release_locked()

            if width <= 0 or height <= 0:
                raise SessionInitFailed(f"Invalid input resolution: {width}x{height}")

            if not self._backend.is_loaded:
                raise SessionInitFailed(f"Backend {self._backend.name!r} is not loaded")

            logger.info("Initializing inference session")
            logger.info(f"Selected Model: {model.display_name}")
            logger.info(f"Selected Model Path: {model.description_file_path}")
            logger.info(f"Setting Input Dims to W: {width} x H: {height}")

            try:
                device_name = self._backend.initialize(model.description_file_path, width, height, device_index)
            except SessionInitFailed:
                raise
            except Exception as e:
                raise SessionInitFailed(f"Backend {self._backend.name!r} rejected {model.display_name}: {e}") from e

            device = Device(index=device_index, name=str(device_name))
            self._binding = SessionBinding(model=model, device=device, width=width, height=height)

            logger.info(f"Inference using: {device.name}")
            return device

    def run(self, buffer: np.ndarray) -> None:
        """
        Transform `buffer` in place with the bound model.

        `buffer` MUST be a contiguous 1-D uint8 array of width * height * 4 bytes.

        Raises:
            InferenceFailed: If no session is bound, the buffer does not match
                the binding, or the backend fails
        """
        with self._lock:
            binding = self._binding
            if binding is None:
                self._record(0.0, is_error=True)
                raise InferenceFailed("No session bound; call initialize() first")

            problem = _check_buffer(buffer, binding.buffer_size)
            if problem is not None:
                self._record(0.0, is_error=True)
                raise InferenceFailed(problem)

            start_time = time.perf_counter()
            is_error = False
            try:
                self._backend.run(buffer)
            except InferenceFailed:
                is_error = True
                raise
            except Exception as e:
                is_error = True
                raise InferenceFailed(f"Backend {self._backend.name!r} failed: {e}") from e
            finally:
                self._record((time.perf_counter() - start_time) * 1000, is_error)

    def release(self) -> None:
        """Free backend resources of the current binding. No-op when IDLE."""
        with self._lock:
            self._release_locked()

    def _release_locked(self) -> None:
        if self._binding is None:
            return

        logger.info(f"Releasing session for {self._binding.model.display_name} on {self._binding.device.name}")
        self._binding = None
        self._backend.release()

    def _record(self, latency_ms: float, is_error: bool) -> None:
        self._total_runs += 1
        if is_error:
            self._total_errors += 1
        else:
            self._total_latency_ms += latency_ms

    def get_metrics(self) -> Dict[str, Any]:
        """Snapshot of run counters and average latency."""
        successful = self._total_runs - self._total_errors
        return {
            "total_runs": self._total_runs,
            "total_errors": self._total_errors,
            "avg_latency_ms": self._total_latency_ms / successful if successful > 0 else 0.0,
            "state": self.state.value,
        }


def _check_buffer(buffer: Any, expected_size: int) -> Optional[str]:
    if not isinstance(buffer, np.ndarray):
        return f"Buffer must be a numpy array, got {type(buffer).__name__}"
    if buffer.dtype != np.uint8:
        return f"Buffer must be uint8, got {buffer.dtype}"
    if buffer.ndim != 1 or not buffer.flags["C_CONTIGUOUS"]:
        return "Buffer must be a contiguous 1-D array"
    if not buffer.flags["WRITEABLE"]:
        return "Buffer must be writeable"
    if buffer.size != expected_size:
        return f"Buffer holds {buffer.size} bytes, bound session expects {expected_size}"
    return None
