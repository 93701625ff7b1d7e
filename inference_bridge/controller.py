"""
PIPELINE CONTROLLER

Orchestrates the bridge between "I have a frame" and "I have an inferred frame".

LIFECYCLE:
1. Controller created with an injected backend and the live screen size
2. setup() derives the model input resolution from the target height
3. Capability flag false → permanent passthrough, no discovery, no session
4. Otherwise: discover models → list devices → initialize session
5. per_frame() runs capture → run → reintegrate, or passthrough
6. cleanup() releases the session

FAILURE SEMANTICS:
- Every setup-time failure degrades to passthrough (never raised to the host)
- A steady-state failure is caught at the per-frame boundary, permanently
  disables inference (fail-static) and is recorded as a diagnostic
- A source frame in a format capture() rejects is passed through and does
  NOT disable inference
- The visual output on any failure is the unmodified source frame
- No per-frame retries

CONCURRENCY:
- Single-threaded, synchronous: one capture → run → reintegrate cycle at a time
- The Frame Buffer is exclusively owned by the controller for that cycle
- run() has no cancellation or timeout; a hung backend blocks the frame thread
"""

from typing import Any, Dict, List, Optional

import numpy as np
from loguru import logger

from .backend import InferenceBackend
from .config import BridgeSettings
from .device_catalog import DeviceCatalog
from .errors import BackendUnavailable, BridgeError, NoModelAvailable
from .frame_adapter import FrameAdapter, compute_target_resolution
from .model_catalog import ModelCatalog
from .session import InferenceSession
from .types import Device, DiagnosticRecord, ModelDescriptor


class PipelineController:
    """
    Per-frame orchestrator of the inference bridge.

    The capability flag is passed to setup() explicitly; the controller never
    probes hardware itself, so tests can inject either value.
    """

    def __init__(
        self,
        backend: InferenceBackend,
        screen_width: int,
        screen_height: int,
        settings: Optional[BridgeSettings] = None,
        adapter: Optional[FrameAdapter] = None,
    ):
        self.settings = settings or BridgeSettings()
        self.screen_width = screen_width
        self.screen_height = screen_height

        self._backend = backend
        self.session = InferenceSession(backend)
        self.adapter = adapter or FrameAdapter(
            interpolation=self.settings.interpolation,
            flip_vertical=self.settings.flip_vertical,
        )
        self.model_catalog = ModelCatalog(extension=self.settings.model_extension)
        self.device_catalog = DeviceCatalog(backend)

        # Enable Toggle (user controlled) and Capability Flag (set once by setup)
        self._enabled: bool = self.settings.inference_enabled
        self._capability: bool = False

        # Permanent disable after capability failure or any degrade
        self._degraded: bool = False

        self.target_width: int = 0
        self.target_height: int = 0
        self.selected_model: Optional[ModelDescriptor] = None
        self.bound_device: Optional[Device] = None
        self.devices: List[Device] = []

        self._diagnostics: List[DiagnosticRecord] = []
        self._frame_index = 0
        self._frames_inferred = 0
        self._frames_passthrough = 0

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def setup(self, target_height: Optional[int], host_has_compatible_hardware: bool) -> bool:
        """
        Negotiate resolution, discover model/device and bind the session.

        Args:
            target_height: Model input height; None uses settings.target_height
            host_has_compatible_hardware: Capability Flag computed at startup

        Calling setup() again starts over: the previous binding is released,
        any earlier degrade is cleared and the toggle returns to
        settings.inference_enabled.

        Returns:
            True if inference is ready to run, False if degraded to passthrough
        """
        if target_height is None:
            target_height = self.settings.target_height

        self.session.release()
        self._degraded = False
        self._enabled = self.settings.inference_enabled
        self.selected_model = None
        self.bound_device = None
        self.devices = []
        self.target_width, self.target_height = compute_target_resolution(
            self.screen_width, self.screen_height, target_height
        )
        logger.info(
            f"Screen {self.screen_width}x{self.screen_height} → "
            f"model input {self.target_width}x{self.target_height}"
        )

        self._capability = bool(host_has_compatible_hardware)
        if not self._capability:
            self._enabled = False
            self._degraded = True
            logger.warning("No compatible hardware detected; inference disabled for this run")
            return False

        return self._bind()

    def _bind(self) -> bool:
        try:
            models = self.model_catalog.discover_models(self.settings.models_dir)
            if not models:
                raise NoModelAvailable(f"No {self.settings.model_extension} models found in {self.settings.models_dir}")

            model = self.model_catalog.get(self.settings.model_index)
            if model is None:
                raise NoModelAvailable(
                    f"model_index {self.settings.model_index} out of range ({len(models)} model(s) discovered)"
                )

            try:
                self._backend.load()
                self.devices = self.device_catalog.refresh()
            except BridgeError:
                raise
            except Exception as e:
                raise BackendUnavailable(f"Backend {self._backend.name!r} failed to start: {e}") from e

            self.selected_model = model
            self.bound_device = self.session.initialize(
                model, self.target_width, self.target_height, self.settings.device_index
            )

        except BridgeError as e:
            self._degrade(e)
            return False

        return True

    # ------------------------------------------------------------------
    # Per-frame
    # ------------------------------------------------------------------

    @property
    def inference_active(self) -> bool:
        """Enable Toggle AND Capability Flag AND a bound session."""
        return self._enabled and self._capability and not self._degraded and self.session.is_bound

    def per_frame(self, source: np.ndarray, destination: np.ndarray) -> bool:
        """
        Populate `destination` from `source` for one frame.

        Returns:
            True if the inferred path produced the frame, False on passthrough
        """
        self._frame_index += 1

        if self.inference_active:
            # Unreadable frame formats pass through without disabling inference
            try:
                buffer = self.adapter.capture(source, self.target_width, self.target_height)
            except (TypeError, ValueError) as e:
                logger.warning(f"Frame {self._frame_index} not capturable, passing through: {e}")
                buffer = None

            if buffer is not None:
                try:
                    self.session.run(buffer)
                    self.adapter.reintegrate(buffer, destination)
                    self._frames_inferred += 1
                    return True
                except Exception as e:
                    self._degrade(e, frame_index=self._frame_index)

        self.adapter.passthrough(source, destination)
        self._frames_passthrough += 1
        return False

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def capability(self) -> bool:
        return self._capability

    @property
    def degraded(self) -> bool:
        return self._degraded

    def set_enabled(self, enabled: bool) -> None:
        """User toggle. Has no effect once inference is permanently disabled."""
        if enabled and self._degraded:
            logger.warning("Inference is permanently disabled for this run; toggle ignored")
            return
        self._enabled = bool(enabled)

    def change_resolution(self, target_height: int) -> bool:
        """
        Re-bind the session at a new target height.

        The session is released before re-initializing. A degraded controller
        only recomputes the resolution.

        Returns:
            True if inference is ready at the new resolution
        """
        self.target_width, self.target_height = compute_target_resolution(
            self.screen_width, self.screen_height, target_height
        )
        logger.info(f"Input resolution changed to {self.target_width}x{self.target_height}")

        if self._degraded or not self._capability or self.selected_model is None:
            return False

        self.session.release()
        try:
            self.bound_device = self.session.initialize(
                self.selected_model, self.target_width, self.target_height, self.settings.device_index
            )
        except BridgeError as e:
            self._degrade(e)
            return False

        return True

    def cleanup(self) -> None:
        """Release the session. Safe to call repeatedly."""
        self.session.release()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def _degrade(self, error: Exception, frame_index: Optional[int] = None) -> None:
        self._enabled = False
        self._degraded = True
        self.session.release()

        record = DiagnosticRecord(kind=type(error).__name__, message=str(error), frame_index=frame_index)
        self._diagnostics.append(record)

        if frame_index is None:
            logger.error(f"Inference unavailable, using passthrough: {record.kind}: {record.message}")
        else:
            logger.error(
                f"Inference failed on frame {frame_index}, disabled for the rest of the run: "
                f"{record.kind}: {record.message}"
            )

    @property
    def diagnostics(self) -> List[DiagnosticRecord]:
        return list(self._diagnostics)

    def get_status(self) -> Dict[str, Any]:
        return {
            "capability": self._capability,
            "enabled": self._enabled,
            "degraded": self._degraded,
            "inference_active": self.inference_active,
            "session_state": self.session.state.value,
            "target_resolution": [self.target_width, self.target_height],
            "model": self.selected_model.display_name if self.selected_model else None,
            "device": self.bound_device.name if self.bound_device else None,
            "devices": [device.name for device in self.devices],
            "frames_inferred": self._frames_inferred,
            "frames_passthrough": self._frames_passthrough,
            "diagnostics": len(self._diagnostics),
            "session_metrics": self.session.get_metrics(),
        }
