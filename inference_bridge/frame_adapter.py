"""
FRAME ADAPTER

Converts host frames to and from the fixed-size Frame Buffer the inference
session expects.

FRAME BUFFER LAYOUT (FIXED):
- RGBA8, 4 bytes per pixel
- Row-major, origin top-left
- Exactly target_width * target_height * 4 bytes
- Contiguous 1-D uint8 array, owned by the caller

CRITICAL CONSTRAINTS:
- capture() always returns a FRESH buffer (never a view of the source frame)
- capture() and reintegrate() are paired within one frame
- Size mismatch at reintegrate() is a contract violation (DimensionMismatch)
- reintegrate() and passthrough() fully populate the destination

WHAT THIS IS:
- Format normalization (gray / RGB / RGBA, uint8 / uint16 / float)
- Resampling with OpenCV
- Write-back into the host's destination frame

WHAT THIS IS NOT:
- A render pipeline (frames are plain numpy arrays owned by the host)
- GPU readback (the host hands over CPU-resident arrays)
"""

from typing import Optional, Tuple

import cv2
import numpy as np

from .errors import DimensionMismatch
from .types import BYTES_PER_PIXEL, buffer_size

INTERPOLATION_MODES = {
    "nearest": cv2.INTER_NEAREST,
    "linear": cv2.INTER_LINEAR,
    "area": cv2.INTER_AREA,
    "cubic": cv2.INTER_CUBIC,
}


def compute_target_resolution(screen_width: int, screen_height: int, target_height: int) -> Tuple[int, int]:
    """
    Derive the model input resolution from the live screen size.

    scale = target_height / screen_height
    target_width = round(screen_width * scale)

    Returns:
        (target_width, target_height)
    """
    if screen_width <= 0 or screen_height <= 0:
        raise ValueError(f"Invalid screen size: {screen_width}x{screen_height}")
    if target_height <= 0:
        raise ValueError(f"Invalid target height: {target_height}")

    scale = target_height / screen_height
    target_width = max(1, int(round(screen_width * scale)))
    return target_width, target_height


def to_rgba8(frame: np.ndarray) -> np.ndarray:
    """
    Normalize a host frame to an (H, W, 4) uint8 RGBA array.

    Accepts (H, W), (H, W, 1), (H, W, 3) and (H, W, 4) arrays of uint8,
    uint16 or floating point ([0, 1], clipped). Missing alpha is opaque.
    """
    if not isinstance(frame, np.ndarray):
        raise TypeError(f"Frame must be a numpy array, got {type(frame).__name__}")

    if frame.ndim == 3 and frame.shape[2] == 1:
        frame = frame[:, :, 0]

    if frame.ndim == 2:
        channels = 1
    elif frame.ndim == 3 and frame.shape[2] in (3, 4):
        channels = frame.shape[2]
    else:
        raise ValueError(f"Unsupported frame shape: {frame.shape}")

    if frame.dtype == np.uint8:
        pixels = frame
    elif frame.dtype == np.uint16:
        pixels = (frame // 257).astype(np.uint8)
    elif np.issubdtype(frame.dtype, np.floating):
        pixels = np.rint(np.clip(frame, 0.0, 1.0) * 255.0).astype(np.uint8)
    else:
        raise ValueError(f"Unsupported frame dtype: {frame.dtype}")

    if channels == 4:
        return pixels

    rgba = np.empty(pixels.shape[:2] + (BYTES_PER_PIXEL,), dtype=np.uint8)
    if channels == 1:
        rgba[:, :, 0] = pixels
        rgba[:, :, 1] = pixels
        rgba[:, :, 2] = pixels
    else:
        rgba[:, :, :3] = pixels
    rgba[:, :, 3] = 255
    return rgba


class FrameAdapter:
    """
    Capture / reintegrate pair for one fixed target resolution per frame.
    """

    def __init__(self, interpolation: str = "linear", flip_vertical: bool = False):
        if interpolation not in INTERPOLATION_MODES:
            raise ValueError(
                f"Unknown interpolation {interpolation!r}, expected one of {sorted(INTERPOLATION_MODES)}"
            )
        self.interpolation = interpolation
        self.flip_vertical = flip_vertical
        self._interp_flag = INTERPOLATION_MODES[interpolation]

        # (width, height) of the capture awaiting reintegrate()
        self._pending: Optional[Tuple[int, int]] = None

    def capture(self, source: np.ndarray, target_width: int, target_height: int) -> np.ndarray:
        """
        Resample `source` into a fresh RGBA8 Frame Buffer.

        Returns:
            Contiguous 1-D uint8 array of target_width * target_height * 4 bytes
        """
        if target_width <= 0 or target_height <= 0:
            raise ValueError(f"Invalid target resolution: {target_width}x{target_height}")

        rgba = to_rgba8(source)
        if self.flip_vertical:
            rgba = rgba[::-1]

        rgba = self._resize(rgba, target_width, target_height)

        # Copy so the buffer never aliases host memory
        buffer = np.array(rgba, dtype=np.uint8, order="C", copy=True).reshape(-1)

        self._pending = (target_width, target_height)
        return buffer

    def reintegrate(self, buffer: np.ndarray, destination: np.ndarray) -> None:
        """
        Write `buffer` into `destination`, resampling to its size if needed.

        Raises:
            DimensionMismatch: If there is no pending capture or the buffer
                size differs from the pending capture's dimensions
        """
        if self._pending is None:
            raise DimensionMismatch("reintegrate() called without a preceding capture()")

        width, height = self._pending
        expected = buffer_size(width, height)
        if buffer.size != expected:
            raise DimensionMismatch(
                f"Buffer holds {buffer.size} bytes, capture produced {width}x{height} ({expected} bytes)"
            )
        self._pending = None

        pixels = np.asarray(buffer, dtype=np.uint8).reshape(height, width, BYTES_PER_PIXEL)
        if self.flip_vertical:
            pixels = pixels[::-1]

        self._write(pixels, destination)

    def passthrough(self, source: np.ndarray, destination: np.ndarray) -> None:
        """
        Copy `source` into `destination` unchanged.

        When shape or dtype differ, the source is converted and resampled so
        the destination is still fully populated.
        """
        self._pending = None

        if source.shape == destination.shape and source.dtype == destination.dtype:
            np.copyto(destination, source)
            return

        self._write(to_rgba8(source), destination)

    def _resize(self, rgba: np.ndarray, width: int, height: int) -> np.ndarray:
        if rgba.shape[0] == height and rgba.shape[1] == width:
            return rgba
        return cv2.resize(np.ascontiguousarray(rgba), (width, height), interpolation=self._interp_flag)

    def _write(self, rgba: np.ndarray, destination: np.ndarray) -> None:
        if not isinstance(destination, np.ndarray):
            raise TypeError(f"Destination must be a numpy array, got {type(destination).__name__}")

        if destination.ndim == 2 or (destination.ndim == 3 and destination.shape[2] == 1):
            dest_channels = 1
        elif destination.ndim == 3 and destination.shape[2] in (3, 4):
            dest_channels = destination.shape[2]
        else:
            raise ValueError(f"Unsupported destination shape: {destination.shape}")

        rgba = self._resize(rgba, destination.shape[1], destination.shape[0])

        if dest_channels == 4:
            pixels = rgba
        elif dest_channels == 3:
            pixels = rgba[:, :, :3]
        else:
            pixels = cv2.cvtColor(np.ascontiguousarray(rgba), cv2.COLOR_RGBA2GRAY)
            pixels = pixels.reshape(destination.shape)

        if destination.dtype == np.uint8:
            np.copyto(destination, pixels)
        elif destination.dtype == np.uint16:
            np.copyto(destination, pixels.astype(np.uint16) * 257)
        elif np.issubdtype(destination.dtype, np.floating):
            np.copyto(destination, pixels.astype(destination.dtype) / 255.0)
        else:
            raise ValueError(f"Unsupported destination dtype: {destination.dtype}")
