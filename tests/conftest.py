"""
Pytest configuration and fixtures.
"""
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pytest

from inference_bridge.backend import InferenceBackend
from inference_bridge.config import BridgeSettings
from inference_bridge.errors import BackendUnavailable, SessionInitFailed


class FakeBackend(InferenceBackend):
    """
    In-memory backend that inverts pixel values in place.

    Records every call so tests can assert on the bridge's use of the
    backend boundary.
    """

    name = "fake"

    def __init__(
        self,
        devices: Sequence[str] = ("CPU", "GPU.0"),
        load_error: bool = False,
        init_error: bool = False,
        run_error: bool = False,
        resolved_device: Optional[str] = None,
    ):
        self.devices = list(devices)
        self.load_error = load_error
        self.init_error = init_error
        self.run_error = run_error
        self.resolved_device = resolved_device

        self._loaded = False
        self.bound: Optional[Tuple[str, int, int, int]] = None
        self.init_calls: List[Tuple[str, int, int, int]] = []
        self.run_sizes: List[int] = []
        self.release_calls = 0

    def load(self) -> None:
        if self.load_error:
            raise BackendUnavailable("fake runtime not installed")
        self._loaded = True

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def device_count(self) -> int:
        if not self._loaded:
            raise BackendUnavailable("fake backend not loaded")
        return len(self.devices)

    def device_name(self, index: int) -> str:
        return self.devices[index]

    def initialize(self, model_path: str, width: int, height: int, device_index: int) -> str:
        self.init_calls.append((model_path, width, height, device_index))
        if self.init_error:
            raise SessionInitFailed(f"fake backend rejected {model_path}")
        if not 0 <= device_index < len(self.devices):
            raise SessionInitFailed(f"device index {device_index} out of range")
        self.bound = (model_path, width, height, device_index)
        return self.resolved_device or self.devices[device_index]

    def run(self, buffer: np.ndarray) -> None:
        self.run_sizes.append(buffer.size)
        if self.run_error:
            raise RuntimeError("device lost")
        np.subtract(255, buffer, out=buffer)

    def release(self) -> None:
        self.release_calls += 1
        self.bound = None


@pytest.fixture
def fake_backend() -> FakeBackend:
    backend = FakeBackend()
    return backend


@pytest.fixture
def loaded_backend() -> FakeBackend:
    backend = FakeBackend()
    backend.load()
    return backend


@pytest.fixture
def models_dir(tmp_path):
    """Model directory with two IR pairs and an unrelated file."""
    directory = tmp_path / "models"
    directory.mkdir()
    for name in ("mosaic", "udnie"):
        (directory / f"{name}.xml").write_text("<net name='%s'/>" % name)
        (directory / f"{name}.bin").write_bytes(b"\x00" * 16)
    (directory / "README.txt").write_text("not a model")
    return directory


@pytest.fixture
def empty_models_dir(tmp_path):
    directory = tmp_path / "empty_models"
    directory.mkdir()
    return directory


@pytest.fixture
def settings(models_dir) -> BridgeSettings:
    return BridgeSettings(models_dir=str(models_dir))


def make_frame(width: int, height: int, seed: int = 0) -> np.ndarray:
    """Random opaque RGBA8 frame."""
    rng = np.random.default_rng(seed)
    frame = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    frame[:, :, 3] = 255
    return frame


@pytest.fixture
def frame_factory():
    return make_frame
