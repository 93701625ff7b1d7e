"""Tests for the inference session state machine and buffer contract."""
from unittest.mock import patch

import numpy as np
import pytest

from inference_bridge.errors import InferenceFailed, SessionInitFailed
from inference_bridge.session import InferenceSession
from inference_bridge.types import Device, ModelDescriptor, SessionState

from .conftest import FakeBackend

MODEL = ModelDescriptor(display_name="mosaic.xml", description_file_path="/models/mosaic.xml")


class TestInitialize:
    """Test IDLE → BOUND transitions."""

    def test_successful_initialize_binds(self, loaded_backend):
        session = InferenceSession(loaded_backend)

        device = session.initialize(MODEL, 960, 540, 0)

        assert device == Device(0, "CPU")
        assert session.state == SessionState.BOUND
        assert session.binding.width == 960
        assert session.binding.height == 540
        assert session.binding.buffer_size == 960 * 540 * 4
        assert loaded_backend.init_calls == [("/models/mosaic.xml", 960, 540, 0)]

    def test_returns_device_resolved_by_backend(self):
        backend = FakeBackend(resolved_device="GPU.1")
        backend.load()
        session = InferenceSession(backend)

        assert session.initialize(MODEL, 64, 32, 0).name == "GPU.1"

    def test_backend_rejection_leaves_session_idle(self):
        backend = FakeBackend(init_error=True)
        backend.load()
        session = InferenceSession(backend)

        with pytest.raises(SessionInitFailed):
            session.initialize(MODEL, 960, 540, 0)

        assert session.state == SessionState.IDLE
        assert session.binding is None

    def test_unexpected_backend_error_becomes_init_failure(self, loaded_backend):
        session = InferenceSession(loaded_backend)

        with patch.object(loaded_backend, "initialize", side_effect=RuntimeError("native compile error")):
            with pytest.raises(SessionInitFailed, match="native compile error") as exc_info:
                session.initialize(MODEL, 960, 540, 0)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert session.state == SessionState.IDLE

    def test_device_index_out_of_range(self, loaded_backend):
        session = InferenceSession(loaded_backend)

        with pytest.raises(SessionInitFailed):
            session.initialize(MODEL, 960, 540, 7)

        assert session.state == SessionState.IDLE

    @pytest.mark.parametrize("width,height", [(0, 540), (960, 0), (-1, -1)])
    def test_invalid_resolution(self, loaded_backend, width, height):
        session = InferenceSession(loaded_backend)

        with pytest.raises(SessionInitFailed):
            session.initialize(MODEL, width, height, 0)

        assert loaded_backend.init_calls == []

    def test_backend_not_loaded(self, fake_backend):
        session = InferenceSession(fake_backend)

        with pytest.raises(SessionInitFailed):
            session.initialize(MODEL, 960, 540, 0)

    def test_reinitialize_releases_previous_binding(self, loaded_backend):
        session = InferenceSession(loaded_backend)
        session.initialize(MODEL, 960, 540, 0)

        session.initialize(MODEL, 1280, 720, 1)

        assert loaded_backend.release_calls == 1
        assert session.binding.width == 1280
        assert session.binding.device == Device(1, "GPU.0")

    def test_failed_reinitialize_drops_previous_binding(self):
        backend = FakeBackend()
        backend.load()
        session = InferenceSession(backend)
        session.initialize(MODEL, 960, 540, 0)

        backend.init_error = True
        with pytest.raises(SessionInitFailed):
            session.initialize(MODEL, 1280, 720, 0)

        assert session.state == SessionState.IDLE


class TestRun:
    """Test the in-place run() contract."""

    def test_run_transforms_buffer_in_place(self, loaded_backend):
        session = InferenceSession(loaded_backend)
        session.initialize(MODEL, 4, 2, 0)
        buffer = np.arange(4 * 2 * 4, dtype=np.uint8)
        original = buffer.copy()

        session.run(buffer)

        np.testing.assert_array_equal(buffer, 255 - original)

    def test_run_requires_binding(self, loaded_backend):
        session = InferenceSession(loaded_backend)

        with pytest.raises(InferenceFailed):
            session.run(np.zeros(4 * 2 * 4, dtype=np.uint8))

        assert loaded_backend.run_sizes == []

    @pytest.mark.parametrize("size", [0, 4 * 2 * 4 - 1, 4 * 2 * 4 + 4, 4 * 2 * 3])
    def test_wrong_size_fails_without_mutation(self, loaded_backend, size):
        session = InferenceSession(loaded_backend)
        session.initialize(MODEL, 4, 2, 0)
        buffer = np.full(size, 7, dtype=np.uint8)

        with pytest.raises(InferenceFailed):
            session.run(buffer)

        assert np.all(buffer == 7)
        assert loaded_backend.run_sizes == []

    def test_rejects_non_contiguous_buffer(self, loaded_backend):
        session = InferenceSession(loaded_backend)
        session.initialize(MODEL, 4, 2, 0)
        buffer = np.zeros(4 * 2 * 4 * 2, dtype=np.uint8)[::2]

        with pytest.raises(InferenceFailed):
            session.run(buffer)

    def test_rejects_wrong_dtype(self, loaded_backend):
        session = InferenceSession(loaded_backend)
        session.initialize(MODEL, 4, 2, 0)

        with pytest.raises(InferenceFailed):
            session.run(np.zeros(4 * 2 * 4, dtype=np.float32))

    def test_backend_error_becomes_inference_failed(self):
        backend = FakeBackend(run_error=True)
        backend.load()
        session = InferenceSession(backend)
        session.initialize(MODEL, 4, 2, 0)

        with pytest.raises(InferenceFailed, match="device lost"):
            session.run(np.zeros(4 * 2 * 4, dtype=np.uint8))

        assert session.state == SessionState.BOUND

    def test_metrics(self, loaded_backend):
        session = InferenceSession(loaded_backend)
        session.initialize(MODEL, 4, 2, 0)
        session.run(np.zeros(4 * 2 * 4, dtype=np.uint8))
        with pytest.raises(InferenceFailed):
            session.run(np.zeros(3, dtype=np.uint8))

        metrics = session.get_metrics()

        assert metrics["total_runs"] == 2
        assert metrics["total_errors"] == 1
        assert metrics["avg_latency_ms"] >= 0.0
        assert metrics["state"] == "bound"


class TestRelease:
    """Test BOUND → IDLE transitions."""

    def test_release_is_idempotent(self, loaded_backend):
        session = InferenceSession(loaded_backend)
        session.initialize(MODEL, 960, 540, 0)

        session.release()
        session.release()

        assert session.state == SessionState.IDLE
        assert loaded_backend.release_calls == 1

    def test_release_when_idle_is_noop(self, loaded_backend):
        session = InferenceSession(loaded_backend)

        session.release()

        assert loaded_backend.release_calls == 0

    def test_run_after_release_fails(self, loaded_backend):
        session = InferenceSession(loaded_backend)
        session.initialize(MODEL, 4, 2, 0)
        session.release()

        with pytest.raises(InferenceFailed):
            session.run(np.zeros(4 * 2 * 4, dtype=np.uint8))
