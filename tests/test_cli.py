"""Tests for the offline driver."""
import json
from unittest.mock import patch

import cv2
import numpy as np

from inference_bridge.cli import build_parser, main
from inference_bridge.hardware import GPU_NAME_ENV_VAR, HostInfo


def write_image(path, width=64, height=36):
    rng = np.random.default_rng(3)
    image = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    assert cv2.imwrite(str(path), image)
    return image


class TestCli:
    """Test the inference-bridge command."""

    def test_passthrough_without_models(self, tmp_path, empty_models_dir, capsys):
        image_path = tmp_path / "frame.png"
        output_path = tmp_path / "out.png"
        image = write_image(image_path)

        code = main([
            "--image", str(image_path),
            "--output", str(output_path),
            "--models-dir", str(empty_models_dir),
            "--assume-compatible",
            "--frames", "3",
        ])

        assert code == 0
        np.testing.assert_array_equal(cv2.imread(str(output_path)), image)

        status = json.loads(capsys.readouterr().out)
        assert status["inference_active"] is False
        assert status["frames_passthrough"] == 3
        assert status["diagnostic_records"][0]["kind"] == "NoModelAvailable"

    def test_target_height_override(self, tmp_path, empty_models_dir, capsys):
        image_path = tmp_path / "frame.png"
        write_image(image_path, width=64, height=36)

        code = main([
            "--image", str(image_path),
            "--output", str(tmp_path / "out.png"),
            "--models-dir", str(empty_models_dir),
            "--target-height", "18",
        ])

        assert code == 0
        status = json.loads(capsys.readouterr().out)
        assert status["target_resolution"] == [32, 18]

    def test_missing_image(self, tmp_path):
        code = main(["--image", str(tmp_path / "missing.png"), "--output", str(tmp_path / "out.png")])
        assert code == 1

    def test_invalid_config(self, tmp_path):
        config = tmp_path / "settings.yaml"
        config.write_text("target_height: -1\n")
        image_path = tmp_path / "frame.png"
        write_image(image_path)

        code = main([
            "--image", str(image_path),
            "--output", str(tmp_path / "out.png"),
            "--config", str(config),
        ])

        assert code == 1

    def test_invalid_override(self, tmp_path):
        image_path = tmp_path / "frame.png"
        write_image(image_path)

        code = main([
            "--image", str(image_path),
            "--output", str(tmp_path / "out.png"),
            "--target-height", "0",
        ])

        assert code == 1

    def test_gpu_name_flag_marks_host_compatible(self, tmp_path, empty_models_dir, monkeypatch, capsys):
        monkeypatch.delenv(GPU_NAME_ENV_VAR, raising=False)
        image_path = tmp_path / "frame.png"
        write_image(image_path)
        args = [
            "--image", str(image_path),
            "--output", str(tmp_path / "out.png"),
            "--models-dir", str(empty_models_dir),
        ]

        with patch.object(HostInfo, "probe", return_value=HostInfo(processor_type="AMD Ryzen 7 7700X")):
            assert main(args) == 0
            without_flag = json.loads(capsys.readouterr().out)

            assert main(args + ["--gpu-name", "Intel(R) Arc(TM) A770 Graphics"]) == 0
            with_flag = json.loads(capsys.readouterr().out)

        assert without_flag["capability"] is False
        assert with_flag["capability"] is True
        assert with_flag["diagnostic_records"][0]["kind"] == "NoModelAvailable"

    def test_help_documents_gpu_name_source(self):
        help_text = build_parser().format_help()

        assert "--gpu-name" in help_text
        assert GPU_NAME_ENV_VAR in help_text
