"""
Offline driver for the frame inference bridge.

Loads one image as the rendered frame, runs it through setup() and
per_frame() against the OpenVINO backend, and writes the destination frame.

Run with:
    inference-bridge --image frame.png --output styled.png --models-dir models/
"""

import argparse
import json
import sys
from typing import List, Optional

import cv2
import numpy as np
from loguru import logger
from pydantic import ValidationError

from .backend import OpenVINOBackend
from .config import BridgeSettings, load_settings
from .controller import PipelineController
from .errors import ConfigurationError
from .hardware import HostInfo, has_compatible_hardware


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inference-bridge",
        description="Run a frame through the OpenVINO inference bridge"
    )
    parser.add_argument("--image", required=True, help="Source frame (any format OpenCV reads)")
    parser.add_argument("--output", required=True, help="Where to write the destination frame")
    parser.add_argument("--config", default=None, help="Settings YAML (default: $INFERENCE_BRIDGE_CONFIG)")
    parser.add_argument("--models-dir", default=None, help="Override settings.models_dir")
    parser.add_argument("--target-height", type=int, default=None, help="Override settings.target_height")
    parser.add_argument("--frames", type=int, default=1, help="Number of frames to push through per_frame()")
    parser.add_argument("--no-inference", action="store_true", help="Start with the enable toggle off")
    parser.add_argument(
        "--assume-compatible",
        action="store_true",
        help="Skip the hardware vendor check and treat the host as compatible"
    )
    parser.add_argument(
        "--gpu-name",
        action="append",
        default=[],
        metavar="NAME",
        help=(
            "Graphics adapter name checked against settings.compatible_vendors; repeatable. "
            "GPU names are NOT detected automatically: only the CPU model is probed, so a host "
            "with a compatible GPU and a non-matching CPU is reported incompatible unless its "
            "GPU is named here or in $INFERENCE_BRIDGE_GPU_NAME (';'-separated)"
        )
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    overrides = {}
    if args.models_dir is not None:
        overrides["models_dir"] = args.models_dir
    if args.target_height is not None:
        overrides["target_height"] = args.target_height
    if args.no_inference:
        overrides["inference_enabled"] = False
    if overrides:
        try:
            settings = BridgeSettings(**{**settings.model_dump(), **overrides})
        except ValidationError as e:
            print(f"ERROR: Invalid command line override: {e}", file=sys.stderr)
            return 1

    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    image = cv2.imread(args.image, cv2.IMREAD_COLOR)
    if image is None:
        print(f"ERROR: Could not read image: {args.image}", file=sys.stderr)
        return 1

    source = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    destination = np.empty_like(source)
    screen_height, screen_width = source.shape[:2]

    if args.assume_compatible:
        capability = True
    else:
        probed = HostInfo.probe()
        host = HostInfo(
            processor_type=probed.processor_type,
            graphics_device_names=list(probed.graphics_device_names) + list(args.gpu_name),
        )
        capability = has_compatible_hardware(host, settings.compatible_vendors)

    controller = PipelineController(
        backend=OpenVINOBackend(),
        screen_width=screen_width,
        screen_height=screen_height,
        settings=settings,
    )

    try:
        controller.setup(settings.target_height, capability)

        for _ in range(max(1, args.frames)):
            controller.per_frame(source, destination)
    finally:
        controller.cleanup()

    if not cv2.imwrite(args.output, cv2.cvtColor(destination, cv2.COLOR_RGBA2BGR)):
        print(f"ERROR: Could not write image: {args.output}", file=sys.stderr)
        return 1

    status = controller.get_status()
    status["diagnostic_records"] = [
        {"kind": record.kind, "message": record.message, "frame_index": record.frame_index}
        for record in controller.diagnostics
    ]
    print(json.dumps(status, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
