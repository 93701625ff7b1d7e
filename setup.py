"""
Setup script for the frame-inference-bridge package.

This package bridges rendered frames to a neural inference engine
(OpenVINO) with passthrough fallback.
"""

from setuptools import setup, find_packages

setup(
    name="frame-inference-bridge",
    version="0.1.0",
    description="Real-time frame inference bridge between a renderer and OpenVINO",
    author="Frame Inference Bridge Team",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy>=1.20.0",
        "opencv-python-headless>=4.5.0",
        "PyYAML>=5.4.0",
        "pydantic>=2.0.0",
        "loguru>=0.6.0",
    ],
    extras_require={
        "openvino": [
            "openvino>=2023.1.0",
        ],
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "inference-bridge=inference_bridge.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
