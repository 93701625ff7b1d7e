"""
MODEL CATALOG

This module handles filesystem-based model discovery.

CRITICAL RULES:
- Scan exactly ONE directory, non-recursively
- A model is a description file with the configured extension (.xml)
- The weights file (.bin) is assumed co-located and is NOT validated
- Missing or unreadable directory → ModelDirectoryUnavailable
- Zero matches → empty list (NOT an error)
- Order is filesystem enumeration order (NOT sorted)

WHAT THIS IS:
- Startup-time model discovery
- Readability check of description files

WHAT THIS IS NOT:
- Model parsing or validation (the backend does that at initialize)
- Hot-reload or dynamic discovery
"""

import os
from typing import Dict, List, Optional

from loguru import logger

from .errors import ModelDirectoryUnavailable
from .types import ModelDescriptor

DEFAULT_DESCRIPTION_EXTENSION = ".xml"
DEFAULT_WEIGHTS_EXTENSION = ".bin"


class ModelCatalog:
    """
    Filesystem-based model discovery.

    DISCOVERY SEMANTICS:
    - Each matching description file is ONE model
    - Unreadable matches are skipped and their reason recorded
    - Display name is the file name with directory components stripped
    """

    def __init__(self, extension: str = DEFAULT_DESCRIPTION_EXTENSION):
        self.extension = extension.lower()
        self._models: List[ModelDescriptor] = []
        self._skipped: Dict[str, str] = {}  # file name -> reason

    def discover_models(self, directory: str) -> List[ModelDescriptor]:
        """
        Discover all models in `directory`.

        Returns:
            Model descriptors in filesystem enumeration order

        Raises:
            ModelDirectoryUnavailable: If the directory is missing or unreadable
        """
        logger.info(f"Discovering models in: {directory}")

        self._models = []
        self._skipped = {}

        if not os.path.isdir(directory):
            raise ModelDirectoryUnavailable(f"Model directory does not exist: {directory}")

        try:
            with os.scandir(directory) as entries:
                entries = list(entries)
        except PermissionError as e:
            raise ModelDirectoryUnavailable(f"Permission denied reading model directory: {directory}") from e
        except OSError as e:
            raise ModelDirectoryUnavailable(f"Failed to list model directory {directory}: {e}") from e

        for entry in entries:
            if not entry.name.lower().endswith(self.extension):
                continue

            if not entry.is_file():
                self._skipped[entry.name] = "not_a_file"
                logger.warning(f"Skipping {entry.path}: not a regular file")
                continue

            if not os.access(entry.path, os.R_OK):
                self._skipped[entry.name] = "unreadable"
                logger.warning(f"Skipping {entry.path}: not readable")
                continue

            weights_path = os.path.splitext(entry.path)[0] + DEFAULT_WEIGHTS_EXTENSION
            model = ModelDescriptor(
                display_name=os.path.basename(entry.path),
                description_file_path=entry.path,
                weights_file_path=weights_path if os.path.isfile(weights_path) else None,
            )
            self._models.append(model)

            logger.info(f"Model Name: {model.display_name}")
            logger.info(f"File Path: {model.description_file_path}")

        logger.info(f"Model discovery complete: {len(self._models)} available, {len(self._skipped)} skipped")
        return list(self._models)

    @property
    def models(self) -> List[ModelDescriptor]:
        return list(self._models)

    def get(self, index: int) -> Optional[ModelDescriptor]:
        if 0 <= index < len(self._models):
            return self._models[index]
        return None

    def get_skipped_reason(self, file_name: str) -> Optional[str]:
        """Reason a matching file was not offered, or None."""
        return self._skipped.get(file_name)


def discover_models(directory: str, extension: str = DEFAULT_DESCRIPTION_EXTENSION) -> List[ModelDescriptor]:
    """Convenience wrapper around ModelCatalog.discover_models()."""
    return ModelCatalog(extension=extension).discover_models(directory)
