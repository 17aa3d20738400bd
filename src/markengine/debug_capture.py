# src/markengine/debug_capture.py
"""Optional per-stage snapshots of a page going through the pipeline."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import cv2 as cv
import numpy as np

logger = logging.getLogger(__name__)

# initial scan, registered, field overlay, grayscale, binarized, inverted
STAGES = ("init", "tx", "fields", "gs", "bw", "inv")


def snapshot_name(page_id: str, parameters: Sequence[str], stage: str) -> str:
    params = "".join(f"{p}." for p in parameters)
    return f"{page_id}-{params}-{stage}.bmp"


class DebugCapture:
    """
    Writes lossless BMP snapshots into `directory` when enabled; a no-op otherwise.
    Write failures are logged and never raised.
    """

    def __init__(self, page_id: str, parameters: Sequence[str], directory: str | Path, enabled: bool):
        self.enabled = enabled
        self.directory = Path(directory)
        self.names: Dict[str, str] = {s: snapshot_name(page_id, parameters, s) for s in STAGES}
        self._dir_ready = False

    @property
    def refs(self) -> Optional[List[str]]:
        if not self.enabled:
            return None
        return [self.names[s] for s in STAGES]

    def save(self, stage: str, img: np.ndarray) -> None:
        if not self.enabled:
            return
        path = self.directory / self.names[stage]
        try:
            if not self._dir_ready:
                self.directory.mkdir(parents=True, exist_ok=True)
                self._dir_ready = True
            if not cv.imwrite(str(path), img):
                logger.warning("could not write debug image %s", path)
        except (OSError, cv.error) as e:
            logger.warning("could not write debug image %s: %s", path, e)
