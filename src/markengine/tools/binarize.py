# src/markengine/tools/binarize.py
from __future__ import annotations

import cv2 as cv
import numpy as np


def to_grayscale(img_bgr: np.ndarray) -> np.ndarray:
    """Luma-weighted single channel (BT.601); gray input passes through as a copy."""
    if img_bgr.ndim == 2:
        return img_bgr.copy()
    return cv.cvtColor(img_bgr, cv.COLOR_BGR2GRAY)


def threshold(gray: np.ndarray, cutoff: int = 120) -> np.ndarray:
    """Two-level image: pixels >= cutoff become 255, the rest 0."""
    # THRESH_BINARY keeps values strictly above the threshold
    _, bw = cv.threshold(gray, cutoff - 1, 255, cv.THRESH_BINARY)
    return bw


def invert(bw: np.ndarray) -> np.ndarray:
    """Swap polarity so pencil/ink marks become the bright foreground."""
    return cv.bitwise_not(bw)
