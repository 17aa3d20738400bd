# src/markengine/tools/regions.py
from __future__ import annotations

from typing import Tuple

import numpy as np

from ..errors import FieldBoundsError
from ..template import Quad


def crop_window(corners: Quad) -> Tuple[int, int, int, int]:
    """(x, y, w, h) from the field's top-left and its top/left edge lengths."""
    x, y = int(corners.top_left.x), int(corners.top_left.y)
    w, h = int(corners.width), int(corners.height)
    return x, y, w, h


def extract_region(img: np.ndarray, corners: Quad) -> Tuple[np.ndarray, Tuple[int, int]]:
    """
    Crop a field out of the working image.
    Returns (copy of the crop, (x, y) offset of the crop in the working image).
    """
    H, W = img.shape[:2]
    x, y, w, h = crop_window(corners)
    if w <= 0 or h <= 0:
        raise FieldBoundsError(f"Empty crop window {(x, y, w, h)}.")
    if x < 0 or y < 0 or x + w > W or y + h > H:
        raise FieldBoundsError(f"Crop window {(x, y, w, h)} outside image {W}x{H}.")
    # copy so per-field filtering never writes through to the shared image
    return img[y:y + h, x:x + w].copy(), (x, y)
