# src/markengine/tools/registration.py
from __future__ import annotations

from typing import Tuple

import cv2 as cv
import numpy as np

from ..errors import RegistrationError
from ..template import Quad


def canvas_size(corners: Quad) -> Tuple[int, int]:
    """Working image (width, height): the template's bottom-right corner."""
    return int(corners.bottom_right.x), int(corners.bottom_right.y)


def register_image(scan_bgr: np.ndarray, corners: Quad) -> np.ndarray:
    """
    Map a scan into template space with scale + translate only.

    The scan is resized to (top edge width x left edge height) and drawn onto a
    black canvas of the template's bottom-right size at the top-left offset.
    Anything falling outside the canvas is clipped.
    """
    cw, ch = canvas_size(corners)
    tw, th = int(round(corners.width)), int(round(corners.height))
    if cw <= 0 or ch <= 0:
        raise RegistrationError(f"Template canvas must be positive, got {cw}x{ch}.")
    if tw <= 0 or th <= 0:
        raise RegistrationError(f"Template corners give a non-positive size {corners.width}x{corners.height}.")
    if scan_bgr is None or scan_bgr.size == 0:
        raise RegistrationError("Scanned image is empty.")

    sh, sw = scan_bgr.shape[:2]
    if (sw, sh) == (tw, th):
        scaled = scan_bgr
    else:
        interp = cv.INTER_AREA if (tw < sw and th < sh) else cv.INTER_LINEAR
        scaled = cv.resize(scan_bgr, (tw, th), interpolation=interp)

    canvas = np.zeros((ch, cw) + scan_bgr.shape[2:], dtype=np.uint8)
    ox, oy = int(corners.top_left.x), int(corners.top_left.y)

    # clip destination window to the canvas
    x0, y0 = max(0, ox), max(0, oy)
    x1, y1 = min(cw, ox + tw), min(ch, oy + th)
    if x1 <= x0 or y1 <= y0:
        raise RegistrationError("Registered scan does not overlap the template canvas.")
    canvas[y0:y1, x0:x1] = scaled[y0 - oy:y1 - oy, x0 - ox:x1 - ox]
    return canvas
