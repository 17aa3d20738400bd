# src/markengine/tools/mark_detector.py
"""
Bubble fields, read from the inverted binary image.

A bubble counts as marked when the largest 8-connected foreground blob inside
its crop has at least `min_area` pixels.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import cv2 as cv
import numpy as np

from ..output import BubbleAnswer, FieldResult, Hit, NO_HIT, SoftError
from ..template import BubbleField, Point
from .regions import extract_region

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Blob:
    x: int
    y: int
    width: int
    height: int
    area: int   # foreground pixel count


def biggest_blob(binary: np.ndarray) -> Optional[Blob]:
    """
    Largest connected foreground (non-zero) component, or None if the crop is empty.
    Ties go to the component found first in raster order.
    """
    mask = (binary > 0).astype(np.uint8)
    n, _labels, stats, _centroids = cv.connectedComponentsWithStats(mask, connectivity=8)
    if n <= 1:
        return None
    # label 0 is background
    areas = stats[1:, cv.CC_STAT_AREA]
    idx = 1 + int(np.argmax(areas))
    return Blob(
        x=int(stats[idx, cv.CC_STAT_LEFT]),
        y=int(stats[idx, cv.CC_STAT_TOP]),
        width=int(stats[idx, cv.CC_STAT_WIDTH]),
        height=int(stats[idx, cv.CC_STAT_HEIGHT]),
        area=int(stats[idx, cv.CC_STAT_AREA]),
    )


def detect_bubble(inverted: np.ndarray, fld: BubbleField, min_area: int = 3) -> FieldResult:
    """Classify one bubble; failures become SoftError instead of escaping."""
    try:
        crop, (ox, oy) = extract_region(inverted, fld.corners)
        blob = biggest_blob(crop)
    except Exception as e:
        logger.debug("bubble field %s skipped: %s", fld.id, e)
        return SoftError(f"{type(e).__name__}: {e}")

    if blob is None or blob.area < min_area:
        return NO_HIT
    return Hit(BubbleAnswer(
        id=fld.id,
        key=fld.question,
        value=fld.value,
        top_left=Point(blob.x + ox, blob.y + oy),
        bottom_right=Point(blob.x + blob.width + ox, blob.y + blob.height + oy),
        blob_area=blob.area,
    ))
