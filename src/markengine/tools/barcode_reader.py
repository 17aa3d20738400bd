# src/markengine/tools/barcode_reader.py
"""
Barcode fields, decoded on the grayscale (pre-threshold) working image.

Decoding runs in zxing-cpp's fast mode (no rotation, no downscale pyramid) and
tries the crop as-is first, then with inverted polarity (the library's own
inversion pass is switched off so each polarity is decoded exactly once).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2 as cv
import numpy as np
import zxingcpp

from ..errors import FieldBoundsError
from ..output import BarcodeAnswer, FieldResult, Hit, NO_HIT
from ..template import BarcodeField, Point
from .regions import extract_region

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodedBarcode:
    text: str
    format: str
    points: Tuple[Point, Point]   # crop-local result points


def _format_name(fmt) -> str:
    return getattr(fmt, "name", None) or str(fmt)


def decode_barcode(gray_crop: np.ndarray) -> Optional[DecodedBarcode]:
    """Decode one symbol from a grayscale crop, or None."""
    for candidate in (gray_crop, cv.bitwise_not(gray_crop)):
        result = zxingcpp.read_barcode(candidate, try_rotate=False, try_downscale=False, try_invert=False)
        if result is None or not getattr(result, "valid", True):
            continue
        pos = result.position
        return DecodedBarcode(
            text=result.text,
            format=_format_name(result.format),
            points=(Point(pos.top_left.x, pos.top_left.y), Point(pos.bottom_right.x, pos.bottom_right.y)),
        )
    return None


def translate_result_points(points: Tuple[Point, Point], offset: Tuple[int, int],
                            margin: int = 10) -> Tuple[Point, Point]:
    """
    Crop-local result points -> working-image (top_left, bottom_right).
    The bottom edge is the first point's y plus `margin`, approximating the box height.
    """
    p0, p1 = points
    ox, oy = offset
    return Point(p0.x + ox, p0.y + oy), Point(p1.x + ox, p0.y + oy + margin)


def read_barcode_field(gray: np.ndarray, fld: BarcodeField, margin: int = 10) -> FieldResult:
    try:
        crop, offset = extract_region(gray, fld.corners)
    except FieldBoundsError as e:
        logger.debug("barcode field %s: %s", fld.id, e)
        return NO_HIT

    decoded = decode_barcode(crop)
    if decoded is None:
        return NO_HIT
    top_left, bottom_right = translate_result_points(decoded.points, offset, margin)
    return Hit(BarcodeAnswer(
        id=fld.id,
        data=decoded.text,
        format=decoded.format,
        top_left=top_left,
        bottom_right=bottom_right,
    ))
