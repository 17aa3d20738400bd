# src/markengine/visualize_core.py
from __future__ import annotations
from pathlib import Path
from typing import Tuple, Union

import cv2 as cv
import numpy as np

from .scanned_image import ScannedImage
from .template import BarcodeField, Field, Template, load_template
from .tools.registration import register_image
from .tools.regions import crop_window

BARCODE_COLOR = (0, 140, 255)
BUBBLE_COLOR = (0, 200, 0)


def _draw_label(img_bgr: np.ndarray, text: str, org: Tuple[int, int], color) -> None:
    # dark outline first so the label reads on any background
    cv.putText(img_bgr, text, org, cv.FONT_HERSHEY_SIMPLEX, 0.4, (0, 0, 0), 3, cv.LINE_AA)
    cv.putText(img_bgr, text, org, cv.FONT_HERSHEY_SIMPLEX, 0.4, color, 1, cv.LINE_AA)


def draw_field(img_bgr: np.ndarray, fld: Field, thickness: int = 1, label: bool = True) -> None:
    x, y, w, h = crop_window(fld.corners)
    color = BARCODE_COLOR if isinstance(fld, BarcodeField) else BUBBLE_COLOR
    cv.rectangle(img_bgr, (x, y), (x + w, y + h), color, thickness)
    if label:
        _draw_label(img_bgr, fld.id, (x, max(10, y - 2)), color)


def draw_fields(img: np.ndarray, template: Template, label: bool = True) -> np.ndarray:
    """Copy of `img` (gray or BGR) with every field rectangle and id drawn on it."""
    out = cv.cvtColor(img, cv.COLOR_GRAY2BGR) if img.ndim == 2 else img.copy()
    for fld in template.fields:
        draw_field(out, fld, label=label)
    return out


def overlay_template(
    input_path: str,
    template_or_path: Union[str, Path, Template],
    out_image: str = "template_overlay.png",
    label_fields: bool = True,
) -> str:
    """
    Register the first page of `input_path` into template space and overlay all
    template fields. Writes `out_image` (PNG).
    """
    if isinstance(template_or_path, (str, Path)):
        template = load_template(template_or_path)
    else:
        template = template_or_path

    scan = ScannedImage.from_path(input_path, template_name=template.name)
    scan.analyze()
    scan.prepare_processing()
    working = register_image(scan.image, template.corners)
    vis = draw_fields(working, template, label=label_fields)

    out_path = Path(out_image).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if not cv.imwrite(str(out_path), vis):
        raise OSError(f"Could not write {out_path}")
    return str(out_path)
