from __future__ import annotations

import numpy as np
import pytest

from markengine.engine_defaults import apply_overrides
from markengine.template import BarcodeField, BubbleField, Quad, Template


def _bubble(fid, question, value, rect, group=None):
    return BubbleField(id=fid, corners=Quad.from_rect(*rect), question=question, value=value,
                       answer_row_group=group)


def _barcode(fid, rect):
    return BarcodeField(id=fid, corners=Quad.from_rect(*rect))


@pytest.fixture
def bubble():
    return _bubble


@pytest.fixture
def barcode():
    return _barcode


@pytest.fixture
def make_template():
    def _make(fields, size=(200, 200), name="survey"):
        w, h = size
        return Template(name=name, corners=Quad.from_rect(0, 0, w, h), fields=tuple(fields))
    return _make


@pytest.fixture
def blank_page():
    def _page(size=(200, 200)):
        w, h = size
        return np.full((h, w, 3), 255, dtype=np.uint8)
    return _page


@pytest.fixture
def fill():
    """Paint a dark mark covering rect (x, y, w, h)."""
    def _fill(img, rect, value=0):
        x, y, w, h = rect
        img[y:y + h, x:x + w] = value
        return img
    return _fill


@pytest.fixture
def options(tmp_path):
    return apply_overrides(analyzed_dir=str(tmp_path / "analyzed"), debug_dir=str(tmp_path / "imgproc"))
