# src/markengine/scanned_image.py
"""
Scanned page plus its readiness contract.

State moves unanalyzed -> scannable (``analyze``) -> ready (``prepare_processing``).
The engine only ever calls ``analyze`` when the image is not scannable, and
``prepare_processing`` when it is not ready yet.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import cv2 as cv
import fitz  # PyMuPDF
import numpy as np

from .errors import AnalysisError

PDF_DPI = 300


# ---------- I/O ----------
def imread_any(path: str) -> Optional[np.ndarray]:
    """Read image from path into BGR np.ndarray or return None on failure."""
    try:
        buf = np.fromfile(path, dtype=np.uint8)
    except OSError:
        return None
    if buf.size == 0:
        return None
    return cv.imdecode(buf, cv.IMREAD_UNCHANGED)


def render_pdf_page(pdf_path: str, page_index: int = 0, dpi: int = PDF_DPI) -> np.ndarray:
    """Rasterize one PDF page into a BGR array."""
    zoom = dpi / 72.0
    mat = fitz.Matrix(zoom, zoom)
    with fitz.open(pdf_path) as doc:
        if page_index >= len(doc):
            raise AnalysisError(f"{pdf_path}: page {page_index} out of range ({len(doc)} pages).")
        pix = doc.load_page(page_index).get_pixmap(matrix=mat, alpha=False)
        img = np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.height, pix.width, 3)
    return cv.cvtColor(img, cv.COLOR_RGB2BGR)


def pdf_page_count(pdf_path: str) -> int:
    with fitz.open(pdf_path) as doc:
        return len(doc)


def to_bgr(img: np.ndarray) -> np.ndarray:
    """Normalize gray / BGRA / 16-bit images to 8-bit 3-channel BGR."""
    if img.dtype != np.uint8:
        img = cv.normalize(img, None, 0, 255, cv.NORM_MINMAX).astype(np.uint8)
    if img.ndim == 2:
        return cv.cvtColor(img, cv.COLOR_GRAY2BGR)
    if img.shape[2] == 4:
        return cv.cvtColor(img, cv.COLOR_BGRA2BGR)
    if img.shape[2] == 1:
        return cv.cvtColor(img[:, :, 0], cv.COLOR_GRAY2BGR)
    return img


class ScannedImage:
    """A scan waiting to have a template applied."""

    def __init__(
        self,
        image: Optional[np.ndarray] = None,
        template_name: str = "",
        parameters: Sequence[str] = (),
        source: Optional[str] = None,
        page_index: int = 0,
    ):
        self.image = image
        self.template_name = template_name
        self.parameters: List[str] = [str(p) for p in parameters]
        self.source = source
        self.page_index = page_index
        self._scannable = image is not None
        self._ready = False

    @classmethod
    def from_path(cls, path: str | Path, template_name: str = "",
                  parameters: Sequence[str] = (), page_index: int = 0) -> "ScannedImage":
        """Lazily bound to a file; pixels are read by ``analyze``."""
        return cls(None, template_name=template_name, parameters=parameters,
                   source=str(path), page_index=page_index)

    @property
    def is_scannable(self) -> bool:
        return self._scannable

    @property
    def is_ready_for_scan(self) -> bool:
        return self._ready

    def analyze(self) -> None:
        """Load and sanity-check the raw pixels; raises AnalysisError if unreadable."""
        if self.image is None:
            if not self.source:
                raise AnalysisError("Scanned image has neither pixels nor a source path.")
            if self.source.lower().endswith(".pdf"):
                try:
                    self.image = render_pdf_page(self.source, self.page_index)
                except (OSError, RuntimeError, ValueError) as e:
                    raise AnalysisError(f"Could not render PDF {self.source}: {e}") from e
            else:
                self.image = imread_any(self.source)
            if self.image is None:
                raise AnalysisError(f"Could not read image: {self.source}")
        if self.image.ndim not in (2, 3) or self.image.shape[0] == 0 or self.image.shape[1] == 0:
            raise AnalysisError(f"Unusable image shape {self.image.shape}")
        if not self.template_name and self.source:
            self.template_name = Path(self.source).stem
        self._scannable = True

    def prepare_processing(self) -> None:
        """Bring the pixels into the 8-bit BGR layout the pipeline works on."""
        if self._ready:
            return
        if not self._scannable:
            raise AnalysisError("prepare_processing() called before analyze().")
        self.image = to_bgr(self.image)
        self._ready = True

    def __repr__(self) -> str:
        shape = None if self.image is None else self.image.shape
        return f"ScannedImage(source={self.source!r}, shape={shape}, parameters={self.parameters!r})"


def scans_from_paths(paths: Iterable[str], template_name: str = "",
                     parameters: Sequence[str] = ()) -> List[ScannedImage]:
    """One ScannedImage per raster file, or per page for PDFs."""
    scans: List[ScannedImage] = []
    for p in paths:
        if str(p).lower().endswith(".pdf"):
            try:
                n = pdf_page_count(str(p))
            except (OSError, RuntimeError, ValueError) as e:
                raise AnalysisError(f"Could not open PDF {p}: {e}") from e
            for i in range(n):
                scans.append(ScannedImage.from_path(p, template_name, list(parameters) + [str(i + 1)], page_index=i))
        else:
            scans.append(ScannedImage.from_path(p, template_name, parameters))
    return scans
