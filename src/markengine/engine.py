# src/markengine/engine.py
"""
Apply a template to a scanned page.

Pipeline per page:
  register -> grayscale -> barcode fields -> threshold -> (analyzed JPEG)
  -> invert -> bubble fields -> aggregate

Any exception after the output record is created fails the page (outcome
Failure + error message); preparation errors from the scan's readiness
contract propagate to the caller before any output exists.
"""
from __future__ import annotations

import enum
import itertools
import logging
import os
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import cv2 as cv
import numpy as np

from .debug_capture import DebugCapture
from .engine_defaults import DEFAULTS, EngineOptions
from .output import FieldResult, OmrPageOutput, Outcome
from .scanned_image import ScannedImage
from .template import BarcodeField, BubbleField, Field, Template
from .tools.aggregator import aggregate
from .tools.barcode_reader import read_barcode_field
from .tools.binarize import invert, threshold, to_grayscale
from .tools.mark_detector import detect_bubble
from .tools.registration import register_image
from .visualize_core import draw_fields

logger = logging.getLogger(__name__)

# per-process page sequence; keeps ids distinct within the same second
_page_seq = itertools.count(1)
_page_seq_lock = threading.Lock()


class PageState(str, enum.Enum):
    CREATED = "Created"
    REGISTERING = "Registering"
    DECODING = "Decoding"
    BINARIZING = "Binarizing"
    DETECTING_MARKS = "DetectingMarks"
    AGGREGATING = "Aggregating"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class WorkingImage:
    """The page's working pixels; dropped by ``release`` when the page is done."""

    def __init__(self, pixels: np.ndarray):
        self.pixels: Optional[np.ndarray] = pixels

    @property
    def released(self) -> bool:
        return self.pixels is None

    def replace(self, pixels: np.ndarray) -> None:
        self.pixels = pixels

    def release(self) -> None:
        self.pixels = None


@contextmanager
def acquire_working_image(scan_bgr: np.ndarray, template: Template) -> Iterator[WorkingImage]:
    # only a successfully registered image is ever handed out, and then always released
    working = WorkingImage(register_image(scan_bgr, template.corners))
    try:
        yield working
    finally:
        working.release()


def ensure_ready(scan: ScannedImage) -> None:
    if not scan.is_ready_for_scan:
        if not scan.is_scannable:
            scan.analyze()
        scan.prepare_processing()


def new_page_output(template: Template, scan: ScannedImage) -> OmrPageOutput:
    name = scan.template_name or template.name
    now = datetime.now()
    with _page_seq_lock:
        seq = next(_page_seq)
    return OmrPageOutput(
        id=f"{name}{now:%Y%m%d%H%M%S}-{seq:04d}",
        template_id=name,
        parameters=list(scan.parameters),
        start_time=now,
    )


def write_analyzed_image(bw: np.ndarray, page_id: str, directory: str, quality: int) -> str:
    Path(directory).mkdir(parents=True, exist_ok=True)
    fd, path = tempfile.mkstemp(prefix=f"{page_id}-", suffix=".jpg", dir=directory)
    os.close(fd)
    if not cv.imwrite(path, bw, [cv.IMWRITE_JPEG_QUALITY, int(quality)]):
        raise OSError(f"Could not write analyzed image {path}")
    return path


class PagePipeline:
    """One page through the pipeline; ``state`` follows PageState."""

    def __init__(self, template: Template, scan: ScannedImage, options: EngineOptions):
        self.template = template
        self.scan = scan
        self.options = options
        self.state = PageState.CREATED
        self.output = new_page_output(template, scan)
        self.capture = DebugCapture(self.output.id, scan.parameters,
                                    options.debug_dir, options.save_intermediate_images)

    def _enter(self, state: PageState) -> None:
        logger.debug("page %s: %s -> %s", self.output.id, self.state.value, state.value)
        self.state = state

    def run(self) -> OmrPageOutput:
        out = self.output
        out.debug_images = self.capture.refs
        self.capture.save("init", self.scan.image)
        try:
            self._enter(PageState.REGISTERING)
            with acquire_working_image(self.scan.image, self.template) as working:
                self._process(working)
            self._enter(PageState.SUCCEEDED)
            out.finalize(Outcome.SUCCESS)
        except Exception as e:
            logger.exception("page %s failed while %s", out.id, self.state.value)
            self._enter(PageState.FAILED)
            out.details.clear()
            self._discard_analyzed_image()
            out.finalize(Outcome.FAILURE, str(e) or type(e).__name__)
        return out

    def _discard_analyzed_image(self) -> None:
        path, self.output.analyzed_image = self.output.analyzed_image, None
        if path:
            try:
                Path(path).unlink(missing_ok=True)
            except OSError as e:
                logger.warning("could not remove analyzed image %s: %s", path, e)

    def _process(self, working: WorkingImage) -> None:
        opts, tpl, out = self.options, self.template, self.output
        self.capture.save("tx", working.pixels)
        if self.capture.enabled:
            self.capture.save("fields", draw_fields(working.pixels, tpl))

        self._enter(PageState.DECODING)
        working.replace(to_grayscale(working.pixels))
        # keyed by declaration index so aggregation follows template order
        results: Dict[int, FieldResult] = {}
        for i, fld in enumerate(tpl.fields):
            if isinstance(fld, BarcodeField):
                results[i] = read_barcode_field(working.pixels, fld, opts.barcode_margin)
        self.capture.save("gs", working.pixels)

        self._enter(PageState.BINARIZING)
        working.replace(threshold(working.pixels, opts.threshold))
        self.capture.save("bw", working.pixels)
        out.analyzed_image = write_analyzed_image(working.pixels, out.id, opts.analyzed_dir, opts.jpeg_quality)
        h, w = working.pixels.shape[:2]
        out.bounding_size = (w, h)
        working.replace(invert(working.pixels))
        self.capture.save("inv", working.pixels)

        self._enter(PageState.DETECTING_MARKS)
        for i, fld in enumerate(tpl.fields):
            if isinstance(fld, BubbleField):
                results[i] = detect_bubble(working.pixels, fld, opts.min_blob_area)

        self._enter(PageState.AGGREGATING)
        ordered: List[Tuple[Field, FieldResult]] = [(tpl.fields[i], results[i]) for i in sorted(results)]
        aggregate(out, ordered)


class Engine:
    """Stateless apart from its (immutable) options; safe to share across threads."""

    def __init__(self, options: EngineOptions = DEFAULTS):
        self.options = options

    def apply_template(self, template: Template, scan: ScannedImage) -> OmrPageOutput:
        ensure_ready(scan)
        return PagePipeline(template, scan, self.options).run()

    def apply_many(self, template: Template, scans: Sequence[ScannedImage]) -> List[OmrPageOutput]:
        """Process pages concurrently (``options.workers``); outputs follow input order."""
        if self.options.workers <= 1 or len(scans) <= 1:
            return [self.apply_template(template, s) for s in scans]
        with ThreadPoolExecutor(max_workers=self.options.workers) as ex:
            return list(ex.map(lambda s: self.apply_template(template, s), scans))
