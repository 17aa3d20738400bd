# markengine/engine_defaults.py
from __future__ import annotations

import tempfile
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict

from .config_io import load_config_any


@dataclass(frozen=True)
class EngineOptions:
    # Single source of truth for pipeline tunables
    threshold: int = 120                    # binarization cutoff, pixels >= threshold become white
    min_blob_area: int = 3                  # blobs smaller than this are noise
    barcode_margin: int = 10                # added to the barcode bottom-right y
    jpeg_quality: int = 90                  # analyzed image encoding
    save_intermediate_images: bool = False  # write the six per-stage BMP snapshots
    debug_dir: str = "imgproc"
    analyzed_dir: str = tempfile.gettempdir()
    workers: int = 1                        # pages processed concurrently by apply_many

DEFAULTS = EngineOptions()

_OPTION_NAMES = {f.name for f in fields(EngineOptions)}


def apply_overrides(base: EngineOptions = DEFAULTS, **overrides: Any) -> EngineOptions:
    # produce an overridden immutable config without mutating DEFAULTS; None means "keep"
    unknown = set(overrides) - _OPTION_NAMES
    if unknown:
        raise ValueError(f"Unknown engine option(s): {', '.join(sorted(unknown))}")
    kept = {k: v for k, v in overrides.items() if v is not None}
    opts = replace(base, **kept)
    if not 0 <= opts.threshold <= 255:
        raise ValueError(f"threshold must be within 0..255, got {opts.threshold}")
    if opts.min_blob_area < 1:
        raise ValueError(f"min_blob_area must be >= 1, got {opts.min_blob_area}")
    if opts.workers < 1:
        raise ValueError(f"workers must be >= 1, got {opts.workers}")
    return opts


def load_options(path: str | Path, base: EngineOptions = DEFAULTS) -> EngineOptions:
    """
    Read engine settings from a YAML/JSON mapping, e.g.

        threshold: 110
        save_intermediate_images: true
        debug_dir: out/debug
    """
    cfg: Dict[str, Any] = load_config_any(path)
    return apply_overrides(base, **cfg)
