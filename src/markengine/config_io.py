# src/markengine/config_io.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict
import json

import yaml


def load_config_any(path: str | Path) -> Dict[str, Any]:
    """
    Prefer YAML, but transparently accept JSON.
    - If extension is .yml/.yaml -> use YAML
    - If extension is .json -> use JSON
    - Otherwise: try YAML first, then JSON
    """
    p = Path(path)
    data = p.read_text(encoding="utf-8")
    return parse_config_text(data, p.suffix.lower())


def parse_config_text(data: str, ext: str = "") -> Dict[str, Any]:
    """Parse already-read config text; `ext` is the original file suffix if known."""
    if ext in {".yml", ".yaml"}:
        cfg = yaml.safe_load(data)
    elif ext == ".json":
        cfg = json.loads(data)
    else:
        # No/unknown extension: prefer YAML, then fallback to JSON
        try:
            cfg = yaml.safe_load(data)
        except yaml.YAMLError:
            cfg = json.loads(data)

    if not isinstance(cfg, dict):
        raise ValueError("Config root must be a mapping/object.")

    return cfg
