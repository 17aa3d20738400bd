# src/markengine/template.py
"""
Template model: calibration corners plus an ordered list of fields.

Fields are a closed set (``BarcodeField`` | ``BubbleField``); pipeline stages
dispatch on the concrete type with ``isinstance``.

Templates are usually loaded from YAML/JSON:

    name: survey-a
    corners:
      top_left: [0, 0]
      top_right: [1700, 0]
      bottom_left: [0, 2200]
      bottom_right: [1700, 2200]
    fields:
      - id: barcode
        type: barcode
        rect: [100, 80, 400, 60]          # x, y, width, height
      - id: q1-a
        type: bubble
        question: q1
        value: A
        answer_row_group: ""
        corners:
          top_left: [120, 300]
          top_right: [150, 300]
          bottom_left: [120, 330]
          bottom_right: [150, 330]
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .config_io import load_config_any


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Quad:
    top_left: Point
    top_right: Point
    bottom_left: Point
    bottom_right: Point

    @property
    def width(self) -> float:
        return self.top_right.x - self.top_left.x

    @property
    def height(self) -> float:
        return self.bottom_left.y - self.top_left.y

    @classmethod
    def from_rect(cls, x: float, y: float, w: float, h: float) -> "Quad":
        return cls(Point(x, y), Point(x + w, y), Point(x, y + h), Point(x + w, y + h))

    def bounds(self) -> Tuple[float, float, float, float]:
        """Axis-aligned (x0, y0, x1, y1) enclosing all four corners."""
        xs = [p.x for p in (self.top_left, self.top_right, self.bottom_left, self.bottom_right)]
        ys = [p.y for p in (self.top_left, self.top_right, self.bottom_left, self.bottom_right)]
        return min(xs), min(ys), max(xs), max(ys)


@dataclass(frozen=True)
class BarcodeField:
    id: str
    corners: Quad


@dataclass(frozen=True)
class BubbleField:
    id: str
    corners: Quad
    question: str
    value: str
    answer_row_group: Optional[str] = None

    @property
    def row_group(self) -> Optional[str]:
        """Row group id, or None for a standalone answer."""
        return self.answer_row_group or None


Field = Union[BarcodeField, BubbleField]


@dataclass(frozen=True)
class Template:
    name: str
    corners: Quad
    fields: Tuple[Field, ...] = field(default_factory=tuple)

    @property
    def barcode_fields(self) -> List[BarcodeField]:
        return [f for f in self.fields if isinstance(f, BarcodeField)]

    @property
    def bubble_fields(self) -> List[BubbleField]:
        return [f for f in self.fields if isinstance(f, BubbleField)]

    def validate(self) -> "Template":
        """Check corner geometry, id uniqueness and that every field sits inside the page."""
        if self.corners.width <= 0 or self.corners.height <= 0:
            raise ValueError(
                f"Template '{self.name}' corners must span a positive area "
                f"(width={self.corners.width}, height={self.corners.height})."
            )
        x0, y0, x1, y1 = self.corners.bounds()
        seen = set()
        for f in self.fields:
            if f.id in seen:
                raise ValueError(f"Duplicate field id '{f.id}' in template '{self.name}'.")
            seen.add(f.id)
            if f.corners.width <= 0 or f.corners.height <= 0:
                raise ValueError(f"Field '{f.id}' has a non-positive width or height.")
            fx0, fy0, fx1, fy1 = f.corners.bounds()
            if fx0 < x0 or fy0 < y0 or fx1 > x1 or fy1 > y1:
                raise ValueError(f"Field '{f.id}' lies outside the template bounds {(x0, y0, x1, y1)}.")
        return self


# ---------- parsing ----------
def _point(raw: Any) -> Point:
    if isinstance(raw, Mapping):
        return Point(float(raw["x"]), float(raw["y"]))
    x, y = raw
    return Point(float(x), float(y))


def _quad(raw: Mapping[str, Any], where: str) -> Quad:
    if "rect" in raw:
        x, y, w, h = (float(v) for v in raw["rect"])
        return Quad.from_rect(x, y, w, h)
    corners = raw.get("corners")
    if not isinstance(corners, Mapping):
        raise ValueError(f"{where}: expected 'corners' mapping or 'rect' [x, y, w, h].")
    try:
        return Quad(
            top_left=_point(corners["top_left"]),
            top_right=_point(corners["top_right"]),
            bottom_left=_point(corners["bottom_left"]),
            bottom_right=_point(corners["bottom_right"]),
        )
    except KeyError as e:
        raise ValueError(f"{where}: missing corner {e}.") from e


def _field(raw: Mapping[str, Any], index: int) -> Field:
    fid = str(raw.get("id") or "")
    if not fid:
        raise ValueError(f"fields[{index}]: missing 'id'.")
    kind = str(raw.get("type", "bubble")).lower()
    corners = _quad(raw, f"field '{fid}'")
    if kind == "barcode":
        return BarcodeField(id=fid, corners=corners)
    if kind == "bubble":
        if "question" not in raw or "value" not in raw:
            raise ValueError(f"field '{fid}': bubble fields need 'question' and 'value'.")
        group = raw.get("answer_row_group")
        return BubbleField(
            id=fid,
            corners=corners,
            question=str(raw["question"]),
            value=str(raw["value"]),
            answer_row_group=str(group) if group else None,
        )
    raise ValueError(f"field '{fid}': unknown type '{kind}' (expected 'barcode' or 'bubble').")


def template_from_dict(cfg: Mapping[str, Any], default_name: str = "template") -> Template:
    fields_raw: Sequence[Mapping[str, Any]] = cfg.get("fields") or []
    tpl = Template(
        name=str(cfg.get("name") or default_name),
        corners=_quad(cfg, "template"),
        fields=tuple(_field(f, i) for i, f in enumerate(fields_raw)),
    )
    return tpl.validate()


def load_template(path: str | Path) -> Template:
    """Load and validate a template from YAML (.yaml/.yml) or JSON."""
    p = Path(path)
    cfg: Dict[str, Any] = load_config_any(p)
    return template_from_dict(cfg, default_name=p.stem)
