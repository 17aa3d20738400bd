# src/markengine/output.py
"""
Page output model.

``details`` holds answer records: ``BubbleAnswer`` / ``BarcodeAnswer`` or a
``RowGroup`` that holds answer records itself (row groups never nest).

Answer equality for de-duplication is ``same_answer``: same record kind, same
key, same value. Geometry, blob area and barcode format are ignored.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from .template import Point


class Outcome(str, enum.Enum):
    SUCCESS = "Success"
    FAILURE = "Failure"


@dataclass
class BubbleAnswer:
    id: str
    key: str                 # the bubble's question
    value: str
    top_left: Point
    bottom_right: Point
    blob_area: int

    @property
    def answer_key(self) -> Tuple[str, str, str]:
        return ("bubble", self.key, self.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "bubble",
            "id": self.id,
            "key": self.key,
            "value": self.value,
            "top_left": list(self.top_left.as_tuple()),
            "bottom_right": list(self.bottom_right.as_tuple()),
            "blob_area": self.blob_area,
        }


@dataclass
class BarcodeAnswer:
    id: str
    data: str
    format: str
    top_left: Point
    bottom_right: Point

    @property
    def answer_key(self) -> Tuple[str, str, str]:
        return ("barcode", self.id, self.data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "barcode",
            "id": self.id,
            "data": self.data,
            "format": self.format,
            "top_left": list(self.top_left.as_tuple()),
            "bottom_right": list(self.bottom_right.as_tuple()),
        }


Answer = Union[BubbleAnswer, BarcodeAnswer]


def same_answer(a: Answer, b: Answer) -> bool:
    return a.answer_key == b.answer_key


@dataclass
class RowGroup:
    id: str
    details: List[Answer] = field(default_factory=list)

    def already_answered(self, answer: Answer) -> bool:
        return any(same_answer(d, answer) for d in self.details)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "row", "id": self.id, "details": [d.to_dict() for d in self.details]}


Detail = Union[BubbleAnswer, BarcodeAnswer, RowGroup]


# ---------- per-field results ----------
@dataclass(frozen=True)
class Hit:
    answer: Answer


@dataclass(frozen=True)
class NoHit:
    pass


@dataclass(frozen=True)
class SoftError:
    reason: str


FieldResult = Union[Hit, NoHit, SoftError]
NO_HIT = NoHit()


@dataclass
class OmrPageOutput:
    id: str
    template_id: str
    parameters: List[str] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)
    stop_time: Optional[datetime] = None
    outcome: Optional[Outcome] = None
    error_message: Optional[str] = None
    details: List[Detail] = field(default_factory=list)
    bounding_size: Optional[Tuple[int, int]] = None
    analyzed_image: Optional[str] = None
    debug_images: Optional[List[str]] = None

    def already_answered(self, answer: Answer) -> bool:
        """True if an equal answer sits at the top level (row groups are not searched)."""
        return any(not isinstance(d, RowGroup) and same_answer(d, answer) for d in self.details)

    def find_row_group(self, group_id: str) -> Optional[RowGroup]:
        for d in self.details:
            if isinstance(d, RowGroup) and d.id == group_id:
                return d
        return None

    def finalize(self, outcome: Outcome, error_message: Optional[str] = None) -> None:
        if self.outcome is not None:
            raise RuntimeError(f"Page output {self.id} already finalized as {self.outcome.value}.")
        self.outcome = outcome
        self.error_message = error_message if outcome is Outcome.FAILURE else None
        self.stop_time = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "template_id": self.template_id,
            "parameters": list(self.parameters),
            "start_time": self.start_time.isoformat(),
            "stop_time": self.stop_time.isoformat() if self.stop_time else None,
            "outcome": self.outcome.value if self.outcome else None,
            "error_message": self.error_message,
            "details": [d.to_dict() for d in self.details],
            "bounding_size": list(self.bounding_size) if self.bounding_size else None,
            "analyzed_image": self.analyzed_image,
        }
        if self.debug_images is not None:
            out["debug_images"] = list(self.debug_images)
        return out
