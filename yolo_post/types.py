from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Detection:
    """
    One decoded box in original image pixel coordinates.

    Both the corner form (x1, y1, x2, y2) and the center form (cx, cy, w, h) are
    kept. The center form comes from the raw prediction, so it is not clamped.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    cx: float
    cy: float
    w: float
    h: float
    score: float
    class_id: int = 0
    class_name: str = "Unknown"

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    def as_cxcywh(self) -> Tuple[float, float, float, float]:
        return self.cx, self.cy, self.w, self.h

    @property
    def area(self) -> float:
        return (self.x2 - self.x1) * (self.y2 - self.y1)

    def scaled(self, sx: float, sy: float) -> "Detection":
        """
        Map the box onto a surface scaled by (sx, sy), e.g. a preview view.
        """

        return replace(
            self,
            x1=self.x1 * sx,
            y1=self.y1 * sy,
            x2=self.x2 * sx,
            y2=self.y2 * sy,
            cx=self.cx * sx,
            cy=self.cy * sy,
            w=self.w * sx,
            h=self.h * sy,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DecodeStats:
    predictions: int = 0
    below_threshold: int = 0
    degenerate: int = 0
    invalid_class: int = 0
    kept: int = 0


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of one post-processing call. An empty result is a valid outcome;
    failures are raised as exceptions instead.
    """

    detections: Tuple[Detection, ...]
    image_size: Tuple[int, int]
    inference_ms: Optional[float] = None
    stats: DecodeStats = field(default_factory=DecodeStats)

    @property
    def is_empty(self) -> bool:
        return not self.detections

    def __len__(self) -> int:
        return len(self.detections)

    def __iter__(self):
        return iter(self.detections)
