from __future__ import annotations

from typing import Sequence

import numpy as np


def box_area(box: Sequence[float]) -> float:
    """
    Area of an xyxy box. Inverted boxes give a non-positive area.
    """

    x1, y1, x2, y2 = (float(v) for v in box[:4])
    return (x2 - x1) * (y2 - y1)


def iou(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Intersection-over-union of two xyxy boxes, in [0, 1].

    Returns 0.0 when the union area is not positive (degenerate boxes).
    """

    ax1, ay1, ax2, ay2 = (float(v) for v in a[:4])
    bx1, by1, bx2, by2 = (float(v) for v in b[:4])

    iw = max(0.0, min(ax2, bx2) - max(ax1, bx1))
    ih = max(0.0, min(ay2, by2) - max(ay1, by1))
    inter = iw * ih
    union = (ax2 - ax1) * (ay2 - ay1) + (bx2 - bx1) * (by2 - by1) - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def iou_one_to_many(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    Vectorized `iou` of one xyxy box against an (M, 4) array of xyxy boxes.

    Uses the same arithmetic as `iou` so scalar and array results agree exactly.
    """

    box = np.asarray(box, dtype=np.float64)
    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.float64)

    xx1 = np.maximum(box[0], boxes[:, 0])
    yy1 = np.maximum(box[1], boxes[:, 1])
    xx2 = np.minimum(box[2], boxes[:, 2])
    yy2 = np.minimum(box[3], boxes[:, 3])

    w = np.maximum(0.0, xx2 - xx1)
    h = np.maximum(0.0, yy2 - yy1)
    inter = w * h
    area_a = (box[2] - box[0]) * (box[3] - box[1])
    area_b = (boxes[:, 2] - boxes[:, 0]) * (boxes[:, 3] - boxes[:, 1])
    union = area_a + area_b - inter

    out = np.zeros_like(inter)
    np.divide(inter, union, out=out, where=union > 0.0)
    return out
