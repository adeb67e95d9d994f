from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .geometry import iou_one_to_many
from .types import Detection


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.5
    # None keeps every surviving box.
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.max_detections is not None and self.max_detections < 0:
            raise ValueError("max_detections must be >= 0 or None")


def _descending(scores: np.ndarray) -> np.ndarray:
    # Stable: equal scores keep their input order.
    return np.argsort(-scores, kind="stable")


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of kept boxes, highest score first.

    A box is dropped when its IoU with an already kept box is strictly greater
    than `cfg.iou_threshold`.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.shape[0] != scores.shape[0]:
        raise ValueError(f"boxes and scores disagree: {boxes.shape[0]} vs {scores.shape[0]}")

    limit = cfg.max_detections
    if boxes.shape[0] == 0 or limit == 0:
        return np.empty((0,), dtype=np.int64)

    order = _descending(scores)
    keep: List[int] = []

    while order.size > 0 and (limit is None or len(keep) < limit):
        i = order[0]
        keep.append(int(i))

        rest = order[1:]
        overlap = iou_one_to_many(boxes[i], boxes[rest])
        order = rest[overlap <= cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)


def topk(scores: np.ndarray, max_detections: Optional[int]) -> np.ndarray:
    """
    Indices of the `max_detections` best scores without any suppression.
    """

    order = _descending(np.asarray(scores, dtype=np.float64).reshape(-1))
    if max_detections is None:
        return order
    return order[:max_detections]


def nms_per_class(boxes: np.ndarray, scores: np.ndarray, class_ids: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Run NMS independently for every class id, then merge by descending score.
    """

    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    class_ids = np.asarray(class_ids).reshape(-1)

    kept: List[int] = []
    for cls in np.unique(class_ids):
        idx = np.where(class_ids == cls)[0]
        keep_local = nms(boxes[idx], scores[idx], cfg)
        kept.extend(idx[keep_local].tolist())

    if not kept:
        return np.empty((0,), dtype=np.int64)

    # Merge in input order first so the stable sort breaks ties like the class-agnostic path.
    kept_arr = np.array(sorted(kept), dtype=np.int64)
    kept_arr = kept_arr[_descending(scores[kept_arr])]
    if cfg.max_detections is not None:
        kept_arr = kept_arr[: cfg.max_detections]
    return kept_arr


def _as_arrays(candidates: Sequence[Detection]):
    boxes = np.array([d.as_xyxy() for d in candidates], dtype=np.float64).reshape(-1, 4)
    scores = np.array([d.score for d in candidates], dtype=np.float64)
    return boxes, scores


def suppress(
    candidates: Sequence[Detection],
    iou_threshold: float = 0.5,
    output_limit: Optional[int] = None,
    class_agnostic: bool = True,
) -> List[Detection]:
    """
    Greedy non-maximum suppression over decoded detections.

    Returns a new list ordered by descending score; the input is not modified.
    `output_limit=None` is unbounded, a small value such as 1 keeps only the best box.
    """

    cfg = NMSConfig(iou_threshold=iou_threshold, max_detections=output_limit)
    if not candidates:
        return []

    boxes, scores = _as_arrays(candidates)
    if class_agnostic:
        keep = nms(boxes, scores, cfg)
    else:
        class_ids = np.array([d.class_id for d in candidates], dtype=np.int64)
        keep = nms_per_class(boxes, scores, class_ids, cfg)
    return [candidates[int(i)] for i in keep]


def select_top(candidates: Sequence[Detection], output_limit: Optional[int] = None) -> List[Detection]:
    """
    Highest-score candidates without suppression (stable on ties).
    """

    if output_limit is not None and output_limit < 0:
        raise ValueError("output_limit must be >= 0 or None")
    if not candidates:
        return []
    _, scores = _as_arrays(candidates)
    return [candidates[int(i)] for i in topk(scores, output_limit)]
