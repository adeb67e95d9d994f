from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .tensor import MIN_ATTRIBUTES, TensorView
from .types import DecodeStats, Detection

logger = logging.getLogger(__name__)

UNKNOWN_CLASS_NAME = "Unknown"
FALLBACK_CLASS_ID = 0


class ClassMode(str, Enum):
    """
    How a prediction's class is resolved.

    - SINGLE: every prediction is class 0, trailing scores (if any) are ignored
    - MULTI: argmax over the trailing per-class scores
    """

    SINGLE = "single"
    MULTI = "multi"

    @classmethod
    def for_output(cls, num_attributes: int, vocabulary_size: int) -> "ClassMode":
        """
        Pick the mode once, from the declared output width and the label count.
        """

        if num_attributes > MIN_ATTRIBUTES and vocabulary_size > 1:
            return cls.MULTI
        return cls.SINGLE


class Decoder:
    """
    Turns raw predictions into pixel-space `Detection` candidates.

    Steps, vectorized over all predictions:
    - keep objectness strictly above the confidence threshold
    - scale normalized cx, cy, w, h by the image size
    - derive corners from the predicted size and clamp them into the image
    - drop boxes that are empty after clamping
    - resolve class id/name

    Output order follows the tensor; ranking is left to suppression.
    """

    def __init__(self, mode: ClassMode = ClassMode.SINGLE):
        self.mode = ClassMode(mode)

    def decode(
        self,
        view: TensorView,
        image_width: int,
        image_height: int,
        labels: Sequence[str],
        conf_threshold: float = 0.3,
    ) -> List[Detection]:
        detections, _ = self.decode_with_stats(view, image_width, image_height, labels, conf_threshold)
        return detections

    def decode_with_stats(
        self,
        view: TensorView,
        image_width: int,
        image_height: int,
        labels: Sequence[str],
        conf_threshold: float = 0.3,
    ) -> Tuple[List[Detection], DecodeStats]:
        if image_width <= 0 or image_height <= 0:
            raise ValueError(f"Image size must be positive, got {image_width}x{image_height}")

        n = view.num_predictions
        if n == 0:
            return [], DecodeStats()

        img_w = float(image_width)
        img_h = float(image_height)

        # Compare in the tensor's own precision: float32(0.3) > 0.3 in float64.
        # NaN objectness compares False and is dropped here.
        raw = view.objectness()
        if np.issubdtype(raw.dtype, np.floating):
            passed = np.nonzero(raw > raw.dtype.type(conf_threshold))[0]
        else:
            passed = np.nonzero(np.asarray(raw, dtype=np.float64) > conf_threshold)[0]
        objectness = np.asarray(raw, dtype=np.float64)
        below = n - int(passed.size)

        boxes = np.asarray(view.boxes()[passed], dtype=np.float64)
        cx = boxes[:, 0] * img_w
        cy = boxes[:, 1] * img_h
        w = boxes[:, 2] * img_w
        h = boxes[:, 3] * img_h

        x1 = np.clip(cx - w / 2, 0.0, img_w)
        y1 = np.clip(cy - h / 2, 0.0, img_h)
        x2 = np.clip(cx + w / 2, 0.0, img_w)
        y2 = np.clip(cy + h / 2, 0.0, img_h)

        valid = (x2 > x1) & (y2 > y1)
        degenerate = int(passed.size - np.count_nonzero(valid))

        rows = passed[valid]
        class_ids = self._resolve_class_ids(view, rows, len(labels))

        bad = (class_ids < 0) | (class_ids >= len(labels))
        invalid = int(np.count_nonzero(bad))
        if invalid:
            logger.warning(
                "%d prediction(s) resolved to a class id outside [0, %d), using %d (first at row %d)",
                invalid,
                len(labels),
                FALLBACK_CLASS_ID,
                int(rows[bad][0]),
            )
            class_ids = np.where(bad, FALLBACK_CLASS_ID, class_ids)

        detections: List[Detection] = []
        for j, k in enumerate(np.nonzero(valid)[0]):
            cls_id = int(class_ids[j])
            detections.append(
                Detection(
                    x1=float(x1[k]),
                    y1=float(y1[k]),
                    x2=float(x2[k]),
                    y2=float(y2[k]),
                    cx=float(cx[k]),
                    cy=float(cy[k]),
                    w=float(w[k]),
                    h=float(h[k]),
                    score=float(objectness[rows[j]]),
                    class_id=cls_id,
                    class_name=class_name(labels, cls_id),
                )
            )

        stats = DecodeStats(
            predictions=n,
            below_threshold=below,
            degenerate=degenerate,
            invalid_class=invalid,
            kept=len(detections),
        )
        logger.debug("decoded %s", stats)
        return detections, stats

    def _resolve_class_ids(self, view: TensorView, rows: np.ndarray, vocabulary_size: int) -> np.ndarray:
        if self.mode is ClassMode.SINGLE or not view.has_class_scores:
            return np.zeros(rows.shape[0], dtype=np.int64)

        limit = min(view.num_class_scores, vocabulary_size)
        if limit == 0:
            return np.zeros(rows.shape[0], dtype=np.int64)

        scores = np.asarray(view.class_scores()[rows, :limit], dtype=np.float64)
        scores = np.where(np.isnan(scores), -np.inf, scores)
        # argmax returns the first maximum, so ties go to the lowest index.
        return np.argmax(scores, axis=1).astype(np.int64)


def class_name(labels: Sequence[str], class_id: int) -> str:
    if 0 <= class_id < len(labels):
        return labels[class_id]
    return UNKNOWN_CLASS_NAME


def decode(
    view: TensorView,
    image_width: int,
    image_height: int,
    labels: Sequence[str],
    conf_threshold: float = 0.3,
    mode: Optional[ClassMode] = None,
) -> List[Detection]:
    """
    Decode with a mode picked from the view and the label count when `mode` is None.
    """

    if mode is None:
        mode = ClassMode.for_output(view.num_attributes, len(labels))
    return Decoder(mode).decode(view, image_width, image_height, labels, conf_threshold)
