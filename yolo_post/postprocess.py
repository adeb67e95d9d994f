from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .decode import ClassMode, Decoder
from .nms import select_top, suppress
from .tensor import TensorLayout, TensorView
from .types import Detection, DetectionResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostprocessConfig:
    """
    Post-processing settings for one model output.
    """

    conf_threshold: float = 0.3
    iou_threshold: float = 0.5
    # None keeps every box that survives NMS; 1 for single-detection deployments.
    max_detections: Optional[int] = None
    layout: TensorLayout = TensorLayout.ROW_MAJOR
    # None picks SINGLE/MULTI from the output width and label count.
    class_mode: Optional[ClassMode] = None
    # If False, skip NMS and only keep top `max_detections` by score.
    apply_nms: bool = True
    # If False, runs per-class NMS then merges results by score.
    class_agnostic_nms: bool = True
    # Optional list of class IDs to keep; None keeps all.
    class_ids: Optional[Tuple[int, ...]] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.max_detections is not None and self.max_detections < 0:
            raise ValueError("max_detections must be >= 0 or None")
        object.__setattr__(self, "layout", TensorLayout(self.layout))
        if self.class_mode is not None:
            object.__setattr__(self, "class_mode", ClassMode(self.class_mode))
        if self.class_ids is not None:
            object.__setattr__(self, "class_ids", tuple(int(c) for c in self.class_ids))


class Postprocessor:
    """
    Raw model output -> ranked, de-duplicated detections in image pixels.

    tensor view -> decode (threshold, scale, clamp, classify) -> class filter -> NMS

    Stateless between calls, so one instance can serve several threads.
    """

    def __init__(self, cfg: PostprocessConfig = PostprocessConfig()):
        self.cfg = cfg

    def view(self, preds: np.ndarray, shape: Optional[Tuple[int, int]] = None) -> TensorView:
        return TensorView(preds, layout=self.cfg.layout, shape=shape)

    def decoder_for(self, view: TensorView, labels: Sequence[str]) -> Decoder:
        mode = self.cfg.class_mode
        if mode is None:
            mode = ClassMode.for_output(view.num_attributes, len(labels))
        return Decoder(mode)

    def process(
        self,
        preds: Union[np.ndarray, TensorView],
        image_size: Tuple[int, int],
        labels: Sequence[str] = (),
        decoder: Optional[Decoder] = None,
    ) -> DetectionResult:
        """
        Args:
            preds: output for a single image, or an already built `TensorView`
            image_size: (width, height) of the original image
            labels: class names indexed by class id
            decoder: reuse a decoder whose mode was fixed up front
        """

        view = preds if isinstance(preds, TensorView) else self.view(preds)
        if decoder is None:
            decoder = self.decoder_for(view, labels)

        width, height = image_size
        candidates, stats = decoder.decode_with_stats(view, width, height, labels, self.cfg.conf_threshold)

        if self.cfg.class_ids is not None:
            wanted = set(self.cfg.class_ids)
            candidates = [d for d in candidates if d.class_id in wanted]

        if self.cfg.apply_nms:
            kept = suppress(
                candidates,
                iou_threshold=self.cfg.iou_threshold,
                output_limit=self.cfg.max_detections,
                class_agnostic=self.cfg.class_agnostic_nms,
            )
        else:
            kept = select_top(candidates, self.cfg.max_detections)

        logger.debug("%d candidate(s) -> %d detection(s)", len(candidates), len(kept))
        return DetectionResult(detections=tuple(kept), image_size=(int(width), int(height)), stats=stats)

    def __call__(self, preds: np.ndarray, image_size: Tuple[int, int], labels: Sequence[str] = ()) -> List[Detection]:
        return list(self.process(preds, image_size, labels).detections)
